"""
Unit Tests for health checks and dashboards
"""
import pytest
from httpx import AsyncClient


class TestHealth:

    @pytest.mark.asyncio
    async def test_liveness(self, client: AsyncClient):
        response = await client.get('/health/live')

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_readiness(self, client: AsyncClient):
        response = await client.get('/health/ready')

        assert response.status_code == 200


class TestDashboards:

    @pytest.mark.asyncio
    async def test_admin_dashboard(self, client: AsyncClient, course, admin_headers):
        response = await client.get('/api/v1/dashboard/admin', headers=admin_headers)

        assert response.status_code == 200
        assert response.json()['success'] is True

    @pytest.mark.asyncio
    async def test_admin_dashboard_forbidden_for_students(self, client: AsyncClient, student_headers):
        response = await client.get('/api/v1/dashboard/admin', headers=student_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_student_dashboard(self, client: AsyncClient, student_headers):
        response = await client.get('/api/v1/dashboard/student', headers=student_headers)

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_export_requires_type(self, client: AsyncClient, admin_headers):
        response = await client.get('/api/v1/analytics/export', headers=admin_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_csv_export(self, client: AsyncClient, student_user, admin_headers):
        response = await client.get('/api/v1/analytics/export?type=students&format=csv', headers=admin_headers)

        assert response.status_code == 200
        assert response.headers['content-type'].startswith('text/csv')
        assert str(student_user.student_profile.student_id) in response.text
