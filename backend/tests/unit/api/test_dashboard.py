"""
Unit Tests for Dashboard API Endpoints
"""
import pytest
from httpx import AsyncClient


class TestFacultyDashboard:

    @pytest.mark.asyncio
    async def test_lists_only_instructed_courses(self, client: AsyncClient, attendance_records, exam_records, faculty_headers):
        response = await client.get('/api/v1/dashboard/faculty', headers=faculty_headers)

        assert response.status_code == 200
        data = response.json()['data']
        assert [course['code'] for course in data['assigned_courses']] == ['CS101']
        assert data['counts'] == {'assigned_courses': 1}
        assert [row['course_code'] for row in data['course_attendance']] == ['CS101']
        assert {row['course_code'] for row in data['exam_stats']} == {'CS101'}

    @pytest.mark.asyncio
    async def test_faculty_id_ignored_for_non_admin(
        self, client: AsyncClient, attendance_records, other_faculty_user, faculty_headers
    ):
        response = await client.get(
            '/api/v1/dashboard/faculty',
            params={'faculty_id': str(other_faculty_user.faculty_profile.id)},
            headers=faculty_headers
        )

        assert [course['code'] for course in response.json()['data']['assigned_courses']] == ['CS101']

    @pytest.mark.asyncio
    async def test_admin_views_any_faculty(self, client: AsyncClient, attendance_records, other_faculty_user, admin_headers):
        response = await client.get(
            '/api/v1/dashboard/faculty',
            params={'faculty_id': str(other_faculty_user.faculty_profile.id)},
            headers=admin_headers
        )

        data = response.json()['data']
        assert data['faculty']['id'] == str(other_faculty_user.faculty_profile.id)
        assert [row['course_code'] for row in data['course_attendance']] == ['CS201']

    @pytest.mark.asyncio
    async def test_student_denied(self, client: AsyncClient, student_headers):
        response = await client.get('/api/v1/dashboard/faculty', headers=student_headers)

        assert response.status_code == 403


class TestStudentDashboard:

    @pytest.mark.asyncio
    async def test_own_attendance_and_results(
        self, client: AsyncClient, attendance_records, exam_records, student_user, student_headers
    ):
        response = await client.get('/api/v1/dashboard/student', headers=student_headers)

        assert response.status_code == 200
        data = response.json()['data']
        assert data['student']['id'] == str(student_user.student_profile.id)
        counts = {row['status']: row['count'] for row in data['attendance_percentages']}
        assert counts == {'present': 2, 'absent': 1, 'late': 0, 'excused': 0}
        assert {row['grade'] for row in data['exam_results']} == {'A-', 'F'}

    @pytest.mark.asyncio
    async def test_classmate_sees_only_own_record(self, client: AsyncClient, attendance_records, auth_headers):
        classmate = attendance_records['classmate']

        response = await client.get('/api/v1/dashboard/student', headers=auth_headers(classmate))

        data = response.json()['data']
        assert sum(row['count'] for row in data['attendance_percentages']) == 1
        assert data['exam_results'] == []


class TestAdminDashboard:

    @pytest.mark.asyncio
    async def test_counts_everything(self, client: AsyncClient, attendance_records, admin_headers):
        response = await client.get('/api/v1/dashboard/admin', headers=admin_headers)

        data = response.json()['data']
        assert data['counts']['courses'] == 2
        assert data['counts']['students'] == 2
        assert sum(row['count'] for row in data['attendance_percentages']) == 4

    @pytest.mark.asyncio
    async def test_faculty_denied(self, client: AsyncClient, faculty_headers):
        response = await client.get('/api/v1/dashboard/admin', headers=faculty_headers)

        assert response.status_code == 403
