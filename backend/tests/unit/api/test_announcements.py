"""
Unit Tests for Announcement API Endpoints
"""
import pytest
from httpx import AsyncClient


async def announce(client, headers, **fields):
    payload = {'title': 'Exam week', 'content': 'Exams start Monday', **fields}
    return await client.post('/api/v1/announcements', json=payload, headers=headers)


class TestAnnouncementPermissions:

    @pytest.mark.asyncio
    async def test_student_cannot_create(self, client: AsyncClient, student_headers):
        response = await announce(client, student_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_faculty_creates(self, client: AsyncClient, faculty_user, faculty_headers):
        response = await announce(client, faculty_headers, target_audience=['Students'])

        assert response.status_code == 201
        data = response.json()['data']
        assert data['target_audience'] == ['Students']
        assert data['created_by_id'] == str(faculty_user.id)
        assert data['acknowledgement_count'] == 0

    @pytest.mark.asyncio
    async def test_only_author_updates(self, client: AsyncClient, faculty_headers, other_faculty_headers):
        created = await announce(client, faculty_headers)

        response = await client.put(
            f"/api/v1/announcements/{created.json()['data']['id']}",
            json={'title': 'Changed'}, headers=other_faculty_headers
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_expiry_before_publish(self, client: AsyncClient, faculty_headers):
        response = await announce(
            client, faculty_headers,
            publish_date='2024-09-10T00:00:00', expiry_date='2024-09-01T00:00:00'
        )

        assert response.status_code == 400


class TestAudience:
    """Non-admins only see active announcements meant for them"""

    @pytest.mark.asyncio
    async def test_audience_filtering(self, client: AsyncClient, admin_headers, student_headers, faculty_headers):
        await announce(client, admin_headers, title='For everyone')
        await announce(client, admin_headers, title='For students', target_audience=['Students'])
        await announce(client, admin_headers, title='For faculty', target_audience=['Faculty'])

        students = await client.get('/api/v1/announcements', headers=student_headers)
        faculty = await client.get('/api/v1/announcements', headers=faculty_headers)
        admins = await client.get('/api/v1/announcements', headers=admin_headers)

        assert {a['title'] for a in students.json()['data']} == {'For everyone', 'For students'}
        assert {a['title'] for a in faculty.json()['data']} == {'For everyone', 'For faculty'}
        assert admins.json()['total'] == 3

    @pytest.mark.asyncio
    async def test_hidden_announcement_is_not_found(self, client: AsyncClient, admin_headers, student_headers):
        created = await announce(client, admin_headers, target_audience=['Faculty'])

        response = await client.get(f"/api/v1/announcements/{created.json()['data']['id']}", headers=student_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unpublished_hidden(self, client: AsyncClient, admin_headers, student_headers):
        await announce(client, admin_headers, is_published=False)

        response = await client.get('/api/v1/announcements', headers=student_headers)

        assert response.json()['total'] == 0

    @pytest.mark.asyncio
    async def test_expired_hidden(self, client: AsyncClient, admin_headers, student_headers):
        await announce(client, admin_headers, publish_date='2020-01-01T00:00:00', expiry_date='2020-02-01T00:00:00')

        response = await client.get('/api/v1/announcements', headers=student_headers)

        assert response.json()['total'] == 0

    @pytest.mark.asyncio
    async def test_read_counts_views(self, client: AsyncClient, admin_headers, student_headers):
        created = await announce(client, admin_headers)
        url = f"/api/v1/announcements/{created.json()['data']['id']}"

        await client.get(url, headers=student_headers)
        response = await client.get(url, headers=student_headers)

        assert response.json()['data']['views'] == 2


class TestAcknowledge:

    @pytest.mark.asyncio
    async def test_acknowledge_is_idempotent(self, client: AsyncClient, admin_headers, student_headers):
        created = await announce(client, admin_headers)
        url = f"/api/v1/announcements/{created.json()['data']['id']}"

        first = await client.post(f'{url}/acknowledge', headers=student_headers)
        second = await client.post(f'{url}/acknowledge', headers=student_headers)
        as_admin = await client.get(url, headers=admin_headers)

        assert first.json()['data']['acknowledged'] is True
        assert second.status_code == 200
        assert as_admin.json()['data']['acknowledgement_count'] == 1

    @pytest.mark.asyncio
    async def test_count_hidden_from_readers(self, client: AsyncClient, admin_headers, student_headers):
        created = await announce(client, admin_headers)

        response = await client.get(f"/api/v1/announcements/{created.json()['data']['id']}", headers=student_headers)

        assert 'acknowledgement_count' not in response.json()['data']
        assert response.json()['data']['acknowledged'] is False
