"""
Unit Tests for Admission API Endpoints
"""
import pytest
from datetime import datetime
from httpx import AsyncClient


@pytest.fixture
def application(department, program) -> dict:
    return {
        'applicant_name': 'Asha Rao',
        'applicant_email': 'asha.rao@example.com',
        'applicant_phone': '+91 98765 43210',
        'date_of_birth': '2006-04-12',
        'gender': 'female',
        'program_id': str(program.id),
        'department_id': str(department.id),
        'academic_year': '2024-25',
        'semester': 'Fall',
    }


class TestApplications:

    @pytest.mark.asyncio
    async def test_application_number_sequence(self, client: AsyncClient, application, student_headers):
        first = await client.post('/api/v1/admissions', json=application, headers=student_headers)
        second = await client.post('/api/v1/admissions', json=application, headers=student_headers)

        year = datetime.utcnow().year % 100
        assert first.status_code == 201
        assert first.json()['data']['application_number'] == f'{year:02d}BTCS0001'
        assert second.json()['data']['application_number'] == f'{year:02d}BTCS0002'

    @pytest.mark.asyncio
    async def test_number_not_reissued_after_delete(
        self, client: AsyncClient, application, student_headers, admin_headers
    ):
        first = await client.post('/api/v1/admissions', json=application, headers=student_headers)
        await client.post('/api/v1/admissions', json=application, headers=student_headers)
        await client.delete(f"/api/v1/admissions/{first.json()['data']['id']}", headers=admin_headers)

        third = await client.post('/api/v1/admissions', json=application, headers=student_headers)

        year = datetime.utcnow().year % 100
        assert third.status_code == 201
        assert third.json()['data']['application_number'] == f'{year:02d}BTCS0003'

    @pytest.mark.asyncio
    async def test_creation_recorded_in_history(self, client: AsyncClient, application, student_user, student_headers):
        response = await client.post('/api/v1/admissions', json=application, headers=student_headers)

        data = response.json()['data']
        assert data['application_status'] == 'Draft'
        assert data['user_id'] == str(student_user.id)
        assert [(h['status'], h['remarks']) for h in data['status_history']] == [('Draft', 'Application created')]

    @pytest.mark.asyncio
    async def test_cannot_start_approved(self, client: AsyncClient, application, student_headers):
        application['application_status'] = 'Approved'

        response = await client.post('/api/v1/admissions', json=application, headers=student_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_program(self, client: AsyncClient, application, student_headers):
        application['program_id'] = 'missing-program'

        response = await client.post('/api/v1/admissions', json=application, headers=student_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_status_change_appends_history(self, client: AsyncClient, application, student_headers, admin_headers):
        created = await client.post('/api/v1/admissions', json=application, headers=student_headers)
        url = f"/api/v1/admissions/{created.json()['data']['id']}"

        await client.put(url, json={'application_status': 'Under Review', 'remarks': 'Docs look complete'},
                         headers=admin_headers)
        response = await client.put(url, json={'application_status': 'Under Review'}, headers=admin_headers)

        history = response.json()['data']['status_history']
        assert [h['status'] for h in history] == ['Draft', 'Under Review']
        assert history[1]['remarks'] == 'Docs look complete'

    @pytest.mark.asyncio
    async def test_student_cannot_update(self, client: AsyncClient, application, student_headers):
        created = await client.post('/api/v1/admissions', json=application, headers=student_headers)

        response = await client.put(f"/api/v1/admissions/{created.json()['data']['id']}",
                                    json={'application_status': 'Approved'}, headers=student_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_other_student_cannot_read(
        self, client: AsyncClient, application, student_headers, student_factory, auth_headers
    ):
        created = await client.post('/api/v1/admissions', json=application, headers=student_headers)
        other = await student_factory()

        response = await client.get(f"/api/v1/admissions/{created.json()['data']['id']}", headers=auth_headers(other))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_faculty_can_list(self, client: AsyncClient, application, student_headers, faculty_headers):
        await client.post('/api/v1/admissions', json=application, headers=student_headers)

        response = await client.get('/api/v1/admissions?search=asha', headers=faculty_headers)

        assert response.json()['total'] == 1


class TestAdmissionDocuments:

    @pytest.mark.asyncio
    async def test_upload_verify_delete(self, client: AsyncClient, application, student_headers, admin_headers):
        created = await client.post('/api/v1/admissions', json=application, headers=student_headers)
        url = f"/api/v1/admissions/{created.json()['data']['id']}/documents"

        uploaded = await client.post(
            url,
            files={'file': ('transcript.pdf', b'%PDF-1.4 test', 'application/pdf')},
            data={'document_type': 'Transcript'},
            headers=student_headers
        )
        document = uploaded.json()['data']
        verified = await client.put(f"{url}/{document['id']}/verify", headers=admin_headers)
        deleted = await client.delete(f"{url}/{document['id']}", headers=student_headers)

        assert uploaded.status_code == 201
        assert document['name'] == 'transcript.pdf'
        assert document['file_url'].startswith('/uploads/admissions/')
        assert verified.json()['data']['verified'] is True
        assert deleted.status_code == 200

    @pytest.mark.asyncio
    async def test_disallowed_extension(self, client: AsyncClient, application, student_headers):
        created = await client.post('/api/v1/admissions', json=application, headers=student_headers)

        response = await client.post(
            f"/api/v1/admissions/{created.json()['data']['id']}/documents",
            files={'file': ('payload.exe', b'MZ', 'application/octet-stream')},
            headers=student_headers
        )

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'INVALID_FILE_TYPE'
