"""
Unit Tests for Exam and Result API Endpoints
"""
import pytest
from httpx import AsyncClient


@pytest.fixture
async def exam(client: AsyncClient, course, faculty_headers) -> dict:
    response = await client.post('/api/v1/exams', json={
        'title': 'Midterm',
        'course_id': str(course.id),
        'exam_type': 'Mid-term',
        'total_marks': 100,
        'passing_marks': 50,
        'weightage': 30,
        'date': '2024-10-15',
        'start_time': '10:00',
        'end_time': '12:00',
        'duration': 120,
    }, headers=faculty_headers)
    assert response.status_code == 201
    return response.json()['data']


class TestExamCrud:

    @pytest.mark.asyncio
    async def test_create_exam(self, exam, faculty_user):
        assert exam['created_by_id'] == str(faculty_user.id)
        assert exam['is_published'] is False

    @pytest.mark.asyncio
    async def test_unknown_course(self, client: AsyncClient, faculty_headers):
        response = await client.post('/api/v1/exams', json={
            'title': 'Quiz', 'course_id': 'missing', 'exam_type': 'Quiz', 'total_marks': 10,
            'weightage': 5, 'date': '2024-10-15', 'start_time': '10:00', 'end_time': '10:30', 'duration': 30,
        }, headers=faculty_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_students_see_published_only(self, client: AsyncClient, exam, faculty_headers, student_headers):
        hidden = await client.get(f"/api/v1/exams/{exam['id']}", headers=student_headers)
        listing = await client.get('/api/v1/exams', headers=student_headers)

        assert hidden.status_code == 404
        assert listing.json()['total'] == 0

        await client.put(f"/api/v1/exams/{exam['id']}", json={'is_published': True}, headers=faculty_headers)
        visible = await client.get(f"/api/v1/exams/{exam['id']}", headers=student_headers)

        assert visible.status_code == 200

    @pytest.mark.asyncio
    async def test_only_creator_updates(self, client: AsyncClient, exam, other_faculty_headers):
        response = await client.put(
            f"/api/v1/exams/{exam['id']}", json={'title': 'Renamed'}, headers=other_faculty_headers
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_passing_above_total_on_update(self, client: AsyncClient, exam, faculty_headers):
        response = await client.put(
            f"/api/v1/exams/{exam['id']}", json={'total_marks': 40}, headers=faculty_headers
        )

        assert response.status_code == 400


class TestResults:
    """Grades are computed from the marks"""

    @pytest.mark.asyncio
    async def test_record_result(self, client: AsyncClient, exam, student_user, faculty_headers):
        response = await client.post(f"/api/v1/exams/{exam['id']}/results", json={
            'student_id': str(student_user.student_profile.id),
            'marks_obtained': 86,
            'grade': 'F',
        }, headers=faculty_headers)

        assert response.status_code == 201
        result = response.json()['data']
        assert result['percentage'] == 86.0
        assert result['grade'] == 'A'
        assert result['grade_points'] == 4.0
        assert result['status'] == 'Pass'

    @pytest.mark.asyncio
    async def test_marks_above_total(self, client: AsyncClient, exam, student_user, faculty_headers):
        response = await client.post(f"/api/v1/exams/{exam['id']}/results", json={
            'student_id': str(student_user.student_profile.id),
            'marks_obtained': 101,
        }, headers=faculty_headers)

        assert response.status_code == 400
        assert response.json()['error']['details']['field'] == 'marks_obtained'

    @pytest.mark.asyncio
    async def test_duplicate_result(self, client: AsyncClient, exam, student_user, faculty_headers):
        body = {'student_id': str(student_user.student_profile.id), 'marks_obtained': 70}
        await client.post(f"/api/v1/exams/{exam['id']}/results", json=body, headers=faculty_headers)

        response = await client.post(f"/api/v1/exams/{exam['id']}/results", json=body, headers=faculty_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_recomputes_grade(self, client: AsyncClient, exam, student_user, faculty_headers):
        created = await client.post(f"/api/v1/exams/{exam['id']}/results", json={
            'student_id': str(student_user.student_profile.id), 'marks_obtained': 70,
        }, headers=faculty_headers)
        result_id = created.json()['data']['id']

        response = await client.put(
            f"/api/v1/exams/{exam['id']}/results/{result_id}", json={'marks_obtained': 45}, headers=faculty_headers
        )

        assert response.status_code == 200
        assert response.json()['data']['grade'] == 'D+'
        assert response.json()['data']['status'] == 'Fail'

    @pytest.mark.asyncio
    async def test_changing_total_regrades(self, client: AsyncClient, exam, student_user, faculty_headers):
        await client.post(f"/api/v1/exams/{exam['id']}/results", json={
            'student_id': str(student_user.student_profile.id), 'marks_obtained': 40,
        }, headers=faculty_headers)

        await client.put(f"/api/v1/exams/{exam['id']}", json={'total_marks': 50, 'passing_marks': 20},
                         headers=faculty_headers)
        results = await client.get(f"/api/v1/exams/{exam['id']}/results", headers=faculty_headers)

        assert results.json()['data'][0]['percentage'] == 80.0
        assert results.json()['data'][0]['grade'] == 'A-'

    @pytest.mark.asyncio
    async def test_student_sees_own_published_result(
        self, client: AsyncClient, exam, student_user, student_factory, faculty_headers, student_headers
    ):
        other = await student_factory()
        await client.post(f"/api/v1/exams/{exam['id']}/results", json={
            'student_id': str(student_user.student_profile.id), 'marks_obtained': 90, 'is_published': True,
        }, headers=faculty_headers)
        await client.post(f"/api/v1/exams/{exam['id']}/results", json={
            'student_id': str(other.student_profile.id), 'marks_obtained': 60, 'is_published': True,
        }, headers=faculty_headers)

        response = await client.get(f"/api/v1/exams/{exam['id']}/results", headers=student_headers)

        assert response.json()['count'] == 1
        assert response.json()['data'][0]['student_id'] == str(student_user.student_profile.id)
