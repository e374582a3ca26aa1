"""
Unit Tests for Analytics API Endpoints
Scoping: admins see everything, faculty the courses they instruct,
students their own records.
"""
import pytest
from httpx import AsyncClient


def by_status(rows):
    return {row['status']: row['count'] for row in rows}


class TestAttendanceAnalytics:

    @pytest.mark.asyncio
    async def test_admin_sees_every_course(self, client: AsyncClient, attendance_records, admin_headers):
        response = await client.get('/api/v1/analytics/attendance', headers=admin_headers)

        assert response.status_code == 200
        data = response.json()['data']
        assert sum(by_status(data['attendance_by_status']).values()) == 4
        assert [row['course_code'] for row in data['attendance_by_course']] == ['CS201', 'CS101']

    @pytest.mark.asyncio
    async def test_faculty_sees_only_instructed_courses(self, client: AsyncClient, attendance_records, faculty_headers):
        response = await client.get('/api/v1/analytics/attendance', headers=faculty_headers)

        data = response.json()['data']
        assert by_status(data['attendance_by_status'])['present'] == 2
        assert by_status(data['attendance_by_status'])['absent'] == 1
        assert [row['course_code'] for row in data['attendance_by_course']] == ['CS101']
        assert data['attendance_by_course'][0]['total'] == 3

    @pytest.mark.asyncio
    async def test_course_filter_cannot_widen_faculty_scope(
        self, client: AsyncClient, attendance_records, other_course, faculty_headers
    ):
        response = await client.get(
            '/api/v1/analytics/attendance', params={'course_id': str(other_course.id)}, headers=faculty_headers
        )

        data = response.json()['data']
        assert sum(by_status(data['attendance_by_status']).values()) == 0
        assert data['attendance_by_course'] == []

    @pytest.mark.asyncio
    async def test_student_sees_only_own_records(self, client: AsyncClient, attendance_records, student_headers):
        response = await client.get('/api/v1/analytics/attendance', headers=student_headers)

        data = response.json()['data']
        counts = by_status(data['attendance_by_status'])
        assert counts['present'] == 2
        assert counts['absent'] == 1
        cs101 = next(row for row in data['attendance_by_course'] if row['course_code'] == 'CS101')
        assert cs101['total'] == 2

    @pytest.mark.asyncio
    async def test_percentages_follow_scoped_counts(self, client: AsyncClient, attendance_records, faculty_headers):
        response = await client.get('/api/v1/analytics/attendance', headers=faculty_headers)

        rows = {row['status']: row['percentage'] for row in response.json()['data']['attendance_by_status']}
        assert rows['present'] == pytest.approx(66.67)
        assert rows['absent'] == pytest.approx(33.33)

    @pytest.mark.asyncio
    async def test_date_window(self, client: AsyncClient, attendance_records, admin_headers):
        response = await client.get(
            '/api/v1/analytics/attendance',
            params={'start_date': '2024-09-03', 'end_date': '2024-09-30'},
            headers=admin_headers
        )

        data = response.json()['data']
        assert [row['date'] for row in data['attendance_by_date']] == ['2024-09-03']

    @pytest.mark.asyncio
    async def test_department_breakdown_by_program(
        self, client: AsyncClient, attendance_records, department, admin_headers
    ):
        response = await client.get(
            '/api/v1/analytics/attendance', params={'department_id': str(department.id)}, headers=admin_headers
        )

        rows = response.json()['data']['attendance_by_department']
        assert [row['program_name'] for row in rows] == ['B.Tech Computer Science']
        assert rows[0]['total'] == 4


class TestExamAnalytics:

    @pytest.mark.asyncio
    async def test_faculty_sees_only_instructed_results(self, client: AsyncClient, exam_records, faculty_headers):
        response = await client.get('/api/v1/analytics/exams', headers=faculty_headers)

        data = response.json()['data']
        assert {row['course_code'] for row in data['results_by_course']} == {'CS101'}
        assert [row['grade'] for row in data['results_by_grade']] == ['A-']

    @pytest.mark.asyncio
    async def test_admin_performance_distribution(self, client: AsyncClient, exam_records, admin_headers):
        response = await client.get('/api/v1/analytics/exams', headers=admin_headers)

        distribution = {row['range']: row['count'] for row in response.json()['data']['performance_distribution']}
        assert distribution == {'Below 40%': 1, '40% - 60%': 0, '60% - 80%': 0, 'Above 80%': 1}

    @pytest.mark.asyncio
    async def test_student_results_are_own(self, client: AsyncClient, exam_records, student_headers):
        response = await client.get('/api/v1/analytics/exams', headers=student_headers)

        rows = response.json()['data']['results_by_course']
        assert {(row['course_code'], row['status']) for row in rows} == {('CS101', 'Pass'), ('CS201', 'Fail')}


class TestEnrollmentAnalytics:

    @pytest.mark.asyncio
    async def test_missing_department_labelled_blank(
        self, client: AsyncClient, db_session, student_user, student_factory, admin_headers
    ):
        orphan = await student_factory()
        orphan.student_profile.department_id = None
        await db_session.commit()

        response = await client.get('/api/v1/analytics/enrollment', headers=admin_headers)

        assert response.status_code == 200
        departments = {row['department_name']: row['count'] for row in response.json()['data']['department_data']}
        assert departments == {'': 1, 'Computer Science': 1}

    @pytest.mark.asyncio
    async def test_faculty_cannot_read_enrollment(self, client: AsyncClient, faculty_headers):
        response = await client.get('/api/v1/analytics/enrollment', headers=faculty_headers)

        assert response.status_code == 403
