"""
Unit Tests for course, exam, attendance and timetable schemas
"""
import pytest
from datetime import date
from pydantic import ValidationError

from app.models.academic import Weekday
from app.schemas.academic import (
    BulkAttendanceCreate,
    CourseCreate,
    ExamCreate,
    ExamResultCreate,
    ScheduleItem,
    SlotCreate,
    TimetableCreate,
    schedule_json,
)


def exam_payload(**overrides):
    payload = {
        "title": "Midterm",
        "course_id": "c1",
        "exam_type": "Mid-term",
        "total_marks": 100,
        "passing_marks": 40,
        "weightage": 30,
        "date": "2024-10-15",
        "start_time": "10:00",
        "end_time": "12:00",
        "duration": 120,
    }
    payload.update(overrides)
    return payload


class TestCourseSchemas:

    def test_code_uppercased(self):
        course = CourseCreate(
            code="cs201", title="Data Structures", credits=4, level="Intermediate",
            semester="Fall", year=2024, capacity=30,
        )

        assert course.code == "CS201"

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValidationError):
            CourseCreate(
                code="CS201", title="Data Structures", credits=4, level="Intermediate",
                semester="Fall", year=2024, capacity=0,
            )

    def test_schedule_item_aliases(self):
        item = ScheduleItem(day="Monday", startTime="09:00", endTime="10:30", location="R101")

        assert schedule_json([item]) == [
            {"day": "Monday", "startTime": "09:00", "endTime": "10:30", "location": "R101"}
        ]

    def test_schedule_item_order(self):
        with pytest.raises(ValidationError):
            ScheduleItem(day="Monday", startTime="10:30", endTime="09:00")


class TestExamSchemas:

    def test_valid_exam(self):
        exam = ExamCreate(**exam_payload())

        assert exam.date == date(2024, 10, 15)

    def test_datetime_string_keeps_day(self):
        assert ExamCreate(**exam_payload(date="2024-10-15T18:30:00Z")).date == date(2024, 10, 15)

    def test_passing_above_total_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            ExamCreate(**exam_payload(passing_marks=120))

        assert "Passing marks" in str(exc_info.value)

    def test_bad_time_rejected(self):
        with pytest.raises(ValidationError):
            ExamCreate(**exam_payload(start_time="25:00"))

    def test_result_ignores_computed_fields(self):
        result = ExamResultCreate(student_id="s1", marks_obtained=80, grade="A+", percentage=99)

        assert not hasattr(result, "grade")
        assert result.marks_obtained == 80


class TestAttendanceSchemas:

    def test_bulk_needs_dates(self):
        with pytest.raises(ValidationError):
            BulkAttendanceCreate(
                course_id="c1",
                attendance_records=[{"student_id": "s1", "status": "present"}],
            )

    def test_bulk_default_date(self):
        bulk = BulkAttendanceCreate(
            course_id="c1",
            date="2024-09-02",
            attendance_records=[{"student_id": "s1", "status": "present"}],
        )

        assert bulk.attendance_records[0].date is None
        assert bulk.date == date(2024, 9, 2)

    def test_bulk_needs_records(self):
        with pytest.raises(ValidationError):
            BulkAttendanceCreate(course_id="c1", date="2024-09-02", attendance_records=[])


class TestTimetableSchemas:

    def test_slot_times_ordered(self):
        with pytest.raises(ValidationError):
            SlotCreate(day="Monday", start_time="10:00", end_time="09:00",
                       course_id="c1", faculty_id="f1", room="R101")

    def test_slot_day_enum(self):
        slot = SlotCreate(day="Friday", start_time="09:00", end_time="10:00",
                          course_id="c1", faculty_id="f1", room="R101")

        assert slot.day == Weekday.FRIDAY

    def test_end_date_before_start(self):
        with pytest.raises(ValidationError):
            TimetableCreate(title="Fall", academic_year="2024-25", semester="Fall",
                            start_date="2024-12-01", end_date="2024-08-01")
