"""
Unit Tests for the grade / attendance calculator
"""
import pytest
from types import SimpleNamespace

from app.core.exceptions import ValidationError
from app.services.grading import (
    apply_attendance_transition,
    attendance_percentage,
    compute_cgpa,
    compute_result,
    format_percentage,
    grade_for_percentage,
    grade_points_for_letter,
    round2,
    safe_percentage,
    validate_marks,
)


class TestRounding:

    def test_round_half_up(self):
        assert round2(12.345) == 12.35
        assert round2(2.675) == 2.68

    def test_safe_percentage_zero_total(self):
        assert safe_percentage(5, 0) == 0.0

    def test_format_percentage(self):
        assert format_percentage(90) == "90.00"


class TestGradeTable:
    """Grade thresholds are inclusive lower bounds"""

    @pytest.mark.parametrize("percentage, letter, points", [
        (100, "A+", 4.0),
        (90, "A+", 4.0),
        (89.99, "A", 4.0),
        (80, "A-", 3.7),
        (75, "B+", 3.3),
        (70, "B", 3.0),
        (65, "B-", 2.7),
        (60, "C+", 2.3),
        (55, "C", 2.0),
        (50, "C-", 1.7),
        (45, "D+", 1.3),
        (40, "D", 1.0),
        (39.99, "F", 0.0),
        (0, "F", 0.0),
    ])
    def test_grade_for_percentage(self, percentage, letter, points):
        assert grade_for_percentage(percentage) == (letter, points)

    def test_letter_lookup(self):
        assert grade_points_for_letter("B+") == 3.3
        assert grade_points_for_letter("W") == 0.0
        assert grade_points_for_letter("") == 0.0


class TestComputeResult:

    def test_passing_marks_decide_status(self):
        result = compute_result(45, 100, passing_marks=50)

        assert result.percentage == 45.0
        assert result.grade == "D+"
        assert result.status == "Fail"

    def test_without_passing_marks_f_fails(self):
        assert compute_result(30, 100).status == "Fail"
        assert compute_result(40, 100).status == "Pass"

    def test_percentage_rounded(self):
        assert compute_result(2, 3).percentage == 66.67

    def test_marks_above_total_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_result(101, 100)

        assert exc_info.value.details["field"] == "marks_obtained"

    def test_negative_marks_rejected(self):
        with pytest.raises(ValidationError):
            validate_marks(-1, 100)

    def test_zero_total_rejected(self):
        with pytest.raises(ValidationError):
            validate_marks(0, 0)


class TestAttendanceTransitions:
    """present / absent counters on a profile"""

    def _profile(self, present=0, absent=0):
        return SimpleNamespace(attendance_present=present, attendance_absent=absent, attendance_percentage=0.0)

    def test_create_present(self):
        profile = self._profile()
        apply_attendance_transition(profile, None, "present")

        assert profile.attendance_present == 1
        assert profile.attendance_percentage == 100.0

    def test_update_present_to_absent(self):
        profile = self._profile(present=3, absent=1)
        apply_attendance_transition(profile, "present", "absent")

        assert (profile.attendance_present, profile.attendance_absent) == (2, 2)
        assert profile.attendance_percentage == 50.0

    def test_late_and_excused_not_counted(self):
        profile = self._profile(present=1)
        apply_attendance_transition(profile, None, "late")
        apply_attendance_transition(profile, "late", "excused")

        assert (profile.attendance_present, profile.attendance_absent) == (1, 0)

    def test_delete_never_goes_negative(self):
        profile = self._profile()
        apply_attendance_transition(profile, "absent", None)

        assert profile.attendance_absent == 0
        assert profile.attendance_percentage == 0.0

    def test_attendance_percentage_no_records(self):
        assert attendance_percentage(0, 0) == 0.0


class TestCGPA:

    def test_only_completed_enrollments_count(self):
        enrollments = [
            SimpleNamespace(status="completed", grade_points=4.0),
            SimpleNamespace(status="completed", grade_points=3.0),
            SimpleNamespace(status="active", grade_points=0.0),
        ]

        assert compute_cgpa(enrollments) == 3.5

    def test_no_completed_enrollments(self):
        assert compute_cgpa([SimpleNamespace(status="active", grade_points=4.0)]) == 0.0
