"""
Grade / Attendance Calculator

Pure functions that derive every computed academic figure:
- exam percentage, letter grade, grade points and pass/fail status
- attendance percentage and the present/absent counter transitions
- CGPA over completed enrollments

Nothing here touches the database; callers pass plain values or ORM rows
and persist the results themselves, in the same transaction as the write
that triggered the recomputation.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple, Union

from app.core.exceptions import ValidationError


Number = Union[int, float, Decimal]

# Descending thresholds: the first row whose minimum the percentage reaches wins
GRADE_TABLE: Tuple[Tuple[float, str, float], ...] = (
    (90.0, "A+", 4.0),
    (85.0, "A", 4.0),
    (80.0, "A-", 3.7),
    (75.0, "B+", 3.3),
    (70.0, "B", 3.0),
    (65.0, "B-", 2.7),
    (60.0, "C+", 2.3),
    (55.0, "C", 2.0),
    (50.0, "C-", 1.7),
    (45.0, "D+", 1.3),
    (40.0, "D", 1.0),
)
FAILING_GRADE = ("F", 0.0)

GRADE_POINTS = {letter: points for _, letter, points in GRADE_TABLE}
GRADE_POINTS["F"] = 0.0

PASS = "Pass"
FAIL = "Fail"

# Only these attendance statuses move the present/absent counters
COUNTED_STATUSES = ("present", "absent")


@dataclass(frozen=True)
class ResultGrade:
    """Derived fields of one exam result"""
    percentage: float
    grade: str
    grade_points: float
    status: str


def round2(value: Number) -> float:
    """Round half-up to two decimals (12.345 -> 12.35)"""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def safe_percentage(part: Number, total: Number) -> float:
    """part / total * 100 rounded to 2 decimals, 0 when total is 0"""
    if not total:
        return 0.0
    return round2(float(part) / float(total) * 100)


def format_percentage(value: Number) -> str:
    """Two-decimal display form, e.g. 90 -> "90.00" """
    return f"{round2(value):.2f}"


def grade_for_percentage(percentage: Number) -> Tuple[str, float]:
    """Return (letter, grade points) for a percentage"""
    value = float(percentage)
    for minimum, letter, points in GRADE_TABLE:
        if value >= minimum:
            return letter, points
    return FAILING_GRADE


def validate_marks(marks_obtained: Number, total_marks: Number) -> None:
    """Reject marks outside [0, total_marks]"""
    if total_marks is None or float(total_marks) <= 0:
        raise ValidationError("Exam total marks must be greater than 0", field="total_marks")
    if marks_obtained is None or float(marks_obtained) < 0:
        raise ValidationError("Marks obtained cannot be negative", field="marks_obtained")
    if float(marks_obtained) > float(total_marks):
        raise ValidationError(
            f"Marks cannot exceed total marks of {total_marks}",
            field="marks_obtained",
        )


def compute_result(
    marks_obtained: Number,
    total_marks: Number,
    passing_marks: Optional[Number] = None,
) -> ResultGrade:
    """
    Derive percentage, grade, grade points and status for a result.

    With passing marks set the status follows the raw marks; without them
    any grade other than F passes.
    """
    validate_marks(marks_obtained, total_marks)

    percentage = round2(float(marks_obtained) / float(total_marks) * 100)
    grade, points = grade_for_percentage(percentage)

    if passing_marks is not None:
        status = PASS if float(marks_obtained) >= float(passing_marks) else FAIL
    else:
        status = FAIL if grade == "F" else PASS

    return ResultGrade(percentage=percentage, grade=grade, grade_points=points, status=status)


def apply_result(result, exam) -> ResultGrade:
    """Write the derived fields onto an ExamResult row from its exam"""
    computed = compute_result(result.marks_obtained, exam.total_marks, exam.passing_marks)
    result.percentage = computed.percentage
    result.grade = computed.grade
    result.grade_points = computed.grade_points
    result.status = computed.status
    return computed


# ==========================================
# Attendance
# ==========================================

def attendance_percentage(present: int, absent: int) -> float:
    """present / (present + absent) * 100, 0 with no counted records"""
    return safe_percentage(present, (present or 0) + (absent or 0))


def _status_value(status) -> Optional[str]:
    if status is None:
        return None
    return getattr(status, "value", status)


def apply_attendance_transition(profile, old_status=None, new_status=None) -> None:
    """
    Move a Student/Faculty profile's counters from old_status to new_status.

    create: (None, new)   delete: (old, None)   update: (old, new)
    Late/excused marks are not counted. Counters never drop below 0.
    """
    old = _status_value(old_status)
    new = _status_value(new_status)
    if old == new:
        return

    present = profile.attendance_present or 0
    absent = profile.attendance_absent or 0

    if old == "present":
        present = max(present - 1, 0)
    elif old == "absent":
        absent = max(absent - 1, 0)

    if new == "present":
        present += 1
    elif new == "absent":
        absent += 1

    profile.attendance_present = present
    profile.attendance_absent = absent
    profile.attendance_percentage = attendance_percentage(present, absent)


# ==========================================
# CGPA
# ==========================================

def compute_cgpa(enrollments: Iterable) -> float:
    """Mean grade points over enrollments whose status is completed"""
    points = [
        float(enrollment.grade_points or 0)
        for enrollment in enrollments
        if _status_value(enrollment.status) == "completed"
    ]
    if not points:
        return 0.0
    return round2(sum(points) / len(points))


def grade_points_for_letter(grade: str) -> float:
    """Grade points for a letter grade; I / W / blank count as 0"""
    return GRADE_POINTS.get(grade or "", 0.0)
