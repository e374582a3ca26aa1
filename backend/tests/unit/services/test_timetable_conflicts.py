"""
Unit Tests for the timetable conflict detector
"""
import pytest

from app.core.exceptions import ScheduleConflictError, ValidationError
from app.services.timetable_conflicts import (
    COURSE,
    FACULTY,
    ROOM,
    SlotCandidate,
    assert_no_conflicts,
    check_timetable,
    find_conflicts,
    has_conflict,
    intervals_overlap,
    parse_time,
    validate_slot_times,
)


def slot(day="Monday", start="09:00", end="10:00", room="R101", faculty_id="f1", course_id="c1", id=None):
    return SlotCandidate(day=day, start_time=start, end_time=end, room=room,
                         faculty_id=faculty_id, course_id=course_id, id=id)


class TestTimeParsing:

    def test_parse_time(self):
        assert parse_time("00:00") == 0
        assert parse_time("13:45") == 825

    @pytest.mark.parametrize("value", ["24:00", "9:00", "12:60", "noon", ""])
    def test_invalid_time(self, value):
        with pytest.raises(ValidationError):
            parse_time(value)

    def test_end_must_follow_start(self):
        with pytest.raises(ValidationError):
            validate_slot_times("10:00", "10:00")


class TestOverlap:
    """Half-open intervals"""

    def test_touching_intervals_do_not_overlap(self):
        assert intervals_overlap(540, 600, 600, 660) is False

    def test_starts_during(self):
        assert intervals_overlap(570, 630, 540, 600) is True

    def test_ends_during(self):
        assert intervals_overlap(510, 570, 540, 600) is True

    def test_contains(self):
        assert intervals_overlap(480, 720, 540, 600) is True

    def test_contained(self):
        assert intervals_overlap(550, 590, 540, 600) is True


class TestHasConflict:

    def test_same_room_overlapping(self):
        existing = [slot(start="09:30", end="10:30", id="s1")]

        assert has_conflict(slot(), existing) is True

    def test_room_match_ignores_case_and_whitespace(self):
        existing = [slot(room=" r101 ", id="s1")]

        assert has_conflict(slot(room="R101"), existing) is True

    def test_other_day_no_conflict(self):
        assert has_conflict(slot(day="Tuesday"), [slot(id="s1")]) is False

    def test_back_to_back_no_conflict(self):
        assert has_conflict(slot(start="10:00", end="11:00"), [slot(id="s1")]) is False

    def test_excluded_slot_skipped(self):
        assert has_conflict(slot(id="s1"), [slot(id="s1")], exclude_id="s1") is False

    def test_exclusion_keeps_other_clashes(self):
        moved = slot(start="09:30", end="10:30", id="s1")
        existing = [slot(id="s1"), slot(start="10:00", end="11:00", id="s2")]

        assert has_conflict(moved, existing, exclude_id="s1") is True
        assert has_conflict(moved, existing[:1], exclude_id="s1") is False

    def test_slot_without_room_never_clashes_on_room(self):
        assert has_conflict(slot(room=None), [slot(room=None, id="s1")]) is False

    def test_faculty_dimension(self):
        existing = [slot(room="R202", id="s1")]

        assert has_conflict(slot(), existing, dimension=FACULTY) is True
        assert has_conflict(slot(), existing, dimension=ROOM) is False

    def test_find_conflicts_returns_all(self):
        existing = [slot(id="a"), slot(start="09:30", end="11:00", id="b"), slot(day="Friday", id="c")]

        assert [s.id for s in find_conflicts(slot(), existing)] == ["a", "b"]


class TestCheckTimetable:

    def test_reports_each_dimension(self):
        slots = [
            slot(id="a"),
            slot(start="09:30", end="10:30", room="R102", faculty_id="f1", course_id="c2", id="b"),
        ]

        reports = check_timetable(slots)

        assert [report.conflict_type for report in reports] == [FACULTY]
        assert reports[0].slot_ids == ("a", "b")

    def test_course_double_booked(self):
        slots = [slot(id="a"), slot(room="R102", faculty_id="f2", id="b")]

        assert [report.conflict_type for report in check_timetable(slots)] == [COURSE]

    def test_clean_timetable(self):
        slots = [slot(id="a"), slot(start="10:00", end="11:00", id="b")]

        assert check_timetable(slots) == []


class TestAssertNoConflicts:

    def test_internal_conflict_rejected(self):
        with pytest.raises(ScheduleConflictError) as exc_info:
            assert_no_conflicts([slot(), slot(start="09:30", end="10:30", faculty_id="f2", course_id="c2")], [])

        assert exc_info.value.details["conflict_type"] == ROOM

    def test_stored_room_conflict_rejected(self):
        stored = [slot(faculty_id="f9", course_id="c9", id="stored")]

        with pytest.raises(ScheduleConflictError) as exc_info:
            assert_no_conflicts([slot(faculty_id="f2", course_id="c2")], stored)

        assert exc_info.value.details["conflicting_slot_id"] == "stored"

    def test_stored_course_clash_allowed(self):
        """Courses only clash inside one timetable"""
        stored = [slot(room="R999", faculty_id="f9", id="stored")]

        assert_no_conflicts([slot()], stored)

    def test_excluded_ids_skipped(self):
        stored = [slot(id="own")]

        assert_no_conflicts([slot()], stored, exclude_ids=["own"])

    def test_invalid_times_rejected_first(self):
        with pytest.raises(ValidationError):
            assert_no_conflicts([slot(start="11:00", end="10:00")], [])
