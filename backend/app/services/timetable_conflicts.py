"""
Timetable Conflict Detector

Slots are half-open intervals [start, end) on a weekday. Two slots on the
same day that share a room (or a faculty member, or a course) conflict when
their intervals overlap; slots that merely touch (one ends exactly when the
other starts) do not.

Works on any object exposing day / start_time / end_time / room /
faculty_id / course_id / id, so ORM rows and request payloads can be mixed.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from app.core.exceptions import ScheduleConflictError, ValidationError
from app.core.logging_config import logger


TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

ROOM = "Room"
FACULTY = "Faculty"
COURSE = "Course"

# Checks run against slots stored in other timetables
STORE_DIMENSIONS = (ROOM, FACULTY)
# Checks run inside one timetable
FULL_DIMENSIONS = (ROOM, FACULTY, COURSE)


@dataclass(frozen=True)
class SlotCandidate:
    """Proposed slot, not yet persisted"""
    day: str
    start_time: str
    end_time: str
    room: str
    faculty_id: Optional[str] = None
    course_id: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class ConflictReport:
    conflict_type: str
    description: str
    slot_ids: Tuple[Optional[str], Optional[str]]


def parse_time(value: str) -> int:
    """'HH:MM' -> minutes after midnight"""
    match = TIME_PATTERN.match(str(value or "").strip())
    if not match:
        raise ValidationError(f"Invalid time '{value}', expected HH:MM", field="time")
    return int(match.group(1)) * 60 + int(match.group(2))


def validate_slot_times(start_time: str, end_time: str) -> None:
    """Reject zero and negative duration slots"""
    if parse_time(end_time) <= parse_time(start_time):
        raise ValidationError(
            f"Slot end time {end_time} must be after start time {start_time}",
            field="end_time",
        )


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """
    Overlap of [start_a, end_a) with [start_b, end_b).

    A starts during B, ends during B, or fully contains B. Degenerate
    (empty) intervals never overlap anything.
    """
    if start_a >= end_a or start_b >= end_b:
        return False
    starts_during = start_b <= start_a < end_b
    ends_during = start_b < end_a <= end_b
    contains = start_a <= start_b and end_b <= end_a
    return starts_during or ends_during or contains


def _day(slot: Any) -> str:
    day = getattr(slot, "day", None)
    return str(getattr(day, "value", day))


def _room_key(slot: Any) -> Optional[str]:
    room = getattr(slot, "room", None)
    return room.strip().casefold() if room else None


def _id_key(attr: str) -> Callable[[Any], Optional[str]]:
    def key(slot: Any) -> Optional[str]:
        value = getattr(slot, attr, None)
        return str(value) if value is not None else None
    return key


DIMENSION_KEYS: Dict[str, Callable[[Any], Optional[str]]] = {
    ROOM: _room_key,
    FACULTY: _id_key("faculty_id"),
    COURSE: _id_key("course_id"),
}


def slots_conflict(a: Any, b: Any, dimension: str = ROOM) -> bool:
    """Same day, same room/faculty/course, overlapping intervals"""
    key = DIMENSION_KEYS[dimension]
    key_a = key(a)
    if key_a is None or key_a != key(b):
        return False
    if _day(a) != _day(b):
        return False
    return intervals_overlap(
        parse_time(a.start_time), parse_time(a.end_time),
        parse_time(b.start_time), parse_time(b.end_time),
    )


def find_conflict(
    candidate: Any,
    existing: Iterable[Any],
    exclude_id: Optional[str] = None,
    dimension: str = ROOM,
) -> Optional[Any]:
    """First existing slot that conflicts with the candidate, skipping exclude_id"""
    for slot in existing:
        slot_id = getattr(slot, "id", None)
        if exclude_id is not None and slot_id is not None and str(slot_id) == str(exclude_id):
            continue
        if slot is candidate:
            continue
        if slots_conflict(candidate, slot, dimension):
            return slot
    return None


def find_conflicts(
    candidate: Any,
    existing: Iterable[Any],
    exclude_id: Optional[str] = None,
    dimension: str = ROOM,
) -> List[Any]:
    """All existing slots that conflict with the candidate"""
    return [
        slot for slot in existing
        if find_conflict(candidate, [slot], exclude_id, dimension) is not None
    ]


def has_conflict(
    candidate: Any,
    existing: Iterable[Any],
    exclude_id: Optional[str] = None,
    dimension: str = ROOM,
) -> bool:
    return find_conflict(candidate, existing, exclude_id, dimension) is not None


def _describe(dimension: str, a: Any, b: Any) -> str:
    subject = {
        ROOM: f"Room {getattr(a, 'room', '')}",
        FACULTY: f"Faculty {getattr(a, 'faculty_id', '')}",
        COURSE: f"Course {getattr(a, 'course_id', '')}",
    }[dimension]
    return (
        f"{subject} is double-booked on {_day(a)}: "
        f"{a.start_time}-{a.end_time} overlaps {b.start_time}-{b.end_time}"
    )


def check_timetable(
    slots: Sequence[Any],
    dimensions: Sequence[str] = FULL_DIMENSIONS,
) -> List[ConflictReport]:
    """Every pairwise conflict inside one set of slots"""
    reports: List[ConflictReport] = []
    for dimension in dimensions:
        for index, slot in enumerate(slots):
            for other in slots[index + 1:]:
                if slots_conflict(slot, other, dimension):
                    reports.append(
                        ConflictReport(
                            conflict_type=dimension,
                            description=_describe(dimension, slot, other),
                            slot_ids=(getattr(slot, "id", None), getattr(other, "id", None)),
                        )
                    )
    return reports


def assert_no_conflicts(
    candidates: Sequence[Any],
    stored: Iterable[Any],
    exclude_ids: Iterable[str] = (),
    store_dimensions: Sequence[str] = STORE_DIMENSIONS,
    internal_dimensions: Sequence[str] = FULL_DIMENSIONS,
) -> None:
    """
    Raise ScheduleConflictError on the first conflict.

    Candidates are validated, then checked against each other on
    internal_dimensions and against stored slots (minus exclude_ids) on
    store_dimensions.
    """
    for candidate in candidates:
        validate_slot_times(candidate.start_time, candidate.end_time)

    internal = check_timetable(list(candidates), internal_dimensions)
    if internal:
        first = internal[0]
        logger.log_domain_event("Timetable", "conflict_rejected", conflict_type=first.conflict_type)
        raise ScheduleConflictError(
            f"Scheduling conflict detected: {first.description}",
            conflict_type=first.conflict_type,
        )

    excluded = {str(slot_id) for slot_id in exclude_ids}
    stored_slots = [
        slot for slot in stored
        if getattr(slot, "id", None) is None or str(slot.id) not in excluded
    ]
    for candidate in candidates:
        for dimension in store_dimensions:
            clash = find_conflict(candidate, stored_slots, candidate_id(candidate), dimension)
            if clash is not None:
                logger.log_domain_event(
                    "Timetable", "conflict_rejected",
                    conflict_type=dimension,
                    conflicting_slot_id=str(getattr(clash, "id", "")),
                )
                raise ScheduleConflictError(
                    f"Scheduling conflict detected for this {dimension.lower()} and time: "
                    f"{_describe(dimension, candidate, clash)}",
                    conflict_type=dimension,
                    slot_id=str(getattr(clash, "id", "")) or None,
                )


def candidate_id(candidate: Any) -> Optional[str]:
    slot_id = getattr(candidate, "id", None)
    return str(slot_id) if slot_id is not None else None
