"""
Timetables API
Weekly timetables and their slots. Every write is checked for room,
faculty and course double-booking before anything is persisted.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import Any, Dict, Iterable, List, Optional

from app.core.database import get_db
from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging_config import logger
from app.core.types import utcnow
from app.models.academic import (
    ConflictType, Course, Semester, Timetable, TimetableConflict, TimetableSlot, TimetableStatus, Weekday,
)
from app.models.organization import Faculty, Student, StudentEnrollment
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, require_permission
from app.modules.auth.policy import enforce
from app.schemas.academic import (
    SlotCreate, SlotUpdate, SlotResponse, TimetableCreate, TimetableUpdate,
    TimetableResponse, TimetableDetailResponse, ConflictResponse,
)
from app.schemas.common import ok, dump, dump_all
from app.services.timetable_conflicts import (
    FULL_DIMENSIONS, STORE_DIMENSIONS, SlotCandidate, assert_no_conflicts, check_timetable, find_conflicts,
)
from app.utils.pagination import PaginationParams, pagination_params, paginate, paginated_response

router = APIRouter()

DAY_ORDER = {day: index for index, day in enumerate(Weekday)}


async def get_timetable(db: AsyncSession, timetable_id: str, with_conflicts: bool = False) -> Timetable:
    options = [selectinload(Timetable.slots)]
    if with_conflicts:
        options.append(selectinload(Timetable.conflicts))
    result = await db.execute(
        select(Timetable)
        .options(*options)
        .where(Timetable.id == timetable_id)
        .execution_options(populate_existing=True)
    )
    timetable = result.scalar_one_or_none()
    if not timetable:
        raise NotFoundError("Timetable", timetable_id)
    return timetable


def _get_slot(timetable: Timetable, slot_id: str) -> TimetableSlot:
    for slot in timetable.slots:
        if str(slot.id) == slot_id:
            return slot
    raise NotFoundError("Slot", slot_id)


def _candidate(fields: Dict[str, Any], slot_id: Optional[str] = None) -> SlotCandidate:
    return SlotCandidate(
        day=fields["day"],
        start_time=fields["start_time"],
        end_time=fields["end_time"],
        room=fields["room"],
        faculty_id=fields.get("faculty_id"),
        course_id=fields.get("course_id"),
        id=slot_id,
    )


async def _slots_elsewhere(db: AsyncSession, timetable_id: Optional[str], days: Iterable[Any]) -> List[TimetableSlot]:
    """Stored slots of every other timetable on the given days"""
    days = list({Weekday(getattr(day, "value", day)) for day in days})
    if not days:
        return []
    query = select(TimetableSlot).where(TimetableSlot.day.in_(days))
    if timetable_id:
        query = query.where(TimetableSlot.timetable_id != timetable_id)
    return list((await db.execute(query)).scalars().all())


async def _check_slot_references(db: AsyncSession, slots: List[Dict[str, Any]]) -> None:
    course_ids = {slot["course_id"] for slot in slots if slot.get("course_id")}
    faculty_ids = {slot["faculty_id"] for slot in slots if slot.get("faculty_id")}
    if course_ids:
        found = set((await db.execute(select(Course.id).where(Course.id.in_(course_ids)))).scalars().all())
        missing = course_ids - {str(course_id) for course_id in found}
        if missing:
            raise NotFoundError("Course", sorted(missing)[0])
    if faculty_ids:
        found = set((await db.execute(select(Faculty.id).where(Faculty.id.in_(faculty_ids)))).scalars().all())
        missing = faculty_ids - {str(faculty_id) for faculty_id in found}
        if missing:
            raise NotFoundError("Faculty", sorted(missing)[0])


async def _validate_slot_set(db: AsyncSession, slots: List[SlotCreate], timetable_id: Optional[str] = None) -> None:
    """A whole replacement slot list: internal checks plus room/faculty against other timetables"""
    fields = [slot.model_dump() for slot in slots]
    await _check_slot_references(db, fields)
    stored = await _slots_elsewhere(db, timetable_id, (slot.day for slot in slots))
    assert_no_conflicts([_candidate(slot) for slot in fields], stored)


async def _validate_single_slot(
    db: AsyncSession, timetable: Timetable, fields: Dict[str, Any], slot_id: Optional[str] = None
) -> None:
    """One slot: every dimension within its timetable, room/faculty everywhere else"""
    await _check_slot_references(db, [fields])
    candidate = _candidate(fields, slot_id)
    assert_no_conflicts(
        [candidate], timetable.slots,
        exclude_ids=[slot_id] if slot_id else (),
        store_dimensions=FULL_DIMENSIONS,
    )
    assert_no_conflicts([candidate], await _slots_elsewhere(db, timetable.id, [candidate.day]))


def _sorted_slots(slots: Iterable[TimetableSlot]) -> List[TimetableSlot]:
    return sorted(slots, key=lambda slot: (DAY_ORDER[Weekday(getattr(slot.day, "value", slot.day))], slot.start_time))


def _renumber(slots: Iterable[TimetableSlot]) -> None:
    """position follows the weekly order (day, then start time)"""
    for index, slot in enumerate(_sorted_slots(slots)):
        slot.position = index


def _build_slots(slots: List[SlotCreate]) -> List[TimetableSlot]:
    built = [TimetableSlot(**slot.model_dump()) for slot in slots]
    _renumber(built)
    return built


@router.get("")
async def list_timetables(
    department_id: Optional[str] = Query(None),
    program_id: Optional[str] = Query(None),
    academic_year: Optional[str] = Query(None),
    semester: Optional[Semester] = Query(None),
    batch: Optional[str] = Query(None),
    timetable_status: Optional[TimetableStatus] = Query(None, alias="status"),
    paging: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    query = select(Timetable).options(selectinload(Timetable.slots)).order_by(Timetable.start_date.desc())
    if department_id:
        query = query.where(Timetable.department_id == department_id)
    if program_id:
        query = query.where(Timetable.program_id == program_id)
    if academic_year:
        query = query.where(Timetable.academic_year == academic_year)
    if semester:
        query = query.where(Timetable.semester == semester)
    if batch:
        query = query.where(Timetable.batch == batch)
    if timetable_status:
        query = query.where(Timetable.status == timetable_status)

    page = await paginate(db, query, paging.page, paging.page_size)
    return paginated_response(page, lambda timetable: dump(TimetableResponse, timetable))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_timetable(
    data: TimetableCreate,
    current_user: User = Depends(require_permission("timetable", "create")),
    db: AsyncSession = Depends(get_db)
):
    await _validate_slot_set(db, data.slots)

    timetable = Timetable(**data.model_dump(exclude={"slots"}), created_by_id=current_user.id)
    timetable.slots = _build_slots(data.slots)
    if timetable.status == TimetableStatus.PUBLISHED:
        timetable.published_at = utcnow()
    db.add(timetable)
    await db.commit()

    logger.log_domain_event("Timetable", "created", str(timetable.id), slots=len(data.slots))
    return ok(dump(TimetableResponse, await get_timetable(db, timetable.id)))


# Static paths first so they are not captured by /{timetable_id}

@router.get("/student/{student_id}")
async def student_timetable(
    student_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Slots of every course the student is enrolled in, in weekly order"""
    if not await db.get(Student, student_id):
        raise NotFoundError("Student", student_id)

    course_ids = select(StudentEnrollment.course_id).where(StudentEnrollment.student_id == student_id)
    slots = (await db.execute(
        select(TimetableSlot).where(TimetableSlot.course_id.in_(course_ids))
    )).scalars().all()
    slots = _sorted_slots(slots)
    return ok(dump_all(SlotResponse, slots), count=len(slots))


@router.get("/faculty/{faculty_id}")
async def faculty_timetable(
    faculty_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if not await db.get(Faculty, faculty_id):
        raise NotFoundError("Faculty", faculty_id)

    slots = (await db.execute(
        select(TimetableSlot).where(TimetableSlot.faculty_id == faculty_id)
    )).scalars().all()
    slots = _sorted_slots(slots)
    return ok(dump_all(SlotResponse, slots), count=len(slots))


@router.get("/{timetable_id}")
async def read_timetable(
    timetable_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return ok(dump(TimetableDetailResponse, await get_timetable(db, timetable_id, with_conflicts=True)))


@router.put("/{timetable_id}")
async def update_timetable(
    timetable_id: str,
    data: TimetableUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    timetable = await get_timetable(db, timetable_id)
    enforce(current_user, "update", "timetable", timetable)

    changes = data.model_dump(exclude_unset=True, exclude={"slots"})
    start = changes.get("start_date", timetable.start_date)
    end = changes.get("end_date", timetable.end_date)
    if start and end and end < start:
        raise ValidationError("End date cannot be before start date", field="end_date")

    if data.slots is not None:
        await _validate_slot_set(db, data.slots, timetable_id=timetable.id)
        timetable.slots = _build_slots(data.slots)

    for field, value in changes.items():
        setattr(timetable, field, value)
    if changes.get("status") == TimetableStatus.PUBLISHED and timetable.published_at is None:
        timetable.published_at = utcnow()

    await db.commit()
    logger.log_domain_event("Timetable", "updated", timetable_id, slots_replaced=data.slots is not None)
    return ok(dump(TimetableResponse, await get_timetable(db, timetable_id)))


@router.delete("/{timetable_id}")
async def delete_timetable(
    timetable_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    timetable = await get_timetable(db, timetable_id)
    enforce(current_user, "delete", "timetable", timetable)

    await db.delete(timetable)
    await db.commit()

    logger.log_domain_event("Timetable", "deleted", timetable_id)
    return ok({})


# ==================== Slots ====================

@router.post("/{timetable_id}/slots", status_code=status.HTTP_201_CREATED)
async def add_slot(
    timetable_id: str,
    data: SlotCreate,
    current_user: User = Depends(require_permission("timetable", "manage_slots")),
    db: AsyncSession = Depends(get_db)
):
    timetable = await get_timetable(db, timetable_id)
    enforce(current_user, "manage_slots", "timetable", timetable)
    fields = data.model_dump()
    await _validate_single_slot(db, timetable, fields)

    slot = TimetableSlot(**fields)
    timetable.slots.append(slot)
    _renumber(timetable.slots)
    await db.commit()

    logger.log_domain_event("Timetable", "slot_added", timetable_id, slot_id=str(slot.id))
    return ok(dump(SlotResponse, slot))


@router.put("/{timetable_id}/slots/{slot_id}")
async def update_slot(
    timetable_id: str,
    slot_id: str,
    data: SlotUpdate,
    current_user: User = Depends(require_permission("timetable", "manage_slots")),
    db: AsyncSession = Depends(get_db)
):
    timetable = await get_timetable(db, timetable_id)
    enforce(current_user, "manage_slots", "timetable", timetable)
    slot = _get_slot(timetable, slot_id)

    changes = data.model_dump(exclude_unset=True)
    merged = {
        field: changes.get(field, getattr(slot, field))
        for field in ("day", "start_time", "end_time", "room", "faculty_id", "course_id")
    }
    await _validate_single_slot(db, timetable, merged, slot_id=str(slot.id))

    for field, value in changes.items():
        setattr(slot, field, value)
    _renumber(timetable.slots)
    await db.commit()

    logger.log_domain_event("Timetable", "slot_updated", timetable_id, slot_id=slot_id)
    return ok(dump(SlotResponse, slot))


@router.delete("/{timetable_id}/slots/{slot_id}")
async def delete_slot(
    timetable_id: str,
    slot_id: str,
    current_user: User = Depends(require_permission("timetable", "manage_slots")),
    db: AsyncSession = Depends(get_db)
):
    timetable = await get_timetable(db, timetable_id)
    enforce(current_user, "manage_slots", "timetable", timetable)
    slot = _get_slot(timetable, slot_id)
    timetable.slots.remove(slot)
    await db.commit()

    logger.log_domain_event("Timetable", "slot_removed", timetable_id, slot_id=slot_id)
    return ok({})


# ==================== Conflicts ====================

@router.post("/{timetable_id}/check-conflicts")
async def check_conflicts(
    timetable_id: str,
    current_user: User = Depends(require_permission("timetable", "check_conflicts")),
    db: AsyncSession = Depends(get_db)
):
    """Recompute and replace the recorded conflicts of a stored timetable"""
    timetable = await get_timetable(db, timetable_id, with_conflicts=True)
    slots = list(timetable.slots)

    reports = [(report.conflict_type, report.description) for report in check_timetable(slots, FULL_DIMENSIONS)]
    elsewhere = await _slots_elsewhere(db, timetable.id, (slot.day for slot in slots))
    for slot in slots:
        for dimension in STORE_DIMENSIONS:
            for clash in find_conflicts(slot, elsewhere, dimension=dimension):
                reports.append((
                    dimension,
                    f"{dimension} clash on {Weekday(slot.day).value}: {slot.start_time}-{slot.end_time} "
                    f"overlaps {clash.start_time}-{clash.end_time} in timetable {clash.timetable_id}",
                ))

    timetable.conflicts = [
        TimetableConflict(conflict_type=ConflictType(conflict_type), description=description)
        for conflict_type, description in reports
    ]
    await db.commit()

    logger.log_domain_event("Timetable", "conflicts_checked", timetable_id, conflicts=len(reports))
    timetable = await get_timetable(db, timetable_id, with_conflicts=True)
    return ok(dump_all(ConflictResponse, timetable.conflicts), count=len(timetable.conflicts))
