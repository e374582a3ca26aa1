"""
Attendance API
Marking (single and bulk), corrections, lookups and per-status stats.
Every write keeps the student's attendance counters in the same commit.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.sql import Select
from datetime import date
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import AuthorizationError, NotFoundError
from app.models.academic import Attendance, AttendanceStatus
from app.models.user import User, UserRole
from app.modules.auth.dependencies import get_current_user, require_permission
from app.modules.auth.policy import enforce
from app.schemas.academic import (
    AttendanceCreate, AttendanceUpdate, AttendanceResponse, BulkAttendanceCreate,
)
from app.schemas.common import ok, dump, dump_all, to_day
from app.services.analytics_service import AnalyticsService
from app.services.attendance_service import AttendanceService, normalize_day
from app.utils.pagination import PaginationParams, pagination_params, paginate, paginated_response

router = APIRouter()


def _own_records_only(query: Select, user: User) -> Select:
    """Students only ever see their own marks"""
    if user.role != UserRole.STUDENT:
        return query
    profile = user.student_profile
    return query.where(Attendance.student_id == (profile.id if profile else ""))


async def get_attendance(db: AsyncSession, attendance_id: str) -> Attendance:
    record = await db.get(Attendance, attendance_id)
    if not record:
        raise NotFoundError("Attendance", attendance_id)
    return record


async def _list(db: AsyncSession, query: Select, user: User, paging: PaginationParams) -> dict:
    query = _own_records_only(query, user).order_by(Attendance.date.desc(), Attendance.created_at)
    page = await paginate(db, query, paging.page, paging.page_size)
    return paginated_response(page, lambda record: dump(AttendanceResponse, record))


@router.get("")
async def list_attendance(
    course_id: Optional[str] = Query(None),
    student_id: Optional[str] = Query(None),
    attendance_status: Optional[AttendanceStatus] = Query(None, alias="status"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    paging: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    query = select(Attendance)
    if course_id:
        query = query.where(Attendance.course_id == course_id)
    if student_id:
        query = query.where(Attendance.student_id == student_id)
    if attendance_status:
        query = query.where(Attendance.status == attendance_status)
    if start_date:
        query = query.where(Attendance.date >= start_date)
    if end_date:
        query = query.where(Attendance.date <= end_date)
    return await _list(db, query, current_user, paging)


@router.post("", status_code=status.HTTP_201_CREATED)
async def mark_attendance(
    data: AttendanceCreate,
    current_user: User = Depends(require_permission("attendance", "create")),
    db: AsyncSession = Depends(get_db)
):
    record = await AttendanceService(db).mark(data.model_dump(), current_user)
    await db.commit()
    return ok(dump(AttendanceResponse, record))


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
async def bulk_mark_attendance(
    data: BulkAttendanceCreate,
    current_user: User = Depends(require_permission("attendance", "bulk_create")),
    db: AsyncSession = Depends(get_db)
):
    """Faculty may only bulk-mark courses they instruct"""
    defaults = data.model_dump(exclude={"course_id", "attendance_records"})
    entries = [entry.model_dump() for entry in data.attendance_records]

    outcome = await AttendanceService(db).bulk_mark(data.course_id, entries, current_user, defaults)
    await db.commit()

    records = outcome["created"] + outcome["updated"]
    return ok(
        dump_all(AttendanceResponse, records),
        count=len(records),
        created=len(outcome["created"]),
        updated=len(outcome["updated"]),
    )


@router.get("/stats")
async def attendance_stats(
    course_id: Optional[str] = Query(None),
    student_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user: User = Depends(require_permission("attendance", "stats")),
    db: AsyncSession = Depends(get_db)
):
    stats = await AnalyticsService(db).attendance_stats(
        current_user, course_id, student_id, start_date, end_date
    )
    return ok(stats)


@router.get("/course/{course_id}")
async def course_attendance(
    course_id: str,
    paging: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await _list(db, select(Attendance).where(Attendance.course_id == course_id), current_user, paging)


@router.get("/student/{student_id}")
async def student_attendance(
    student_id: str,
    paging: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if current_user.role == UserRole.STUDENT:
        profile = current_user.student_profile
        if profile is None or str(profile.id) != student_id:
            raise AuthorizationError(
                "Students can only view their own attendance", action="attendance:read"
            )
    return await _list(db, select(Attendance).where(Attendance.student_id == student_id), current_user, paging)


@router.get("/date/{day}")
async def attendance_on_date(
    day: str,
    course_id: Optional[str] = Query(None),
    paging: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Accepts YYYY-MM-DD or a full ISO timestamp"""
    query = select(Attendance).where(Attendance.date == normalize_day(to_day(day)))
    if course_id:
        query = query.where(Attendance.course_id == course_id)
    return await _list(db, query, current_user, paging)


@router.get("/{attendance_id}")
async def read_attendance(
    attendance_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    record = await get_attendance(db, attendance_id)
    if current_user.role == UserRole.STUDENT:
        profile = current_user.student_profile
        if profile is None or str(profile.id) != str(record.student_id):
            raise NotFoundError("Attendance", attendance_id)
    return ok(dump(AttendanceResponse, record))


@router.put("/{attendance_id}")
async def update_attendance(
    attendance_id: str,
    data: AttendanceUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    record = await get_attendance(db, attendance_id)
    enforce(current_user, "update", "attendance", record)

    await AttendanceService(db).update(record, data.model_dump(exclude_unset=True))
    await db.commit()
    return ok(dump(AttendanceResponse, record))


@router.delete("/{attendance_id}")
async def delete_attendance(
    attendance_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    record = await get_attendance(db, attendance_id)
    enforce(current_user, "delete", "attendance", record)

    await AttendanceService(db).delete(record)
    await db.commit()
    return ok({})
