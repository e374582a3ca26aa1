"""
Attendance Service
Marks, updates and removes attendance while keeping the owning student's
present/absent counters in step.

The attendance row and the counter change are written in the same
session, so one commit persists both or neither.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.core.logging_config import logger
from app.core.types import utcnow
from app.models.academic import Attendance, AttendanceStatus, Course
from app.models.organization import Student
from app.models.user import User
from app.services.course_service import faculty_instructs
from app.services.grading import apply_attendance_transition


# Fields a caller may set on an attendance record
MUTABLE_FIELDS = (
    "status", "remarks", "late_minutes", "session", "duration", "location", "verification_method",
)


def normalize_day(value: Any) -> date:
    """datetime / ISO string / date -> calendar day (midnight)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            raise ValidationError(f"Invalid date '{value}'", field="date")
    raise ValidationError("Date is required", field="date")


class AttendanceService:
    """Attendance writes with counter maintenance"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_student(self, student_id: str) -> Student:
        student = await self.db.get(Student, student_id)
        if student is None:
            raise NotFoundError("Student", student_id)
        return student

    async def _get_course(self, course_id: str) -> Course:
        course = await self.db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course", course_id)
        return course

    async def find_existing(
        self, course_id: str, student_id: str, day: date, exclude_id: Optional[str] = None
    ) -> Optional[Attendance]:
        stmt = select(Attendance).where(
            Attendance.course_id == course_id,
            Attendance.student_id == student_id,
            Attendance.date == day,
        )
        if exclude_id is not None:
            stmt = stmt.where(Attendance.id != exclude_id)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    def _faculty_for(self, actor: User, faculty_id: Optional[str]) -> Optional[str]:
        if faculty_id:
            return faculty_id
        profile = actor.faculty_profile
        return str(profile.id) if profile else None

    async def mark(self, data: Dict[str, Any], actor: User) -> Attendance:
        """Create one attendance record; a second mark for the same day is a conflict"""
        course = await self._get_course(data["course_id"])
        student = await self._get_student(data["student_id"])
        day = normalize_day(data["date"])

        if await self.find_existing(course.id, student.id, day):
            raise ConflictError(
                "Attendance already marked for this student in this course on this date",
                conflict_type="attendance",
            )

        record = Attendance(
            course_id=course.id,
            student_id=student.id,
            faculty_id=self._faculty_for(actor, data.get("faculty_id")),
            date=day,
            marked_by_id=actor.id,
            **{field: data[field] for field in MUTABLE_FIELDS if data.get(field) is not None},
        )
        self.db.add(record)
        apply_attendance_transition(student, None, record.status)
        await self.db.flush()

        logger.log_domain_event(
            "Attendance", "marked", str(record.id),
            student_id=str(student.id), status=record.status.value,
        )
        return record

    async def update(self, record: Attendance, changes: Dict[str, Any]) -> Attendance:
        """Apply changes; status moves the counters, a date change re-checks uniqueness"""
        old_status = record.status

        if changes.get("date") is not None:
            day = normalize_day(changes["date"])
            if day != record.date:
                if await self.find_existing(record.course_id, record.student_id, day, exclude_id=record.id):
                    raise ConflictError(
                        "Attendance already marked for this student in this course on this date",
                        conflict_type="attendance",
                    )
                record.date = day

        for field in MUTABLE_FIELDS:
            if field in changes and changes[field] is not None:
                setattr(record, field, changes[field])
        record.last_updated = utcnow()

        if record.status != old_status:
            student = await self._get_student(record.student_id)
            apply_attendance_transition(student, old_status, record.status)

        await self.db.flush()
        logger.log_domain_event(
            "Attendance", "updated", str(record.id),
            old_status=getattr(old_status, "value", old_status),
            status=getattr(record.status, "value", record.status),
        )
        return record

    async def delete(self, record: Attendance) -> None:
        student = await self.db.get(Student, record.student_id)
        if student is not None:
            apply_attendance_transition(student, record.status, None)
        await self.db.delete(record)
        await self.db.flush()
        logger.log_domain_event("Attendance", "deleted", str(record.id))

    async def bulk_mark(
        self,
        course_id: str,
        entries: List[Dict[str, Any]],
        actor: User,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, List[Attendance]]:
        """
        Mark many (student, date) pairs for one course.

        Each pair stands alone: an existing record for that day is updated
        (counters move from its old status), otherwise a new one is created.
        """
        course = await self._get_course(course_id)

        if not actor.is_admin:
            profile = actor.faculty_profile
            if profile is None or not await faculty_instructs(self.db, course.id, profile.id):
                raise AuthorizationError(
                    "Only an instructor of this course can mark attendance for it",
                    action="attendance:bulk_create",
                )

        defaults = defaults or {}
        created: List[Attendance] = []
        updated: List[Attendance] = []

        for entry in entries:
            day = normalize_day(entry.get("date") or defaults.get("date"))
            student = await self._get_student(entry["student_id"])
            values = {**defaults, **{k: v for k, v in entry.items() if v is not None}}

            existing = await self.find_existing(course.id, student.id, day)
            if existing is not None:
                old_status = existing.status
                for field in MUTABLE_FIELDS:
                    if values.get(field) is not None:
                        setattr(existing, field, values[field])
                existing.marked_by_id = actor.id
                existing.last_updated = utcnow()
                apply_attendance_transition(student, old_status, existing.status)
                updated.append(existing)
            else:
                record = Attendance(
                    course_id=course.id,
                    student_id=student.id,
                    faculty_id=self._faculty_for(actor, values.get("faculty_id")),
                    date=day,
                    marked_by_id=actor.id,
                    **{field: values[field] for field in MUTABLE_FIELDS if values.get(field) is not None},
                )
                if record.status is None:
                    record.status = AttendanceStatus.PRESENT
                self.db.add(record)
                apply_attendance_transition(student, None, record.status)
                created.append(record)

            # Later entries for the same day must see this one
            await self.db.flush()

        logger.log_domain_event(
            "Attendance", "bulk_marked", str(course.id),
            created_count=len(created), updated_count=len(updated),
        )
        return {"created": created, "updated": updated}
