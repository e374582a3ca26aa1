"""
Profile Service Layer
Creates and removes the Student / Faculty profiles that hang off a User.
"""

from typing import Any, Dict, Optional, Type, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.logging_config import logger
from app.core.security import get_password_hash
from app.models.organization import Department, Faculty, Program, Student
from app.models.user import User, UserRole


# Request fields that describe the owning user rather than the profile
USER_FIELDS = ("user_id", "name", "email", "password", "phone")

Profile = Union[Student, Faculty]


class ProfileService:
    """Student / faculty profile bookkeeping"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =====================================================
    # REFERENCES
    # =====================================================

    async def check_references(
        self,
        department_id: Optional[str] = None,
        program_id: Optional[str] = None,
    ) -> None:
        """Referenced department / program must exist when given"""
        if department_id and not await self.db.get(Department, department_id):
            raise NotFoundError("Department", department_id)
        if program_id and not await self.db.get(Program, program_id):
            raise NotFoundError("Program", program_id)

    async def _check_unique(self, model: Type[Profile], column: str, value: str,
                            exclude_id: Optional[str] = None) -> None:
        query = select(model.id).where(getattr(model, column) == value)
        if exclude_id:
            query = query.where(model.id != exclude_id)
        if (await self.db.execute(query)).scalar_one_or_none():
            raise ConflictError(
                f"{model.__name__} with {column} {value} already exists",
                conflict_type=f"duplicate_{column}",
            )

    # =====================================================
    # OWNING USER
    # =====================================================

    async def resolve_user(self, fields: Dict[str, Any], role: UserRole) -> User:
        """
        Load the user named by user_id, or create one with role.
        An existing user must not already carry a profile.
        """
        user_id = fields.get("user_id")
        if user_id:
            user = (await self.db.execute(
                select(User)
                .options(selectinload(User.student_profile), selectinload(User.faculty_profile))
                .where(User.id == user_id)
            )).scalar_one_or_none()
            if not user:
                raise NotFoundError("User", user_id)
            if user.student_profile is not None or user.faculty_profile is not None:
                raise ConflictError("User already has a profile", conflict_type="profile_exists")
            if user.role != role and not user.is_admin:
                raise ValidationError(
                    f"User role {user.role.value} does not match {role.value} profile",
                    field="user_id",
                )
            return user

        taken = (await self.db.execute(
            select(User.id).where(User.email == fields["email"])
        )).scalar_one_or_none()
        if taken:
            raise ConflictError("Email already registered", conflict_type="duplicate_email")

        user = User(
            name=fields["name"],
            email=fields["email"],
            phone=fields.get("phone"),
            hashed_password=get_password_hash(fields["password"]),
            role=role,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    # =====================================================
    # CREATE
    # =====================================================

    async def create_student(self, data: Dict[str, Any]) -> Student:
        profile_fields = {k: v for k, v in data.items() if k not in USER_FIELDS}
        await self._check_unique(Student, "student_id", profile_fields["student_id"])
        await self.check_references(profile_fields.get("department_id"), profile_fields.get("program_id"))

        user = await self.resolve_user(data, UserRole.STUDENT)
        student = Student(user_id=user.id, **profile_fields)
        self.db.add(student)
        await self.db.flush()

        logger.log_domain_event("Student", "created", str(student.id), student_number=student.student_id)
        return student

    async def create_faculty(self, data: Dict[str, Any]) -> Faculty:
        profile_fields = {k: v for k, v in data.items() if k not in USER_FIELDS}
        await self._check_unique(Faculty, "faculty_id", profile_fields["faculty_id"])
        await self.check_references(profile_fields.get("department_id"))

        user = await self.resolve_user(data, UserRole.FACULTY)
        faculty = Faculty(user_id=user.id, **profile_fields)
        self.db.add(faculty)
        await self.db.flush()

        logger.log_domain_event("Faculty", "created", str(faculty.id), faculty_number=faculty.faculty_id)
        return faculty

    # =====================================================
    # UPDATE
    # =====================================================

    async def update_student(self, student: Student, changes: Dict[str, Any]) -> Student:
        if changes.get("student_id"):
            await self._check_unique(Student, "student_id", changes["student_id"], exclude_id=student.id)
        await self.check_references(changes.get("department_id"), changes.get("program_id"))

        for field, value in changes.items():
            setattr(student, field, value)
        await self.db.flush()
        return student

    async def update_faculty(self, faculty: Faculty, changes: Dict[str, Any]) -> Faculty:
        if changes.get("faculty_id"):
            await self._check_unique(Faculty, "faculty_id", changes["faculty_id"], exclude_id=faculty.id)
        await self.check_references(changes.get("department_id"))

        current = changes.get("current_hours", faculty.current_hours)
        maximum = changes.get("max_hours", faculty.max_hours)
        if current is not None and maximum is not None and current > maximum:
            raise ValidationError("current_hours cannot exceed max_hours", field="current_hours")

        for field, value in changes.items():
            setattr(faculty, field, value)
        await self.db.flush()
        return faculty
