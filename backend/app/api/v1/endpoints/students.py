"""Student profiles and their course enrollments"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.orm import selectinload
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import AuthorizationError, NotFoundError
from app.core.logging_config import logger
from app.models.organization import Student, AcademicStatus
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, require_permission
from app.modules.auth.policy import enforce
from app.schemas.common import ok, dump
from app.schemas.organization import (
    StudentCreate, StudentUpdate, StudentResponse, StudentDetailResponse, EnrollmentUpdate,
)
from app.services.course_service import CourseService, faculty_instructs
from app.services.profile_service import ProfileService
from app.utils.pagination import PaginationParams, pagination_params, paginate, paginated_response

router = APIRouter()


async def get_student(db: AsyncSession, student_id: str) -> Student:
    result = await db.execute(
        select(Student)
        .options(selectinload(Student.user), selectinload(Student.enrollments))
        .where(Student.id == student_id)
        .execution_options(populate_existing=True)
    )
    student = result.scalar_one_or_none()
    if not student:
        raise NotFoundError("Student", student_id)
    return student


@router.get("")
async def list_students(
    department_id: Optional[str] = Query(None),
    program_id: Optional[str] = Query(None),
    semester: Optional[int] = Query(None, ge=1, le=12),
    batch: Optional[str] = Query(None),
    academic_status: Optional[AcademicStatus] = Query(None),
    search: Optional[str] = Query(None, description="Search by student id, name or email"),
    paging: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(require_permission("student", "list")),
    db: AsyncSession = Depends(get_db)
):
    query = select(Student).options(selectinload(Student.user)).order_by(Student.student_id)
    if department_id:
        query = query.where(Student.department_id == department_id)
    if program_id:
        query = query.where(Student.program_id == program_id)
    if semester:
        query = query.where(Student.semester == semester)
    if batch:
        query = query.where(Student.batch == batch)
    if academic_status:
        query = query.where(Student.academic_status == academic_status)
    if search:
        pattern = f"%{search}%"
        query = query.join(User, User.id == Student.user_id).where(
            or_(Student.student_id.ilike(pattern), User.name.ilike(pattern), User.email.ilike(pattern))
        )

    page = await paginate(db, query, paging.page, paging.page_size)
    return paginated_response(page, lambda student: dump(StudentDetailResponse, student))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_student(
    data: StudentCreate,
    current_user: User = Depends(require_permission("student", "create")),
    db: AsyncSession = Depends(get_db)
):
    student = await ProfileService(db).create_student(data.model_dump())
    await db.commit()
    return ok(dump(StudentDetailResponse, await get_student(db, student.id)))


@router.get("/{student_id}")
async def read_student(
    student_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Own profile for students; any profile for faculty and admins"""
    student = await get_student(db, student_id)
    enforce(current_user, "read", "student", student)
    return ok(dump(StudentDetailResponse, student))


@router.put("/{student_id}")
async def update_student(
    student_id: str,
    data: StudentUpdate,
    current_user: User = Depends(require_permission("student", "update")),
    db: AsyncSession = Depends(get_db)
):
    student = await get_student(db, student_id)
    await ProfileService(db).update_student(student, data.model_dump(exclude_unset=True))
    await db.commit()
    return ok(dump(StudentDetailResponse, await get_student(db, student_id)))


@router.delete("/{student_id}")
async def delete_student(
    student_id: str,
    current_user: User = Depends(require_permission("student", "delete")),
    db: AsyncSession = Depends(get_db)
):
    student = await get_student(db, student_id)
    await db.delete(student)
    await db.commit()

    logger.log_domain_event("Student", "deleted", student_id)
    return ok({})


@router.put("/{student_id}/enrollments/{course_id}")
async def update_enrollment(
    student_id: str,
    course_id: str,
    data: EnrollmentUpdate,
    current_user: User = Depends(require_permission("student", "update_enrollment")),
    db: AsyncSession = Depends(get_db)
):
    """Set enrollment status / grade; cgpa is recomputed from completed courses"""
    if not current_user.is_admin:
        faculty = current_user.faculty_profile
        if faculty is None or not await faculty_instructs(db, course_id, faculty.id):
            raise AuthorizationError(
                "Only an instructor of this course can grade its enrollments",
                action="student:update_enrollment",
            )

    await CourseService(db).update_enrollment(student_id, course_id, data.status, data.grade)
    await db.commit()
    return ok(dump(StudentResponse, await get_student(db, student_id)))
