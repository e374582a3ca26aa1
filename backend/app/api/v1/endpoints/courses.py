"""
Courses API
Course catalogue, instructor assignment, enrollment and syllabus.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.orm import selectinload
from typing import List, Optional

from app.core.database import get_db
from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError
from app.core.logging_config import logger
from app.models.academic import Course, CourseStatus, Semester
from app.models.organization import Faculty
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, require_permission
from app.schemas.academic import (
    CourseCreate, CourseUpdate, CourseResponse, CourseDetailResponse,
    EnrollRequest, SyllabusUpdate, schedule_json,
)
from app.schemas.common import ok, dump
from app.schemas.organization import EnrollmentResponse
from app.services.course_service import CourseService, faculty_instructs
from app.services.profile_service import ProfileService
from app.utils.pagination import PaginationParams, pagination_params, paginate, paginated_response

router = APIRouter()


async def get_course(db: AsyncSession, course_id: str) -> Course:
    result = await db.execute(
        select(Course)
        .options(selectinload(Course.instructors))
        .where(Course.id == course_id)
        .execution_options(populate_existing=True)
    )
    course = result.scalar_one_or_none()
    if not course:
        raise NotFoundError("Course", course_id)
    return course


async def _load_instructors(db: AsyncSession, faculty_ids: List[str]) -> List[Faculty]:
    if not faculty_ids:
        return []
    found = (await db.execute(select(Faculty).where(Faculty.id.in_(faculty_ids)))).scalars().all()
    missing = set(faculty_ids) - {str(faculty.id) for faculty in found}
    if missing:
        raise NotFoundError("Faculty", sorted(missing)[0])
    return list(found)


async def _check_code(db: AsyncSession, code: Optional[str], exclude_id: Optional[str] = None) -> None:
    if not code:
        return
    query = select(Course.id).where(Course.code == code)
    if exclude_id:
        query = query.where(Course.id != exclude_id)
    if (await db.execute(query)).scalar_one_or_none():
        raise ConflictError(f"Course with code {code} already exists", conflict_type="duplicate_course")


@router.get("")
async def list_courses(
    department_id: Optional[str] = Query(None),
    program_id: Optional[str] = Query(None),
    semester: Optional[Semester] = Query(None),
    year: Optional[int] = Query(None),
    course_status: Optional[CourseStatus] = Query(None, alias="status"),
    instructor_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Search by code or title"),
    paging: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    query = select(Course).order_by(Course.code)
    if department_id:
        query = query.where(Course.department_id == department_id)
    if program_id:
        query = query.where(Course.program_id == program_id)
    if semester:
        query = query.where(Course.semester == semester)
    if year:
        query = query.where(Course.year == year)
    if course_status:
        query = query.where(Course.status == course_status)
    if instructor_id:
        query = query.where(
            or_(Course.main_instructor_id == instructor_id,
                Course.instructors.any(Faculty.id == instructor_id))
        )
    if search:
        query = query.where(or_(Course.code.ilike(f"%{search}%"), Course.title.ilike(f"%{search}%")))

    page = await paginate(db, query, paging.page, paging.page_size)
    return paginated_response(page, lambda course: dump(CourseResponse, course))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_course(
    data: CourseCreate,
    current_user: User = Depends(require_permission("course", "create")),
    db: AsyncSession = Depends(get_db)
):
    await _check_code(db, data.code)
    await ProfileService(db).check_references(data.department_id, data.program_id)

    instructor_ids = list(data.instructor_ids)
    if data.main_instructor_id and data.main_instructor_id not in instructor_ids:
        instructor_ids.append(data.main_instructor_id)
    instructors = await _load_instructors(db, instructor_ids)

    fields = data.model_dump(exclude={"instructor_ids", "schedule"})
    course = Course(**fields, schedule=schedule_json(data.schedule), enrolled_students=0)
    course.instructors = instructors
    db.add(course)
    await db.commit()

    logger.log_domain_event("Course", "created", str(course.id), code=course.code)
    return ok(dump(CourseDetailResponse, await get_course(db, course.id)))


@router.get("/{course_id}")
async def read_course(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return ok(dump(CourseDetailResponse, await get_course(db, course_id)))


@router.put("/{course_id}")
async def update_course(
    course_id: str,
    data: CourseUpdate,
    current_user: User = Depends(require_permission("course", "update")),
    db: AsyncSession = Depends(get_db)
):
    course = await get_course(db, course_id)
    changes = data.model_dump(exclude_unset=True, exclude={"instructor_ids", "schedule"})

    await _check_code(db, changes.get("code"), exclude_id=course.id)
    await ProfileService(db).check_references(changes.get("department_id"), changes.get("program_id"))

    if "capacity" in changes and changes["capacity"] < course.enrolled_students:
        raise ConflictError(
            f"Capacity cannot be below the {course.enrolled_students} enrolled students",
            conflict_type="capacity",
        )

    for field, value in changes.items():
        setattr(course, field, value)
    if data.schedule is not None:
        course.schedule = schedule_json(data.schedule)
    if data.instructor_ids is not None:
        course.instructors = await _load_instructors(db, data.instructor_ids)

    await db.commit()
    return ok(dump(CourseDetailResponse, await get_course(db, course_id)))


@router.delete("/{course_id}")
async def delete_course(
    course_id: str,
    current_user: User = Depends(require_permission("course", "delete")),
    db: AsyncSession = Depends(get_db)
):
    course = await get_course(db, course_id)
    await db.delete(course)
    await db.commit()

    logger.log_domain_event("Course", "deleted", course_id)
    return ok({})


# ==================== Enrollment ====================

@router.post("/{course_id}/enroll")
async def enroll_student(
    course_id: str,
    body: EnrollRequest,
    current_user: User = Depends(require_permission("course", "enroll")),
    db: AsyncSession = Depends(get_db)
):
    course = await get_course(db, course_id)
    enrollment = await CourseService(db).enroll(course, body.student_id)
    await db.commit()
    return ok(
        {
            "course": dump(CourseResponse, course),
            "enrollment": dump(EnrollmentResponse, enrollment),
        },
        message="Student enrolled",
    )


@router.delete("/{course_id}/unenroll/{student_id}")
async def unenroll_student(
    course_id: str,
    student_id: str,
    current_user: User = Depends(require_permission("course", "unenroll")),
    db: AsyncSession = Depends(get_db)
):
    course = await get_course(db, course_id)
    await CourseService(db).unenroll(course, student_id)
    await db.commit()
    return ok(dump(CourseResponse, course), message="Student unenrolled")


# ==================== Syllabus ====================

@router.get("/{course_id}/syllabus")
async def get_syllabus(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    course = await get_course(db, course_id)
    if not course.syllabus:
        raise NotFoundError("Syllabus", message="No syllabus found for this course")
    return ok(course.syllabus)


@router.put("/{course_id}/syllabus")
async def update_syllabus(
    course_id: str,
    body: SyllabusUpdate,
    current_user: User = Depends(require_permission("course", "update_syllabus")),
    db: AsyncSession = Depends(get_db)
):
    """Only the course's instructors (or an admin) may change the syllabus"""
    course = await get_course(db, course_id)
    if not current_user.is_admin:
        faculty = current_user.faculty_profile
        if faculty is None or not await faculty_instructs(db, course.id, faculty.id):
            raise AuthorizationError(
                f"User {current_user.id} is not authorized to update this course syllabus",
                action="course:update_syllabus",
            )

    course.syllabus = body.syllabus
    await db.commit()

    logger.log_domain_event("Course", "syllabus_updated", course_id)
    return ok(course.syllabus)
