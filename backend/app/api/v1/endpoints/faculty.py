"""
Faculty API
Faculty profiles: listing and detail for everyone signed in, writes for admins.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.orm import selectinload
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.core.logging_config import logger
from app.models.organization import Faculty, Designation, EmploymentStatus
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, require_permission
from app.schemas.academic import CourseResponse
from app.schemas.common import ok, dump, dump_all
from app.schemas.organization import FacultyCreate, FacultyUpdate, FacultyDetailResponse
from app.services.profile_service import ProfileService
from app.utils.pagination import PaginationParams, pagination_params, paginate, paginated_response

router = APIRouter()


async def get_faculty(db: AsyncSession, faculty_id: str, with_courses: bool = False) -> Faculty:
    options = [selectinload(Faculty.user)]
    if with_courses:
        options.append(selectinload(Faculty.courses))
    result = await db.execute(
        select(Faculty)
        .options(*options)
        .where(Faculty.id == faculty_id)
        .execution_options(populate_existing=True)
    )
    faculty = result.scalar_one_or_none()
    if not faculty:
        raise NotFoundError("Faculty", faculty_id)
    return faculty


@router.get("")
async def list_faculty(
    department_id: Optional[str] = Query(None),
    designation: Optional[Designation] = Query(None),
    employment_status: Optional[EmploymentStatus] = Query(None),
    search: Optional[str] = Query(None, description="Search by faculty id, name or email"),
    paging: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    query = select(Faculty).options(selectinload(Faculty.user)).order_by(Faculty.faculty_id)
    if department_id:
        query = query.where(Faculty.department_id == department_id)
    if designation:
        query = query.where(Faculty.designation == designation)
    if employment_status:
        query = query.where(Faculty.employment_status == employment_status)
    if search:
        pattern = f"%{search}%"
        query = query.join(User, User.id == Faculty.user_id).where(
            or_(Faculty.faculty_id.ilike(pattern), User.name.ilike(pattern), User.email.ilike(pattern))
        )

    page = await paginate(db, query, paging.page, paging.page_size)
    return paginated_response(page, lambda faculty: dump(FacultyDetailResponse, faculty))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_faculty(
    data: FacultyCreate,
    current_user: User = Depends(require_permission("faculty", "create")),
    db: AsyncSession = Depends(get_db)
):
    faculty = await ProfileService(db).create_faculty(data.model_dump())
    await db.commit()
    return ok(dump(FacultyDetailResponse, await get_faculty(db, faculty.id)))


@router.get("/{faculty_id}")
async def read_faculty(
    faculty_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    faculty = await get_faculty(db, faculty_id, with_courses=True)
    data = dump(FacultyDetailResponse, faculty)
    data["courses"] = dump_all(CourseResponse, faculty.courses)
    return ok(data)


@router.put("/{faculty_id}")
async def update_faculty(
    faculty_id: str,
    data: FacultyUpdate,
    current_user: User = Depends(require_permission("faculty", "update")),
    db: AsyncSession = Depends(get_db)
):
    faculty = await get_faculty(db, faculty_id)
    await ProfileService(db).update_faculty(faculty, data.model_dump(exclude_unset=True))
    await db.commit()
    return ok(dump(FacultyDetailResponse, await get_faculty(db, faculty_id)))


@router.delete("/{faculty_id}")
async def delete_faculty(
    faculty_id: str,
    current_user: User = Depends(require_permission("faculty", "delete")),
    db: AsyncSession = Depends(get_db)
):
    faculty = await get_faculty(db, faculty_id)
    await db.delete(faculty)
    await db.commit()

    logger.log_domain_event("Faculty", "deleted", faculty_id)
    return ok({})
