"""Department catalogue: readable by any signed-in user, written by admins"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging_config import logger
from app.models.organization import Department, Program
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, require_permission
from app.schemas.common import ok, dump, dump_all
from app.schemas.organization import DepartmentCreate, DepartmentUpdate, DepartmentResponse, ProgramResponse

router = APIRouter()


async def get_department(db: AsyncSession, department_id: str) -> Department:
    department = await db.get(Department, department_id)
    if not department:
        raise NotFoundError("Department", department_id)
    return department


async def _check_unique(db: AsyncSession, name: Optional[str], code: Optional[str],
                        exclude_id: Optional[str] = None) -> None:
    for column, value in ((Department.name, name), (Department.code, code)):
        if not value:
            continue
        query = select(Department.id).where(column == value)
        if exclude_id:
            query = query.where(Department.id != exclude_id)
        if (await db.execute(query)).scalar_one_or_none():
            raise ConflictError(
                f"Department with {column.key} {value} already exists",
                conflict_type="duplicate_department",
            )


@router.get("")
async def list_departments(
    active: Optional[bool] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    query = select(Department).order_by(Department.name)
    if active is not None:
        query = query.where(Department.active == active)
    departments = (await db.execute(query)).scalars().all()
    return ok(dump_all(DepartmentResponse, departments), count=len(departments))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_department(
    data: DepartmentCreate,
    current_user: User = Depends(require_permission("department", "create")),
    db: AsyncSession = Depends(get_db)
):
    await _check_unique(db, data.name, data.code)
    department = Department(**data.model_dump())
    db.add(department)
    await db.commit()
    await db.refresh(department)

    logger.log_domain_event("Department", "created", str(department.id), code=department.code)
    return ok(dump(DepartmentResponse, department))


@router.get("/{department_id}")
async def read_department(
    department_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    department = await get_department(db, department_id)
    programs = (await db.execute(
        select(Program).where(Program.department_id == department.id).order_by(Program.name)
    )).scalars().all()

    data = dump(DepartmentResponse, department)
    data["programs"] = dump_all(ProgramResponse, programs)
    return ok(data)


@router.put("/{department_id}")
async def update_department(
    department_id: str,
    data: DepartmentUpdate,
    current_user: User = Depends(require_permission("department", "update")),
    db: AsyncSession = Depends(get_db)
):
    department = await get_department(db, department_id)
    changes = data.model_dump(exclude_unset=True)
    await _check_unique(db, changes.get("name"), changes.get("code"), exclude_id=department.id)

    for field, value in changes.items():
        setattr(department, field, value)
    await db.commit()
    await db.refresh(department)
    return ok(dump(DepartmentResponse, department))


@router.delete("/{department_id}")
async def delete_department(
    department_id: str,
    current_user: User = Depends(require_permission("department", "delete")),
    db: AsyncSession = Depends(get_db)
):
    department = await get_department(db, department_id)

    programs = (await db.execute(
        select(func.count(Program.id)).where(Program.department_id == department.id)
    )).scalar() or 0
    if programs:
        raise ConflictError(
            f"Department still has {programs} program(s)", conflict_type="department_in_use"
        )

    await db.delete(department)
    await db.commit()

    logger.log_domain_event("Department", "deleted", department_id)
    return ok({})
