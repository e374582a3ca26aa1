"""Program catalogue"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging_config import logger
from app.models.admission import Admission
from app.models.organization import Program, ProgramLevel
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, require_permission
from app.schemas.common import ok, dump, dump_all
from app.schemas.organization import ProgramCreate, ProgramUpdate, ProgramResponse
from app.api.v1.endpoints.departments import get_department

router = APIRouter()


async def get_program(db: AsyncSession, program_id: str) -> Program:
    program = await db.get(Program, program_id)
    if not program:
        raise NotFoundError("Program", program_id)
    return program


async def _check_code(db: AsyncSession, code: Optional[str], exclude_id: Optional[str] = None) -> None:
    if not code:
        return
    query = select(Program.id).where(Program.code == code)
    if exclude_id:
        query = query.where(Program.id != exclude_id)
    if (await db.execute(query)).scalar_one_or_none():
        raise ConflictError(f"Program with code {code} already exists", conflict_type="duplicate_program")


@router.get("")
async def list_programs(
    department_id: Optional[str] = Query(None),
    level: Optional[ProgramLevel] = Query(None),
    active: Optional[bool] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    query = select(Program).order_by(Program.name)
    if department_id:
        query = query.where(Program.department_id == department_id)
    if level:
        query = query.where(Program.level == level)
    if active is not None:
        query = query.where(Program.active == active)
    programs = (await db.execute(query)).scalars().all()
    return ok(dump_all(ProgramResponse, programs), count=len(programs))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_program(
    data: ProgramCreate,
    current_user: User = Depends(require_permission("program", "create")),
    db: AsyncSession = Depends(get_db)
):
    await get_department(db, data.department_id)
    await _check_code(db, data.code)

    program = Program(**data.model_dump())
    db.add(program)
    await db.commit()
    await db.refresh(program)

    logger.log_domain_event("Program", "created", str(program.id), code=program.code)
    return ok(dump(ProgramResponse, program))


@router.get("/{program_id}")
async def read_program(
    program_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return ok(dump(ProgramResponse, await get_program(db, program_id)))


@router.put("/{program_id}")
async def update_program(
    program_id: str,
    data: ProgramUpdate,
    current_user: User = Depends(require_permission("program", "update")),
    db: AsyncSession = Depends(get_db)
):
    program = await get_program(db, program_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("department_id"):
        await get_department(db, changes["department_id"])
    await _check_code(db, changes.get("code"), exclude_id=program.id)

    for field, value in changes.items():
        setattr(program, field, value)
    await db.commit()
    await db.refresh(program)
    return ok(dump(ProgramResponse, program))


@router.delete("/{program_id}")
async def delete_program(
    program_id: str,
    current_user: User = Depends(require_permission("program", "delete")),
    db: AsyncSession = Depends(get_db)
):
    program = await get_program(db, program_id)

    applications = (await db.execute(
        select(func.count(Admission.id)).where(Admission.program_id == program.id)
    )).scalar() or 0
    if applications:
        raise ConflictError(
            f"Program has {applications} admission application(s)", conflict_type="program_in_use"
        )

    await db.delete(program)
    await db.commit()

    logger.log_domain_event("Program", "deleted", program_id)
    return ok({})
