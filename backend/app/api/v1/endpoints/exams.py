"""
Exams API
Exam scheduling plus per-student results. Result grades are always
computed server side from the marks.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging_config import logger
from app.core.types import utcnow
from app.models.academic import Course, Exam, ExamResult, ExamStatus, ExamType
from app.models.user import User, UserRole
from app.modules.auth.dependencies import get_current_user, require_permission
from app.modules.auth.policy import enforce
from app.schemas.academic import (
    ExamCreate, ExamUpdate, ExamResponse, ExamResultCreate, ExamResultUpdate, ExamResultResponse,
)
from app.schemas.common import ok, dump, dump_all
from app.services.exam_service import ExamService
from app.utils.pagination import PaginationParams, pagination_params, paginate, paginated_response

router = APIRouter()

# Changing any of these re-derives every result of the exam
GRADING_FIELDS = ("total_marks", "passing_marks")


async def get_exam(db: AsyncSession, exam_id: str) -> Exam:
    exam = await db.get(Exam, exam_id)
    if not exam:
        raise NotFoundError("Exam", exam_id)
    return exam


async def get_result(db: AsyncSession, exam: Exam, result_id: str) -> ExamResult:
    result = await db.get(ExamResult, result_id)
    if not result:
        raise NotFoundError("Result", result_id)
    if str(result.exam_id) != str(exam.id):
        raise ValidationError("Result does not belong to this exam", field="result_id")
    return result


def _is_student(user: User) -> bool:
    return user.role == UserRole.STUDENT


@router.get("")
async def list_exams(
    course_id: Optional[str] = Query(None),
    exam_type: Optional[ExamType] = Query(None),
    exam_status: Optional[ExamStatus] = Query(None, alias="status"),
    paging: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    query = select(Exam).order_by(Exam.date.desc(), Exam.start_time)
    if course_id:
        query = query.where(Exam.course_id == course_id)
    if exam_type:
        query = query.where(Exam.exam_type == exam_type)
    if exam_status:
        query = query.where(Exam.status == exam_status)
    if _is_student(current_user):
        query = query.where(Exam.is_published.is_(True))

    page = await paginate(db, query, paging.page, paging.page_size)
    return paginated_response(page, lambda exam: dump(ExamResponse, exam))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_exam(
    data: ExamCreate,
    current_user: User = Depends(require_permission("exam", "create")),
    db: AsyncSession = Depends(get_db)
):
    if not await db.get(Course, data.course_id):
        raise NotFoundError("Course", data.course_id)

    exam = Exam(**data.model_dump(), created_by_id=current_user.id)
    db.add(exam)
    await db.commit()
    await db.refresh(exam)

    logger.log_domain_event("Exam", "created", str(exam.id), course_id=str(exam.course_id))
    return ok(dump(ExamResponse, exam))


@router.get("/{exam_id}")
async def read_exam(
    exam_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    exam = await get_exam(db, exam_id)
    if _is_student(current_user) and not exam.is_published:
        raise NotFoundError("Exam", exam_id)
    return ok(dump(ExamResponse, exam))


@router.put("/{exam_id}")
async def update_exam(
    exam_id: str,
    data: ExamUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    exam = await get_exam(db, exam_id)
    enforce(current_user, "update", "exam", exam)

    changes = data.model_dump(exclude_unset=True)
    total = changes.get("total_marks", exam.total_marks)
    passing = changes.get("passing_marks", exam.passing_marks)
    if passing is not None and passing > total:
        raise ValidationError("Passing marks cannot exceed total marks", field="passing_marks")

    for field, value in changes.items():
        setattr(exam, field, value)
    if changes.get("results_published") and exam.results_published_at is None:
        exam.results_published_at = utcnow()

    if any(field in changes for field in GRADING_FIELDS):
        await ExamService(db).regrade(exam)

    await db.commit()
    await db.refresh(exam)
    return ok(dump(ExamResponse, exam))


@router.delete("/{exam_id}")
async def delete_exam(
    exam_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    exam = await get_exam(db, exam_id)
    enforce(current_user, "delete", "exam", exam)

    await db.delete(exam)
    await db.commit()

    logger.log_domain_event("Exam", "deleted", exam_id)
    return ok({})


# ==================== Results ====================

@router.get("/{exam_id}/results")
async def list_results(
    exam_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Students only see their own published result"""
    exam = await get_exam(db, exam_id)
    query = select(ExamResult).where(ExamResult.exam_id == exam.id)

    if _is_student(current_user):
        profile = current_user.student_profile
        if profile is None:
            return ok([], count=0)
        query = query.where(
            ExamResult.student_id == profile.id,
            ExamResult.is_published.is_(True),
        )

    results = (await db.execute(query.order_by(ExamResult.created_at))).scalars().all()
    return ok(dump_all(ExamResultResponse, results), count=len(results))


@router.post("/{exam_id}/results", status_code=status.HTTP_201_CREATED)
async def add_result(
    exam_id: str,
    data: ExamResultCreate,
    current_user: User = Depends(require_permission("exam_result", "create")),
    db: AsyncSession = Depends(get_db)
):
    exam = await get_exam(db, exam_id)
    result = await ExamService(db).record_result(exam, data.model_dump(), current_user)
    await db.commit()
    return ok(dump(ExamResultResponse, result))


@router.put("/{exam_id}/results/{result_id}")
async def update_result(
    exam_id: str,
    result_id: str,
    data: ExamResultUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    exam = await get_exam(db, exam_id)
    result = await get_result(db, exam, result_id)
    enforce(current_user, "update", "exam_result", result)

    await ExamService(db).update_result(exam, result, data.model_dump(exclude_unset=True))
    await db.commit()
    return ok(dump(ExamResultResponse, result))


@router.delete("/{exam_id}/results/{result_id}")
async def delete_result(
    exam_id: str,
    result_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    exam = await get_exam(db, exam_id)
    result = await get_result(db, exam, result_id)
    enforce(current_user, "delete", "exam_result", result)

    await db.delete(result)
    await db.commit()

    logger.log_domain_event("ExamResult", "deleted", result_id, exam_id=exam_id)
    return ok({})
