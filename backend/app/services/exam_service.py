"""
Exam Service
Records exam results. Every derived field (percentage, grade, grade
points, status) is computed here from the marks and the parent exam.
"""

from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.logging_config import logger
from app.core.types import utcnow
from app.models.academic import Exam, ExamResult, ResultStatus
from app.models.organization import Student
from app.models.user import User
from app.services.grading import ResultGrade, apply_result, validate_marks


def grade_result(result: ExamResult, exam: Exam) -> ResultGrade:
    """apply_result with the status stored as the column enum"""
    computed = apply_result(result, exam)
    result.status = ResultStatus(computed.status)
    return computed


class ExamService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_result(self, exam_id: str, student_id: str):
        return (await self.db.execute(
            select(ExamResult).where(ExamResult.exam_id == exam_id, ExamResult.student_id == student_id)
        )).scalar_one_or_none()

    async def record_result(self, exam: Exam, data: Dict[str, Any], actor: User) -> ExamResult:
        """Validate marks, reject a second result for the student, then persist"""
        validate_marks(data["marks_obtained"], exam.total_marks)

        student = await self.db.get(Student, data["student_id"])
        if student is None:
            raise NotFoundError("Student", data["student_id"])

        if await self.find_result(exam.id, student.id):
            raise ConflictError("Result already exists for this student", conflict_type="exam_result")

        result = ExamResult(
            exam_id=exam.id,
            student_id=student.id,
            course_id=exam.course_id,
            marks_obtained=data["marks_obtained"],
            feedback=data.get("feedback"),
            is_published=data.get("is_published", False),
            evaluated_by_id=actor.id,
            evaluated_at=utcnow(),
        )
        computed = grade_result(result, exam)
        self.db.add(result)
        await self.db.flush()

        logger.log_domain_event(
            "ExamResult", "recorded", str(result.id),
            exam_id=str(exam.id), student_id=str(student.id),
            grade=computed.grade, result_status=computed.status,
        )
        return result

    async def update_result(self, exam: Exam, result: ExamResult, changes: Dict[str, Any]) -> ExamResult:
        if changes.get("marks_obtained") is not None:
            validate_marks(changes["marks_obtained"], exam.total_marks)
            result.marks_obtained = changes["marks_obtained"]
        for field in ("feedback", "is_published"):
            if field in changes and changes[field] is not None:
                setattr(result, field, changes[field])

        computed = grade_result(result, exam)
        result.evaluated_at = utcnow()
        await self.db.flush()

        logger.log_domain_event(
            "ExamResult", "updated", str(result.id),
            grade=computed.grade, result_status=computed.status,
        )
        return result

    async def regrade(self, exam: Exam) -> List[ExamResult]:
        """Recompute every result after the exam's marks scheme changed"""
        results = (await self.db.execute(
            select(ExamResult).where(ExamResult.exam_id == exam.id)
        )).scalars().all()

        for result in results:
            if result.marks_obtained > exam.total_marks:
                raise ValidationError(
                    f"Existing marks of {result.marks_obtained} exceed new total marks of {exam.total_marks}",
                    field="total_marks",
                )
            grade_result(result, exam)

        await self.db.flush()
        if results:
            logger.log_domain_event("Exam", "regraded", str(exam.id), results=len(results))
        return list(results)
