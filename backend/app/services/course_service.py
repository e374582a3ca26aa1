"""
Course Service
Enrollment bookkeeping: seat counts, enrollment status/grade and CGPA.
"""

from typing import Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging_config import logger
from app.models.academic import Course, course_instructors
from app.models.organization import EnrollmentStatus, Student, StudentEnrollment
from app.services.grading import compute_cgpa, grade_points_for_letter


async def faculty_instructs(db: AsyncSession, course_id: str, faculty_id: str) -> bool:
    """True when faculty_id is the main instructor or a co-instructor of course_id"""
    result = await db.execute(
        select(Course.id)
        .outerjoin(course_instructors, course_instructors.c.course_id == Course.id)
        .where(
            Course.id == course_id,
            or_(
                Course.main_instructor_id == faculty_id,
                course_instructors.c.faculty_id == faculty_id,
            ),
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


class CourseService:
    """Enroll / unenroll students and maintain derived fields"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load_student(self, student_id: str) -> Student:
        student = (await self.db.execute(
            select(Student)
            .options(selectinload(Student.enrollments))
            .where(Student.id == student_id)
            .execution_options(populate_existing=True)
        )).scalar_one_or_none()
        if student is None:
            raise NotFoundError("Student", student_id)
        return student

    def _find(self, student: Student, course_id: str) -> Optional[StudentEnrollment]:
        for enrollment in student.enrollments:
            if str(enrollment.course_id) == str(course_id):
                return enrollment
        return None

    async def enroll(self, course: Course, student_id: str) -> StudentEnrollment:
        """Add the student to the course; full courses and repeats are conflicts"""
        student = await self._load_student(student_id)

        if self._find(student, course.id) is not None:
            raise ConflictError("Student is already enrolled in this course", conflict_type="enrollment")
        if course.is_full:
            raise ConflictError(
                f"Course {course.code} is full ({course.capacity} seats)",
                conflict_type="capacity",
            )

        enrollment = StudentEnrollment(
            course_id=course.id,
            status=EnrollmentStatus.ACTIVE,
            grade="",
            grade_points=0.0,
        )
        student.enrollments.append(enrollment)
        course.enrolled_students = (course.enrolled_students or 0) + 1
        await self.db.flush()

        logger.log_domain_event(
            "Course", "student_enrolled", str(course.id),
            student_id=str(student.id), enrolled=course.enrolled_students,
        )
        return enrollment

    async def unenroll(self, course: Course, student_id: str) -> None:
        student = await self._load_student(student_id)
        enrollment = self._find(student, course.id)
        if enrollment is None:
            raise NotFoundError("Enrollment", message="Student is not enrolled in this course")

        student.enrollments.remove(enrollment)
        course.enrolled_students = max((course.enrolled_students or 0) - 1, 0)
        student.cgpa = compute_cgpa(student.enrollments)
        await self.db.flush()

        logger.log_domain_event(
            "Course", "student_unenrolled", str(course.id),
            student_id=str(student.id), enrolled=course.enrolled_students,
        )

    async def update_enrollment(
        self,
        student_id: str,
        course_id: str,
        status: Optional[EnrollmentStatus] = None,
        grade: Optional[str] = None,
    ) -> Student:
        """Set status / grade on one enrollment and recompute the student's CGPA"""
        student = await self._load_student(student_id)
        enrollment = self._find(student, course_id)
        if enrollment is None:
            raise NotFoundError("Enrollment", message="Student is not enrolled in this course")

        if status is not None:
            enrollment.status = status
        if grade is not None:
            enrollment.grade = grade
            enrollment.grade_points = grade_points_for_letter(grade)

        student.cgpa = compute_cgpa(student.enrollments)
        await self.db.flush()

        logger.log_domain_event(
            "Student", "enrollment_updated", str(student.id),
            course_id=str(course_id), cgpa=student.cgpa,
        )
        return student
