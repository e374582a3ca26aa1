"""
Analytics Service
Read-side projections over attendance, exam results and enrollments.

Everything is computed on demand. The actor's scope is applied before any
grouping:
- admin / superadmin: organisation-wide
- faculty: courses they instruct (main instructor or co-instructor)
- student: their own records only

Missing department / program references are labelled "" instead of
dropping the row.
"""

import csv
import io
from collections import OrderedDict, defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError, ValidationError
from app.models.user import User, UserRole
from app.models.organization import Department, Program, Student, StudentEnrollment, Faculty
from app.models.academic import (
    Attendance, AttendanceStatus, Course, Exam, ExamResult, course_instructors,
)
from app.services.grading import format_percentage, round2, safe_percentage


MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
ATTENDANCE_STATUSES = tuple(status.value for status in AttendanceStatus)

PERFORMANCE_RANGES = ("Below 40%", "40% - 60%", "60% - 80%", "Above 80%")

EXPORT_TYPES = ("students", "faculty", "courses", "attendance", "exam-results")


def label(value: Any) -> str:
    """Enum value, plain string, or "" for a missing reference"""
    if value is None:
        return ""
    return str(getattr(value, "value", value))


def performance_range(percentage: float) -> str:
    if percentage < 40:
        return PERFORMANCE_RANGES[0]
    if percentage < 60:
        return PERFORMANCE_RANGES[1]
    if percentage < 80:
        return PERFORMANCE_RANGES[2]
    return PERFORMANCE_RANGES[3]


def with_percentages(counts: Dict[str, int], key: str = "status") -> List[Dict[str, Any]]:
    """[{key, count, percentage}] with percentage = count / total * 100"""
    total = sum(counts.values())
    return [
        {key: name, "count": count, "percentage": safe_percentage(count, total)}
        for name, count in counts.items()
    ]


def status_counts(pairs: Iterable[Tuple[Any, int]]) -> Dict[str, int]:
    """Fold (status, count) rows into a dict carrying every attendance status"""
    counts = OrderedDict((status, 0) for status in ATTENDANCE_STATUSES)
    for status, count in pairs:
        counts[label(status)] = counts.get(label(status), 0) + int(count)
    return counts


def status_summary(counts: Dict[str, int]) -> Dict[str, Any]:
    """Counts plus per-status percentages and total"""
    total = sum(counts.values())
    summary: Dict[str, Any] = dict(counts)
    summary["total"] = total
    for status, count in counts.items():
        summary[f"{status}_percentage"] = safe_percentage(count, total)
    return summary


def _iso(value: Any) -> Any:
    return value.isoformat() if hasattr(value, "isoformat") else value


@dataclass(frozen=True)
class Scope:
    """None means unrestricted"""
    course_ids: Optional[List[str]] = None
    student_id: Optional[str] = None

    def attendance(self, stmt):
        if self.course_ids is not None:
            stmt = stmt.where(Attendance.course_id.in_(self.course_ids))
        if self.student_id is not None:
            stmt = stmt.where(Attendance.student_id == self.student_id)
        return stmt

    def results(self, stmt):
        if self.course_ids is not None:
            stmt = stmt.where(ExamResult.course_id.in_(self.course_ids))
        if self.student_id is not None:
            stmt = stmt.where(ExamResult.student_id == self.student_id)
        return stmt


class AnalyticsService:
    """Dashboard and analytics aggregations"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =====================================================
    # SCOPE
    # =====================================================

    async def instructed_course_ids(self, faculty_id: str) -> List[str]:
        result = await self.db.execute(
            select(Course.id)
            .outerjoin(course_instructors, course_instructors.c.course_id == Course.id)
            .where(or_(
                course_instructors.c.faculty_id == faculty_id,
                Course.main_instructor_id == faculty_id,
            ))
            .distinct()
        )
        return [str(course_id) for course_id in result.scalars().all()]

    async def scope_for(self, actor: User) -> Scope:
        if actor.is_admin:
            return Scope()
        if actor.role == UserRole.FACULTY:
            faculty = actor.faculty_profile
            if faculty is None:
                return Scope(course_ids=[])
            return Scope(course_ids=await self.instructed_course_ids(faculty.id))
        student = actor.student_profile
        # A student without a profile sees nothing
        return Scope(student_id=str(student.id) if student else "")

    async def _count(self, model) -> int:
        return (await self.db.execute(select(func.count()).select_from(model))).scalar() or 0

    # =====================================================
    # ATTENDANCE GROUPINGS
    # =====================================================

    async def attendance_by_status(self, scope: Scope, *conditions) -> Dict[str, int]:
        stmt = scope.attendance(
            select(Attendance.status, func.count(Attendance.id)).where(*conditions)
        ).group_by(Attendance.status)
        return status_counts((await self.db.execute(stmt)).all())

    async def attendance_by_course(self, scope: Scope, *conditions) -> List[Dict[str, Any]]:
        stmt = scope.attendance(
            select(Course.id, Course.title, Course.code, Attendance.status, func.count(Attendance.id))
            .join(Course, Course.id == Attendance.course_id)
            .where(*conditions)
        ).group_by(Course.id, Course.title, Course.code, Attendance.status)

        grouped: Dict[str, Dict[str, Any]] = OrderedDict()
        for course_id, title, code, status, count in (await self.db.execute(stmt)).all():
            entry = grouped.setdefault(str(course_id), {
                "course_id": str(course_id),
                "course_name": title,
                "course_code": code,
                "counts": OrderedDict((s, 0) for s in ATTENDANCE_STATUSES),
            })
            entry["counts"][label(status)] += count

        rows = []
        for entry in sorted(grouped.values(), key=lambda e: e["course_name"]):
            counts = entry.pop("counts")
            rows.append({**entry, **status_summary(counts)})
        return rows

    async def _attendance_dates(self, scope: Scope, *conditions) -> List[Tuple[date, str]]:
        stmt = scope.attendance(select(Attendance.date, Attendance.status).where(*conditions))
        return [(row_date, label(status)) for row_date, status in (await self.db.execute(stmt)).all()]

    async def attendance_by_month(self, scope: Scope, *conditions) -> List[Dict[str, Any]]:
        buckets: Dict[Tuple[int, int], Dict[str, int]] = defaultdict(
            lambda: OrderedDict((s, 0) for s in ATTENDANCE_STATUSES)
        )
        for row_date, status in await self._attendance_dates(scope, *conditions):
            buckets[(row_date.year, row_date.month)][status] += 1
        return [
            {"year": year, "month": MONTHS[month - 1], "month_number": month, **counts}
            for (year, month), counts in sorted(buckets.items())
        ]

    async def attendance_by_weekday(self, scope: Scope, *conditions) -> List[Dict[str, Any]]:
        buckets: Dict[int, Dict[str, int]] = defaultdict(
            lambda: OrderedDict((s, 0) for s in ATTENDANCE_STATUSES)
        )
        for row_date, status in await self._attendance_dates(scope, *conditions):
            buckets[row_date.weekday()][status] += 1
        return [{"day": WEEKDAYS[day], **counts} for day, counts in sorted(buckets.items())]

    async def attendance_by_date(self, scope: Scope, *conditions) -> List[Dict[str, Any]]:
        buckets: Dict[date, Dict[str, int]] = defaultdict(
            lambda: OrderedDict((s, 0) for s in ATTENDANCE_STATUSES)
        )
        for row_date, status in await self._attendance_dates(scope, *conditions):
            buckets[row_date][status] += 1
        return [{"date": day.isoformat(), **counts} for day, counts in sorted(buckets.items())]

    async def attendance_by_program(self, scope: Scope, department_id: str, *conditions) -> List[Dict[str, Any]]:
        stmt = scope.attendance(
            select(Program.name, Attendance.status, func.count(Attendance.id))
            .join(Student, Student.id == Attendance.student_id)
            .outerjoin(Program, Program.id == Student.program_id)
            .where(Student.department_id == department_id, *conditions)
        ).group_by(Program.name, Attendance.status)

        grouped: Dict[str, Dict[str, int]] = OrderedDict()
        for program_name, status, count in (await self.db.execute(stmt)).all():
            counts = grouped.setdefault(label(program_name), OrderedDict((s, 0) for s in ATTENDANCE_STATUSES))
            counts[label(status)] += count
        return [
            {"program_name": name, **status_summary(counts)}
            for name, counts in sorted(grouped.items())
        ]

    # =====================================================
    # EXAM GROUPINGS
    # =====================================================

    async def results_by_grade(self, scope: Scope, *conditions) -> List[Dict[str, Any]]:
        stmt = scope.results(
            select(ExamResult.grade, func.count(ExamResult.id)).where(*conditions)
        ).group_by(ExamResult.grade).order_by(ExamResult.grade)
        counts = OrderedDict((label(grade), count) for grade, count in (await self.db.execute(stmt)).all())
        return with_percentages(counts, key="grade")

    async def results_by_course(self, scope: Scope, *conditions) -> List[Dict[str, Any]]:
        stmt = scope.results(
            select(
                Course.id, Course.title, Course.code, ExamResult.status,
                func.count(ExamResult.id), func.avg(ExamResult.percentage),
            )
            .join(Course, Course.id == ExamResult.course_id)
            .where(*conditions)
        ).group_by(Course.id, Course.title, Course.code, ExamResult.status).order_by(Course.title)
        return [
            {
                "course_id": str(course_id),
                "course_name": title,
                "course_code": code,
                "status": label(status),
                "count": count,
                "avg_percentage": round2(avg or 0),
            }
            for course_id, title, code, status, count, avg in (await self.db.execute(stmt)).all()
        ]

    async def results_by_course_and_grade(self, scope: Scope) -> List[Dict[str, Any]]:
        stmt = scope.results(
            select(Course.id, Course.title, Course.code, ExamResult.grade, func.count(ExamResult.id))
            .join(Course, Course.id == ExamResult.course_id)
        ).group_by(Course.id, Course.title, Course.code, ExamResult.grade).order_by(Course.title, ExamResult.grade)
        return [
            {
                "course_id": str(course_id),
                "course_name": title,
                "course_code": code,
                "grade": label(grade),
                "count": count,
            }
            for course_id, title, code, grade, count in (await self.db.execute(stmt)).all()
        ]

    async def results_by_program(self, scope: Scope, department_id: str, *conditions) -> List[Dict[str, Any]]:
        stmt = scope.results(
            select(Program.name, ExamResult.status, func.count(ExamResult.id), func.avg(ExamResult.percentage))
            .join(Student, Student.id == ExamResult.student_id)
            .outerjoin(Program, Program.id == Student.program_id)
            .where(Student.department_id == department_id, *conditions)
        ).group_by(Program.name, ExamResult.status)
        rows = [
            {
                "program_name": label(name),
                "status": label(status),
                "count": count,
                "avg_percentage": round2(avg or 0),
            }
            for name, status, count, avg in (await self.db.execute(stmt)).all()
        ]
        return sorted(rows, key=lambda row: (row["program_name"], row["status"]))

    async def performance_distribution(self, scope: Scope, *conditions) -> List[Dict[str, Any]]:
        stmt = scope.results(select(ExamResult.percentage).where(*conditions))
        counts = OrderedDict((name, 0) for name in PERFORMANCE_RANGES)
        for percentage in (await self.db.execute(stmt)).scalars().all():
            counts[performance_range(percentage or 0)] += 1
        return with_percentages(counts, key="range")

    # =====================================================
    # DASHBOARDS
    # =====================================================

    async def admin_dashboard(self) -> Dict[str, Any]:
        scope = Scope()

        dept_rows = (await self.db.execute(
            select(Department.id, Department.name, func.count(Student.id))
            .select_from(Student)
            .outerjoin(Department, Department.id == Student.department_id)
            .group_by(Department.id, Department.name)
        )).all()
        enrollment_by_department = sorted(
            [
                {"department_id": str(dept_id) if dept_id else "", "department_name": label(name), "count": count}
                for dept_id, name, count in dept_rows
            ],
            key=lambda row: row["department_name"],
        )

        course_rows = (await self.db.execute(
            select(Course.id, Course.title, Course.code, func.count(StudentEnrollment.id).label("enrolled"))
            .join(StudentEnrollment, StudentEnrollment.course_id == Course.id)
            .group_by(Course.id, Course.title, Course.code)
            .order_by(func.count(StudentEnrollment.id).desc(), Course.code)
            .limit(10)
        )).all()
        enrollment_by_course = [
            {"course_id": str(course_id), "course_name": title, "course_code": code, "count": count}
            for course_id, title, code, count in course_rows
        ]

        return {
            "counts": {
                "students": await self._count(Student),
                "faculty": await self._count(Faculty),
                "courses": await self._count(Course),
                "departments": await self._count(Department),
                "programs": await self._count(Program),
            },
            "enrollment_by_department": enrollment_by_department,
            "enrollment_by_course": enrollment_by_course,
            "attendance_percentages": with_percentages(await self.attendance_by_status(scope)),
            "exam_performance": await self.results_by_grade(scope),
        }

    async def _load_faculty(self, user: User, faculty_id: Optional[str] = None) -> Faculty:
        stmt = select(Faculty).options(selectinload(Faculty.user), selectinload(Faculty.department))
        if faculty_id and user.is_admin:
            stmt = stmt.where(Faculty.id == faculty_id)
        else:
            stmt = stmt.where(Faculty.user_id == user.id)
        faculty = (await self.db.execute(stmt)).scalar_one_or_none()
        if faculty is None:
            raise NotFoundError("Faculty profile", message="Faculty profile not found")
        return faculty

    async def faculty_dashboard(self, user: User, faculty_id: Optional[str] = None) -> Dict[str, Any]:
        faculty = await self._load_faculty(user, faculty_id)
        course_ids = await self.instructed_course_ids(faculty.id)
        scope = Scope(course_ids=course_ids)

        courses = (await self.db.execute(
            select(Course).where(Course.id.in_(course_ids)).order_by(Course.code)
        )).scalars().all()

        upcoming = (await self.db.execute(
            select(Exam).options(selectinload(Exam.course))
            .where(Exam.course_id.in_(course_ids), Exam.date >= date.today())
            .order_by(Exam.date).limit(5)
        )).scalars().all()

        return {
            "faculty": {
                "id": str(faculty.id),
                "name": faculty.user.name if faculty.user else "",
                "email": faculty.user.email if faculty.user else "",
                "faculty_id": faculty.faculty_id,
                "designation": label(faculty.designation),
                "department": faculty.department.name if faculty.department else "",
            },
            "counts": {"assigned_courses": len(courses)},
            "assigned_courses": [
                {
                    "id": str(course.id),
                    "title": course.title,
                    "code": course.code,
                    "enrolled_students": course.enrolled_students,
                    "capacity": course.capacity,
                }
                for course in courses
            ],
            "course_attendance": await self.attendance_by_course(scope),
            "monthly_attendance": await self.attendance_by_month(scope),
            "exam_stats": await self.results_by_course_and_grade(scope),
            "faculty_attendance": {
                "present": faculty.attendance_present,
                "absent": faculty.attendance_absent,
                "leaves": faculty.attendance_leaves,
                "percentage": format_percentage(faculty.attendance_percentage),
            },
            "upcoming_exams": [
                {
                    "id": str(exam.id),
                    "title": exam.title,
                    "course": exam.course.title if exam.course else "",
                    "course_code": exam.course.code if exam.course else "",
                    "date": exam.date.isoformat(),
                    "start_time": exam.start_time,
                    "end_time": exam.end_time,
                }
                for exam in upcoming
            ],
        }

    async def _load_student(self, user: User) -> Student:
        student = (await self.db.execute(
            select(Student)
            .options(
                selectinload(Student.user),
                selectinload(Student.department),
                selectinload(Student.program),
                selectinload(Student.enrollments).selectinload(StudentEnrollment.course),
            )
            .where(Student.user_id == user.id)
        )).scalar_one_or_none()
        if student is None:
            raise NotFoundError("Student profile", message="Student profile not found")
        return student

    async def student_dashboard(self, user: User) -> Dict[str, Any]:
        student = await self._load_student(user)
        scope = Scope(student_id=str(student.id))

        results = (await self.db.execute(
            select(ExamResult)
            .options(selectinload(ExamResult.exam), selectinload(ExamResult.course))
            .where(ExamResult.student_id == student.id)
            .order_by(ExamResult.created_at.desc())
        )).scalars().all()

        return {
            "student": {
                "id": str(student.id),
                "name": student.user.name if student.user else "",
                "email": student.user.email if student.user else "",
                "student_id": student.student_id,
                "department": student.department.name if student.department else "",
                "program": student.program.name if student.program else "",
                "semester": student.semester,
                "batch": student.batch,
                "cgpa": student.cgpa,
                "attendance_percentage": format_percentage(student.attendance_percentage),
            },
            "enrolled_courses": [
                {
                    "id": str(enrollment.course_id),
                    "title": enrollment.course.title if enrollment.course else "",
                    "code": enrollment.course.code if enrollment.course else "",
                    "status": label(enrollment.status),
                    "grade": enrollment.grade,
                }
                for enrollment in student.enrollments
            ],
            "attendance_percentages": with_percentages(await self.attendance_by_status(scope)),
            "weekly_attendance": await self.attendance_by_weekday(scope),
            "monthly_attendance": await self.attendance_by_month(scope),
            "course_attendance": await self.attendance_by_course(scope),
            "exam_results": [
                {
                    "id": str(result.id),
                    "exam": result.exam.title if result.exam else "",
                    "exam_type": label(result.exam.exam_type) if result.exam else "",
                    "total_marks": result.exam.total_marks if result.exam else None,
                    "course": result.course.title if result.course else "",
                    "course_code": result.course.code if result.course else "",
                    "marks_obtained": result.marks_obtained,
                    "percentage": result.percentage,
                    "grade": result.grade,
                    "status": label(result.status),
                }
                for result in results
            ],
            "cgpa": student.cgpa,
        }

    async def system_stats(self) -> Dict[str, Any]:
        """User totals, role distribution and monthly registrations"""
        total = await self._count(User)
        active = (await self.db.execute(
            select(func.count(User.id)).where(User.is_active.is_(True))
        )).scalar() or 0
        verified = (await self.db.execute(
            select(func.count(User.id)).where(User.is_verified.is_(True))
        )).scalar() or 0
        roles = {
            label(role): count
            for role, count in (await self.db.execute(
                select(User.role, func.count(User.id)).group_by(User.role)
            )).all()
        }

        registrations: Dict[Tuple[int, int], int] = defaultdict(int)
        for created_at in (await self.db.execute(select(User.created_at))).scalars().all():
            registrations[(created_at.year, created_at.month)] += 1

        return {
            "user_stats": {"total": total, "active": active, "verified": verified, "roles": roles},
            "registration_trends": [
                {"year": year, "month": MONTHS[month - 1], "count": count}
                for (year, month), count in sorted(registrations.items())
            ],
        }

    # =====================================================
    # FILTERED ANALYTICS
    # =====================================================

    async def attendance_analytics(
        self,
        actor: User,
        course_id: Optional[str] = None,
        department_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        scope = await self.scope_for(actor)
        conditions = []
        if course_id:
            conditions.append(Attendance.course_id == course_id)
        if start_date:
            conditions.append(Attendance.date >= start_date)
        if end_date:
            conditions.append(Attendance.date <= end_date)

        return {
            "attendance_by_status": with_percentages(await self.attendance_by_status(scope, *conditions)),
            "attendance_by_course": await self.attendance_by_course(scope, *conditions),
            "attendance_by_date": await self.attendance_by_date(scope, *conditions),
            "attendance_by_department": (
                await self.attendance_by_program(scope, department_id, *conditions)
                if department_id else []
            ),
        }

    async def exam_analytics(
        self,
        actor: User,
        course_id: Optional[str] = None,
        department_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        scope = await self.scope_for(actor)
        conditions = [ExamResult.course_id == course_id] if course_id else []

        return {
            "results_by_grade": await self.results_by_grade(scope, *conditions),
            "results_by_course": await self.results_by_course(scope, *conditions),
            "results_by_department": (
                await self.results_by_program(scope, department_id, *conditions)
                if department_id else []
            ),
            "performance_distribution": await self.performance_distribution(scope, *conditions),
        }

    async def enrollment_analytics(self) -> Dict[str, Any]:
        async def grouped(column, *joins) -> List[Tuple[Any, ...]]:
            stmt = select(*column, func.count(Student.id)).select_from(Student)
            for target, on in joins:
                stmt = stmt.outerjoin(target, on)
            return (await self.db.execute(stmt.group_by(*column))).all()

        by_department = await grouped(
            (Department.id, Department.name, Department.code),
            (Department, Department.id == Student.department_id),
        )
        by_program = await grouped(
            (Program.id, Program.name, Program.code, Program.level),
            (Program, Program.id == Student.program_id),
        )
        by_semester = await grouped((Student.semester,))
        by_batch = await grouped((Student.batch,))
        by_status = await grouped((Student.academic_status,))

        return {
            "department_data": sorted(
                [
                    {
                        "department_id": str(dept_id) if dept_id else "",
                        "department_name": label(name),
                        "department_code": label(code),
                        "count": count,
                    }
                    for dept_id, name, code, count in by_department
                ],
                key=lambda row: row["department_name"],
            ),
            "program_data": sorted(
                [
                    {
                        "program_id": str(program_id) if program_id else "",
                        "program_name": label(name),
                        "program_code": label(code),
                        "level": label(level),
                        "count": count,
                    }
                    for program_id, name, code, level, count in by_program
                ],
                key=lambda row: row["program_name"],
            ),
            "semester_data": sorted(
                [{"semester": semester, "count": count} for semester, count in by_semester],
                key=lambda row: (row["semester"] is None, row["semester"] or 0),
            ),
            "batch_data": sorted(
                [{"batch": label(batch), "count": count} for batch, count in by_batch],
                key=lambda row: row["batch"],
            ),
            "status_data": with_percentages(
                OrderedDict((label(status), count) for status, count in by_status),
                key="status",
            ),
        }

    # =====================================================
    # EXPORT
    # =====================================================

    async def export(self, export_type: Optional[str], export_format: Optional[str] = None) -> Dict[str, Any]:
        """{data, fields, filename, format} for one export type"""
        if not export_type:
            raise ValidationError("Please specify the data type to export", field="type")
        if export_type not in EXPORT_TYPES:
            raise ValidationError(f"Export type {export_type} is not supported", field="type")

        builder = {
            "students": self._export_students,
            "faculty": self._export_faculty,
            "courses": self._export_courses,
            "attendance": self._export_attendance,
            "exam-results": self._export_exam_results,
        }[export_type]
        fields, data = await builder()

        return {
            "data": data,
            "fields": fields,
            "filename": f"{export_type}-export",
            "format": export_format or "json",
        }

    async def _export_students(self):
        students = (await self.db.execute(
            select(Student).options(
                selectinload(Student.user), selectinload(Student.department), selectinload(Student.program)
            ).order_by(Student.student_id)
        )).scalars().all()
        fields = [
            "student_id", "name", "email", "department", "program", "semester",
            "batch", "cgpa", "academic_status", "enrollment_date",
        ]
        data = [
            {
                "student_id": s.student_id,
                "name": s.user.name if s.user else "",
                "email": s.user.email if s.user else "",
                "department": s.department.name if s.department else "",
                "program": s.program.name if s.program else "",
                "semester": s.semester,
                "batch": s.batch,
                "cgpa": s.cgpa,
                "academic_status": label(s.academic_status),
                "enrollment_date": _iso(s.enrollment_date),
            }
            for s in students
        ]
        return fields, data

    async def _export_faculty(self):
        faculty = (await self.db.execute(
            select(Faculty).options(selectinload(Faculty.user), selectinload(Faculty.department))
            .order_by(Faculty.faculty_id)
        )).scalars().all()
        fields = [
            "faculty_id", "name", "email", "department", "designation",
            "employment_status", "employment_type", "join_date",
        ]
        data = [
            {
                "faculty_id": f.faculty_id,
                "name": f.user.name if f.user else "",
                "email": f.user.email if f.user else "",
                "department": f.department.name if f.department else "",
                "designation": label(f.designation),
                "employment_status": label(f.employment_status),
                "employment_type": label(f.employment_type),
                "join_date": _iso(f.join_date),
            }
            for f in faculty
        ]
        return fields, data

    async def _export_courses(self):
        courses = (await self.db.execute(
            select(Course).options(selectinload(Course.department), selectinload(Course.program))
            .order_by(Course.code)
        )).scalars().all()
        fields = [
            "code", "title", "department", "program", "credits", "level",
            "semester", "year", "capacity", "enrolled_students", "status",
        ]
        data = [
            {
                "code": c.code,
                "title": c.title,
                "department": c.department.name if c.department else "",
                "program": c.program.name if c.program else "",
                "credits": c.credits,
                "level": label(c.level),
                "semester": label(c.semester),
                "year": c.year,
                "capacity": c.capacity,
                "enrolled_students": c.enrolled_students,
                "status": label(c.status),
            }
            for c in courses
        ]
        return fields, data

    async def _export_attendance(self):
        records = (await self.db.execute(
            select(Attendance).options(
                selectinload(Attendance.student).selectinload(Student.user),
                selectinload(Attendance.course),
                selectinload(Attendance.faculty).selectinload(Faculty.user),
            ).order_by(Attendance.date)
        )).scalars().all()
        fields = [
            "date", "student_id", "student_name", "course_code", "course_title",
            "faculty_id", "faculty_name", "status", "remarks",
        ]
        data = [
            {
                "date": _iso(a.date),
                "student_id": a.student.student_id if a.student else "",
                "student_name": a.student.user.name if a.student and a.student.user else "",
                "course_code": a.course.code if a.course else "",
                "course_title": a.course.title if a.course else "",
                "faculty_id": a.faculty.faculty_id if a.faculty else "",
                "faculty_name": a.faculty.user.name if a.faculty and a.faculty.user else "",
                "status": label(a.status),
                "remarks": a.remarks or "",
            }
            for a in records
        ]
        return fields, data

    async def _export_exam_results(self):
        results = (await self.db.execute(
            select(ExamResult).options(
                selectinload(ExamResult.student).selectinload(Student.user),
                selectinload(ExamResult.course),
                selectinload(ExamResult.exam),
            ).order_by(ExamResult.created_at)
        )).scalars().all()
        fields = [
            "exam_title", "student_id", "student_name", "course_code", "course_title",
            "marks_obtained", "percentage", "grade", "status",
        ]
        data = [
            {
                "exam_title": r.exam.title if r.exam else "",
                "student_id": r.student.student_id if r.student else "",
                "student_name": r.student.user.name if r.student and r.student.user else "",
                "course_code": r.course.code if r.course else "",
                "course_title": r.course.title if r.course else "",
                "marks_obtained": r.marks_obtained,
                "percentage": r.percentage,
                "grade": r.grade,
                "status": label(r.status),
            }
            for r in results
        ]
        return fields, data

    # =====================================================
    # ATTENDANCE STATS
    # =====================================================

    async def attendance_stats(
        self,
        actor: User,
        course_id: Optional[str] = None,
        student_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        scope = await self.scope_for(actor)
        conditions = []
        if course_id:
            conditions.append(Attendance.course_id == course_id)
        if student_id:
            conditions.append(Attendance.student_id == student_id)
        if start_date:
            conditions.append(Attendance.date >= start_date)
        if end_date:
            conditions.append(Attendance.date <= end_date)

        counts = await self.attendance_by_status(scope, *conditions)
        total = sum(counts.values())
        return {
            "total": total,
            "counts": dict(counts),
            "percentages": {status: safe_percentage(count, total) for status, count in counts.items()},
        }


def export_to_csv(export: Dict[str, Any]) -> str:
    """Render an export() payload as CSV text"""
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=export["fields"], extrasaction="ignore")
    writer.writeheader()
    for row in export["data"]:
        writer.writerow({key: "" if value is None else value for key, value in row.items()})
    return output.getvalue()
