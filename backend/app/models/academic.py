"""
Academic Models
- Courses and their instructors
- Exams and per-student exam results
- Attendance records
- Timetables, slots and recorded scheduling conflicts
"""

from sqlalchemy import (
    Column, String, Boolean, DateTime, Date, Enum as SQLEnum, Integer, Float, Text,
    ForeignKey, UniqueConstraint, Index, Table, JSON,
)
from sqlalchemy.orm import relationship
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utcnow


class Weekday(str, enum.Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class CourseLevel(str, enum.Enum):
    INTRODUCTORY = "Introductory"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    GRADUATE = "Graduate"


class Semester(str, enum.Enum):
    FALL = "Fall"
    SPRING = "Spring"
    SUMMER = "Summer"
    WINTER = "Winter"
    YEAR_ROUND = "Year-round"


class CourseStatus(str, enum.Enum):
    ACTIVE = "Active"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"
    UPCOMING = "Upcoming"


class ExamType(str, enum.Enum):
    QUIZ = "Quiz"
    ASSIGNMENT = "Assignment"
    MIDTERM = "Mid-term"
    FINAL = "Final"
    PROJECT = "Project"
    PRESENTATION = "Presentation"
    OTHER = "Other"


class ExamStatus(str, enum.Enum):
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    POSTPONED = "Postponed"


class ResultStatus(str, enum.Enum):
    PASS = "Pass"
    FAIL = "Fail"
    INCOMPLETE = "Incomplete"
    WITHDRAWN = "Withdrawn"


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


class VerificationMethod(str, enum.Enum):
    MANUAL = "manual"
    BIOMETRIC = "biometric"
    QR_CODE = "qr-code"
    RFID = "rfid"
    OTHER = "other"


class TimetableStatus(str, enum.Enum):
    DRAFT = "Draft"
    PUBLISHED = "Published"
    ARCHIVED = "Archived"


class SlotType(str, enum.Enum):
    LECTURE = "Lecture"
    LAB = "Lab"
    TUTORIAL = "Tutorial"
    WORKSHOP = "Workshop"
    SEMINAR = "Seminar"
    OTHER = "Other"


class ConflictType(str, enum.Enum):
    ROOM = "Room"
    FACULTY = "Faculty"
    COURSE = "Course"
    OTHER = "Other"


course_instructors = Table(
    "course_instructors",
    Base.metadata,
    Column("course_id", GUID, ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True),
    Column("faculty_id", GUID, ForeignKey("faculty.id", ondelete="CASCADE"), primary_key=True),
)


class Course(Base):
    """Course offering"""
    __tablename__ = "courses"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    code = Column(String(20), unique=True, nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=True)

    department_id = Column(GUID, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True, index=True)
    program_id = Column(GUID, ForeignKey("programs.id", ondelete="SET NULL"), nullable=True, index=True)
    main_instructor_id = Column(GUID, ForeignKey("faculty.id", ondelete="SET NULL"), nullable=True)

    credits = Column(Float, nullable=False)
    level = Column(SQLEnum(CourseLevel), nullable=False)
    semester = Column(SQLEnum(Semester), nullable=False)
    year = Column(Integer, nullable=False)

    # Enforced at enrollment time: enrolled_students <= capacity
    capacity = Column(Integer, nullable=False)
    enrolled_students = Column(Integer, default=0, nullable=False)

    # [{"day": "Monday", "startTime": "09:00", "endTime": "10:00", "location": "A-101"}]
    schedule = Column(JSON, default=list)
    syllabus = Column(Text, nullable=True)  # URL to syllabus document
    status = Column(SQLEnum(CourseStatus), default=CourseStatus.UPCOMING, nullable=False)
    is_online = Column(Boolean, default=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    department = relationship("Department")
    program = relationship("Program")
    main_instructor = relationship("Faculty", foreign_keys=[main_instructor_id])
    instructors = relationship("Faculty", secondary=course_instructors, back_populates="courses")

    @property
    def available_seats(self) -> int:
        return max(self.capacity - self.enrolled_students, 0)

    @property
    def is_full(self) -> bool:
        return self.enrolled_students >= self.capacity

    def __repr__(self):
        return f"<Course {self.code}>"


class Exam(Base):
    """Exam belonging to a course"""
    __tablename__ = "exams"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(100), nullable=False)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    exam_type = Column(SQLEnum(ExamType), nullable=False)

    total_marks = Column(Float, nullable=False)
    passing_marks = Column(Float, nullable=True)
    weightage = Column(Float, nullable=False)

    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    location = Column(String(100), nullable=True)
    instructions = Column(Text, nullable=True)

    status = Column(SQLEnum(ExamStatus), default=ExamStatus.SCHEDULED, nullable=False)
    is_published = Column(Boolean, default=False)
    results_published = Column(Boolean, default=False)
    results_published_at = Column(DateTime, nullable=True)

    created_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    course = relationship("Course")
    results = relationship("ExamResult", back_populates="exam", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Exam {self.title}>"


class ExamResult(Base):
    """
    One student's result in one exam.

    percentage, grade, grade_points and status are always derived from
    marks_obtained and the parent exam (app.services.grading).
    """
    __tablename__ = "exam_results"
    __table_args__ = (
        UniqueConstraint('exam_id', 'student_id', name='uq_exam_result_exam_student'),
        Index('ix_exam_results_course_grade', 'course_id', 'grade'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    exam_id = Column(GUID, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)

    marks_obtained = Column(Float, nullable=False)
    percentage = Column(Float, nullable=False)
    grade = Column(String(2), nullable=False)
    grade_points = Column(Float, nullable=False)
    status = Column(SQLEnum(ResultStatus), nullable=False)

    feedback = Column(Text, nullable=True)
    is_published = Column(Boolean, default=False)

    evaluated_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    evaluated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    exam = relationship("Exam", back_populates="results")
    student = relationship("Student")
    course = relationship("Course")

    def __repr__(self):
        return f"<ExamResult exam={self.exam_id} student={self.student_id} {self.grade}>"


class Attendance(Base):
    """One attendance mark per (course, student, date)"""
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint('course_id', 'student_id', 'date', name='uq_attendance_course_student_date'),
        Index('ix_attendance_student_status', 'student_id', 'status'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    faculty_id = Column(GUID, ForeignKey("faculty.id", ondelete="SET NULL"), nullable=True, index=True)

    date = Column(Date, nullable=False, index=True)
    status = Column(SQLEnum(AttendanceStatus), nullable=False)
    remarks = Column(String(200), nullable=True)
    late_minutes = Column(Integer, default=0)
    session = Column(String(50), nullable=True)  # Lecture / Lab / Tutorial
    duration = Column(Integer, nullable=True)  # minutes
    location = Column(String(100), nullable=True)
    verification_method = Column(SQLEnum(VerificationMethod), default=VerificationMethod.MANUAL)

    marked_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    last_updated = Column(DateTime, default=utcnow, onupdate=utcnow)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    course = relationship("Course")
    student = relationship("Student")
    faculty = relationship("Faculty")

    def __repr__(self):
        return f"<Attendance {self.student_id} {self.date} {self.status}>"


class Timetable(Base):
    """Weekly timetable made of slots"""
    __tablename__ = "timetables"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(100), nullable=False)
    academic_year = Column(String(20), nullable=False)
    semester = Column(SQLEnum(Semester), nullable=False)

    department_id = Column(GUID, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    program_id = Column(GUID, ForeignKey("programs.id", ondelete="SET NULL"), nullable=True)
    batch = Column(String(20), nullable=True)
    section = Column(String(20), nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    status = Column(SQLEnum(TimetableStatus), default=TimetableStatus.DRAFT, nullable=False)
    published_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    slots = relationship(
        "TimetableSlot",
        back_populates="timetable",
        cascade="all, delete-orphan",
        order_by="TimetableSlot.position",
    )
    conflicts = relationship(
        "TimetableConflict", back_populates="timetable", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Timetable {self.title}>"


class TimetableSlot(Base):
    """One scheduled class: day + half-open [start_time, end_time) in a room"""
    __tablename__ = "timetable_slots"
    __table_args__ = (
        Index('ix_timetable_slots_day_room', 'day', 'room'),
        Index('ix_timetable_slots_day_faculty', 'day', 'faculty_id'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    timetable_id = Column(GUID, ForeignKey("timetables.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, default=0, nullable=False)

    day = Column(SQLEnum(Weekday), nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    faculty_id = Column(GUID, ForeignKey("faculty.id", ondelete="CASCADE"), nullable=False)
    room = Column(String(100), nullable=False)
    slot_type = Column(SQLEnum(SlotType), default=SlotType.LECTURE, nullable=False)

    timetable = relationship("Timetable", back_populates="slots")
    course = relationship("Course")
    faculty = relationship("Faculty")


class TimetableConflict(Base):
    """Conflict found by a full-timetable check"""
    __tablename__ = "timetable_conflicts"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    timetable_id = Column(GUID, ForeignKey("timetables.id", ondelete="CASCADE"), nullable=False, index=True)
    conflict_type = Column(SQLEnum(ConflictType), nullable=False)
    description = Column(Text, nullable=False)
    resolved = Column(Boolean, default=False)
    detected_at = Column(DateTime, default=utcnow, nullable=False)

    timetable = relationship("Timetable", back_populates="conflicts")
