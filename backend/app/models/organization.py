"""
Organization Models
- Department and Program catalogue
- Student and Faculty profiles (1:1 with User)
- Student course enrollments
"""

from sqlalchemy import (
    Column, String, Boolean, DateTime, Date, Enum as SQLEnum, Integer, Float, Text,
    ForeignKey, UniqueConstraint, JSON,
)
from sqlalchemy.orm import relationship
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utcnow


class ProgramLevel(str, enum.Enum):
    UNDERGRADUATE = "Undergraduate"
    GRADUATE = "Graduate"
    DOCTORAL = "Doctoral"
    CERTIFICATE = "Certificate"
    DIPLOMA = "Diploma"


class AcademicStatus(str, enum.Enum):
    ACTIVE = "active"
    PROBATION = "probation"
    SUSPENDED = "suspended"
    GRADUATED = "graduated"
    WITHDRAWN = "withdrawn"


class FeesStatus(str, enum.Enum):
    PAID = "paid"
    PENDING = "pending"
    PARTIAL = "partial"
    WAIVED = "waived"


class EnrollmentStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    DROPPED = "dropped"
    FAILED = "failed"


class Designation(str, enum.Enum):
    PROFESSOR = "Professor"
    ASSOCIATE_PROFESSOR = "Associate Professor"
    ASSISTANT_PROFESSOR = "Assistant Professor"
    LECTURER = "Lecturer"
    ADJUNCT = "Adjunct Faculty"
    VISITING = "Visiting Faculty"


class EmploymentStatus(str, enum.Enum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    VISITING = "visiting"
    RETIRED = "retired"
    ON_LEAVE = "on-leave"


class EmploymentType(str, enum.Enum):
    PERMANENT = "permanent"
    TEMPORARY = "temporary"
    CONTRACT = "contract"


class Department(Base):
    """Academic department"""
    __tablename__ = "departments"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(100), unique=True, nullable=False)
    code = Column(String(10), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=True)
    established_date = Column(Date, nullable=True)

    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(20), nullable=True)
    building = Column(String(100), nullable=True)
    website = Column(String(255), nullable=True)

    active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    programs = relationship("Program", back_populates="department")

    def __repr__(self):
        return f"<Department {self.code}>"


class Program(Base):
    """Degree / certificate program offered by a department"""
    __tablename__ = "programs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    code = Column(String(10), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=True)
    department_id = Column(GUID, ForeignKey("departments.id", ondelete="CASCADE"), nullable=False, index=True)

    level = Column(SQLEnum(ProgramLevel), nullable=False)
    duration_years = Column(Float, nullable=False)
    duration_semesters = Column(Integer, nullable=False)
    total_credits = Column(Integer, nullable=False)

    active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    department = relationship("Department", back_populates="programs")

    def __repr__(self):
        return f"<Program {self.code}>"


class Student(Base):
    """
    Student profile.

    attendance_* and cgpa are derived values: they are rewritten by the
    attendance and enrollment flows and never accepted from request bodies.
    """
    __tablename__ = "students"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    student_id = Column(String(50), unique=True, nullable=False, index=True)

    department_id = Column(GUID, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True, index=True)
    program_id = Column(GUID, ForeignKey("programs.id", ondelete="SET NULL"), nullable=True, index=True)
    semester = Column(Integer, nullable=True)
    batch = Column(String(20), nullable=False)

    enrollment_date = Column(Date, nullable=True)
    graduation_date = Column(Date, nullable=True)
    academic_status = Column(SQLEnum(AcademicStatus), default=AcademicStatus.ACTIVE, nullable=False)
    fees_status = Column(SQLEnum(FeesStatus), default=FeesStatus.PENDING, nullable=False)

    guardian = Column(JSON, nullable=True)
    emergency_contact = Column(JSON, nullable=True)

    # Derived aggregates
    attendance_present = Column(Integer, default=0, nullable=False)
    attendance_absent = Column(Integer, default=0, nullable=False)
    attendance_percentage = Column(Float, default=0.0, nullable=False)
    cgpa = Column(Float, default=0.0, nullable=False)
    total_credits_earned = Column(Float, default=0.0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="student_profile")
    department = relationship("Department")
    program = relationship("Program")
    enrollments = relationship(
        "StudentEnrollment", back_populates="student", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Student {self.student_id}>"


class StudentEnrollment(Base):
    """A student's enrollment in one course"""
    __tablename__ = "student_enrollments"
    __table_args__ = (
        UniqueConstraint('student_id', 'course_id', name='uq_enrollment_student_course'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(SQLEnum(EnrollmentStatus), default=EnrollmentStatus.ACTIVE, nullable=False)
    grade = Column(String(2), default="", nullable=False)
    grade_points = Column(Float, default=0.0, nullable=False)
    enrollment_date = Column(DateTime, default=utcnow, nullable=False)

    student = relationship("Student", back_populates="enrollments")
    course = relationship("Course")


class Faculty(Base):
    """Faculty profile"""
    __tablename__ = "faculty"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    faculty_id = Column(String(50), unique=True, nullable=False, index=True)
    designation = Column(SQLEnum(Designation), nullable=False)
    department_id = Column(GUID, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True, index=True)

    specialization = Column(JSON, default=list)
    join_date = Column(Date, nullable=True)
    employment_status = Column(SQLEnum(EmploymentStatus), default=EmploymentStatus.FULL_TIME, nullable=False)
    employment_type = Column(SQLEnum(EmploymentType), default=EmploymentType.PERMANENT, nullable=False)
    office_location = Column(String(100), nullable=True)
    contact_extension = Column(String(20), nullable=True)

    # Teaching load (hours per week)
    current_hours = Column(Integer, default=0, nullable=False)
    max_hours = Column(Integer, default=40, nullable=False)

    # Own attendance aggregates
    attendance_present = Column(Integer, default=0, nullable=False)
    attendance_absent = Column(Integer, default=0, nullable=False)
    attendance_leaves = Column(Integer, default=0, nullable=False)
    attendance_percentage = Column(Float, default=0.0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="faculty_profile")
    department = relationship("Department")
    courses = relationship("Course", secondary="course_instructors", back_populates="instructors")

    def __repr__(self):
        return f"<Faculty {self.faculty_id}>"
