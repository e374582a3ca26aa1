"""Pydantic schemas for departments, programs, students and faculty"""
from pydantic import BaseModel, EmailStr, Field, ConfigDict, model_validator, field_validator, field_serializer
from typing import Optional, List, Dict, Any
from datetime import date, datetime

from app.models.organization import (
    ProgramLevel, AcademicStatus, FeesStatus, EnrollmentStatus,
    Designation, EmploymentStatus, EmploymentType,
)
from app.services.grading import GRADE_POINTS, format_percentage


# ==================== Department ====================

class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=10)
    description: Optional[str] = Field(None, max_length=500)
    established_date: Optional[date] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=20)
    building: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=255)
    active: bool = True

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: str) -> str:
        return value.strip().upper()


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    code: Optional[str] = Field(None, min_length=1, max_length=10)
    description: Optional[str] = Field(None, max_length=500)
    established_date: Optional[date] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=20)
    building: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=255)
    active: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else value


class DepartmentResponse(BaseModel):
    id: str
    name: str
    code: str
    description: Optional[str] = None
    established_date: Optional[date] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    building: Optional[str] = None
    website: Optional[str] = None
    active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== Program ====================

class ProgramCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=10)
    description: Optional[str] = Field(None, max_length=500)
    department_id: str
    level: ProgramLevel
    duration_years: float = Field(..., gt=0)
    duration_semesters: int = Field(..., gt=0)
    total_credits: int = Field(..., gt=0)
    active: bool = True

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: str) -> str:
        return value.strip().upper()


class ProgramUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    code: Optional[str] = Field(None, min_length=1, max_length=10)
    description: Optional[str] = Field(None, max_length=500)
    department_id: Optional[str] = None
    level: Optional[ProgramLevel] = None
    duration_years: Optional[float] = Field(None, gt=0)
    duration_semesters: Optional[int] = Field(None, gt=0)
    total_credits: Optional[int] = Field(None, gt=0)
    active: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else value


class ProgramResponse(BaseModel):
    id: str
    name: str
    code: str
    description: Optional[str] = None
    department_id: str
    level: ProgramLevel
    duration_years: float
    duration_semesters: int
    total_credits: int
    active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== Profile owner ====================

class ProfileUser(BaseModel):
    """Either an existing user_id or the fields to create one"""
    user_id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    phone: Optional[str] = Field(None, max_length=20)

    @model_validator(mode="after")
    def require_user(self):
        if not self.user_id and not (self.name and self.email and self.password):
            raise ValueError("Provide user_id or name, email and password")
        return self


class UserSummary(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    profile_image: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Student ====================

class StudentCreate(ProfileUser):
    student_id: str = Field(..., min_length=1, max_length=50)
    department_id: Optional[str] = None
    program_id: Optional[str] = None
    semester: Optional[int] = Field(None, ge=1, le=12)
    batch: str = Field(..., min_length=1, max_length=20)
    enrollment_date: Optional[date] = None
    graduation_date: Optional[date] = None
    academic_status: AcademicStatus = AcademicStatus.ACTIVE
    fees_status: FeesStatus = FeesStatus.PENDING
    guardian: Optional[Dict[str, Any]] = None
    emergency_contact: Optional[Dict[str, Any]] = None


class StudentUpdate(BaseModel):
    """cgpa and attendance figures are derived and cannot be set here"""
    student_id: Optional[str] = Field(None, min_length=1, max_length=50)
    department_id: Optional[str] = None
    program_id: Optional[str] = None
    semester: Optional[int] = Field(None, ge=1, le=12)
    batch: Optional[str] = Field(None, min_length=1, max_length=20)
    enrollment_date: Optional[date] = None
    graduation_date: Optional[date] = None
    academic_status: Optional[AcademicStatus] = None
    fees_status: Optional[FeesStatus] = None
    guardian: Optional[Dict[str, Any]] = None
    emergency_contact: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")


class EnrollmentUpdate(BaseModel):
    status: Optional[EnrollmentStatus] = None
    grade: Optional[str] = Field(None, max_length=2)

    @field_validator("grade")
    @classmethod
    def known_grade(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return value
        value = value.strip().upper()
        if value not in GRADE_POINTS and value not in ("I", "W"):
            raise ValueError(f"Unknown grade {value}")
        return value


class EnrollmentResponse(BaseModel):
    id: str
    course_id: str
    status: EnrollmentStatus
    grade: str
    grade_points: float
    enrollment_date: datetime

    model_config = ConfigDict(from_attributes=True)


class StudentResponse(BaseModel):
    id: str
    user_id: str
    student_id: str
    department_id: Optional[str] = None
    program_id: Optional[str] = None
    semester: Optional[int] = None
    batch: str
    enrollment_date: Optional[date] = None
    graduation_date: Optional[date] = None
    academic_status: AcademicStatus
    fees_status: FeesStatus
    guardian: Optional[Dict[str, Any]] = None
    emergency_contact: Optional[Dict[str, Any]] = None
    attendance_present: int
    attendance_absent: int
    attendance_percentage: float
    cgpa: float
    total_credits_earned: float
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("attendance_percentage")
    def two_decimals(self, value: float) -> str:
        return format_percentage(value)


class StudentDetailResponse(StudentResponse):
    user: Optional[UserSummary] = None
    enrollments: List[EnrollmentResponse] = []


# ==================== Faculty ====================

class FacultyCreate(ProfileUser):
    faculty_id: str = Field(..., min_length=1, max_length=50)
    designation: Designation
    department_id: Optional[str] = None
    specialization: List[str] = []
    join_date: Optional[date] = None
    employment_status: EmploymentStatus = EmploymentStatus.FULL_TIME
    employment_type: EmploymentType = EmploymentType.PERMANENT
    office_location: Optional[str] = Field(None, max_length=100)
    contact_extension: Optional[str] = Field(None, max_length=20)
    max_hours: int = Field(40, ge=0)


class FacultyUpdate(BaseModel):
    faculty_id: Optional[str] = Field(None, min_length=1, max_length=50)
    designation: Optional[Designation] = None
    department_id: Optional[str] = None
    specialization: Optional[List[str]] = None
    join_date: Optional[date] = None
    employment_status: Optional[EmploymentStatus] = None
    employment_type: Optional[EmploymentType] = None
    office_location: Optional[str] = Field(None, max_length=100)
    contact_extension: Optional[str] = Field(None, max_length=20)
    current_hours: Optional[int] = Field(None, ge=0)
    max_hours: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_load(self):
        if self.current_hours is not None and self.max_hours is not None \
                and self.current_hours > self.max_hours:
            raise ValueError("current_hours cannot exceed max_hours")
        return self


class FacultyResponse(BaseModel):
    id: str
    user_id: str
    faculty_id: str
    designation: Designation
    department_id: Optional[str] = None
    specialization: List[str] = []
    join_date: Optional[date] = None
    employment_status: EmploymentStatus
    employment_type: EmploymentType
    office_location: Optional[str] = None
    contact_extension: Optional[str] = None
    current_hours: int
    max_hours: int
    attendance_present: int
    attendance_absent: int
    attendance_leaves: int
    attendance_percentage: float
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("attendance_percentage")
    def two_decimals(self, value: float) -> str:
        return format_percentage(value)


class FacultyDetailResponse(FacultyResponse):
    user: Optional[UserSummary] = None
