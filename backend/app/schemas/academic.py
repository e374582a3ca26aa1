"""Pydantic schemas for courses, exams, results, attendance and timetables"""
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from typing import Optional, List
import datetime as dt
from datetime import date, datetime

from app.models.academic import (
    Weekday, CourseLevel, Semester, CourseStatus, ExamType, ExamStatus, ResultStatus,
    AttendanceStatus, VerificationMethod, TimetableStatus, SlotType, ConflictType,
)
from app.models.organization import Designation
from app.schemas.common import check_time, check_time_range, to_day


# ==================== Course ====================

class ScheduleItem(BaseModel):
    """Weekly meeting, stored as {day, startTime, endTime, location}"""
    day: Weekday
    start_time: str = Field(..., alias="startTime")
    end_time: str = Field(..., alias="endTime")
    location: Optional[str] = Field(None, max_length=100)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("start_time", "end_time")
    @classmethod
    def valid_time(cls, value: str) -> str:
        return check_time(value)

    @model_validator(mode="after")
    def ordered(self):
        check_time_range(self.start_time, self.end_time)
        return self


def schedule_json(items: Optional[List[ScheduleItem]]) -> list:
    return [item.model_dump(mode="json", by_alias=True) for item in items or []]


class CourseCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    department_id: Optional[str] = None
    program_id: Optional[str] = None
    main_instructor_id: Optional[str] = None
    instructor_ids: List[str] = []
    credits: float = Field(..., ge=0)
    level: CourseLevel
    semester: Semester
    year: int = Field(..., ge=1900, le=2200)
    capacity: int = Field(..., ge=1)
    schedule: List[ScheduleItem] = []
    syllabus: Optional[str] = None
    status: CourseStatus = CourseStatus.UPCOMING
    is_online: bool = False

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: str) -> str:
        return value.strip().upper()


class CourseUpdate(BaseModel):
    """enrolled_students is maintained by enroll/unenroll only"""
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    department_id: Optional[str] = None
    program_id: Optional[str] = None
    main_instructor_id: Optional[str] = None
    instructor_ids: Optional[List[str]] = None
    credits: Optional[float] = Field(None, ge=0)
    level: Optional[CourseLevel] = None
    semester: Optional[Semester] = None
    year: Optional[int] = Field(None, ge=1900, le=2200)
    capacity: Optional[int] = Field(None, ge=1)
    schedule: Optional[List[ScheduleItem]] = None
    status: Optional[CourseStatus] = None
    is_online: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else value


class EnrollRequest(BaseModel):
    student_id: str


class SyllabusUpdate(BaseModel):
    syllabus: str = Field(..., min_length=1)


class CourseResponse(BaseModel):
    id: str
    code: str
    title: str
    description: Optional[str] = None
    department_id: Optional[str] = None
    program_id: Optional[str] = None
    main_instructor_id: Optional[str] = None
    credits: float
    level: CourseLevel
    semester: Semester
    year: int
    capacity: int
    enrolled_students: int
    available_seats: int
    schedule: list = []
    syllabus: Optional[str] = None
    status: CourseStatus
    is_online: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InstructorSummary(BaseModel):
    id: str
    faculty_id: str
    designation: Designation

    model_config = ConfigDict(from_attributes=True)


class CourseDetailResponse(CourseResponse):
    instructors: List[InstructorSummary] = []


# ==================== Exam ====================

class ExamCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    course_id: str
    exam_type: ExamType
    total_marks: float = Field(..., gt=0)
    passing_marks: Optional[float] = Field(None, ge=0)
    weightage: float = Field(..., ge=0, le=100)
    date: dt.date
    start_time: str
    end_time: str
    duration: int = Field(..., gt=0)
    location: Optional[str] = Field(None, max_length=100)
    instructions: Optional[str] = None
    status: ExamStatus = ExamStatus.SCHEDULED
    is_published: bool = False

    @field_validator("date", mode="before")
    @classmethod
    def exam_day(cls, value):
        return to_day(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def valid_time(cls, value: str) -> str:
        return check_time(value)

    @model_validator(mode="after")
    def check_marks(self):
        if self.passing_marks is not None and self.passing_marks > self.total_marks:
            raise ValueError("Passing marks cannot exceed total marks")
        check_time_range(self.start_time, self.end_time)
        return self


class ExamUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    exam_type: Optional[ExamType] = None
    total_marks: Optional[float] = Field(None, gt=0)
    passing_marks: Optional[float] = Field(None, ge=0)
    weightage: Optional[float] = Field(None, ge=0, le=100)
    date: Optional[dt.date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = Field(None, gt=0)
    location: Optional[str] = Field(None, max_length=100)
    instructions: Optional[str] = None
    status: Optional[ExamStatus] = None
    is_published: Optional[bool] = None
    results_published: Optional[bool] = None

    @field_validator("date", mode="before")
    @classmethod
    def exam_day(cls, value):
        return to_day(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def valid_time(cls, value: Optional[str]) -> Optional[str]:
        return check_time(value)

    @model_validator(mode="after")
    def check_marks(self):
        if self.passing_marks is not None and self.total_marks is not None \
                and self.passing_marks > self.total_marks:
            raise ValueError("Passing marks cannot exceed total marks")
        check_time_range(self.start_time, self.end_time)
        return self


class ExamResponse(BaseModel):
    id: str
    title: str
    course_id: str
    exam_type: ExamType
    total_marks: float
    passing_marks: Optional[float] = None
    weightage: float
    date: dt.date
    start_time: str
    end_time: str
    duration: int
    location: Optional[str] = None
    instructions: Optional[str] = None
    status: ExamStatus
    is_published: bool
    results_published: bool
    results_published_at: Optional[datetime] = None
    created_by_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== Exam results ====================

class ExamResultCreate(BaseModel):
    """percentage, grade, grade_points and status are computed, never read from input"""
    student_id: str
    marks_obtained: float
    feedback: Optional[str] = None
    is_published: bool = False

    model_config = ConfigDict(extra="ignore")


class ExamResultUpdate(BaseModel):
    marks_obtained: Optional[float] = None
    feedback: Optional[str] = None
    is_published: Optional[bool] = None

    model_config = ConfigDict(extra="ignore")


class ExamResultResponse(BaseModel):
    id: str
    exam_id: str
    student_id: str
    course_id: str
    marks_obtained: float
    percentage: float
    grade: str
    grade_points: float
    status: ResultStatus
    feedback: Optional[str] = None
    is_published: bool
    evaluated_by_id: Optional[str] = None
    evaluated_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== Attendance ====================

class AttendanceCreate(BaseModel):
    course_id: str
    student_id: str
    faculty_id: Optional[str] = None
    date: dt.date
    status: AttendanceStatus
    remarks: Optional[str] = Field(None, max_length=200)
    late_minutes: int = Field(0, ge=0)
    session: Optional[str] = Field(None, max_length=50)
    duration: Optional[int] = Field(None, ge=0)
    location: Optional[str] = Field(None, max_length=100)
    verification_method: VerificationMethod = VerificationMethod.MANUAL

    @field_validator("date", mode="before")
    @classmethod
    def attendance_day(cls, value):
        return to_day(value)


class AttendanceUpdate(BaseModel):
    date: Optional[dt.date] = None
    status: Optional[AttendanceStatus] = None
    remarks: Optional[str] = Field(None, max_length=200)
    late_minutes: Optional[int] = Field(None, ge=0)
    session: Optional[str] = Field(None, max_length=50)
    duration: Optional[int] = Field(None, ge=0)
    location: Optional[str] = Field(None, max_length=100)
    verification_method: Optional[VerificationMethod] = None

    @field_validator("date", mode="before")
    @classmethod
    def attendance_day(cls, value):
        return to_day(value)


class BulkAttendanceEntry(BaseModel):
    student_id: str
    status: AttendanceStatus
    date: Optional[dt.date] = None
    remarks: Optional[str] = Field(None, max_length=200)
    late_minutes: int = Field(0, ge=0)

    @field_validator("date", mode="before")
    @classmethod
    def attendance_day(cls, value):
        return to_day(value)


class BulkAttendanceCreate(BaseModel):
    course_id: str
    date: Optional[dt.date] = None
    session: Optional[str] = Field(None, max_length=50)
    duration: Optional[int] = Field(None, ge=0)
    location: Optional[str] = Field(None, max_length=100)
    verification_method: VerificationMethod = VerificationMethod.MANUAL
    attendance_records: List[BulkAttendanceEntry] = Field(..., min_length=1)

    @field_validator("date", mode="before")
    @classmethod
    def attendance_day(cls, value):
        return to_day(value)

    @model_validator(mode="after")
    def every_entry_dated(self):
        if self.date is None and any(entry.date is None for entry in self.attendance_records):
            raise ValueError("Each record needs a date when no default date is given")
        return self


class AttendanceResponse(BaseModel):
    id: str
    course_id: str
    student_id: str
    faculty_id: Optional[str] = None
    date: dt.date
    status: AttendanceStatus
    remarks: Optional[str] = None
    late_minutes: int = 0
    session: Optional[str] = None
    duration: Optional[int] = None
    location: Optional[str] = None
    verification_method: Optional[VerificationMethod] = None
    marked_by_id: Optional[str] = None
    last_updated: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== Timetable ====================

class SlotCreate(BaseModel):
    day: Weekday
    start_time: str
    end_time: str
    course_id: str
    faculty_id: str
    room: str = Field(..., min_length=1, max_length=100)
    slot_type: SlotType = SlotType.LECTURE

    @field_validator("start_time", "end_time")
    @classmethod
    def valid_time(cls, value: str) -> str:
        return check_time(value)

    @model_validator(mode="after")
    def ordered(self):
        check_time_range(self.start_time, self.end_time)
        return self


class SlotUpdate(BaseModel):
    day: Optional[Weekday] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    course_id: Optional[str] = None
    faculty_id: Optional[str] = None
    room: Optional[str] = Field(None, min_length=1, max_length=100)
    slot_type: Optional[SlotType] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def valid_time(cls, value: Optional[str]) -> Optional[str]:
        return check_time(value)

    @model_validator(mode="after")
    def ordered(self):
        check_time_range(self.start_time, self.end_time)
        return self


class SlotResponse(BaseModel):
    id: str
    timetable_id: str
    position: int
    day: Weekday
    start_time: str
    end_time: str
    course_id: str
    faculty_id: str
    room: str
    slot_type: SlotType

    model_config = ConfigDict(from_attributes=True)


class TimetableCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    academic_year: str = Field(..., min_length=1, max_length=20)
    semester: Semester
    department_id: Optional[str] = None
    program_id: Optional[str] = None
    batch: Optional[str] = Field(None, max_length=20)
    section: Optional[str] = Field(None, max_length=20)
    start_date: date
    end_date: date
    status: TimetableStatus = TimetableStatus.DRAFT
    notes: Optional[str] = None
    slots: List[SlotCreate] = []

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def calendar_day(cls, value):
        return to_day(value)

    @model_validator(mode="after")
    def ordered_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self


class TimetableUpdate(BaseModel):
    """When slots is given it replaces the whole slot list"""
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    academic_year: Optional[str] = Field(None, min_length=1, max_length=20)
    semester: Optional[Semester] = None
    department_id: Optional[str] = None
    program_id: Optional[str] = None
    batch: Optional[str] = Field(None, max_length=20)
    section: Optional[str] = Field(None, max_length=20)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[TimetableStatus] = None
    notes: Optional[str] = None
    slots: Optional[List[SlotCreate]] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def calendar_day(cls, value):
        return to_day(value)

    @model_validator(mode="after")
    def ordered_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self


class ConflictResponse(BaseModel):
    id: str
    conflict_type: ConflictType
    description: str
    resolved: bool
    detected_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TimetableResponse(BaseModel):
    id: str
    title: str
    academic_year: str
    semester: Semester
    department_id: Optional[str] = None
    program_id: Optional[str] = None
    batch: Optional[str] = None
    section: Optional[str] = None
    start_date: date
    end_date: date
    status: TimetableStatus
    published_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    slots: List[SlotResponse] = []

    model_config = ConfigDict(from_attributes=True)


class TimetableDetailResponse(TimetableResponse):
    conflicts: List[ConflictResponse] = []
