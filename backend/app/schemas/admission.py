"""Pydantic schemas for admission applications"""
from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from typing import Optional, List, Dict, Any
from datetime import date, datetime

from app.models.admission import ApplicationStatus, Gender, AdmissionDocumentType


class AdmissionCreate(BaseModel):
    """application_number and status history are assigned by the server"""
    applicant_name: str = Field(..., min_length=1, max_length=100)
    applicant_email: EmailStr
    applicant_phone: str = Field(..., min_length=1, max_length=20)
    date_of_birth: date
    gender: Gender
    address: Optional[Dict[str, Any]] = None
    nationality: Optional[str] = Field(None, max_length=50)
    program_id: str
    department_id: str
    academic_year: str = Field(..., min_length=1, max_length=20)
    semester: str = Field(..., min_length=1, max_length=10)
    educational_background: List[Dict[str, Any]] = []
    entrance_exam_score: Optional[float] = Field(None, ge=0)
    application_status: ApplicationStatus = ApplicationStatus.DRAFT

    model_config = ConfigDict(extra="ignore")

    @field_validator("application_status")
    @classmethod
    def initial_status(cls, value: ApplicationStatus) -> ApplicationStatus:
        if value not in (ApplicationStatus.DRAFT, ApplicationStatus.SUBMITTED):
            raise ValueError("New applications start as Draft or Submitted")
        return value


class AdmissionUpdate(BaseModel):
    applicant_name: Optional[str] = Field(None, min_length=1, max_length=100)
    applicant_email: Optional[EmailStr] = None
    applicant_phone: Optional[str] = Field(None, min_length=1, max_length=20)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[Dict[str, Any]] = None
    nationality: Optional[str] = Field(None, max_length=50)
    academic_year: Optional[str] = Field(None, min_length=1, max_length=20)
    semester: Optional[str] = Field(None, min_length=1, max_length=10)
    educational_background: Optional[List[Dict[str, Any]]] = None
    interview_details: Optional[Dict[str, Any]] = None
    entrance_exam_score: Optional[float] = Field(None, ge=0)
    application_status: Optional[ApplicationStatus] = None
    remarks: Optional[str] = None
    student_id: Optional[str] = None

    # application_number and program are fixed once created
    model_config = ConfigDict(extra="ignore")


class AdmissionDocumentResponse(BaseModel):
    id: str
    name: str
    document_type: AdmissionDocumentType
    file_url: str
    uploaded_at: datetime
    verified: bool
    verified_by_id: Optional[str] = None
    verified_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StatusHistoryResponse(BaseModel):
    status: ApplicationStatus
    remarks: Optional[str] = None
    updated_by_id: Optional[str] = None
    changed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdmissionResponse(BaseModel):
    id: str
    application_number: str
    applicant_name: str
    applicant_email: str
    applicant_phone: str
    date_of_birth: date
    gender: Gender
    address: Optional[Dict[str, Any]] = None
    nationality: Optional[str] = None
    photo: Optional[str] = None
    program_id: str
    department_id: str
    academic_year: str
    semester: str
    educational_background: list = []
    interview_details: Optional[Dict[str, Any]] = None
    entrance_exam_score: Optional[float] = None
    application_status: ApplicationStatus
    submitted_at: Optional[datetime] = None
    user_id: Optional[str] = None
    student_id: Optional[str] = None
    created_at: datetime
    documents: List[AdmissionDocumentResponse] = []
    status_history: List[StatusHistoryResponse] = []

    model_config = ConfigDict(from_attributes=True)
