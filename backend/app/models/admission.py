"""
Admission Models
- Applications with generated application numbers
- Uploaded supporting documents (verified by staff)
- Append-only status history
"""

from sqlalchemy import (
    Column, String, Boolean, DateTime, Date, Enum as SQLEnum, Float, Text, ForeignKey, JSON,
)
from sqlalchemy.orm import relationship
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utcnow


class ApplicationStatus(str, enum.Enum):
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    UNDER_REVIEW = "Under Review"
    DOCUMENT_VERIFICATION = "Document Verification"
    INTERVIEW_SCHEDULED = "Interview Scheduled"
    INTERVIEW_COMPLETED = "Interview Completed"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    WAITLISTED = "Waitlisted"
    ACCEPTED = "Accepted"
    CANCELLED = "Cancelled"


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class AdmissionDocumentType(str, enum.Enum):
    ID_PROOF = "ID Proof"
    ACADEMIC_CERTIFICATE = "Academic Certificate"
    TRANSCRIPT = "Transcript"
    RECOMMENDATION_LETTER = "Recommendation Letter"
    STATEMENT_OF_PURPOSE = "Statement of Purpose"
    RESUME = "Resume/CV"
    OTHER = "Other"


class Admission(Base):
    """Admission application"""
    __tablename__ = "admissions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    # YY + program code + 4-digit yearly sequence, assigned once on create
    application_number = Column(String(30), unique=True, nullable=False, index=True)

    # Applicant
    applicant_name = Column(String(100), nullable=False)
    applicant_email = Column(String(255), nullable=False)
    applicant_phone = Column(String(20), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(SQLEnum(Gender), nullable=False)
    address = Column(JSON, nullable=True)
    nationality = Column(String(50), nullable=True)
    photo = Column(Text, nullable=True)

    program_id = Column(GUID, ForeignKey("programs.id", ondelete="RESTRICT"), nullable=False, index=True)
    department_id = Column(GUID, ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False)
    academic_year = Column(String(20), nullable=False)
    semester = Column(String(10), nullable=False)

    educational_background = Column(JSON, default=list)
    interview_details = Column(JSON, nullable=True)
    entrance_exam_score = Column(Float, nullable=True)

    application_status = Column(
        SQLEnum(ApplicationStatus), default=ApplicationStatus.DRAFT, nullable=False, index=True
    )
    submitted_at = Column(DateTime, nullable=True)

    user_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    program = relationship("Program")
    department = relationship("Department")
    documents = relationship(
        "AdmissionDocument", back_populates="admission", cascade="all, delete-orphan"
    )
    status_history = relationship(
        "AdmissionStatusHistory",
        back_populates="admission",
        cascade="all, delete-orphan",
        order_by="AdmissionStatusHistory.changed_at",
    )

    def __repr__(self):
        return f"<Admission {self.application_number}>"


class AdmissionDocument(Base):
    """Supporting document uploaded for an application"""
    __tablename__ = "admission_documents"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    admission_id = Column(GUID, ForeignKey("admissions.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    document_type = Column(SQLEnum(AdmissionDocumentType), nullable=False)
    file_url = Column(Text, nullable=False)
    uploaded_at = Column(DateTime, default=utcnow, nullable=False)

    verified = Column(Boolean, default=False)
    verified_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    verified_at = Column(DateTime, nullable=True)

    admission = relationship("Admission", back_populates="documents")


class AdmissionStatusHistory(Base):
    """Append-only log entry, written whenever application_status changes"""
    __tablename__ = "admission_status_history"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    admission_id = Column(GUID, ForeignKey("admissions.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(SQLEnum(ApplicationStatus), nullable=False)
    remarks = Column(Text, nullable=True)
    updated_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    changed_at = Column(DateTime, default=utcnow, nullable=False)

    admission = relationship("Admission", back_populates="status_history")
