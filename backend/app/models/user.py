from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Text, ForeignKey
from sqlalchemy.orm import relationship
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utcnow


class UserRole(str, enum.Enum):
    """User roles"""
    STUDENT = "student"
    FACULTY = "faculty"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPERADMIN})


class UserDocumentType(str, enum.Enum):
    ID_PROOF = "ID Proof"
    ACADEMIC_CERTIFICATE = "Academic Certificate"
    TRANSCRIPT = "Transcript"
    RESUME = "Resume/CV"
    OTHER = "Other"


class User(Base):
    """User model - the authentication identity"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    hashed_password = Column(String(255), nullable=False)

    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False)
    is_active = Column(Boolean, default=True)
    is_verified = Column(Boolean, default=False)

    # Profile fields
    phone = Column(String(20), nullable=True)
    profile_image = Column(Text, nullable=True)

    # Email verification fields
    verification_token_hash = Column(String(255), nullable=True)
    verification_token_expires = Column(DateTime, nullable=True)

    # Password reset fields
    reset_token_hash = Column(String(255), nullable=True)
    reset_token_expires = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    student_profile = relationship(
        "Student", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    faculty_profile = relationship(
        "Faculty", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    documents = relationship(
        "UserDocument", back_populates="user", foreign_keys="UserDocument.user_id", cascade="all, delete-orphan"
    )

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def __repr__(self):
        return f"<User {self.email}>"


class UserDocument(Base):
    """Document uploaded against a user profile"""
    __tablename__ = "user_documents"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    document_type = Column(SQLEnum(UserDocumentType), default=UserDocumentType.OTHER, nullable=False)
    file_url = Column(Text, nullable=False)

    verified = Column(Boolean, default=False)
    verified_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    verified_at = Column(DateTime, nullable=True)

    uploaded_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="documents", foreign_keys=[user_id])

    def __repr__(self):
        return f"<UserDocument {self.name} user={self.user_id}>"
