"""
Announcement Models
- Announcements targeted at an audience (students, faculty, admins)
- Per-user acknowledgements
"""

from sqlalchemy import (
    Column, String, Boolean, DateTime, Enum as SQLEnum, Integer, Text, ForeignKey,
    UniqueConstraint, JSON,
)
from sqlalchemy.orm import relationship
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utcnow


class AnnouncementCategory(str, enum.Enum):
    GENERAL = "General"
    ACADEMIC = "Academic"
    ADMISSION = "Admission"
    EXAM = "Exam"
    EVENT = "Event"
    HOLIDAY = "Holiday"
    EMERGENCY = "Emergency"
    OTHER = "Other"


class AnnouncementPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class Audience(str, enum.Enum):
    ALL = "All"
    STUDENTS = "Students"
    FACULTY = "Faculty"
    ADMIN = "Admin"


class Announcement(Base):
    """Announcement"""
    __tablename__ = "announcements"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(100), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(SQLEnum(AnnouncementCategory), default=AnnouncementCategory.GENERAL, nullable=False)
    priority = Column(SQLEnum(AnnouncementPriority), default=AnnouncementPriority.MEDIUM, nullable=False)

    # List of Audience values, e.g. ["Students", "Faculty"]
    target_audience = Column(JSON, default=lambda: [Audience.ALL.value], nullable=False)
    attachments = Column(JSON, default=list)

    publish_date = Column(DateTime, default=utcnow, nullable=False)
    expiry_date = Column(DateTime, nullable=True)
    is_published = Column(Boolean, default=True)
    views = Column(Integer, default=0, nullable=False)

    created_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    created_by = relationship("User")
    acknowledgements = relationship(
        "AnnouncementAcknowledgement", back_populates="announcement", cascade="all, delete-orphan"
    )

    def is_active_at(self, now) -> bool:
        return bool(
            self.is_published
            and self.publish_date <= now
            and (self.expiry_date is None or now <= self.expiry_date)
        )

    @property
    def is_active(self) -> bool:
        return self.is_active_at(utcnow())

    def __repr__(self):
        return f"<Announcement {self.title}>"


class AnnouncementAcknowledgement(Base):
    __tablename__ = "announcement_acknowledgements"
    __table_args__ = (
        UniqueConstraint('announcement_id', 'user_id', name='uq_ack_announcement_user'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    announcement_id = Column(GUID, ForeignKey("announcements.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    acknowledged_at = Column(DateTime, default=utcnow, nullable=False)

    announcement = relationship("Announcement", back_populates="acknowledgements")
