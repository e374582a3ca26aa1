"""
Forum Models
- Forums (optionally scoped to a course / department / program)
- Topics with replies and likes
"""

from sqlalchemy import (
    Column, String, Boolean, DateTime, Enum as SQLEnum, Integer, Text, ForeignKey,
    UniqueConstraint, JSON,
)
from sqlalchemy.orm import relationship
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utcnow


class ForumCategory(str, enum.Enum):
    GENERAL = "General"
    ACADEMIC = "Academic"
    COURSE_SPECIFIC = "Course-specific"
    DEPARTMENT = "Department"
    STUDENT_ACTIVITIES = "Student Activities"
    OTHER = "Other"


class ForumAccessLevel(str, enum.Enum):
    PUBLIC = "Public"
    STUDENTS = "Students"
    FACULTY = "Faculty"
    DEPARTMENT = "Department"
    COURSE = "Course"


class Forum(Base):
    """Discussion forum"""
    __tablename__ = "forums"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False)
    category = Column(SQLEnum(ForumCategory), default=ForumCategory.GENERAL, nullable=False)

    course_id = Column(GUID, ForeignKey("courses.id", ondelete="SET NULL"), nullable=True)
    department_id = Column(GUID, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    program_id = Column(GUID, ForeignKey("programs.id", ondelete="SET NULL"), nullable=True)

    access_level = Column(SQLEnum(ForumAccessLevel), default=ForumAccessLevel.PUBLIC, nullable=False)
    is_active = Column(Boolean, default=True)

    created_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    topics = relationship(
        "ForumTopic",
        back_populates="forum",
        cascade="all, delete-orphan",
        order_by="ForumTopic.created_at",
    )

    def __repr__(self):
        return f"<Forum {self.title}>"


class ForumTopic(Base):
    """Topic (thread) inside a forum"""
    __tablename__ = "forum_topics"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    forum_id = Column(GUID, ForeignKey("forums.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    author_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    is_pinned = Column(Boolean, default=False)
    is_locked = Column(Boolean, default=False)
    views = Column(Integer, default=0, nullable=False)
    tags = Column(JSON, default=list)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_activity = Column(DateTime, default=utcnow, nullable=False)

    forum = relationship("Forum", back_populates="topics")
    replies = relationship(
        "ForumReply",
        back_populates="topic",
        cascade="all, delete-orphan",
        order_by="ForumReply.created_at",
    )
    likes = relationship("ForumTopicLike", back_populates="topic", cascade="all, delete-orphan")

    @property
    def like_count(self) -> int:
        return len(self.likes)


class ForumReply(Base):
    """Reply to a topic. Deleting a reply only flags it."""
    __tablename__ = "forum_replies"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    topic_id = Column(GUID, ForeignKey("forum_topics.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    author_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_deleted = Column(Boolean, default=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    topic = relationship("ForumTopic", back_populates="replies")


class ForumTopicLike(Base):
    __tablename__ = "forum_topic_likes"
    __table_args__ = (
        UniqueConstraint('topic_id', 'user_id', name='uq_topic_like_user'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    topic_id = Column(GUID, ForeignKey("forum_topics.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    liked_at = Column(DateTime, default=utcnow, nullable=False)

    topic = relationship("ForumTopic", back_populates="likes")
