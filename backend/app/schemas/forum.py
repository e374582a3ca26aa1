"""Pydantic schemas for forums, topics and replies"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime

from app.models.forum import ForumCategory, ForumAccessLevel


class ForumCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    category: ForumCategory = ForumCategory.GENERAL
    course_id: Optional[str] = None
    department_id: Optional[str] = None
    program_id: Optional[str] = None
    access_level: ForumAccessLevel = ForumAccessLevel.PUBLIC
    is_active: bool = True


class ForumUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    category: Optional[ForumCategory] = None
    course_id: Optional[str] = None
    department_id: Optional[str] = None
    program_id: Optional[str] = None
    access_level: Optional[ForumAccessLevel] = None
    is_active: Optional[bool] = None


class TopicCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    tags: List[str] = []


class TopicUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    tags: Optional[List[str]] = None
    # Moderation flags, honoured for admins only
    is_pinned: Optional[bool] = None
    is_locked: Optional[bool] = None


class ReplyCreate(BaseModel):
    content: str = Field(..., min_length=1)


class ReplyResponse(BaseModel):
    id: str
    topic_id: str
    content: str
    author_id: Optional[str] = None
    is_deleted: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TopicResponse(BaseModel):
    id: str
    forum_id: str
    title: str
    content: str
    author_id: Optional[str] = None
    is_pinned: bool
    is_locked: bool
    views: int
    tags: list = []
    created_at: datetime
    last_activity: datetime

    model_config = ConfigDict(from_attributes=True)


class TopicDetailResponse(TopicResponse):
    replies: List[ReplyResponse] = []
    like_count: int = 0


class ForumResponse(BaseModel):
    id: str
    title: str
    description: str
    category: ForumCategory
    course_id: Optional[str] = None
    department_id: Optional[str] = None
    program_id: Optional[str] = None
    access_level: ForumAccessLevel
    is_active: bool
    created_by_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ForumDetailResponse(ForumResponse):
    topics: List[TopicResponse] = []
