"""Pydantic schemas for announcements"""
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from typing import Optional, List
from datetime import datetime, timezone

from app.models.announcement import AnnouncementCategory, AnnouncementPriority, Audience


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """DateTime columns hold naive UTC"""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1)
    category: AnnouncementCategory = AnnouncementCategory.GENERAL
    priority: AnnouncementPriority = AnnouncementPriority.MEDIUM
    target_audience: List[Audience] = [Audience.ALL]
    attachments: List[str] = []
    publish_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    is_published: bool = True

    @field_validator("publish_date", "expiry_date")
    @classmethod
    def store_naive(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(value)

    @field_validator("target_audience")
    @classmethod
    def non_empty(cls, value: List[Audience]) -> List[Audience]:
        return value or [Audience.ALL]

    @model_validator(mode="after")
    def ordered(self):
        if self.publish_date and self.expiry_date and self.expiry_date < self.publish_date:
            raise ValueError("Expiry date cannot be before publish date")
        return self


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[AnnouncementCategory] = None
    priority: Optional[AnnouncementPriority] = None
    target_audience: Optional[List[Audience]] = None
    attachments: Optional[List[str]] = None
    publish_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    is_published: Optional[bool] = None

    @field_validator("publish_date", "expiry_date")
    @classmethod
    def store_naive(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(value)


class AnnouncementResponse(BaseModel):
    id: str
    title: str
    content: str
    category: AnnouncementCategory
    priority: AnnouncementPriority
    target_audience: List[Audience]
    attachments: list = []
    publish_date: datetime
    expiry_date: Optional[datetime] = None
    is_published: bool
    is_active: bool
    views: int
    created_by_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
