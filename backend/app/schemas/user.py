"""Pydantic schemas for admin user management"""
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional, List
from datetime import datetime

from app.models.user import UserRole, UserDocumentType
from app.schemas.auth import UserResponse


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.STUDENT
    phone: Optional[str] = Field(None, max_length=20)
    is_active: bool = True
    is_verified: bool = False


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    phone: Optional[str] = Field(None, max_length=20)
    is_active: Optional[bool] = None
    is_verified: Optional[bool] = None


class UserDocumentResponse(BaseModel):
    id: str
    user_id: str
    name: str
    document_type: UserDocumentType
    file_url: str
    verified: bool
    verified_by_id: Optional[str] = None
    verified_at: Optional[datetime] = None
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserDetailResponse(UserResponse):
    documents: List[UserDocumentResponse] = []
