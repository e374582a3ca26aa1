# Pydantic schemas
from app.schemas.common import ok, dump, dump_all
from app.schemas.auth import (
    UserRegister,
    UserLogin,
    UpdateDetails,
    UpdatePassword,
    ForgotPassword,
    ResetPassword,
    RefreshTokenRequest,
    Token,
    UserResponse,
)
from app.schemas.user import UserCreate, UserUpdate, UserDocumentResponse, UserDetailResponse
