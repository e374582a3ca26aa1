from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import Callable, Optional
import uuid

from app.core.database import get_db
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.logging_config import set_user_id
from app.core.security import decode_token
from app.models.user import User, UserRole
from app.modules.auth.policy import enforce

security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""

    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authorized to access this route")

    payload = decode_token(credentials.credentials)

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    try:
        uuid.UUID(user_id)
    except ValueError:
        raise AuthenticationError("Invalid user ID format")

    result = await db.execute(
        select(User)
        .options(selectinload(User.student_profile), selectinload(User.faculty_profile))
        .where(User.id == user_id)
    )
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthorizationError("User account is inactive")

    # Picked up by the rate limiter key and the log formatter
    request.state.user_id = str(user.id)
    set_user_id(str(user.id))

    return user


def require_roles(*roles: UserRole) -> Callable:
    """
    Dependency factory: the current user must hold one of roles.
    Admin and superadmin always pass.

    Usage:
        @router.post("/", dependencies=[Depends(require_roles(UserRole.FACULTY))])
    """
    allowed = {UserRole(role) for role in roles}

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.is_admin or current_user.role in allowed:
            return current_user
        raise AuthorizationError(
            f"User role {current_user.role.value} is not authorized to access this route",
            action="role",
        )

    return checker


def require_permission(resource_type: str, action: str) -> Callable:
    """
    Dependency factory backed by the policy table.
    Only the role half of the policy is checked here; ownership is
    enforced by the handler once the resource is loaded.
    """
    async def checker(current_user: User = Depends(get_current_user)) -> User:
        enforce(current_user, action, resource_type)
        return current_user

    return checker


get_current_admin = require_roles(UserRole.ADMIN, UserRole.SUPERADMIN)
get_current_staff = require_roles(UserRole.FACULTY)
