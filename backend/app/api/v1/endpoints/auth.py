from fastapi import APIRouter, Depends, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import timedelta
import asyncio
from typing import Set

from app.core.database import get_db
from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DependencyError,
    InvalidTokenError,
    NotFoundError,
)
from app.core.security import (
    verify_password,
    get_password_hash,
    create_token_pair,
    decode_token,
    generate_account_token,
    hash_account_token,
)
from app.core.logging_config import logger, set_user_id
from app.core.types import utcnow
from app.models.user import User
from app.schemas.auth import (
    UserRegister,
    UserLogin,
    UpdateDetails,
    UpdatePassword,
    ForgotPassword,
    ResetPassword,
    RefreshTokenRequest,
    UserResponse,
)
from app.schemas.common import ok, dump
from app.modules.auth.dependencies import get_current_user
from app.services.email_service import email_service
from app.core.rate_limiter import (
    limiter,
    AUTH_LOGIN_LIMIT,
    AUTH_REGISTER_LIMIT,
    AUTH_SENSITIVE_LIMIT,
)


router = APIRouter()

# Running verification sends; the event loop only keeps weak references
_email_tasks: Set[asyncio.Task] = set()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _session_payload(user: User) -> dict:
    return {"user": dump(UserResponse, user), **create_token_pair(user)}


def _log_email_outcome(task: asyncio.Task) -> None:
    _email_tasks.discard(task)
    if task.cancelled():
        logger.warning("[Auth] Verification email task was cancelled")
    elif task.exception() is not None:
        logger.warning(f"[Auth] Verification email failed: {task.exception()}")
    elif not task.result():
        logger.warning("[Auth] Verification email was not delivered")


def queue_verification_email(user: User, raw_token: str) -> bool:
    """Fire-and-forget the verification email; True when it was queued"""
    if not email_service.is_configured:
        logger.warning(f"[Auth] SMTP not configured, no verification email for {user.email}")
        return False
    try:
        task = asyncio.create_task(
            email_service.send_verification_email(
                to_email=user.email,
                user_name=user.name,
                verification_token=raw_token,
            )
        )
        _email_tasks.add(task)
        task.add_done_callback(_log_email_outcome)
    except RuntimeError as e:
        logger.warning(f"[Auth] Failed to queue verification email: {e}")
        return False
    logger.info(f"[Auth] Verification email queued for {user.email}")
    return True


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_REGISTER_LIMIT)
async def register(
    request: Request,
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """Register new user (rate limited)"""
    client_ip = _client_ip(request)

    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        logger.log_auth_event(
            event="register",
            success=False,
            user_email=user_data.email,
            reason="Email already registered",
            client_ip=client_ip
        )
        raise ConflictError("Email already registered", conflict_type="duplicate_email")

    raw_token, token_hash = generate_account_token()
    user = User(
        name=user_data.name,
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        phone=user_data.phone,
        verification_token_hash=token_hash,
        verification_token_expires=utcnow() + timedelta(hours=settings.VERIFICATION_TOKEN_EXPIRE_HOURS),
    )

    # Committed before the email goes out; a mail failure never undoes the account
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.log_auth_event(
        event="register",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        user_role=user.role.value
    )

    email_sent = queue_verification_email(user, raw_token)

    return ok(
        _session_payload(user),
        message="Registration successful",
        email_sent=email_sent,
    )


@router.post("/login")
@limiter.limit(AUTH_LOGIN_LIMIT)
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login user (rate limited)"""
    client_ip = _client_ip(request)

    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=credentials.email,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise AuthenticationError("Invalid credentials")

    if not user.is_active:
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=credentials.email,
            reason="Account inactive",
            client_ip=client_ip
        )
        raise AuthorizationError("Account is inactive")

    user.last_login = utcnow()
    await db.commit()

    set_user_id(str(user.id))
    logger.log_auth_event(
        event="login",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        user_role=user.role.value
    )

    return ok(_session_payload(user))


@router.get("/logout")
async def logout(current_user: User = Depends(get_current_user)):
    """Tokens are stateless; the client drops them"""
    logger.log_auth_event(event="logout", success=True, user_email=current_user.email)
    return ok({}, message="Logged out")


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return ok(dump(UserResponse, current_user))


@router.put("/updatedetails")
async def update_details(
    details: UpdateDetails,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    changes = details.model_dump(exclude_unset=True)

    new_email = changes.get("email")
    if new_email and new_email != current_user.email:
        taken = await db.execute(
            select(User.id).where(User.email == new_email, User.id != current_user.id)
        )
        if taken.scalar_one_or_none():
            raise ConflictError("Email already registered", conflict_type="duplicate_email")

    for field, value in changes.items():
        setattr(current_user, field, value)

    await db.commit()
    await db.refresh(current_user)
    return ok(dump(UserResponse, current_user))


@router.put("/updatepassword")
async def update_password(
    passwords: UpdatePassword,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if not verify_password(passwords.current_password, current_user.hashed_password):
        logger.log_auth_event(
            event="password_change",
            success=False,
            user_email=current_user.email,
            reason="Current password is incorrect"
        )
        raise AuthenticationError("Password is incorrect")

    current_user.hashed_password = get_password_hash(passwords.new_password)
    await db.commit()

    logger.log_auth_event(event="password_change", success=True, user_email=current_user.email)
    return ok(_session_payload(current_user))


@router.post("/forgotpassword")
@limiter.limit(AUTH_SENSITIVE_LIMIT)
async def forgot_password(
    request: Request,
    body: ForgotPassword,
    db: AsyncSession = Depends(get_db)
):
    """
    Email a reset link valid for RESET_TOKEN_EXPIRE_MINUTES.

    Unlike registration the send is awaited: if it fails the token is
    cleared again and the caller gets a 503.
    """
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User", message="There is no user with that email")

    raw_token, token_hash = generate_account_token()
    user.reset_token_hash = token_hash
    user.reset_token_expires = utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
    await db.commit()

    sent = await email_service.send_password_reset_email(
        to_email=user.email,
        user_name=user.name,
        reset_token=raw_token,
    )
    if not sent:
        user.reset_token_hash = None
        user.reset_token_expires = None
        await db.commit()
        logger.log_auth_event(
            event="forgot_password",
            success=False,
            user_email=user.email,
            reason="Reset email could not be sent"
        )
        raise DependencyError("Email could not be sent", dependency="email")

    logger.log_auth_event(event="forgot_password", success=True, user_email=user.email)
    return ok({}, message="Email sent")


@router.put("/resetpassword/{token}")
async def reset_password(
    token: str,
    body: ResetPassword,
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(User).where(
            User.reset_token_hash == hash_account_token(token),
            User.reset_token_expires > utcnow(),
        )
    )
    user = result.scalar_one_or_none()
    if not user:
        raise InvalidTokenError("Invalid or expired reset token")

    user.hashed_password = get_password_hash(body.password)
    user.reset_token_hash = None
    user.reset_token_expires = None
    await db.commit()

    logger.log_auth_event(event="password_reset", success=True, user_email=user.email)
    return ok(_session_payload(user))


@router.get("/verify-email/{token}")
async def verify_email(token: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(User).where(
            User.verification_token_hash == hash_account_token(token),
            User.verification_token_expires > utcnow(),
        )
    )
    user = result.scalar_one_or_none()
    if not user:
        raise InvalidTokenError("Invalid or expired verification token")

    user.is_verified = True
    user.verification_token_hash = None
    user.verification_token_expires = None
    await db.commit()

    logger.log_auth_event(event="email_verified", success=True, user_email=user.email)
    return ok({}, message="Email verified successfully")


@router.post("/refresh")
async def refresh_token(body: RefreshTokenRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a refresh token for a new token pair"""
    payload = decode_token(body.refresh_token)
    if payload.get("type") != "refresh":
        raise AuthenticationError("Invalid token type")

    user = await db.get(User, payload.get("sub"))
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    return ok(create_token_pair(user))
