"""
Users Management API

Admin CRUD over accounts plus the self-service profile photo and
document uploads:
- Pagination (page, page_size) and filtering by role / search
- Deleting a user removes its student or faculty profile with it
- Document verification is admin only
"""
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.orm import selectinload
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging_config import logger
from app.core.security import get_password_hash
from app.core.types import utcnow
from app.models.user import User, UserRole, UserDocument, UserDocumentType
from app.modules.auth.dependencies import get_current_user, get_current_admin
from app.modules.auth.policy import enforce
from app.schemas.auth import UserResponse
from app.schemas.common import ok, dump
from app.schemas.user import UserCreate, UserUpdate, UserDocumentResponse, UserDetailResponse
from app.services.storage_service import storage_service
from app.utils.pagination import PaginationParams, pagination_params, paginate, paginated_response

router = APIRouter()


async def _get_user(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(
        select(User).options(selectinload(User.documents)).where(User.id == user_id)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User", user_id)
    return user


async def _email_taken(db: AsyncSession, email: str, exclude_id: Optional[str] = None) -> bool:
    query = select(User.id).where(User.email == email)
    if exclude_id:
        query = query.where(User.id != exclude_id)
    return (await db.execute(query)).scalar_one_or_none() is not None


# ==================== Admin CRUD ====================

@router.get("")
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    search: Optional[str] = Query(None, description="Search by name or email"),
    is_active: Optional[bool] = Query(None),
    paging: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    query = select(User).order_by(User.created_at.desc())
    if role:
        query = query.where(User.role == role)
    if is_active is not None:
        query = query.where(User.is_active == is_active)
    if search:
        query = query.where(or_(User.name.ilike(f"%{search}%"), User.email.ilike(f"%{search}%")))

    page = await paginate(db, query, paging.page, paging.page_size)
    return paginated_response(page, lambda user: dump(UserResponse, user))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    if await _email_taken(db, data.email):
        raise ConflictError("Email already registered", conflict_type="duplicate_email")

    fields = data.model_dump(exclude={"password"})
    user = User(**fields, hashed_password=get_password_hash(data.password))
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.log_domain_event("User", "created", str(user.id), role=user.role.value)
    return ok(dump(UserResponse, user))


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    user = await _get_user(db, user_id)
    return ok(dump(UserDetailResponse, user))


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    data: UserUpdate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    user = await _get_user(db, user_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("email") and await _email_taken(db, changes["email"], exclude_id=user.id):
        raise ConflictError("Email already registered", conflict_type="duplicate_email")

    for field, value in changes.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    return ok(dump(UserDetailResponse, user))


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(User)
        .options(
            selectinload(User.documents),
            selectinload(User.student_profile),
            selectinload(User.faculty_profile),
        )
        .where(User.id == user_id)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User", user_id)

    file_urls = [doc.file_url for doc in user.documents]
    if user.profile_image:
        file_urls.append(user.profile_image)

    await db.delete(user)
    await db.commit()

    for url in file_urls:
        await storage_service.delete(url)

    logger.log_domain_event("User", "deleted", user_id)
    return ok({})


# ==================== Photo / documents ====================

@router.put("/{user_id}/photo")
async def upload_photo(
    user_id: str,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await _get_user(db, user_id)
    enforce(current_user, "update_photo", "user", user)

    previous = user.profile_image
    user.profile_image = await storage_service.save_image(file, "profiles")
    await db.commit()

    if previous:
        await storage_service.delete(previous)

    return ok(dump(UserResponse, user))


@router.post("/{user_id}/documents", status_code=status.HTTP_201_CREATED)
async def upload_document(
    user_id: str,
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    document_type: UserDocumentType = Form(UserDocumentType.OTHER),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await _get_user(db, user_id)
    enforce(current_user, "create", "user_document", UserDocument(user_id=user.id))

    url = await storage_service.save_upload(file, "documents")
    document = UserDocument(
        user_id=user.id,
        name=name or file.filename or "document",
        document_type=document_type,
        file_url=url,
    )
    db.add(document)
    await db.commit()
    await db.refresh(document)

    logger.log_domain_event("UserDocument", "uploaded", str(document.id), owner_id=str(user.id))
    return ok(dump(UserDocumentResponse, document))


async def _get_document(db: AsyncSession, user_id: str, document_id: str) -> UserDocument:
    result = await db.execute(
        select(UserDocument).where(UserDocument.id == document_id, UserDocument.user_id == user_id)
    )
    document = result.scalar_one_or_none()
    if not document:
        raise NotFoundError("Document", document_id)
    return document


@router.put("/{user_id}/documents/{document_id}/verify")
async def verify_document(
    user_id: str,
    document_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    document = await _get_document(db, user_id, document_id)
    document.verified = True
    document.verified_by_id = current_user.id
    document.verified_at = utcnow()
    await db.commit()

    logger.log_domain_event("UserDocument", "verified", document_id)
    return ok(dump(UserDocumentResponse, document))


@router.delete("/{user_id}/documents/{document_id}")
async def delete_document(
    user_id: str,
    document_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    document = await _get_document(db, user_id, document_id)
    enforce(current_user, "delete", "user_document", document)

    url = document.file_url
    await db.delete(document)
    await db.commit()
    await storage_service.delete(url)

    logger.log_domain_event("UserDocument", "deleted", document_id)
    return ok({})
