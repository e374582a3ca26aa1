"""
Announcements API
Non-admins only ever see active announcements addressed to their audience.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.orm import selectinload
from typing import List, Optional, Set

from app.core.database import get_db
from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging_config import logger
from app.core.types import utcnow
from app.models.announcement import (
    Announcement, AnnouncementAcknowledgement, AnnouncementCategory, AnnouncementPriority, Audience,
)
from app.models.user import User, UserRole
from app.modules.auth.dependencies import get_current_user, require_permission
from app.modules.auth.policy import enforce
from app.schemas.announcement import AnnouncementCreate, AnnouncementUpdate, AnnouncementResponse
from app.schemas.common import ok, dump
from app.utils.pagination import PaginationParams, pagination_params, paginated_response

router = APIRouter()

ROLE_AUDIENCE = {
    UserRole.STUDENT: Audience.STUDENTS,
    UserRole.FACULTY: Audience.FACULTY,
    UserRole.ADMIN: Audience.ADMIN,
    UserRole.SUPERADMIN: Audience.ADMIN,
}


def audiences_for(user: User) -> Set[str]:
    """Audience values an announcement may carry to reach this user"""
    audiences = {Audience.ALL.value}
    role_audience = ROLE_AUDIENCE.get(user.role)
    if role_audience:
        audiences.add(role_audience.value)
    return audiences


def is_visible_to(announcement: Announcement, user: User) -> bool:
    if user.is_admin:
        return True
    if not announcement.is_active:
        return False
    targets = {getattr(target, "value", target) for target in announcement.target_audience or []}
    return bool(targets & audiences_for(user))


async def get_announcement(db: AsyncSession, announcement_id: str) -> Announcement:
    result = await db.execute(
        select(Announcement)
        .options(selectinload(Announcement.acknowledgements))
        .where(Announcement.id == announcement_id)
        .execution_options(populate_existing=True)
    )
    announcement = result.scalar_one_or_none()
    if not announcement:
        raise NotFoundError("Announcement", announcement_id)
    return announcement


def _dump_for(announcement: Announcement, user: User) -> dict:
    data = dump(AnnouncementResponse, announcement)
    data["acknowledged"] = any(str(ack.user_id) == str(user.id) for ack in announcement.acknowledgements)
    if user.is_admin or str(announcement.created_by_id) == str(user.id):
        data["acknowledgement_count"] = len(announcement.acknowledgements)
    return data


@router.get("")
async def list_announcements(
    category: Optional[AnnouncementCategory] = Query(None),
    priority: Optional[AnnouncementPriority] = Query(None),
    search: Optional[str] = Query(None, description="Search by title or content"),
    paging: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    query = (
        select(Announcement)
        .options(selectinload(Announcement.acknowledgements))
        .order_by(Announcement.publish_date.desc())
    )
    if category:
        query = query.where(Announcement.category == category)
    if priority:
        query = query.where(Announcement.priority == priority)
    if search:
        query = query.where(or_(
            Announcement.title.ilike(f"%{search}%"), Announcement.content.ilike(f"%{search}%")
        ))
    if not current_user.is_admin:
        now = utcnow()
        query = query.where(
            Announcement.is_published.is_(True),
            Announcement.publish_date <= now,
            or_(Announcement.expiry_date.is_(None), Announcement.expiry_date >= now),
        )

    # target_audience is a JSON list, so the audience match runs after the query
    rows = (await db.execute(query)).scalars().all()
    visible: List[Announcement] = [row for row in rows if is_visible_to(row, current_user)]

    total = len(visible)
    start = paging.offset
    page = {
        "items": visible[start:start + paging.limit],
        "total": total,
        "page": paging.page,
        "page_size": paging.page_size,
        "pages": (total + paging.page_size - 1) // paging.page_size if total else 1,
    }
    return paginated_response(page, lambda announcement: _dump_for(announcement, current_user))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_announcement(
    data: AnnouncementCreate,
    current_user: User = Depends(require_permission("announcement", "create")),
    db: AsyncSession = Depends(get_db)
):
    fields = data.model_dump()
    fields["target_audience"] = [audience.value for audience in data.target_audience]
    if fields["publish_date"] is None:
        fields["publish_date"] = utcnow()

    announcement = Announcement(**fields, created_by_id=current_user.id)
    db.add(announcement)
    await db.commit()

    logger.log_domain_event(
        "Announcement", "created", str(announcement.id),
        audience=",".join(fields["target_audience"]),
    )
    return ok(_dump_for(await get_announcement(db, announcement.id), current_user))


@router.get("/{announcement_id}")
async def read_announcement(
    announcement_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    announcement = await get_announcement(db, announcement_id)
    if not is_visible_to(announcement, current_user):
        raise NotFoundError("Announcement", announcement_id)

    announcement.views = (announcement.views or 0) + 1
    await db.commit()
    return ok(_dump_for(announcement, current_user))


@router.put("/{announcement_id}")
async def update_announcement(
    announcement_id: str,
    data: AnnouncementUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    announcement = await get_announcement(db, announcement_id)
    enforce(current_user, "update", "announcement", announcement)

    changes = data.model_dump(exclude_unset=True)
    if "target_audience" in changes:
        changes["target_audience"] = [
            audience.value for audience in (data.target_audience or [Audience.ALL])
        ]
    if changes.get("publish_date") is None:
        changes.pop("publish_date", None)

    publish = changes.get("publish_date", announcement.publish_date)
    expiry = changes.get("expiry_date", announcement.expiry_date)
    if publish and expiry and expiry < publish:
        raise ValidationError("Expiry date cannot be before publish date", field="expiry_date")

    for field, value in changes.items():
        setattr(announcement, field, value)
    await db.commit()

    logger.log_domain_event("Announcement", "updated", announcement_id)
    return ok(_dump_for(await get_announcement(db, announcement_id), current_user))


@router.delete("/{announcement_id}")
async def delete_announcement(
    announcement_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    announcement = await get_announcement(db, announcement_id)
    enforce(current_user, "delete", "announcement", announcement)

    await db.delete(announcement)
    await db.commit()

    logger.log_domain_event("Announcement", "deleted", announcement_id)
    return ok({})


@router.post("/{announcement_id}/acknowledge")
async def acknowledge_announcement(
    announcement_id: str,
    current_user: User = Depends(require_permission("announcement", "acknowledge")),
    db: AsyncSession = Depends(get_db)
):
    """Acknowledging twice keeps the first acknowledgement"""
    announcement = await get_announcement(db, announcement_id)
    if not is_visible_to(announcement, current_user):
        raise NotFoundError("Announcement", announcement_id)

    already = any(str(ack.user_id) == str(current_user.id) for ack in announcement.acknowledgements)
    if not already:
        announcement.acknowledgements.append(AnnouncementAcknowledgement(user_id=current_user.id))
        await db.commit()
        logger.log_domain_event("Announcement", "acknowledged", announcement_id)

    announcement = await get_announcement(db, announcement_id)
    return ok(_dump_for(announcement, current_user), message="Announcement acknowledged")
