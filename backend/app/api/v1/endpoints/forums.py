"""
Forums API
Forums, their topics and replies. Locked topics take no new replies,
deleted replies are only flagged, likes toggle per user.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.orm import selectinload
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging_config import logger
from app.core.types import utcnow
from app.models.forum import Forum, ForumAccessLevel, ForumCategory, ForumReply, ForumTopic, ForumTopicLike
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, require_permission
from app.modules.auth.policy import enforce
from app.schemas.common import ok, dump, dump_all
from app.schemas.forum import (
    ForumCreate, ForumUpdate, ForumResponse, ForumDetailResponse,
    TopicCreate, TopicUpdate, TopicResponse, TopicDetailResponse, ReplyCreate, ReplyResponse,
)
from app.services.profile_service import ProfileService
from app.utils.pagination import PaginationParams, pagination_params, paginate, paginated_response

router = APIRouter()

MODERATION_FIELDS = ("is_pinned", "is_locked")


async def get_forum(db: AsyncSession, forum_id: str, with_topics: bool = False) -> Forum:
    query = select(Forum).where(Forum.id == forum_id)
    if with_topics:
        query = query.options(selectinload(Forum.topics))
    forum = (await db.execute(query.execution_options(populate_existing=True))).scalar_one_or_none()
    if not forum:
        raise NotFoundError("Forum", forum_id)
    return forum


async def get_topic(db: AsyncSession, forum: Forum, topic_id: str) -> ForumTopic:
    result = await db.execute(
        select(ForumTopic)
        .options(selectinload(ForumTopic.replies), selectinload(ForumTopic.likes))
        .where(ForumTopic.id == topic_id, ForumTopic.forum_id == forum.id)
        .execution_options(populate_existing=True)
    )
    topic = result.scalar_one_or_none()
    if not topic:
        raise NotFoundError("Topic", topic_id)
    return topic


def _dump_topic(topic: ForumTopic) -> dict:
    data = dump(TopicDetailResponse, topic)
    data["replies"] = dump_all(ReplyResponse, [reply for reply in topic.replies if not reply.is_deleted])
    return data


# ==================== Forums ====================

@router.get("")
async def list_forums(
    category: Optional[ForumCategory] = Query(None),
    access_level: Optional[ForumAccessLevel] = Query(None),
    course_id: Optional[str] = Query(None),
    department_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Search by title or description"),
    paging: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    query = select(Forum).order_by(Forum.created_at.desc())
    if category:
        query = query.where(Forum.category == category)
    if access_level:
        query = query.where(Forum.access_level == access_level)
    if course_id:
        query = query.where(Forum.course_id == course_id)
    if department_id:
        query = query.where(Forum.department_id == department_id)
    if search:
        query = query.where(or_(Forum.title.ilike(f"%{search}%"), Forum.description.ilike(f"%{search}%")))
    if not current_user.is_admin:
        query = query.where(Forum.is_active.is_(True))

    page = await paginate(db, query, paging.page, paging.page_size)
    return paginated_response(page, lambda forum: dump(ForumResponse, forum))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_forum(
    data: ForumCreate,
    current_user: User = Depends(require_permission("forum", "create")),
    db: AsyncSession = Depends(get_db)
):
    await ProfileService(db).check_references(data.department_id, data.program_id)

    forum = Forum(**data.model_dump(), created_by_id=current_user.id)
    db.add(forum)
    await db.commit()
    await db.refresh(forum)

    logger.log_domain_event("Forum", "created", str(forum.id), category=forum.category.value)
    return ok(dump(ForumResponse, forum))


@router.get("/{forum_id}")
async def read_forum(
    forum_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    forum = await get_forum(db, forum_id, with_topics=True)
    data = dump(ForumDetailResponse, forum)
    # Pinned topics first, then most recent activity
    topics = sorted(forum.topics, key=lambda topic: topic.last_activity, reverse=True)
    topics = sorted(topics, key=lambda topic: not topic.is_pinned)
    data["topics"] = dump_all(TopicResponse, topics)
    return ok(data)


@router.put("/{forum_id}")
async def update_forum(
    forum_id: str,
    data: ForumUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    forum = await get_forum(db, forum_id)
    enforce(current_user, "update", "forum", forum)

    changes = data.model_dump(exclude_unset=True)
    await ProfileService(db).check_references(changes.get("department_id"), changes.get("program_id"))
    for field, value in changes.items():
        setattr(forum, field, value)
    await db.commit()
    await db.refresh(forum)
    return ok(dump(ForumResponse, forum))


@router.delete("/{forum_id}")
async def delete_forum(
    forum_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    forum = await get_forum(db, forum_id)
    enforce(current_user, "delete", "forum", forum)

    await db.delete(forum)
    await db.commit()

    logger.log_domain_event("Forum", "deleted", forum_id)
    return ok({})


# ==================== Topics ====================

@router.post("/{forum_id}/topics", status_code=status.HTTP_201_CREATED)
async def create_topic(
    forum_id: str,
    data: TopicCreate,
    current_user: User = Depends(require_permission("forum_topic", "create")),
    db: AsyncSession = Depends(get_db)
):
    forum = await get_forum(db, forum_id)
    if not forum.is_active:
        raise ValidationError("This forum is not accepting new topics", field="forum_id")

    topic = ForumTopic(forum_id=forum.id, author_id=current_user.id, **data.model_dump())
    db.add(topic)
    await db.commit()

    logger.log_domain_event("ForumTopic", "created", str(topic.id), forum_id=forum_id)
    return ok(_dump_topic(await get_topic(db, forum, topic.id)))


@router.get("/{forum_id}/topics/{topic_id}")
async def read_topic(
    forum_id: str,
    topic_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    forum = await get_forum(db, forum_id)
    topic = await get_topic(db, forum, topic_id)
    topic.views = (topic.views or 0) + 1
    await db.commit()
    return ok(_dump_topic(topic))


@router.put("/{forum_id}/topics/{topic_id}")
async def update_topic(
    forum_id: str,
    topic_id: str,
    data: TopicUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    forum = await get_forum(db, forum_id)
    topic = await get_topic(db, forum, topic_id)
    enforce(current_user, "update", "forum_topic", topic)

    changes = data.model_dump(exclude_unset=True)
    if not current_user.is_admin:
        for field in MODERATION_FIELDS:
            changes.pop(field, None)

    for field, value in changes.items():
        if value is not None:
            setattr(topic, field, value)
    await db.commit()
    return ok(_dump_topic(await get_topic(db, forum, topic_id)))


@router.delete("/{forum_id}/topics/{topic_id}")
async def delete_topic(
    forum_id: str,
    topic_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    forum = await get_forum(db, forum_id)
    topic = await get_topic(db, forum, topic_id)
    enforce(current_user, "delete", "forum_topic", topic)

    await db.delete(topic)
    await db.commit()

    logger.log_domain_event("ForumTopic", "deleted", topic_id, forum_id=forum_id)
    return ok({})


# ==================== Replies / likes ====================

@router.post("/{forum_id}/topics/{topic_id}/replies", status_code=status.HTTP_201_CREATED)
async def add_reply(
    forum_id: str,
    topic_id: str,
    data: ReplyCreate,
    current_user: User = Depends(require_permission("forum_reply", "create")),
    db: AsyncSession = Depends(get_db)
):
    forum = await get_forum(db, forum_id)
    topic = await get_topic(db, forum, topic_id)
    if topic.is_locked:
        raise ValidationError("This topic is locked", field="topic_id")

    reply = ForumReply(topic_id=topic.id, content=data.content, author_id=current_user.id)
    db.add(reply)
    topic.last_activity = utcnow()
    await db.commit()
    await db.refresh(reply)

    logger.log_domain_event("ForumReply", "created", str(reply.id), topic_id=topic_id)
    return ok(dump(ReplyResponse, reply))


@router.delete("/{forum_id}/topics/{topic_id}/replies/{reply_id}")
async def delete_reply(
    forum_id: str,
    topic_id: str,
    reply_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    forum = await get_forum(db, forum_id)
    topic = await get_topic(db, forum, topic_id)
    reply = next((reply for reply in topic.replies if str(reply.id) == reply_id), None)
    if reply is None or reply.is_deleted:
        raise NotFoundError("Reply", reply_id)
    enforce(current_user, "delete", "forum_reply", reply)

    reply.is_deleted = True
    await db.commit()

    logger.log_domain_event("ForumReply", "deleted", reply_id, topic_id=topic_id)
    return ok({})


@router.post("/{forum_id}/topics/{topic_id}/like")
async def toggle_like(
    forum_id: str,
    topic_id: str,
    current_user: User = Depends(require_permission("forum_topic", "like")),
    db: AsyncSession = Depends(get_db)
):
    """Like the topic, or take the like back when already given"""
    forum = await get_forum(db, forum_id)
    topic = await get_topic(db, forum, topic_id)

    existing = next((like for like in topic.likes if str(like.user_id) == str(current_user.id)), None)
    if existing is not None:
        topic.likes.remove(existing)
        liked = False
    else:
        topic.likes.append(ForumTopicLike(user_id=current_user.id))
        liked = True
    await db.commit()

    topic = await get_topic(db, forum, topic_id)
    return ok({"liked": liked, "like_count": topic.like_count})
