"""
Pagination Utility Module

Standard page / page_size handling for list endpoints.
"""
from typing import Any, Callable, List, Optional
from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

MAX_PAGE_SIZE = 100


class PaginationParams(BaseModel):
    """Standard pagination parameters"""
    page: int = 1
    page_size: int = 25

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


def pagination_params(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(25, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
) -> PaginationParams:
    """FastAPI dependency for ?page=&page_size="""
    return PaginationParams(page=page, page_size=page_size)


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    page_size: int = 25,
    count_query: Optional[Select] = None
) -> dict:
    """
    Apply pagination to a SQLAlchemy query.

    Args:
        db: Database session
        query: Base SQLAlchemy query (ordering and loader options included)
        page: Page number (1-indexed)
        page_size: Items per page, capped at MAX_PAGE_SIZE
        count_query: Optional custom count query

    Returns:
        Dictionary with items, total, page, page_size, pages
    """
    page = max(1, page)
    page_size = max(1, min(MAX_PAGE_SIZE, page_size))

    if count_query is None:
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0
    pages = (total + page_size - 1) // page_size if total > 0 else 1

    result = await db.execute(query.offset((page - 1) * page_size).limit(page_size))
    items = result.scalars().unique().all()

    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "pages": pages,
    }


def paginated_response(page_data: dict, serialize: Callable[[Any], Any]) -> dict:
    """Success envelope for a paginate() result"""
    data: List[Any] = [serialize(item) for item in page_data["items"]]
    return {
        "success": True,
        "count": len(data),
        "total": page_data["total"],
        "page": page_data["page"],
        "page_size": page_data["page_size"],
        "pages": page_data["pages"],
        "data": data,
    }
