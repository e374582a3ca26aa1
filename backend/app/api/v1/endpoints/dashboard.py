"""
Dashboard API
Role dashboards: organisation-wide for admins, per-course for faculty,
personal for students.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.database import get_db
from app.models.user import User
from app.modules.auth.dependencies import require_permission
from app.schemas.common import ok
from app.services.analytics_service import AnalyticsService

router = APIRouter()


@router.get("/admin")
async def admin_dashboard(
    current_user: User = Depends(require_permission("dashboard", "admin")),
    db: AsyncSession = Depends(get_db)
):
    return ok(await AnalyticsService(db).admin_dashboard())


@router.get("/stats")
async def system_stats(
    current_user: User = Depends(require_permission("dashboard", "admin")),
    db: AsyncSession = Depends(get_db)
):
    """User totals, role split and monthly registrations"""
    return ok(await AnalyticsService(db).system_stats())


@router.get("/faculty")
async def faculty_dashboard(
    faculty_id: Optional[str] = Query(None, description="Admins may view any faculty member"),
    current_user: User = Depends(require_permission("dashboard", "faculty")),
    db: AsyncSession = Depends(get_db)
):
    return ok(await AnalyticsService(db).faculty_dashboard(current_user, faculty_id))


@router.get("/student")
async def student_dashboard(
    current_user: User = Depends(require_permission("dashboard", "student")),
    db: AsyncSession = Depends(get_db)
):
    return ok(await AnalyticsService(db).student_dashboard(current_user))
