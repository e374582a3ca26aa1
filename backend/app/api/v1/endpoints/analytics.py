"""
Analytics API
Read-side rollups of attendance, exam results and enrollment, scoped to
what the caller may see. Exports are admin only.
"""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date
from typing import Optional

from app.core.database import get_db
from app.core.logging_config import logger
from app.models.user import User
from app.modules.auth.dependencies import require_permission
from app.schemas.common import ok
from app.services.analytics_service import AnalyticsService, export_to_csv

router = APIRouter()


@router.get("/admin-dashboard")
async def admin_dashboard(
    current_user: User = Depends(require_permission("dashboard", "admin")),
    db: AsyncSession = Depends(get_db)
):
    return ok(await AnalyticsService(db).admin_dashboard())


@router.get("/faculty-dashboard")
async def faculty_dashboard(
    faculty_id: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("dashboard", "faculty")),
    db: AsyncSession = Depends(get_db)
):
    return ok(await AnalyticsService(db).faculty_dashboard(current_user, faculty_id))


@router.get("/student-dashboard")
async def student_dashboard(
    current_user: User = Depends(require_permission("dashboard", "student")),
    db: AsyncSession = Depends(get_db)
):
    return ok(await AnalyticsService(db).student_dashboard(current_user))


@router.get("/attendance")
async def attendance_analytics(
    course_id: Optional[str] = Query(None),
    department_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user: User = Depends(require_permission("analytics", "read")),
    db: AsyncSession = Depends(get_db)
):
    return ok(await AnalyticsService(db).attendance_analytics(
        current_user, course_id, department_id, start_date, end_date
    ))


@router.get("/exams")
async def exam_analytics(
    course_id: Optional[str] = Query(None),
    department_id: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("analytics", "read")),
    db: AsyncSession = Depends(get_db)
):
    return ok(await AnalyticsService(db).exam_analytics(current_user, course_id, department_id))


@router.get("/enrollment")
async def enrollment_analytics(
    current_user: User = Depends(require_permission("analytics", "enrollment")),
    db: AsyncSession = Depends(get_db)
):
    return ok(await AnalyticsService(db).enrollment_analytics())


@router.get("/export")
async def export_data(
    export_type: Optional[str] = Query(None, alias="type", description="students, faculty, courses, attendance or exam-results"),
    export_format: Optional[str] = Query(None, alias="format", description="json (default) or csv"),
    current_user: User = Depends(require_permission("analytics", "export")),
    db: AsyncSession = Depends(get_db)
):
    export = await AnalyticsService(db).export(export_type, export_format)
    logger.log_domain_event("Export", "generated", export_type=export_type, rows=len(export["data"]))

    if export["format"] == "csv":
        return StreamingResponse(
            iter([export_to_csv(export)]),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{export["filename"]}.csv"'},
        )
    return ok(export, count=len(export["data"]))
