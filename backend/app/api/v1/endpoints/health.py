"""
Health Check Endpoints

- /health       - Basic status for load balancers
- /health/live  - Liveness (process is up)
- /health/ready - Readiness (database reachable, upload dir writable)
"""

from fastapi import APIRouter, HTTPException, status
from typing import Dict, Any
import os
import time

from sqlalchemy import text

from app.core.config import settings
from app.core.database import get_session_local
from app.core.logging_config import logger
from app.core.types import utcnow
from app.services.email_service import email_service


router = APIRouter(prefix="/health", tags=["Health Checks"])


async def check_database() -> Dict[str, Any]:
    """Round trip to the database plus a read of the users table"""
    start = time.time()
    try:
        async with get_session_local()() as session:
            await session.execute(text("SELECT 1"))
            await session.execute(text("SELECT COUNT(*) FROM users"))
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
        }
    except Exception as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "error": str(e),
        }


def check_storage() -> Dict[str, Any]:
    upload_dir = settings.UPLOAD_DIR
    if upload_dir.exists() and os.access(upload_dir, os.W_OK):
        return {"status": "healthy", "path": str(upload_dir)}
    return {"status": "unhealthy", "path": str(upload_dir), "message": "Upload directory is not writable"}


def check_email() -> Dict[str, Any]:
    # Email is optional: an unconfigured SMTP host only disables sending
    if email_service.is_configured:
        return {"status": "healthy", "host": settings.SMTP_HOST}
    return {"status": "degraded", "message": "SMTP not configured, emails are skipped"}


@router.get("")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": utcnow().isoformat(),
    }


@router.get("/live")
async def liveness_check():
    return {"status": "alive", "timestamp": utcnow().isoformat()}


@router.get("/ready")
async def readiness_check():
    """503 unless the database answers"""
    db_check = await check_database()
    response = {
        "status": "ready" if db_check["status"] == "healthy" else "not_ready",
        "timestamp": utcnow().isoformat(),
        "checks": {
            "database": db_check,
            "storage": check_storage(),
            "email": check_email(),
        },
    }

    if db_check["status"] != "healthy":
        logger.warning(f"[HealthCheck] Readiness check failed: {response}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=response)
    return response
