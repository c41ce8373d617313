"""
Readiness and liveness checks for the ReportDesk occurrence service
"""

import asyncio
import logging

from botocore.exceptions import BotoCoreError
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.core import get_db
from ..services.storage.attachment_store import AttachmentStore, get_attachment_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db),
    store: AttachmentStore = Depends(get_attachment_store),
):
    """Database and attachment storage must both be reachable"""
    checks = {
        "database": False,
        "attachment_store": False,
    }
    details = {}

    try:
        result = await db.execute(text("SELECT 1"))
        checks["database"] = result.scalar() == 1
        details["database"] = {"connected": checks["database"]}
    except SQLAlchemyError as e:
        logger.warning(f"Readiness: database check failed: {e}")
        details["database"] = {"connected": False, "error": str(e)}

    try:
        store_status = store.check()
        checks["attachment_store"] = bool(store_status.get("available"))
        details["attachment_store"] = store_status
    except (OSError, BotoCoreError) as e:
        logger.warning(f"Readiness: attachment store check failed: {e}")
        details["attachment_store"] = {"available": False, "error": str(e)}

    all_ready = all(checks.values())
    return JSONResponse(
        status_code=200 if all_ready else 503,
        content={
            "ready": all_ready,
            "status": "healthy" if all_ready else "degraded",
            "checks": checks,
            "details": details,
        },
    )


@router.get("/live")
async def liveness_check():
    """Simple liveness check for container orchestration"""
    return {
        "alive": True,
        "service": "reportdesk-api",
        "timestamp": asyncio.get_event_loop().time()
    }
