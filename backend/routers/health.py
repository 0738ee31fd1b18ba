import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from db.database import get_async_session

logger = logging.getLogger(__name__)

router = APIRouter()

STARTED_AT = time.monotonic()


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "service": settings.service_name,
        "uptimeSeconds": round(time.monotonic() - STARTED_AT, 2),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def ready(db: AsyncSession = Depends(get_async_session)):
    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.warning("Readiness check failed: %r", e)
        db_connected = False

    if not db_connected:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "service": settings.service_name, "dbConnected": False},
        )
    return {"status": "ready", "service": settings.service_name, "dbConnected": True}
