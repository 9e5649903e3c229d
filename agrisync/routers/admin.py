from __future__ import annotations
from fastapi import APIRouter
import sqlalchemy

from agrisync.schemas import HealthResponse
from agrisync.services.scheduler import scheduler_running
from agrisync.config import settings
from agrisync.database import engine

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse)
async def health():
    """Health check is intentionally unauthenticated for load balancer probes."""
    try:
        async with engine.connect() as conn:
            await conn.execute(sqlalchemy.text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "error"

    return HealthResponse(
        status="ok" if db_status == "ok" else "degraded",
        database=db_status,
        scheduler="running" if scheduler_running() else "stopped",
        version=settings.APP_VERSION,
    )
