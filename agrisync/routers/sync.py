from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agrisync.auth import TokenManager
from agrisync.config import settings
from agrisync.database import get_db
from agrisync.dependencies import get_gate, get_outsource_client, get_token_manager
from agrisync.exceptions import SchedulerBusyError, SyncError
from agrisync.schemas import (
    CronStatus, CronTriggerResponse, FetchLoopResult, FetchRequest, TokenStatus,
)
from agrisync.services.api_client import OutsourceClient
from agrisync.services.entities import PIPELINES
from agrisync.services.pipeline import EntityPipeline, fetch_all, fetch_until_target
from agrisync.services.scheduler import SchedulerGate, scheduler_running

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["sync"])


def route_name(pipeline: EntityPipeline) -> str:
    """durian_gardens → fetchDurianGardens"""
    return "fetch" + "".join(part.capitalize() for part in pipeline.name.split("_"))


def _fetch_endpoint(pipeline: EntityPipeline):
    async def endpoint(
        body: Optional[FetchRequest] = None,
        db: AsyncSession = Depends(get_db),
        client: OutsourceClient = Depends(get_outsource_client),
        gate: SchedulerGate = Depends(get_gate),
    ) -> FetchLoopResult:
        body = body or FetchRequest()
        async with gate.hold(pipeline.label):
            try:
                if pipeline.until_settled and body.target_count is None:
                    return await fetch_all(
                        db, client, pipeline, max_attempts=body.max_attempts,
                    )
                return await fetch_until_target(
                    db, client, pipeline,
                    target=body.target_count,
                    max_attempts=body.max_attempts,
                )
            except Exception as exc:
                log.error("sync.route.failed", entity=pipeline.name, error=str(exc))
                raise SyncError(
                    f"Failed to fetch {pipeline.label.lower()}", {"details": str(exc)}
                ) from exc

    if pipeline.until_settled:
        endpoint.__doc__ = f"Fetch {pipeline.label.lower()} until a cycle inserts nothing new."
    else:
        endpoint.__doc__ = f"Fetch {pipeline.label.lower()} until the target row count is reached."
    return endpoint


for _pipeline in PIPELINES.values():
    router.add_api_route(
        f"/{route_name(_pipeline)}",
        _fetch_endpoint(_pipeline),
        methods=["POST"],
        response_model=FetchLoopResult,
        name=route_name(_pipeline),
    )


# ── Full-run control ──────────────────────────────────────────────────────────

@router.post("/cron/trigger", response_model=CronTriggerResponse, status_code=202)
async def trigger_run(gate: SchedulerGate = Depends(get_gate)):
    """Start a full sync in the background. 409 while one is in flight."""
    if not gate.start(triggered_by="manual"):
        raise SchedulerBusyError("A sync run is already in progress")
    return CronTriggerResponse(
        message="Sync run started", triggered_at=datetime.now(timezone.utc)
    )


@router.get("/cron/status", response_model=CronStatus)
async def run_status(gate: SchedulerGate = Depends(get_gate)):
    return CronStatus(
        state=gate.state.value,
        running_since=gate.running_since,
        current_step=gate.current_step,
        last_run=gate.last_run,
        scheduler_enabled=settings.SCHEDULER_ENABLED and scheduler_running(),
        interval_minutes=settings.SYNC_INTERVAL_MINUTES,
    )


@router.post("/cron/cancel")
async def cancel_run(gate: SchedulerGate = Depends(get_gate)):
    cancelled = gate.cancel()
    log.info("sync.cancel.requested", cancelled=cancelled)
    return {
        "message": "Sync run cancelled" if cancelled else "No sync run in progress",
        "cancelled": cancelled,
    }


def _token_status(tokens: TokenManager) -> TokenStatus:
    expires_at = (
        datetime.fromtimestamp(tokens.expires_at, tz=timezone.utc) if tokens.expires_at else None
    )
    return TokenStatus(valid=tokens.is_token_valid(), expires_at=expires_at)


@router.get("/token/status", response_model=TokenStatus)
async def token_status(tokens: TokenManager = Depends(get_token_manager)):
    return _token_status(tokens)


@router.post("/token/refresh", response_model=TokenStatus)
async def refresh_token(tokens: TokenManager = Depends(get_token_manager)):
    """Force a new login. Login failures surface as 502."""
    await tokens.refresh_token()
    log.info("token.refresh.forced")
    return _token_status(tokens)
