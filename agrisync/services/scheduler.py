from __future__ import annotations

import asyncio
import contextlib
import enum
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Sequence

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker

from agrisync.config import settings
from agrisync.exceptions import SchedulerBusyError
from agrisync.schemas import FetchLoopResult, RunSummary, StepResult
from agrisync.services.api_client import OutsourceClient
from agrisync.services.entities import SYNC_ORDER, get_pipeline
from agrisync.services.pipeline import fetch_all

log = structlog.get_logger(__name__)
_scheduler: AsyncIOScheduler | None = None


class RunState(str, enum.Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"


@dataclass(frozen=True)
class SyncStep:
    name: str
    run: Callable[[], Awaitable[Optional[FetchLoopResult]]]


class SchedulerGate:
    """
    Single-flight runner for the full entity sequence.

    A run requested while another is in flight is skipped, never queued.
    Steps run one after another; a failing step is recorded and the next one
    still runs. ``cancel()`` aborts the in-flight run.
    """

    def __init__(self, steps: Sequence[SyncStep]):
        self.steps = list(steps)
        self.state = RunState.IDLE
        self.running_since: Optional[datetime] = None
        self.current_step: Optional[str] = None
        self.last_run: Optional[RunSummary] = None
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._background: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self.state is RunState.RUNNING

    async def run(self, triggered_by: str = "manual") -> Optional[RunSummary]:
        async with self._lock:
            if self.state is RunState.RUNNING:
                log.info("scheduler.run.skipped", triggered_by=triggered_by, reason="already running")
                return None
            self.state = RunState.RUNNING
            self.running_since = datetime.now(timezone.utc)

        summary = RunSummary(triggered_by=triggered_by, started_at=self.running_since)
        self._task = asyncio.current_task()
        t0 = time.monotonic()
        log.info("scheduler.run.started", triggered_by=triggered_by, steps=len(self.steps))
        try:
            for step in self.steps:
                summary.steps.append(await self._run_step(step))
        except asyncio.CancelledError:
            summary.cancelled = True
            log.warning("scheduler.run.cancelled", step=self.current_step)
            raise
        finally:
            summary.finished_at = datetime.now(timezone.utc)
            summary.duration_ms = int((time.monotonic() - t0) * 1000)
            self.last_run = summary
            self.state = RunState.IDLE
            self.running_since = None
            self.current_step = None
            self._task = None
            log.info(
                "scheduler.run.finished",
                succeeded=summary.succeeded,
                failed=summary.failed,
                duration_ms=summary.duration_ms,
            )
        return summary

    async def _run_step(self, step: SyncStep) -> StepResult:
        self.current_step = step.name
        t0 = time.monotonic()
        try:
            result = await step.run()
        except Exception as exc:
            ms = int((time.monotonic() - t0) * 1000)
            log.error("scheduler.step.failed", step=step.name, duration_ms=ms, error=str(exc))
            return StepResult(name=step.name, success=False, duration_ms=ms, error=str(exc))
        ms = int((time.monotonic() - t0) * 1000)
        log.info("scheduler.step.done", step=step.name, duration_ms=ms)
        return StepResult(
            name=step.name,
            success=True,
            duration_ms=ms,
            achieved=result.achieved if result is not None else None,
        )

    @contextlib.asynccontextmanager
    async def hold(self, name: str):
        """
        Occupy the gate for one manual entity fetch.

        Raises SchedulerBusyError while a run (or another hold) is active.
        Scheduled runs that fire meanwhile are skipped.
        """
        async with self._lock:
            pending = self._background is not None and not self._background.done()
            if self.is_running or pending:
                log.info("scheduler.hold.rejected", step=name, current=self.current_step)
                raise SchedulerBusyError("A sync run is already in progress")
            self.state = RunState.RUNNING
            self.running_since = datetime.now(timezone.utc)
            self.current_step = name
        try:
            yield
        finally:
            self.state = RunState.IDLE
            self.running_since = None
            self.current_step = None

    def start(self, triggered_by: str = "manual") -> bool:
        """Launch a run in the background. Returns False when one is already in flight."""
        pending = self._background is not None and not self._background.done()
        if self.is_running or pending:
            log.info("scheduler.run.skipped", triggered_by=triggered_by, reason="already running")
            return False
        self._background = asyncio.create_task(_run_gate(self, triggered_by))
        return True

    def cancel(self) -> bool:
        """Cancel the in-flight run. Returns False when nothing was running."""
        task = self._task or self._background
        if task is None or task.done():
            return False
        task.cancel()
        return True


def build_steps(session_factory: async_sessionmaker, client: OutsourceClient) -> List[SyncStep]:
    def make(name: str) -> SyncStep:
        pipeline = get_pipeline(name)

        async def run() -> FetchLoopResult:
            async with session_factory() as db:
                return await fetch_all(db, client, pipeline)

        return SyncStep(name=pipeline.label, run=run)

    return [make(name) for name in SYNC_ORDER]


async def _run_gate(gate: SchedulerGate, triggered_by: str) -> None:
    try:
        await gate.run(triggered_by=triggered_by)
    except asyncio.CancelledError:
        log.info("scheduler.run.aborted")


def start_scheduler(gate: SchedulerGate) -> None:
    global _scheduler
    if not settings.SCHEDULER_ENABLED:
        log.info("scheduler.disabled")
        return

    _scheduler = AsyncIOScheduler(timezone=settings.SCHEDULER_TIMEZONE)
    _scheduler.add_job(
        _run_gate,
        trigger=IntervalTrigger(minutes=settings.SYNC_INTERVAL_MINUTES),
        args=[gate, "scheduler"],
        id="census_sync",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.start()
    log.info("scheduler.started", interval_minutes=settings.SYNC_INTERVAL_MINUTES)


def stop_scheduler() -> None:
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        log.info("scheduler.stopped")
    _scheduler = None


def scheduler_running() -> bool:
    return bool(_scheduler and _scheduler.running)
