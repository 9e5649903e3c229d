"""
The generic fetch → merge → dedupe → reconcile cycle.

Every census entity is an `EntityPipeline` configuration; nothing in this
module knows about a specific table or endpoint.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional, Tuple

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from agrisync.repositories.rows import RowRepository
from agrisync.schemas import CycleMetrics, FetchLoopResult, LoopStatus
from agrisync.services.api_client import OutsourceClient
from agrisync.services.dedupe import dedupe
from agrisync.services.reconciler import Operation, reconcile

log = structlog.get_logger(__name__)

Record = Dict[str, Any]
Sources = Dict[str, List[Record]]


@dataclass(frozen=True)
class EntityPipeline:
    name: str                                                      # snake_case, e.g. "durian_gardens"
    label: str                                                     # human name for messages
    model: type
    key_columns: Tuple[str, ...]
    fetch: Callable[[OutsourceClient], Awaitable[Sources]]
    record_key: Callable[[Record], Hashable]
    to_values: Callable[[AsyncSession, Record], Awaitable[Record]]
    merge: Optional[Callable[[Sources], List[Record]]] = None
    default_target: int = 0
    default_max_attempts: int = 5
    replace_on_refresh: bool = True
    until_settled: bool = False                                    # manual route runs fetch_all

    def combine(self, sources: Sources) -> List[Record]:
        if self.merge is not None:
            return self.merge(sources)
        return [record for rows in sources.values() for record in rows]


def _has_key(key: Hashable) -> bool:
    if isinstance(key, tuple):
        return all(part not in (None, "") for part in key)
    return key not in (None, "")


async def run_cycle(
    db: AsyncSession,
    client: OutsourceClient,
    pipeline: EntityPipeline,
    replace: bool = False,
) -> CycleMetrics:
    """
    One full pass for one entity.

    With ``replace`` the table is emptied only after the fetch returned at
    least one usable record; a failed or empty fetch leaves stored rows alone.
    Fetch errors propagate to the caller.
    """
    repo = RowRepository(db, pipeline.model)
    metrics = CycleMetrics(entity=pipeline.name)
    metrics.total_before = await repo.count()

    sources = await pipeline.fetch(client)
    metrics.sources = {name: len(rows) for name, rows in sources.items()}
    metrics.fetched = sum(metrics.sources.values())

    combined = pipeline.combine(sources)
    keyed = [r for r in combined if _has_key(pipeline.record_key(r))]
    metrics.skipped = len(combined) - len(keyed)
    if metrics.skipped:
        log.warning("cycle.records_without_key", entity=pipeline.name, skipped=metrics.skipped)

    unique = dedupe(keyed, pipeline.record_key)
    metrics.unique = len(unique)
    metrics.duplicated = len(keyed) - len(unique)

    if replace:
        if unique:
            removed = await repo.clear()
            await db.commit()
            metrics.replaced = True
            log.info("cycle.table_replaced", entity=pipeline.name, removed=removed)
        else:
            log.warning("cycle.replace_skipped", entity=pipeline.name, reason="empty fetch")

    for record in unique:
        result = await reconcile(db, pipeline, record)
        if result.operation is Operation.INSERT:
            metrics.inserted += 1
            metrics.new_keys.append(result.key)
        elif result.operation is Operation.UPDATE:
            metrics.updated += 1
            metrics.updated_keys.append(result.key)
        else:
            metrics.errors += 1
            metrics.error_keys.append(result.key)

    metrics.total_after = await repo.count()
    metrics.growth = metrics.total_after - metrics.total_before
    log.info(
        "cycle.complete",
        entity=pipeline.name,
        fetched=metrics.fetched,
        unique=metrics.unique,
        duplicated=metrics.duplicated,
        inserted=metrics.inserted,
        updated=metrics.updated,
        errors=metrics.errors,
        total_before=metrics.total_before,
        total_after=metrics.total_after,
    )
    return metrics


async def fetch_until_target(
    db: AsyncSession,
    client: OutsourceClient,
    pipeline: EntityPipeline,
    target: Optional[int] = None,
    max_attempts: Optional[int] = None,
) -> FetchLoopResult:
    """
    Repeat cycles until the table holds ``target`` rows or attempts run out.

    A cycle always runs, even when the target is already met, so every call
    refreshes stored data at least once.
    """
    target = pipeline.default_target if target is None else target
    max_attempts = max_attempts or pipeline.default_max_attempts
    repo = RowRepository(db, pipeline.model)
    replace_pending = pipeline.replace_on_refresh

    inserted = updated = errors = 0
    achieved = 0
    attempts_used = 0
    status = LoopStatus.INCOMPLETE

    for attempt in range(1, max_attempts + 1):
        attempts_used = attempt
        current = await repo.count()
        if current < target:
            log.info(
                "loop.below_target",
                entity=pipeline.name, attempt=attempt,
                current=current, target=target, missing=target - current,
            )

        cycle = await run_cycle(db, client, pipeline, replace=replace_pending)
        if cycle.replaced:
            replace_pending = False
        inserted += cycle.inserted
        updated += cycle.updated
        errors += cycle.errors

        achieved = await repo.count()
        if achieved >= target:
            status = LoopStatus.SUCCESS
            break

    if status is LoopStatus.SUCCESS:
        message = f"{pipeline.label} fetch completed: {achieved}/{target} records"
    else:
        message = (
            f"{pipeline.label} fetch incomplete after {attempts_used} attempts: "
            f"{achieved}/{target} records"
        )
    log.info(
        "loop.done", entity=pipeline.name, status=status.value,
        achieved=achieved, target=target, attempts=attempts_used,
    )
    return FetchLoopResult(
        message=message,
        target=target,
        achieved=achieved,
        attempts_used=attempts_used,
        max_attempts=max_attempts,
        status=status,
        reached_target=status is LoopStatus.SUCCESS,
        inserted=inserted,
        updated=updated,
        errors=errors,
    )


async def fetch_all(
    db: AsyncSession,
    client: OutsourceClient,
    pipeline: EntityPipeline,
    max_attempts: Optional[int] = None,
) -> FetchLoopResult:
    """Repeat cycles while the previous one still inserted new rows."""
    max_attempts = max_attempts or pipeline.default_max_attempts
    replace_pending = pipeline.replace_on_refresh
    inserted = updated = errors = 0
    attempts_used = 0
    achieved = 0

    for attempt in range(1, max_attempts + 1):
        attempts_used = attempt
        cycle = await run_cycle(db, client, pipeline, replace=replace_pending)
        if cycle.replaced:
            replace_pending = False
        inserted += cycle.inserted
        updated += cycle.updated
        errors += cycle.errors
        achieved = cycle.total_after
        if cycle.inserted == 0:
            break

    return FetchLoopResult(
        message=f"{pipeline.label} fetch completed: {achieved} records",
        target=achieved,
        achieved=achieved,
        attempts_used=attempts_used,
        max_attempts=max_attempts,
        status=LoopStatus.SUCCESS,
        reached_target=True,
        inserted=inserted,
        updated=updated,
        errors=errors,
    )
