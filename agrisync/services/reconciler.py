from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Hashable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from agrisync.repositories.rows import RowRepository

if TYPE_CHECKING:
    from agrisync.services.pipeline import EntityPipeline

log = structlog.get_logger(__name__)


class Operation(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    ERROR = "ERROR"


@dataclass
class ReconcileResult:
    operation: Operation
    key: str
    error: Optional[str] = None


def format_key(key: Hashable) -> str:
    if isinstance(key, tuple):
        return "|".join("" if part is None else str(part) for part in key)
    return "" if key is None else str(key)


async def reconcile(
    db: AsyncSession,
    pipeline: "EntityPipeline",
    record: Dict[str, Any],
) -> ReconcileResult:
    """
    Insert or update one remote record, addressed by the table's natural key.

    Each record is committed on its own. Failures roll back that record only
    and come back as an ERROR result so the batch keeps going.
    """
    key_label = format_key(pipeline.record_key(record))
    try:
        values = await pipeline.to_values(db, record)
        key = {column: values[column] for column in pipeline.key_columns}
        repo = RowRepository(db, pipeline.model)
        now = datetime.now(timezone.utc)
        values["fetch_at"] = now

        if await repo.find_id(key) is not None:
            # Keep the stored creation time unless the remote reports one.
            if values.get("created_at") is None:
                values.pop("created_at", None)
            await repo.update(key, values)
            operation = Operation.UPDATE
        else:
            if values.get("created_at") is None:
                values["created_at"] = now
            await repo.insert(values)
            operation = Operation.INSERT

        await db.commit()
        return ReconcileResult(operation, key_label)
    except Exception as exc:
        await db.rollback()
        log.error("reconcile.failed", entity=pipeline.name, key=key_label, error=str(exc))
        return ReconcileResult(Operation.ERROR, key_label, str(exc))
