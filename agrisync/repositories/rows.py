from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession


class RowRepository:
    """Natural-key addressed access to one census table."""

    def __init__(self, db: AsyncSession, model: type):
        self.db = db
        self.model = model

    def _key_clause(self, key: Mapping[str, Any]):
        # `column == None` renders IS NULL, so nullable key parts still match.
        return [getattr(self.model, column) == value for column, value in key.items()]

    async def count(self) -> int:
        return (await self.db.execute(select(func.count(self.model.id)))).scalar_one()

    async def find_id(self, key: Mapping[str, Any]) -> Optional[int]:
        row = await self.db.execute(
            select(self.model.id).where(*self._key_clause(key)).limit(1)
        )
        return row.scalar_one_or_none()

    async def insert(self, values: Dict[str, Any]) -> None:
        await self.db.execute(insert(self.model).values(**values))

    async def update(self, key: Mapping[str, Any], values: Dict[str, Any]) -> None:
        changes = {k: v for k, v in values.items() if k not in key}
        await self.db.execute(
            update(self.model).where(*self._key_clause(key)).values(**changes)
        )

    async def clear(self) -> int:
        """Delete every row. Portable stand-in for TRUNCATE."""
        result = await self.db.execute(delete(self.model))
        return result.rowcount or 0
