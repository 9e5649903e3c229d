from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from agrisync.models import (
    RefBreed, RefDistrict, RefDurianStage, RefLandType,
    RefNewsGroup, RefProvince, RefSubdistrict,
)
from agrisync.services.transform import to_text

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RefTable:
    model: type
    code_column: str
    name_column: str
    prefix: str
    width: int = 3

    @property
    def code(self):
        return getattr(self.model, self.code_column)

    @property
    def name(self):
        return getattr(self.model, self.name_column)


PROVINCES = RefTable(RefProvince, "province_code", "province_name_th", "GPROV")
DISTRICTS = RefTable(RefDistrict, "district_code", "district_name_th", "GDIST")
SUBDISTRICTS = RefTable(RefSubdistrict, "subdistrict_code", "subdistrict_name_th", "GSUBDIST")
LAND_TYPES = RefTable(RefLandType, "land_type_code", "land_type_name", "GLAND")
BREEDS = RefTable(RefBreed, "breed_id", "breed_name", "GBREED")
DURIAN_STAGES = RefTable(RefDurianStage, "stage_id", "stage_name_th", "GSTAGE")
NEWS_GROUPS = RefTable(RefNewsGroup, "news_group_id", "news_group_name", "NG")


async def next_code(db: AsyncSession, table: RefTable) -> str:
    """Highest numeric suffix under the table prefix, plus one."""
    rows = await db.execute(select(table.code).where(table.code.like(f"{table.prefix}%")))
    highest = 0
    for (code,) in rows.all():
        suffix = code[len(table.prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{table.prefix}{highest + 1:0{table.width}d}"


async def ensure_ref_code(db: AsyncSession, table: RefTable, name) -> Optional[str]:
    """
    Return the code for ``name``, creating a 'generated' reference row when
    the name is new. Blank names have no code.

    Read-then-write: safe only while reconciliation is sequential.
    """
    name = to_text(name)
    if name is None:
        return None

    existing = await db.execute(select(table.code).where(table.name == name).limit(1))
    code = existing.scalar_one_or_none()
    if code is not None:
        return code

    code = await next_code(db, table)
    await db.execute(
        insert(table.model).values(
            {table.code_column: code, table.name_column: name, "source": "generated"}
        )
    )
    log.info("reference.created", table=table.model.__tablename__, code=code, name=name)
    return code
