import pytest
from sqlalchemy import func, insert, select

from agrisync.models import RefNewsGroup, RefProvince
from agrisync.services.reference import NEWS_GROUPS, PROVINCES, ensure_ref_code, next_code


@pytest.mark.asyncio
async def test_ensure_or_create_is_stable(db):
    first = await ensure_ref_code(db, PROVINCES, "Chanthaburi")
    second = await ensure_ref_code(db, PROVINCES, "Chanthaburi")
    await db.commit()

    assert first == second == "GPROV001"
    count = (await db.execute(select(func.count(RefProvince.id)))).scalar_one()
    assert count == 1
    row = (await db.execute(select(RefProvince))).scalar_one()
    assert row.source == "generated"


@pytest.mark.asyncio
async def test_blank_name_has_no_code(db):
    assert await ensure_ref_code(db, PROVINCES, "") is None
    assert await ensure_ref_code(db, PROVINCES, "   ") is None
    assert await ensure_ref_code(db, PROVINCES, None) is None


@pytest.mark.asyncio
async def test_existing_seed_row_is_reused(db):
    await db.execute(insert(RefProvince).values(
        province_code="22", province_name_th="Rayong", source="seed",
    ))
    assert await ensure_ref_code(db, PROVINCES, "Rayong") == "22"


@pytest.mark.asyncio
async def test_next_code_follows_highest_suffix(db):
    await db.execute(insert(RefNewsGroup).values([
        {"news_group_id": "NG007", "news_group_name": "Market", "source": "generated"},
        {"news_group_id": "NG002", "news_group_name": "Weather", "source": "generated"},
        {"news_group_id": "NGX", "news_group_name": "Legacy", "source": "seed"},
    ]))
    assert await next_code(db, NEWS_GROUPS) == "NG008"
    assert await ensure_ref_code(db, NEWS_GROUPS, "Disease") == "NG008"
