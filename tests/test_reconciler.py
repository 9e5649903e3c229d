import pytest
from sqlalchemy import select

from agrisync.models import Farmer, SubstanceUsage
from agrisync.services.entities import get_pipeline
from agrisync.services.reconciler import Operation, format_key, reconcile


@pytest.mark.asyncio
async def test_insert_then_update(db):
    farmers = get_pipeline("farmers")
    first = {"recId": "R1", "firstName": "Somchai", "mobileNo": "081"}
    second = {"recId": "R1", "firstName": "Somsak", "mobileNo": "089"}

    r1 = await reconcile(db, farmers, first)
    r2 = await reconcile(db, farmers, second)

    assert (r1.operation, r2.operation) == (Operation.INSERT, Operation.UPDATE)
    assert r1.key == r2.key == "R1"

    rows = (await db.execute(select(Farmer))).scalars().all()
    assert len(rows) == 1
    assert rows[0].first_name == "Somsak"
    assert rows[0].mobile_no == "089"
    assert rows[0].fetch_at is not None
    assert rows[0].created_at is not None


@pytest.mark.asyncio
async def test_composite_key_update(db):
    substance = get_pipeline("substance")
    record = {
        "cropYear": 2024, "provinceName": "Rayong",
        "operMonth": "2024-03", "substance": "Urea", "totalRecords": 4,
    }

    assert (await reconcile(db, substance, record)).operation is Operation.INSERT
    assert (await reconcile(db, substance, {**record, "totalRecords": 9})).operation is Operation.UPDATE
    assert (await reconcile(db, substance, {**record, "substance": "Potash"})).operation is Operation.INSERT

    rows = (await db.execute(select(SubstanceUsage).order_by(SubstanceUsage.id))).scalars().all()
    assert [(r.substance, r.total_records) for r in rows] == [("Urea", 9), ("Potash", 4)]


@pytest.mark.asyncio
async def test_bad_record_reports_error_and_keeps_going(db):
    farmers = get_pipeline("farmers")

    bad = await reconcile(db, farmers, {"recId": "R2", "dateOfBirth": "31/31/2024"})
    good = await reconcile(db, farmers, {"recId": "R3"})

    assert bad.operation is Operation.ERROR
    assert bad.key == "R2"
    assert bad.error
    assert good.operation is Operation.INSERT


def test_format_key():
    assert format_key(("2024", "Rayong", None)) == "2024|Rayong|"
    assert format_key("R1") == "R1"
