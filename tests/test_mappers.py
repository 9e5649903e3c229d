from datetime import date

import pytest

from agrisync.services import mappers
from agrisync.services.transform import to_date, to_int, to_month


FARMER = {
    "recId": 101,
    "province": "Chanthaburi",
    "amphur": "Mueang",
    "tambon": "Talat",
    "farmerId": "F-1",
    "firstName": "Somchai",
    "lastName": "Jaidee",
    "dateOfBirth": "1980-05-17",
    "idCardExpiryDate": "",
    "addr": "12 Moo 3",
    "mobileNo": "0812345678",
    "createdTime": "2024-02-01T08:30:00",
}


@pytest.mark.asyncio
async def test_farmer_mapping_resolves_locations(db):
    values = await mappers.map_farmer(db, FARMER)

    assert values["rec_id"] == "101"
    assert values["farmer_province_code"] == "GPROV001"
    assert values["farmer_district_code"] == "GDIST001"
    assert values["farmer_subdistrict_code"] == "GSUBDIST001"
    assert values["date_of_birth"] == date(1980, 5, 17)
    assert values["id_card_expiry_date"] is None
    assert values["email"] is None
    assert values["address"] == "12 Moo 3"


@pytest.mark.asyncio
async def test_durian_garden_falls_back_to_land_id(db):
    values = await mappers.map_durian_garden(db, {
        "recId": None, "landId": "L-9", "landType": "Orchard",
        "geojson": {"type": "Polygon"}, "lat": "12.6",
    })
    assert values["rec_id"] == "L-9"
    assert values["land_type_code"] == "GLAND001"
    assert values["geojson"] == {"type": "Polygon"}
    assert values["lat"] == 12.6


@pytest.mark.asyncio
async def test_crop_mapping_uses_breed_and_stage_codes(db):
    values = await mappers.map_crop(db, {
        "cropId": 7, "breedName": "Monthong", "durianStageName": "Flowering",
        "lotNumber": "LOT-1", "cropYear": "2024", "totalTrees": "120",
    })
    assert values["crop_id"] == "7"
    assert values["breed_id"] == "GBREED001"
    assert values["durian_stage_id"] == "GSTAGE001"
    assert values["lot_number"] == "LOT-1"
    assert values["crop_year"] == 2024
    assert values["total_trees"] == 120


@pytest.mark.asyncio
async def test_substance_mapping_normalises_month(db):
    values = await mappers.map_substance(db, {
        "cropYear": 2024, "provinceName": "Rayong", "operMonth": "2024-03",
        "substance": "Urea", "totalRecords": "4",
    })
    assert values == {
        "crop_year": 2024,
        "province_code": "GPROV001",
        "oper_month": date(2024, 3, 1),
        "substance": "Urea",
        "total_records": 4,
    }


@pytest.mark.asyncio
async def test_news_mapping_accepts_alternate_field_names(db):
    values = await mappers.map_news(db, {
        "recId": "N1", "newsTitle": "Price update", "newsContent": "Body",
        "newsGroup": "Market",
    })
    assert values["news_topic"] == "Price update"
    assert values["news_detail"] == "Body"
    assert values["news_group_id"] == "NG001"
    assert values["no_of_like"] == 0


def test_transform_helpers():
    assert to_int("") is None
    assert to_int("12.0") == 12
    assert to_int("abc") is None
    assert to_date("") is None
    assert to_date("2024-01-31T10:00:00Z") == date(2024, 1, 31)
    assert to_month("2024-11-15") == date(2024, 11, 1)
    with pytest.raises(ValueError):
        to_date("not a date")
