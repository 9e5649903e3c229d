"""
Remote record → column values, one mapper per census table.

Every mapper returns a value for every mapped column (None when the remote
omits it) and resolves free-text locations/categories to reference codes.
`created_at` is the remote creation time when the API reports one; the
reconciler falls back to the insertion time.
"""
from __future__ import annotations

from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from agrisync.services.reference import (
    BREEDS, DISTRICTS, DURIAN_STAGES, LAND_TYPES,
    NEWS_GROUPS, PROVINCES, SUBDISTRICTS, ensure_ref_code,
)
from agrisync.services.transform import (
    blank_to_none, to_date, to_datetime, to_float, to_int, to_month, to_text,
)

Record = Dict[str, Any]


async def _locations(db: AsyncSession, r: Record):
    province = await ensure_ref_code(db, PROVINCES, r.get("province"))
    district = await ensure_ref_code(db, DISTRICTS, r.get("amphur"))
    subdistrict = await ensure_ref_code(db, SUBDISTRICTS, r.get("tambon"))
    return province, district, subdistrict


async def map_farmer(db: AsyncSession, r: Record) -> Record:
    province, district, subdistrict = await _locations(db, r)
    return {
        "rec_id": to_text(r.get("recId")),
        "farmer_province_code": province,
        "farmer_district_code": district,
        "farmer_subdistrict_code": subdistrict,
        "farmer_id": to_text(r.get("farmerId")),
        "title": to_text(r.get("title")),
        "first_name": to_text(r.get("firstName")),
        "last_name": to_text(r.get("lastName")),
        "gender": to_text(r.get("gender")),
        "date_of_birth": to_date(r.get("dateOfBirth")),
        "id_card": to_text(r.get("idCard")),
        "id_card_expiry_date": to_date(r.get("idCardExpiryDate")),
        "address": to_text(r.get("addr")),
        "post_code": to_text(r.get("postCode")),
        "email": to_text(r.get("email")),
        "mobile_no": to_text(r.get("mobileNo")),
        "line_id": to_text(r.get("lineId")),
        "farmer_regist_number": to_text(r.get("farmerRegistNumber")),
        "farmer_regist_type": to_text(r.get("farmerRegistType")),
        "company_id": to_text(r.get("companyId")),
        "created_at": to_datetime(r.get("createdTime")),
        "updated_at": to_datetime(r.get("updatedTime")),
    }


async def map_durian_garden(db: AsyncSession, r: Record) -> Record:
    province, district, subdistrict = await _locations(db, r)
    return {
        # Gardens known only from the GeoJSON feed have no recId.
        "rec_id": to_text(r.get("recId")) or to_text(r.get("landId")),
        "farmer_id": to_text(r.get("farmerId")),
        "land_id": to_text(r.get("landId")),
        "province_code": province,
        "district_code": district,
        "subdistrict_code": subdistrict,
        "land_type_code": await ensure_ref_code(db, LAND_TYPES, r.get("landType")),
        "lat": to_float(r.get("lat")),
        "lon": to_float(r.get("lon")),
        "no_of_rais": to_float(r.get("noOfRais")),
        "no_of_ngan": to_float(r.get("noOfNgan")),
        "no_of_wah": to_float(r.get("noOfWah")),
        "kml": to_text(r.get("kml")),
        "geojson": blank_to_none(r.get("geojson")),
        "company_id": to_text(r.get("companyId")),
        "created_at": to_datetime(r.get("createdTime")),
        "updated_at": to_datetime(r.get("updatedTime")),
    }


async def map_crop(db: AsyncSession, r: Record) -> Record:
    return {
        "crop_id": to_text(r.get("cropId")),
        "rec_id": to_text(r.get("recId")),
        "farmer_id": to_text(r.get("farmerId")),
        "land_id": to_text(r.get("landId")),
        "crop_year": to_int(r.get("cropYear")),
        "crop_name": to_text(r.get("cropName")),
        "breed_id": await ensure_ref_code(db, BREEDS, r.get("breedName")),
        "crop_start_date": to_date(r.get("cropStartDate")),
        "crop_end_date": to_date(r.get("cropEndDate")),
        "total_trees": to_int(r.get("totalTrees")),
        "forecast_kg": to_float(r.get("forecastKg")),
        "forecast_baht": to_float(r.get("forecastBaht")),
        "forecast_worker_cost": to_float(r.get("forecastWorkerCost")),
        "forecast_fertilizer_cost": to_float(r.get("forecastFertilizerCost")),
        "forecast_equipment_cost": to_float(r.get("forecastEquipmentCost")),
        "forecast_petrol_cost": to_float(r.get("forecastPetrolCost")),
        "durian_stage_id": await ensure_ref_code(db, DURIAN_STAGES, r.get("durianStageName")),
        "lot_number": to_text(r.get("lotNumber")),
        "created_at": to_datetime(r.get("createdTime")),
        "updated_at": to_datetime(r.get("updatedTime")),
    }


async def map_community(db: AsyncSession, r: Record) -> Record:
    province, district, subdistrict = await _locations(db, r)
    return {
        "rec_id": to_text(r.get("recId")),
        "community_province_code": province,
        "community_district_code": district,
        "community_subdistrict_code": subdistrict,
        "post_code": to_text(r.get("postCode")),
        "comm_id": to_text(r.get("commId")),
        "comm_name": to_text(r.get("commName")),
        "total_members": to_int(r.get("totalMembers")),
        "no_of_rais": to_float(r.get("noOfRais")),
        "no_of_trees": to_int(r.get("noOfTrees")),
        "forecast_yield": to_float(r.get("forecastYield")),
        "created_at": to_datetime(r.get("createdTime")),
        "updated_at": to_datetime(r.get("updatedTime")),
    }


async def map_merchant(db: AsyncSession, r: Record) -> Record:
    province, district, subdistrict = await _locations(db, r)
    return {
        "rec_id": to_text(r.get("recId")),
        "merchant_province_code": province,
        "merchant_district_code": district,
        "merchant_subdistrict_code": subdistrict,
        "post_code": to_text(r.get("postCode")),
        "merchant_id": to_text(r.get("merchantId")),
        "merchant_name": to_text(r.get("merchantName")),
        "address": to_text(r.get("addr")),
        "created_at": to_datetime(r.get("createdTime")),
        "updated_at": to_datetime(r.get("updatedTime")),
    }


async def map_operation(db: AsyncSession, r: Record) -> Record:
    return {
        "rec_id": to_text(r.get("recId")),
        "crop_year": to_int(r.get("cropYear")),
        "oper_id": to_text(r.get("operId")),
        "crop_id": to_text(r.get("cropId")),
        "oper_type": to_text(r.get("operType")),
        "oper_date": to_date(r.get("operDate")),
        "no_of_workers": to_int(r.get("noOfWorkers")),
        "worker_cost": to_float(r.get("workerCost")),
        "fertilizer_cost": to_float(r.get("fertilizerCost")),
        "equipment_cost": to_float(r.get("equipmentCost")),
        "company_id": to_text(r.get("companyId")),
        "created_at": to_datetime(r.get("createdTime")),
        "updated_at": to_datetime(r.get("updatedTime")),
    }


async def map_substance(db: AsyncSession, r: Record) -> Record:
    return {
        "crop_year": to_int(r.get("cropYear")),
        "province_code": await ensure_ref_code(db, PROVINCES, r.get("provinceName")),
        "oper_month": to_month(r.get("operMonth")),
        "substance": to_text(r.get("substance")),
        "total_records": to_int(r.get("totalRecords")) or 0,
    }


async def map_water(db: AsyncSession, r: Record) -> Record:
    return {
        "crop_year": to_int(r.get("cropYear")),
        "province_code": await ensure_ref_code(db, PROVINCES, r.get("provinceName")),
        "oper_month": to_month(r.get("operMonth")),
        "total_litre": to_float(r.get("totalLitre")) or 0.0,
    }


async def map_news(db: AsyncSession, r: Record) -> Record:
    return {
        "rec_id": to_text(r.get("recId")),
        "province_code": await ensure_ref_code(db, PROVINCES, r.get("province")),
        "news_id": to_text(r.get("newsId")),
        "announce_date": to_date(r.get("announceDate")),
        "news_group_id": await ensure_ref_code(db, NEWS_GROUPS, r.get("newsGroup")),
        "news_topic": to_text(r.get("newsTopic") or r.get("newsTitle")),
        "news_detail": to_text(r.get("newsDetail") or r.get("newsContent")),
        "no_of_like": to_int(r.get("noOfLike")) or 0,
        "no_of_comments": to_int(r.get("noOfComments")) or 0,
        "company_id": to_text(r.get("companyId")),
        "created_at": to_datetime(r.get("createdTime") or r.get("createdAt")),
        "updated_at": to_datetime(r.get("updatedTime") or r.get("updatedAt")),
    }


async def map_gap(db: AsyncSession, r: Record) -> Record:
    return {
        "gap_cert_number": to_text(r.get("gapCertNumber")),
        "gap_cert_type": to_text(r.get("gapCertType")),
        "gap_issued_date": to_date(r.get("gapIssuedDate")),
        "gap_expiry_date": to_date(r.get("gapExpiryDate")),
        "farmer_id": to_text(r.get("farmerId")),
        "land_id": to_text(r.get("landId")),
        "crop_id": to_text(r.get("cropId")),
    }


async def map_price(db: AsyncSession, r: Record) -> Record:
    return {
        "app_price_id": to_text(r.get("appPriceId")),
        "province_code": await ensure_ref_code(db, PROVINCES, r.get("province")),
        "region_code": to_text(r.get("regionCode") or r.get("region_code")),
        "breed_id": await ensure_ref_code(db, BREEDS, r.get("breedName")),
        "price_date": to_date(r.get("priceDate")),
        "avg_price": to_float(r.get("avgPrice")),
        "data_source": to_text(r.get("dataSource")),
    }
