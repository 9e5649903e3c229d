"""
Per-entity configuration of the generic pipeline.

Upstream paging conventions differ between report endpoints and are kept
as the API behaves:

    farmers, merchants     computed page count, every page requested
    durian gardens         computed page count, stop on an empty page;
                           GeoJSON comes from one unpaged call
    crops                  per crop year until an empty page, merged with
                           harvest lot numbers by cropId
    communities, news      stop on a short page
    operations             per crop year, computed pages, stop on empty
    substance, water       one unpaged call per crop year
    gap                    per crop year crops, stop on a short page,
                           only records carrying a certificate number
    avg_price              one unpaged call over the configured date range
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from agrisync.config import settings
from agrisync.models import (
    Community, Crop, DurianGarden, Farmer, GapCertificate,
    Merchant, News, Operation, Price, SubstanceUsage, WaterUsage,
)
from agrisync.services import mappers, outsource
from agrisync.services.api_client import OutsourceClient
from agrisync.services.dedupe import merge_by_key
from agrisync.services.pagination import StopPolicy, fetch_by_year, fetch_pages, page_data
from agrisync.services.pipeline import EntityPipeline, Sources
from agrisync.services.transform import to_text

Record = Dict[str, Any]


def _body(page: int, **extra: Any) -> Record:
    return {"provinceName": "", "pageIndex": page, "pageSize": settings.PAGE_SIZE, **extra}


async def _paged(
    client: OutsourceClient,
    endpoint,
    *,
    stop: StopPolicy,
    total: Optional[int] = None,
    label: str,
    **extra: Any,
) -> List[Record]:
    async def fetch_page(page: int) -> List[Record]:
        return page_data(await endpoint(client, _body(page, **extra)))

    return await fetch_pages(
        fetch_page,
        page_size=settings.PAGE_SIZE,
        total_records=total,
        stop=stop,
        max_pages=settings.MAX_PAGES,
        label=label,
    )


# ── Farmers ───────────────────────────────────────────────────────────────────

FARMERS_TOTAL = 1114


async def fetch_farmers(client: OutsourceClient) -> Sources:
    rows = await _paged(
        client, outsource.get_farmers,
        stop=StopPolicy.NONE, total=FARMERS_TOTAL, label="GetFarmers",
    )
    return {"GetFarmers": rows}


# ── Durian gardens ────────────────────────────────────────────────────────────

LAND_FIELDS = (
    "recId", "farmerId", "landId", "province", "amphur", "tambon",
    "title", "firstName", "lastName", "landType", "lat", "lon",
    "noOfRais", "noOfNgan", "noOfWah", "kml",
    "createdTime", "updatedTime", "companyId",
)


def flatten_geojson(payload: Any) -> List[Record]:
    """GetLandGeoJSON nests lands under farmers; lift them to one flat list."""
    flat: List[Record] = []
    farmers = payload.get("farmers") if isinstance(payload, dict) else None
    for farmer in farmers or []:
        for land in farmer.get("lands") or []:
            flat.append({
                **land,
                "farmerId": farmer.get("farmerId"),
                "title": farmer.get("title"),
                "firstName": farmer.get("firstName"),
                "lastName": farmer.get("lastName"),
                "province": farmer.get("province"),
                "amphur": farmer.get("amphur"),
                "tambon": farmer.get("tambon"),
            })
    return flat


async def fetch_durian_gardens(client: OutsourceClient) -> Sources:
    lands = await _paged(
        client, outsource.get_lands,
        stop=StopPolicy.EMPTY, total=FARMERS_TOTAL, label="GetLands",
    )
    geo = await outsource.get_land_geojson(
        client, {"province": "", "amphur": "", "tambon": "", "landType": ""}
    )
    return {"GetLands": lands, "GetLandGeoJSON": flatten_geojson(geo)}


def merge_durian_gardens(sources: Sources) -> List[Record]:
    return merge_by_key(
        sources.get("GetLands", []),
        sources.get("GetLandGeoJSON", []),
        key="landId",
        fields=LAND_FIELDS,
        enrich=("geojson",),
    )


def durian_garden_key(r: Record):
    return to_text(r.get("recId")) or to_text(r.get("landId"))


# ── Crops ─────────────────────────────────────────────────────────────────────

CROP_FIELDS = (
    "recId", "farmerId", "landId", "cropId", "cropYear", "cropName",
    "breedId", "breedName", "cropStartDate", "cropEndDate", "totalTrees",
    "forecastKg", "forecastBaht", "forecastWorkerCost",
    "forecastFertilizerCost", "forecastEquipmentCost", "forecastPetrolCost",
    "durianStageId", "durianStageName",
    "gapCertNumber", "gapCertType", "gapIssuedDate", "gapExpiryDate",
    "createdTime", "updatedTime",
)


async def fetch_crops(client: OutsourceClient) -> Sources:
    async def crops_for(year: int) -> List[Record]:
        return await _paged(
            client, outsource.get_crops,
            stop=StopPolicy.EMPTY, label=f"GetCrops:{year}", cropYear=year,
        )

    async def harvests_for(year: int) -> List[Record]:
        return await _paged(
            client, outsource.get_crop_harvests,
            stop=StopPolicy.EMPTY, label=f"GetCropHarvests:{year}", cropYear=year,
            fromDate=settings.NEWS_FROM_DATE, toDate=settings.NEWS_TO_DATE,
        )

    return {
        "GetCrops": await fetch_by_year(settings.CROP_YEARS, crops_for),
        "GetCropHarvests": await fetch_by_year(settings.CROP_YEARS, harvests_for),
    }


def merge_crops(sources: Sources) -> List[Record]:
    return merge_by_key(
        sources.get("GetCrops", []),
        sources.get("GetCropHarvests", []),
        key="cropId",
        fields=CROP_FIELDS,
        enrich=("lotNumber",),
    )


# ── Communities / merchants / news ────────────────────────────────────────────

async def fetch_communities(client: OutsourceClient) -> Sources:
    rows = await _paged(
        client, outsource.get_communities, stop=StopPolicy.SHORT, label="GetCommunities",
    )
    return {"GetCommunities": rows}


async def fetch_merchants(client: OutsourceClient) -> Sources:
    rows = await _paged(
        client, outsource.get_merchants,
        stop=StopPolicy.NONE, total=FARMERS_TOTAL, label="GetMerchants",
    )
    return {"GetMerchants": rows}


async def fetch_news(client: OutsourceClient) -> Sources:
    rows = await _paged(
        client, outsource.get_news, stop=StopPolicy.SHORT, label="GetNews",
        fromDate=settings.NEWS_FROM_DATE, toDate=settings.NEWS_TO_DATE,
    )
    return {"GetNews": rows}


# ── Average prices ────────────────────────────────────────────────────────────

async def fetch_avg_prices(client: OutsourceClient) -> Sources:
    payload = await outsource.get_avg_prices(client, {
        "fromDate": settings.PRICE_FROM_DATE,
        "toDate": settings.PRICE_TO_DATE,
        "province": "",
        "breedName": "",
    })
    return {"GetAvgPriceByDate": page_data(payload)}


# ── Operations ────────────────────────────────────────────────────────────────

OPERATIONS_TOTAL = 5000


async def fetch_operations(client: OutsourceClient) -> Sources:
    async def for_year(year: int) -> List[Record]:
        return await _paged(
            client, outsource.get_operations,
            stop=StopPolicy.EMPTY, total=OPERATIONS_TOTAL,
            label=f"GetOperations:{year}", cropYear=year,
        )

    return {"GetOperations": await fetch_by_year(settings.CROP_YEARS, for_year)}


# ── Monthly usage summaries ───────────────────────────────────────────────────

async def _per_year_summary(client: OutsourceClient, endpoint) -> List[Record]:
    async def for_year(year: int) -> List[Record]:
        payload = await endpoint(client, {"cropYear": year, "provinceName": ""})
        return page_data(payload)

    return await fetch_by_year(settings.CROP_YEARS, for_year)


async def fetch_substance(client: OutsourceClient) -> Sources:
    rows = await _per_year_summary(client, outsource.get_substance_usage_by_month)
    return {"GetSubstanceUsageSummaryByMonth": rows}


async def fetch_water(client: OutsourceClient) -> Sources:
    rows = await _per_year_summary(client, outsource.get_water_usage_by_month)
    return {"GetWaterUsageSummaryByMonth": rows}


def substance_key(r: Record):
    return (
        to_text(r.get("cropYear")), to_text(r.get("provinceName")),
        to_text(r.get("operMonth")), to_text(r.get("substance")),
    )


def water_key(r: Record):
    return (
        to_text(r.get("cropYear")), to_text(r.get("provinceName")),
        to_text(r.get("operMonth")),
    )


# ── GAP certificates ──────────────────────────────────────────────────────────

async def fetch_gap(client: OutsourceClient) -> Sources:
    async def for_year(year: int) -> List[Record]:
        crops = await _paged(
            client, outsource.get_crops,
            stop=StopPolicy.SHORT, label=f"GetCrops:gap:{year}", cropYear=year,
        )
        return [c for c in crops if to_text(c.get("gapCertNumber"))]

    return {"GetCrops": await fetch_by_year(settings.CROP_YEARS, for_year)}


def gap_key(r: Record):
    return (to_text(r.get("gapCertNumber")), to_text(r.get("cropId")))


def _field_key(field: str):
    def key(r: Record):
        return to_text(r.get(field))
    return key


# ── Registry ──────────────────────────────────────────────────────────────────

PIPELINES: Dict[str, EntityPipeline] = {
    p.name: p
    for p in (
        EntityPipeline(
            name="farmers", label="Farmers", model=Farmer,
            key_columns=("rec_id",),
            fetch=fetch_farmers, record_key=_field_key("recId"),
            to_values=mappers.map_farmer,
            default_target=FARMERS_TOTAL, default_max_attempts=10,
        ),
        EntityPipeline(
            name="durian_gardens", label="Durian gardens", model=DurianGarden,
            key_columns=("rec_id",),
            fetch=fetch_durian_gardens, merge=merge_durian_gardens,
            record_key=durian_garden_key, to_values=mappers.map_durian_garden,
            default_max_attempts=10,
        ),
        EntityPipeline(
            name="crops", label="Crops", model=Crop,
            key_columns=("crop_id",),
            fetch=fetch_crops, merge=merge_crops,
            record_key=_field_key("cropId"), to_values=mappers.map_crop,
            default_max_attempts=10,
        ),
        EntityPipeline(
            name="communities", label="Communities", model=Community,
            key_columns=("rec_id",),
            fetch=fetch_communities, record_key=_field_key("recId"),
            to_values=mappers.map_community,
            default_target=3, default_max_attempts=5,
        ),
        EntityPipeline(
            name="merchants", label="Merchants", model=Merchant,
            key_columns=("rec_id",),
            fetch=fetch_merchants, record_key=_field_key("recId"),
            to_values=mappers.map_merchant,
            default_max_attempts=10,
        ),
        EntityPipeline(
            name="operations", label="Operations", model=Operation,
            key_columns=("rec_id",),
            fetch=fetch_operations, record_key=_field_key("recId"),
            to_values=mappers.map_operation,
            default_max_attempts=10,
        ),
        EntityPipeline(
            name="substance", label="Substance usage", model=SubstanceUsage,
            key_columns=("crop_year", "province_code", "oper_month", "substance"),
            fetch=fetch_substance, record_key=substance_key,
            to_values=mappers.map_substance,
            default_max_attempts=5, replace_on_refresh=False,
        ),
        EntityPipeline(
            name="water", label="Water usage", model=WaterUsage,
            key_columns=("crop_year", "province_code", "oper_month"),
            fetch=fetch_water, record_key=water_key,
            to_values=mappers.map_water,
            default_max_attempts=5, replace_on_refresh=False,
        ),
        EntityPipeline(
            name="news", label="News", model=News,
            key_columns=("rec_id",),
            fetch=fetch_news, record_key=_field_key("recId"),
            to_values=mappers.map_news,
            default_target=5, default_max_attempts=5,
        ),
        EntityPipeline(
            name="gap", label="GAP certificates", model=GapCertificate,
            key_columns=("gap_cert_number", "crop_id"),
            fetch=fetch_gap, record_key=gap_key,
            to_values=mappers.map_gap,
            default_max_attempts=5,
        ),
        EntityPipeline(
            name="avg_price", label="Average prices", model=Price,
            key_columns=("app_price_id",),
            fetch=fetch_avg_prices, record_key=_field_key("appPriceId"),
            to_values=mappers.map_price,
            default_max_attempts=10, until_settled=True,
        ),
    )
}

# Parents before children: crops reference farmers and lands.
# Average prices sync only on request through their own route.
SYNC_ORDER = (
    "farmers", "durian_gardens", "crops", "communities", "merchants",
    "operations", "substance", "water", "news", "gap",
)


def get_pipeline(name: str) -> EntityPipeline:
    try:
        return PIPELINES[name]
    except KeyError:
        raise KeyError(f"unknown entity: {name}") from None
