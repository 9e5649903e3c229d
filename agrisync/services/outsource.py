"""Report endpoints of the outsource API, one function per upstream call."""
from __future__ import annotations

from typing import Any, Dict

from agrisync.services.api_client import OutsourceClient, rate_limited

REPORT_PREFIX = "/api/report"


@rate_limited
async def get_farmers(client: OutsourceClient, body: Dict[str, Any]) -> Dict[str, Any]:
    return await client.post(f"{REPORT_PREFIX}/GetFarmers", body)


@rate_limited
async def get_lands(client: OutsourceClient, body: Dict[str, Any]) -> Dict[str, Any]:
    return await client.post(f"{REPORT_PREFIX}/GetLands", body)


@rate_limited
async def get_land_geojson(client: OutsourceClient, body: Dict[str, Any]) -> Dict[str, Any]:
    return await client.post(f"{REPORT_PREFIX}/GetLandGeoJSON", body)


@rate_limited
async def get_crops(client: OutsourceClient, body: Dict[str, Any]) -> Dict[str, Any]:
    return await client.post(f"{REPORT_PREFIX}/GetCrops", body)


@rate_limited
async def get_crop_harvests(client: OutsourceClient, body: Dict[str, Any]) -> Dict[str, Any]:
    return await client.post(f"{REPORT_PREFIX}/GetCropHarvests", body)


@rate_limited
async def get_communities(client: OutsourceClient, body: Dict[str, Any]) -> Dict[str, Any]:
    return await client.post(f"{REPORT_PREFIX}/GetCommunities", body)


@rate_limited
async def get_merchants(client: OutsourceClient, body: Dict[str, Any]) -> Dict[str, Any]:
    return await client.post(f"{REPORT_PREFIX}/GetMerchants", body)


@rate_limited
async def get_operations(client: OutsourceClient, body: Dict[str, Any]) -> Dict[str, Any]:
    return await client.post(f"{REPORT_PREFIX}/GetOperations", body)


@rate_limited
async def get_substance_usage_by_month(client: OutsourceClient, body: Dict[str, Any]) -> Dict[str, Any]:
    return await client.post(f"{REPORT_PREFIX}/GetSubstanceUsageSummaryByMonth", body)


@rate_limited
async def get_water_usage_by_month(client: OutsourceClient, body: Dict[str, Any]) -> Dict[str, Any]:
    return await client.post(f"{REPORT_PREFIX}/GetWaterUsageSummaryByMonth", body)


@rate_limited
async def get_news(client: OutsourceClient, body: Dict[str, Any]) -> Dict[str, Any]:
    return await client.post(f"{REPORT_PREFIX}/GetNews", body)


@rate_limited
async def get_avg_prices(client: OutsourceClient, body: Dict[str, Any]) -> Dict[str, Any]:
    return await client.post(f"{REPORT_PREFIX}/GetAvgPriceByDate", body)
