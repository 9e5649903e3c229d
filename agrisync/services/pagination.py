from __future__ import annotations

import enum
import math
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import structlog

log = structlog.get_logger(__name__)

Record = Dict[str, Any]
PageFetcher = Callable[[int], Awaitable[List[Record]]]


class StopPolicy(str, enum.Enum):
    NONE = "none"      # iterate every computed page, even past an empty one
    EMPTY = "empty"    # an empty page means no more data
    SHORT = "short"    # a page shorter than page_size is the last one


def page_count(total_records: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return max(0, math.ceil(total_records / page_size))


def page_data(payload: Any) -> List[Record]:
    """Extract the record array from a `{success, data}` envelope."""
    if isinstance(payload, dict):
        data = payload.get("data")
    else:
        data = payload
    if data is None:
        return []
    if not isinstance(data, list):
        raise TypeError(f"expected a list of records, got {type(data).__name__}")
    return data


async def fetch_pages(
    fetch_page: PageFetcher,
    *,
    page_size: int,
    total_records: Optional[int] = None,
    stop: StopPolicy = StopPolicy.NONE,
    first_page: int = 1,
    max_pages: int = 200,
    label: str = "",
) -> List[Record]:
    """
    Request pages sequentially and concatenate their records.

    With ``total_records`` the page count is ``ceil(total / page_size)``;
    under ``StopPolicy.NONE`` all of those pages are requested even if the
    remote total has shrunk since. Without a total, iteration ends on the
    stop signal or after ``max_pages``.
    """
    if total_records is None and stop is StopPolicy.NONE:
        raise ValueError("an open-ended page loop needs an EMPTY or SHORT stop policy")

    limit = page_count(total_records, page_size) if total_records is not None else max_pages
    limit = min(limit, max_pages)

    records: List[Record] = []
    for offset in range(limit):
        page = first_page + offset
        rows = await fetch_page(page)
        records.extend(rows)
        log.info("fetch.page", source=label, page=page, records=len(rows))

        if stop is StopPolicy.EMPTY and not rows:
            break
        if stop is StopPolicy.SHORT and len(rows) < page_size:
            break
    else:
        if total_records is None:
            log.warning("fetch.page_limit_reached", source=label, max_pages=max_pages)

    return records


async def fetch_by_year(
    years: Iterable[int],
    fetch_year: Callable[[int], Awaitable[List[Record]]],
) -> List[Record]:
    records: List[Record] = []
    for year in years:
        records.extend(await fetch_year(year))
    return records
