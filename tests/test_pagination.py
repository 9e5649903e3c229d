import pytest

from agrisync.services.pagination import (
    StopPolicy, fetch_by_year, fetch_pages, page_count, page_data,
)


def pager(pages):
    """Serve pre-baked pages by index and remember which were requested."""
    requested = []

    async def fetch_page(page):
        requested.append(page)
        return pages.get(page, [])

    return fetch_page, requested


def rows(n, start=0):
    return [{"recId": str(i)} for i in range(start, start + n)]


def test_page_count_rounds_up():
    assert page_count(1114, 500) == 3
    assert page_count(1000, 500) == 2
    assert page_count(0, 500) == 0


@pytest.mark.asyncio
async def test_computed_pages_ignore_empty_pages():
    fetch_page, requested = pager({1: rows(500), 3: rows(114, 500)})
    records = await fetch_pages(fetch_page, page_size=500, total_records=1114)
    assert requested == [1, 2, 3]
    assert len(records) == 614


@pytest.mark.asyncio
async def test_stop_on_empty_page():
    fetch_page, requested = pager({1: rows(2), 2: rows(2, 2)})
    records = await fetch_pages(fetch_page, page_size=2, stop=StopPolicy.EMPTY)
    assert requested == [1, 2, 3]
    assert len(records) == 4


@pytest.mark.asyncio
async def test_stop_on_short_page():
    fetch_page, requested = pager({1: rows(5), 2: rows(3, 5)})
    records = await fetch_pages(fetch_page, page_size=5, stop=StopPolicy.SHORT)
    assert requested == [1, 2]
    assert len(records) == 8


@pytest.mark.asyncio
async def test_zero_based_pages():
    fetch_page, requested = pager({0: rows(2), 1: rows(1, 2)})
    await fetch_pages(fetch_page, page_size=2, total_records=3, first_page=0)
    assert requested == [0, 1]


@pytest.mark.asyncio
async def test_open_ended_loop_is_bounded():
    async def always_full(page):
        return rows(2)

    records = await fetch_pages(always_full, page_size=2, stop=StopPolicy.EMPTY, max_pages=4)
    assert len(records) == 8


@pytest.mark.asyncio
async def test_open_ended_loop_needs_stop_signal():
    fetch_page, _ = pager({})
    with pytest.raises(ValueError):
        await fetch_pages(fetch_page, page_size=10)


def test_page_data_unwraps_envelope():
    assert page_data({"success": True, "data": [{"a": 1}]}) == [{"a": 1}]
    assert page_data({"success": True, "data": None}) == []
    with pytest.raises(TypeError):
        page_data({"data": {"not": "a list"}})


@pytest.mark.asyncio
async def test_fetch_by_year_concatenates_in_order():
    async def for_year(year):
        return [{"cropYear": year}]

    assert await fetch_by_year([2023, 2024], for_year) == [{"cropYear": 2023}, {"cropYear": 2024}]
