"""
Persistence tests against an in-memory SQLite database.
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from stockanalyst.db.database import (
    find_recent_analysis,
    get_analysis,
    get_historical_data,
    insert_analysis,
    insert_historical_data,
    list_analyses,
    session_scope,
    total_pages,
)
from stockanalyst.db.models import StockAnalysis


async def seed(session_factory, rows):
    """rows: (symbol, analysis_type, created_at)"""
    async with session_scope(session_factory) as session:
        for symbol, analysis_type, created_at in rows:
            session.add(StockAnalysis(
                symbol=symbol,
                analysis_type=analysis_type,
                analysis_text=f"{symbol} report",
                created_at=created_at,
                updated_at=created_at,
            ))


@pytest.mark.asyncio
async def test_analysis_round_trip(session_factory):
    async with session_scope(session_factory) as session:
        saved = await insert_analysis(session, "aapl", "trend_and_sr", "## AAPL Trend Analysis")
        analysis_id = saved.id

    async with session_scope(session_factory) as session:
        loaded = await get_analysis(session, analysis_id)

    assert loaded is not None
    assert loaded.symbol == "AAPL"
    assert loaded.analysis_type == "trend_and_sr"
    assert loaded.analysis_text == "## AAPL Trend Analysis"
    assert loaded.created_at is not None
    assert len(loaded.id) == 36


@pytest.mark.asyncio
async def test_historical_round_trip(session_factory, historical_payload):
    async with session_scope(session_factory) as session:
        row = await insert_historical_data(session, "aapl", historical_payload)
        row_id = row.id

    async with session_scope(session_factory) as session:
        loaded = await get_historical_data(session, row_id)

    assert loaded.symbol == "AAPL"
    assert loaded.data == historical_payload


@pytest.mark.asyncio
async def test_unknown_ids_return_none(session_factory):
    async with session_scope(session_factory) as session:
        assert await get_analysis(session, "missing") is None
        assert await get_historical_data(session, "missing") is None


@pytest.mark.asyncio
async def test_session_scope_rolls_back_on_error(session_factory):
    with pytest.raises(RuntimeError):
        async with session_scope(session_factory) as session:
            await insert_analysis(session, "AAPL", "trend_and_sr", "text")
            raise RuntimeError("boom")

    async with session_scope(session_factory) as session:
        rows, count = await list_analyses(session)
    assert count == 0


# ============= find_recent_analysis =============

@pytest.mark.asyncio
async def test_find_recent_returns_newest_since(session_factory):
    await seed(session_factory, [
        ("AAPL", "trend_and_sr", datetime(2024, 7, 15, 12, 0)),
        ("AAPL", "trend_and_sr", datetime(2024, 7, 15, 14, 0)),
        ("AAPL", "trend_and_sr", datetime(2024, 7, 15, 16, 0)),
        ("MSFT", "trend_and_sr", datetime(2024, 7, 15, 17, 0)),
    ])
    since = datetime(2024, 7, 15, 13, 30, tzinfo=timezone.utc)

    async with session_scope(session_factory) as session:
        found = await find_recent_analysis(session, "aapl", since)

    assert found.created_at == datetime(2024, 7, 15, 16, 0)


@pytest.mark.asyncio
async def test_find_recent_includes_window_start(session_factory):
    await seed(session_factory, [("AAPL", "trend_and_sr", datetime(2024, 7, 15, 13, 30))])

    async with session_scope(session_factory) as session:
        at_start = await find_recent_analysis(session, "AAPL", datetime(2024, 7, 15, 13, 30))
        after = await find_recent_analysis(session, "AAPL", datetime(2024, 7, 15, 13, 30, 1))

    assert at_start is not None
    assert after is None


# ============= list_analyses =============

@pytest_asyncio.fixture
async def history_rows(session_factory):
    await seed(session_factory, [
        ("AAPL", "trend_and_sr", datetime(2024, 7, 1, 14, 0)),
        ("AAPL", "historical", datetime(2024, 7, 2, 14, 0)),
        ("MSFT", "trend_and_sr", datetime(2024, 7, 3, 14, 0)),
        ("PAA", "combined", datetime(2024, 7, 4, 14, 0)),
        ("NVDA", "trend_and_sr", datetime(2024, 7, 5, 14, 0)),
    ])


@pytest.mark.asyncio
async def test_list_newest_first(session_factory, history_rows):
    async with session_scope(session_factory) as session:
        rows, count = await list_analyses(session)

    assert count == 5
    assert [r.symbol for r in rows] == ["NVDA", "PAA", "MSFT", "AAPL", "AAPL"]


@pytest.mark.asyncio
async def test_list_oldest_first(session_factory, history_rows):
    async with session_scope(session_factory) as session:
        rows, _ = await list_analyses(session, newest_first=False)

    assert rows[0].created_at == datetime(2024, 7, 1, 14, 0)


@pytest.mark.asyncio
async def test_search_matches_anywhere_case_insensitive(session_factory, history_rows):
    async with session_scope(session_factory) as session:
        rows, count = await list_analyses(session, search="aa")

    assert count == 3
    assert {r.symbol for r in rows} == {"AAPL", "PAA"}


@pytest.mark.asyncio
async def test_filter_by_type(session_factory, history_rows):
    async with session_scope(session_factory) as session:
        rows, count = await list_analyses(session, search="AAPL", analysis_type="historical")

    assert count == 1
    assert rows[0].analysis_type == "historical"


@pytest.mark.asyncio
async def test_pagination(session_factory, history_rows):
    async with session_scope(session_factory) as session:
        first, count = await list_analyses(session, page=1, page_size=2)
        third, _ = await list_analyses(session, page=3, page_size=2)
        beyond, _ = await list_analyses(session, page=4, page_size=2)

    assert count == 5
    assert [r.symbol for r in first] == ["NVDA", "PAA"]
    assert len(third) == 1
    assert beyond == []


@pytest.mark.parametrize("count, size, pages", [(0, 20, 0), (20, 20, 1), (21, 20, 2), (5, 2, 3)])
def test_total_pages(count, size, pages):
    assert total_pages(count, size) == pages
