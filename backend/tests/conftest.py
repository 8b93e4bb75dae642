"""
Shared fixtures: in-memory database and a realistic provider payload.
"""

import pytest
import pytest_asyncio

from stockanalyst.db.database import create_engine_for, create_session_factory, init_db


def make_bar(t: str, close: float, **indicators) -> dict:
    return {
        "t": t,
        "o": close - 1.0,
        "h": close + 1.5,
        "l": close - 2.0,
        "c": close,
        "v": 1_000_000,
        "indicators": indicators or {"rsi_14": 55.0},
    }


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory SQLite per test."""
    engine = create_engine_for("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def historical_payload():
    """Provider envelope with weekly, daily and 30-minute bars."""
    return {
        "success": True,
        "data": {
            "week": {
                "bars": [
                    make_bar("2024-06-24", 208.1, ema_20=196.3, ema_30=191.0, ema_40=187.2),
                    make_bar("2024-07-01", 226.3, ema_20=199.2, ema_30=193.3, ema_40=189.1),
                    make_bar("2024-07-08", 230.5, ema_20=202.2, ema_30=195.7, ema_40=191.1),
                ]
            },
            "day": {
                "bars": [
                    make_bar("2024-07-10", 232.9, ema_20=218.4, ema_50=204.1),
                    make_bar("2024-07-11", 227.5, ema_20=219.3, ema_50=205.0),
                    make_bar("2024-07-12", 230.5, ema_20=220.4, ema_50=205.9),
                ]
            },
            "30min": {
                "bars": [
                    make_bar("2024-07-12T15:00:00", 230.1),
                    make_bar("2024-07-12T15:30:00", 230.5),
                ]
            },
        },
    }


@pytest.fixture
def levels_response():
    """Level API answer, including parts the prompt does not need."""
    return {
        "symbol": "AAPL",
        "timeframes": {
            "week": {"significant_levels": [{"cluster_price": 196.0}]},
            "day": {"significant_levels": [{"cluster_price": 220.0}]},
            "merged": {
                "recent_close_price": 230.5,
                "significant_levels": [
                    {
                        "cluster_price": 220.0,
                        "current_role": "support",
                        "tests": 5,
                        "with_ema": ["Day 20 EMA"],
                        "failed_breakouts": [],
                        "challenging_direction": "support",
                    },
                    {
                        "cluster_price": 237.2,
                        "current_role": "resistance",
                        "tests": 3,
                        "with_ema": [],
                        "failed_breakouts": ["2024-07-11"],
                    },
                ],
            },
        },
        "meta": {"generated_at": "2024-07-15T15:00:00Z"},
    }
