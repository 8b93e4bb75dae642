"""
Market Session API Endpoints

US regular-session status and session-window boundaries.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query

from stockanalyst.core.market_hours import (
    describe_trading_period,
    get_market_status,
    get_trading_period_info,
)

router = APIRouter()


@router.get("/session")
async def get_session_status():
    """
    Current market status.

    The session window decides whether a saved analysis is still reused:
    anything created since the window started is returned as-is.
    """
    return get_market_status()


@router.get("/period")
async def get_trading_period(
    at: Optional[datetime] = Query(default=None, description="Instant to evaluate; naive values are UTC"),
):
    """Session window containing `at` (default: now)."""
    info = get_trading_period_info(at)
    return {
        **info.to_dict(),
        "description": describe_trading_period(at),
    }
