"""
Historical Data Contract

Input: HistoricalDataRequest (sent to the historical data provider)
Output: provider JSON, stored verbatim and treated as opaque

Bars come back as `{t, o, h, l, c, v, indicators}`. Their shape is owned by
the provider, so the response is never parsed into models here.
"""

from typing import Optional
from pydantic import BaseModel, Field


# =============================================================================
# INDICATOR REQUESTS
# =============================================================================


class LengthParam(BaseModel):
    length: int = Field(..., gt=0)


class MACDParam(BaseModel):
    fast: int = 12
    slow: int = 26
    signal: int = 9


class IndicatorSpec(BaseModel):
    """Indicators the provider should compute for one interval."""

    ema: Optional[list[int]] = None
    rsi: Optional[LengthParam] = None
    macd: Optional[MACDParam] = None
    dmi: Optional[LengthParam] = None
    atr: Optional[LengthParam] = None


class IntervalRequest(BaseModel):
    interval: str = Field(..., description="week, day or 30min")
    recent_bar_no: int = Field(..., gt=0)
    indicators: IndicatorSpec


# =============================================================================
# INPUT: HistoricalDataRequest
# =============================================================================


class HistoricalDataRequest(BaseModel):
    """Request body for the historical data provider."""

    symbol: str
    requests: list[IntervalRequest]
    include_extended_hours: bool = False
    output_format: str = "compact-json"


def _standard_indicators(ema: Optional[list[int]] = None) -> IndicatorSpec:
    return IndicatorSpec(
        ema=ema,
        rsi=LengthParam(length=14),
        macd=MACDParam(),
        dmi=LengthParam(length=14),
        atr=LengthParam(length=14),
    )


def build_historical_request(symbol: str) -> HistoricalDataRequest:
    """Weekly, daily and 30-minute bars with their indicator sets."""
    return HistoricalDataRequest(
        symbol=symbol,
        requests=[
            IntervalRequest(
                interval="week",
                recent_bar_no=150,
                indicators=_standard_indicators(ema=[20, 30, 40]),
            ),
            IntervalRequest(
                interval="day",
                recent_bar_no=250,
                indicators=_standard_indicators(ema=[20, 50, 100, 200]),
            ),
            IntervalRequest(
                interval="30min",
                recent_bar_no=200,
                indicators=_standard_indicators(),
            ),
        ],
    )


def extract_interval_data(payload: Optional[dict]) -> dict:
    """
    Get the `{interval: {bars: [...]}}` mapping from a stored payload.

    Accepts the provider envelope (`{success, data: {...}}`) or the bare
    mapping. Anything unexpected yields an empty dict.
    """
    if not isinstance(payload, dict):
        return {}
    data = payload.get("data", payload)
    return data if isinstance(data, dict) else {}


def get_bars(data: dict, interval: str) -> list:
    """Bars for one interval, defaulting to an empty list."""
    section = data.get(interval)
    if not isinstance(section, dict):
        return []
    bars = section.get("bars")
    return bars if isinstance(bars, list) else []


def summarize_bar_counts(payload: Optional[dict]) -> dict:
    data = extract_interval_data(payload)
    return {
        "week_bars": len(get_bars(data, "week")),
        "day_bars": len(get_bars(data, "day")),
        "thirty_min_bars": len(get_bars(data, "30min")),
    }
