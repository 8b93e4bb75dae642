"""
Support & Resistance Level Adapter

Sends weekly and daily bars to the level-detection API and trims its
answer down to what the narrative prompt needs.
"""

import logging
from typing import Optional

from stockanalyst.core.config import Settings
from stockanalyst.schemas.market import extract_interval_data, get_bars
from stockanalyst.services.http import post_json

logger = logging.getLogger(__name__)

SERVICE_NAME = "SupportResistance"

TOLERANCE_PCT = 0.3
ATR_MULTIPLIER = 0.3
CONFIRM_WINDOW = 4


def build_levels_payload(symbol: str, historical_payload: Optional[dict]) -> dict:
    """
    Shape a cached historical payload into the level API request body.

    The provider nests bars as `data.week.bars`; the level API wants them
    one level up, as `bars.week`. 30-minute bars are not sent.
    """
    data = extract_interval_data(historical_payload)
    return {
        "symbol": symbol,
        "tolerance_pct": TOLERANCE_PCT,
        "atr_multiplier": ATR_MULTIPLIER,
        "confirm_window": CONFIRM_WINDOW,
        "merge_timeframes": True,
        "bars": {
            "week": get_bars(data, "week"),
            "day": get_bars(data, "day"),
        },
    }


def filter_levels_for_prompt(levels: dict) -> dict:
    """Keep only `symbol` and `timeframes.merged`."""
    timeframes = levels.get("timeframes") or {}
    return {
        "symbol": levels.get("symbol"),
        "timeframes": {
            "merged": timeframes.get("merged") if isinstance(timeframes, dict) else None,
        },
    }


class SupportResistanceClient:
    """Client for the support/resistance level API."""

    def __init__(self, api_key: str, url: str, timeout: float = 120.0):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupportResistanceClient":
        return cls(
            api_key=settings.require("support_resistance_api_key"),
            url=settings.support_resistance_api_url,
            timeout=settings.support_resistance_timeout_seconds,
        )

    async def fetch_levels(self, symbol: str, historical_payload: Optional[dict]) -> dict:
        """Request significant levels for `symbol`."""
        payload = build_levels_payload(symbol, historical_payload)
        logger.info(
            f"Requesting S&R levels for {symbol}: "
            f"week={len(payload['bars']['week'])} day={len(payload['bars']['day'])}"
        )
        return await post_json(
            SERVICE_NAME,
            self.url,
            payload,
            headers={"X-API-Key": self.api_key},
            timeout=self.timeout,
        )


_client_instance: Optional[SupportResistanceClient] = None


def get_support_resistance_client() -> SupportResistanceClient:
    """Get or create the support/resistance client."""
    global _client_instance
    if _client_instance is None:
        from stockanalyst.core.config import settings

        _client_instance = SupportResistanceClient.from_settings(settings)
    return _client_instance
