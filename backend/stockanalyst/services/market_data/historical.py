"""
Historical Data Adapter

Fetches weekly, daily and 30-minute bars (with indicators computed by the
provider) in a single request.
"""

import logging
from typing import Optional

from stockanalyst.core.config import Settings
from stockanalyst.schemas.market import build_historical_request, summarize_bar_counts
from stockanalyst.services.base import NoContentError, UpstreamHttpError
from stockanalyst.services.http import post_json

logger = logging.getLogger(__name__)

SERVICE_NAME = "HistoricalData"

# Friendlier messages for common provider statuses
STATUS_MESSAGES = {
    401: "Invalid API key for historical data service. Check HISTORICAL_DATA_API_KEY.",
    403: "Access forbidden to historical data service. The API key may lack permissions or have exceeded usage limits.",
    429: "Rate limit exceeded for historical data service. Please wait before trying again.",
}


class HistoricalDataClient:
    """Client for the historical data download API."""

    def __init__(self, api_key: str, url: str, timeout: float = 30.0):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "HistoricalDataClient":
        return cls(
            api_key=settings.require("historical_data_api_key"),
            url=settings.historical_data_api_url,
            timeout=settings.http_timeout_seconds,
        )

    async def fetch(self, symbol: str) -> dict:
        """
        Fetch the three interval sets for `symbol`.

        Returns the provider response unchanged.

        Raises:
            UpstreamHttpError: non-2xx from the provider
            UpstreamTimeout: provider too slow
            NoContentError: `success` missing/false or no `data`
        """
        request = build_historical_request(symbol)
        logger.info(f"Requesting historical data for {symbol}")

        try:
            response = await post_json(
                SERVICE_NAME,
                self.url,
                request.model_dump(exclude_none=True),
                headers={"X-API-Key": self.api_key},
                timeout=self.timeout,
            )
        except UpstreamHttpError as e:
            friendly = STATUS_MESSAGES.get(e.status)
            if friendly:
                raise UpstreamHttpError(SERVICE_NAME, friendly, status=e.status, body=e.body) from e
            raise

        if not response.get("success") or not isinstance(response.get("data"), dict):
            reason = response.get("details") or response.get("error") or "Failed to fetch historical data"
            raise NoContentError(SERVICE_NAME, str(reason))

        counts = summarize_bar_counts(response)
        logger.info(
            f"Historical data for {symbol}: week={counts['week_bars']} "
            f"day={counts['day_bars']} 30min={counts['thirty_min_bars']}"
        )
        return response


_client_instance: Optional[HistoricalDataClient] = None


def get_historical_data_client() -> HistoricalDataClient:
    """Get or create the historical data client."""
    global _client_instance
    if _client_instance is None:
        from stockanalyst.core.config import settings

        _client_instance = HistoricalDataClient.from_settings(settings)
    return _client_instance
