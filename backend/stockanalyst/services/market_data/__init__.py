"""
Market Data Adapters

CONTRACT:
    Historical Data:
        Input:  symbol
        Output: provider JSON with week / day / 30min bars + indicators

    Support & Resistance Levels:
        Input:  symbol + cached historical payload (week + day bars only)
        Output: level JSON, filtered to symbol + timeframes.merged

Both providers are remote; this package only shapes requests and maps
failures onto the service error taxonomy.
"""

from stockanalyst.services.market_data.historical import (
    HistoricalDataClient,
    get_historical_data_client,
)
from stockanalyst.services.market_data.levels import (
    SupportResistanceClient,
    build_levels_payload,
    filter_levels_for_prompt,
    get_support_resistance_client,
)

__all__ = [
    "HistoricalDataClient",
    "get_historical_data_client",
    "SupportResistanceClient",
    "build_levels_payload",
    "filter_levels_for_prompt",
    "get_support_resistance_client",
]
