"""
Stock Analyst Schema Contracts

This module defines the JSON contracts between the API, the pipeline and
the external data providers.
"""

from stockanalyst.schemas.market import (
    HistoricalDataRequest,
    IndicatorSpec,
    IntervalRequest,
    build_historical_request,
)
from stockanalyst.schemas.analysis import (
    AnalysisType,
    StepStatus,
    SortOrder,
    OverallTrend,
    LoadingStep,
    AnalysisRecord,
    SaveAnalysisRequest,
    SaveAnalysisResponse,
    AnalysisRunRequest,
    AnalysisRunResponse,
    HistoryItem,
    HistoryPage,
)

__all__ = [
    # Market
    "HistoricalDataRequest",
    "IndicatorSpec",
    "IntervalRequest",
    "build_historical_request",
    # Analysis
    "AnalysisType",
    "StepStatus",
    "SortOrder",
    "OverallTrend",
    "LoadingStep",
    "AnalysisRecord",
    "SaveAnalysisRequest",
    "SaveAnalysisResponse",
    "AnalysisRunRequest",
    "AnalysisRunResponse",
    "HistoryItem",
    "HistoryPage",
]
