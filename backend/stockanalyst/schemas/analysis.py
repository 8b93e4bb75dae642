"""
Analysis Contracts

Input: AnalysisRunRequest (symbol)
Output: AnalysisRunResponse (combined markdown report + step progress)

Also covers persisted analyses and the paginated history listing.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class AnalysisType(str, Enum):
    HISTORICAL = "historical"
    SUPPORT_RESISTANCE = "support_resistance"
    COMBINED = "combined"
    TREND_AND_SR = "trend_and_sr"


class StepStatus(str, Enum):
    PENDING = "pending"
    LOADING = "loading"
    COMPLETED = "completed"
    ERROR = "error"


class SortOrder(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"


class OverallTrend(str, Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


# =============================================================================
# PROGRESS
# =============================================================================


class LoadingStep(BaseModel):
    """One pipeline stage as reported to the UI."""

    id: str
    label: str
    status: StepStatus = StepStatus.PENDING
    error: Optional[str] = None


# =============================================================================
# PERSISTED ANALYSIS
# =============================================================================


class AnalysisRecord(BaseModel):
    """A saved analysis as read back from the store."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    symbol: str
    analysis_type: AnalysisType
    analysis_text: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class SaveAnalysisRequest(BaseModel):
    """Request body for saving an analysis directly."""

    symbol: str = Field(..., min_length=1, max_length=20, description="Ticker, e.g. AAPL")
    analysis_type: AnalysisType = Field(default=AnalysisType.TREND_AND_SR)
    analysis_text: str = Field(..., min_length=1, description="Markdown report")

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("symbol must not be blank")
        return v

    @field_validator("analysis_text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("analysis_text must not be blank")
        return v


class SaveAnalysisResponse(BaseModel):
    success: bool = True
    id: str
    message: str = "Analysis saved successfully"
    symbol: str
    analysis_type: AnalysisType
    created_at: datetime


# =============================================================================
# PIPELINE RUN
# =============================================================================


class AnalysisRunRequest(BaseModel):
    """Request body for running the analysis pipeline."""

    symbol: str = Field(..., min_length=1, max_length=20, description="Ticker, e.g. AAPL")


class AnalysisRunResponse(BaseModel):
    """Result of one pipeline run, fresh or served from the session cache."""

    success: bool = True
    symbol: str
    analysis: str
    analysis_type: AnalysisType
    analysis_id: Optional[str] = None
    cached: bool = False
    steps: list[LoadingStep] = Field(default_factory=list)


# =============================================================================
# HISTORY
# =============================================================================


class HistoryItem(AnalysisRecord):
    """History list entry with display helpers."""

    preview: str
    type_label: str
    overall_trend: OverallTrend
    created_at_et: str
    created_at_relative: str


class HistoryPage(BaseModel):
    items: list[HistoryItem]
    page: int
    page_size: int
    total_count: int
    total_pages: int
