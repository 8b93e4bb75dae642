"""
Analysis Pipeline Interface

Runs the full trend / support-resistance / strategy report for one symbol.
"""

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from stockanalyst.db.models import StockAnalysis
from stockanalyst.schemas.analysis import AnalysisRunResponse, AnalysisType, LoadingStep
from stockanalyst.services.analysis.progress import AnalysisProgress
from stockanalyst.services.base import BaseService


@dataclass
class AnalysisRequest:
    """Request for one analysis run."""

    symbol: str
    progress: Optional[AnalysisProgress] = None


@dataclass
class AnalysisResult:
    """Outcome of a run, fresh or served from the session cache."""

    symbol: str
    analysis_text: str
    analysis_type: AnalysisType = AnalysisType.TREND_AND_SR
    analysis_id: Optional[str] = None
    cached: bool = False
    steps: list[LoadingStep] = field(default_factory=list)

    def to_response(self) -> AnalysisRunResponse:
        return AnalysisRunResponse(
            success=True,
            symbol=self.symbol,
            analysis=self.analysis_text,
            analysis_type=self.analysis_type,
            analysis_id=self.analysis_id,
            cached=self.cached,
            steps=self.steps,
        )


class AnalysisPipelineInterface(BaseService[AnalysisRequest, AnalysisResult]):
    """
    Analysis Pipeline Contract.

    INPUT: AnalysisRequest
        - symbol: ticker, case-insensitive
        - progress: optional tracker the caller observes

    OUTPUT: AnalysisResult
        - analysis_text: combined markdown report
        - cached: True when an analysis from the current session window
          was reused

    PIPELINE:
        check_cache -> fetch_historical -> generate_trend
            -> generate_sr -> generate_strategy -> saving

    FAILURE POLICY:
        - check_cache: errors are treated as a miss
        - fetch_historical, generate_trend, saving: error propagates
        - generate_sr, generate_strategy: fallback text, run continues
    """

    @property
    def name(self) -> str:
        return "AnalysisPipeline"

    @abstractmethod
    async def execute(self, input_data: AnalysisRequest) -> AnalysisResult:
        """Run the complete analysis pipeline."""
        pass

    @abstractmethod
    async def find_cached(self, symbol: str) -> Optional[StockAnalysis]:
        """Newest analysis for `symbol` inside the current session window."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
