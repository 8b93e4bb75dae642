"""
Analysis Pipeline Implementation

Orchestrates the complete report pipeline:
    Session Cache → Historical Data → Trend LLM → S&R API + LLM → Strategy LLM → Save

This is the main entry point for generating stock analyses.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stockanalyst.core.market_hours import UTC, get_trading_period_info, is_in_same_trading_period
from stockanalyst.db.database import (
    AsyncSessionLocal,
    find_recent_analysis,
    get_historical_data,
    insert_analysis,
    insert_historical_data,
    session_scope,
)
from stockanalyst.db.models import StockAnalysis
from stockanalyst.schemas.analysis import AnalysisType, StepStatus
from stockanalyst.services.analysis.interface import (
    AnalysisPipelineInterface,
    AnalysisRequest,
    AnalysisResult,
)
from stockanalyst.services.analysis.progress import AnalysisProgress
from stockanalyst.services.base import NoContentError
from stockanalyst.services.llm import (
    format_sr_prompt,
    format_strategy_prompt,
    format_trend_prompt,
    get_ai_provider_manager,
)
from stockanalyst.services.market_data import (
    filter_levels_for_prompt,
    get_historical_data_client,
    get_support_resistance_client,
)

logger = logging.getLogger(__name__)

SR_FALLBACK_TEMPLATE = (
    "\n\n## Support & Resistance Analysis\n\n"
    "*Support & Resistance analysis could not be completed due to {error}. "
    "Please try again later.*"
)

STRATEGY_FALLBACK_TEMPLATE = (
    "\n\n## Trading Strategies\n\n"
    "*Trading strategy analysis could not be completed due to {error}. "
    "Please try again later.*"
)


def describe_error(error: Exception) -> str:
    return str(error) or error.__class__.__name__


def sr_fallback_text(error: Exception) -> str:
    return SR_FALLBACK_TEMPLATE.format(error=describe_error(error))


def strategy_fallback_text(error: Exception) -> str:
    return STRATEGY_FALLBACK_TEMPLATE.format(error=describe_error(error))


def combine_sections(trend: str, support_resistance: str, strategy: str) -> str:
    """Assemble the final report. The separators are what the UI splits on."""
    return "\n\n".join([trend, "---", support_resistance, "---", "## Trading Strategies", strategy])


def _utc_now() -> datetime:
    return datetime.now(UTC)


class AnalysisPipeline(AnalysisPipelineInterface):
    """
    Analysis Pipeline.

    Orchestrates the complete report pipeline.
    Non-critical stages degrade to fallback text instead of failing the run.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        historical_client=None,
        levels_client=None,
        ai_manager=None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self._historical_client = historical_client
        self._levels_client = levels_client
        self._ai_manager = ai_manager
        self._now = now or _utc_now

    @property
    def historical_client(self):
        """Lazy load historical data client."""
        if self._historical_client is None:
            self._historical_client = get_historical_data_client()
        return self._historical_client

    @property
    def levels_client(self):
        """Lazy load support/resistance client."""
        if self._levels_client is None:
            self._levels_client = get_support_resistance_client()
        return self._levels_client

    @property
    def ai_manager(self):
        """Lazy load AI provider manager."""
        if self._ai_manager is None:
            self._ai_manager = get_ai_provider_manager()
        return self._ai_manager

    @contextmanager
    def _stage(self, progress: AnalysisProgress, step_id: str):
        """Track one stage: loading, then completed or error."""
        progress.update(step_id, StepStatus.LOADING)
        try:
            yield
        except Exception as e:
            progress.update(step_id, StepStatus.ERROR, error=describe_error(e))
            raise
        progress.update(step_id, StepStatus.COMPLETED)

    async def find_cached(self, symbol: str) -> Optional[StockAnalysis]:
        now = self._now()
        period = get_trading_period_info(now)
        async with session_scope(self.session_factory) as session:
            analysis = await find_recent_analysis(session, symbol, period.period_start_utc)

        # The store filters on created_at already; re-check against the window
        if analysis is None or not is_in_same_trading_period(analysis.created_at, now):
            return None
        return analysis

    async def check_cache(self, symbol: str) -> Optional[StockAnalysis]:
        """Cache lookup that never fails the run."""
        try:
            analysis = await self.find_cached(symbol)
        except Exception as e:
            logger.warning(f"Cache check failed for {symbol}, continuing without cache: {e}")
            return None

        if analysis is not None:
            logger.info(f"Found analysis {analysis.id} for {symbol} from {analysis.created_at} (current session)")
        return analysis

    async def fetch_historical(self, symbol: str) -> str:
        """Fetch bars and store them. Returns the cache row id."""
        payload = await self.historical_client.fetch(symbol)
        async with session_scope(self.session_factory) as session:
            row = await insert_historical_data(session, symbol, payload)
            historical_data_id = row.id
        logger.info(f"Stored historical data for {symbol} as {historical_data_id}")
        return historical_data_id

    async def _load_historical(self, historical_data_id: str) -> dict:
        async with session_scope(self.session_factory) as session:
            row = await get_historical_data(session, historical_data_id)
            data = row.data if row is not None else None
        if data is None:
            raise NoContentError("Database", "Failed to fetch historical data from cache")
        return data

    async def generate_trend(self, symbol: str, historical_data_id: str) -> str:
        payload = await self._load_historical(historical_data_id)
        prompt = format_trend_prompt(symbol, payload)
        logger.info(f"Trend prompt prepared for {symbol}, length: {len(prompt)}")
        return await self.ai_manager.complete(prompt)

    async def generate_sr(self, symbol: str, historical_data_id: str) -> str:
        """S&R narrative, or fallback markdown on any failure."""
        try:
            payload = await self._load_historical(historical_data_id)
            levels = await self.levels_client.fetch_levels(symbol, payload)
            filtered = filter_levels_for_prompt(levels)
            return await self.ai_manager.complete(format_sr_prompt(symbol, filtered))
        except Exception as e:
            logger.warning(f"S&R analysis failed for {symbol}, using fallback: {e}")
            return sr_fallback_text(e)

    async def generate_strategy(self, symbol: str, trend_analysis: str, sr_analysis: str) -> str:
        """Strategy narrative, or fallback markdown on any failure."""
        try:
            prompt = format_strategy_prompt(symbol, trend_analysis, sr_analysis)
            return await self.ai_manager.complete(prompt)
        except Exception as e:
            logger.warning(f"Strategy analysis failed for {symbol}, using fallback: {e}")
            return strategy_fallback_text(e)

    async def save(self, symbol: str, analysis_text: str) -> str:
        async with session_scope(self.session_factory) as session:
            analysis = await insert_analysis(
                session, symbol, AnalysisType.TREND_AND_SR.value, analysis_text
            )
            analysis_id = analysis.id
        return analysis_id

    async def execute(self, input_data: AnalysisRequest) -> AnalysisResult:
        """
        Run the complete analysis pipeline.

        Pipeline:
            1. Session cache → stored report (stops here on a hit)
            2. Historical data → cache row id
            3. Trend LLM → trend markdown
            4. S&R API + LLM → S&R markdown (fallback on error)
            5. Strategy LLM → strategy markdown (fallback on error)
            6. Combine and save → analysis id
        """
        progress = input_data.progress or AnalysisProgress()
        progress.reset()

        symbol = (input_data.symbol or "").strip().upper()
        if not symbol:
            raise ValueError("Symbol is required")

        logger.info(f"Starting analysis pipeline for {symbol}")

        # =================================================================
        # STAGE 1: Session Cache
        # =================================================================
        logger.info("Stage 1: Session Cache")
        with self._stage(progress, "check_cache"):
            cached = await self.check_cache(symbol)

        if cached is not None:
            progress.complete_all()
            return AnalysisResult(
                symbol=symbol,
                analysis_text=cached.analysis_text,
                analysis_type=AnalysisType(cached.analysis_type),
                analysis_id=cached.id,
                cached=True,
                steps=progress.snapshot(),
            )

        # =================================================================
        # STAGE 2: Historical Data
        # =================================================================
        logger.info("Stage 2: Historical Data")
        with self._stage(progress, "fetch_historical"):
            historical_data_id = await self.fetch_historical(symbol)

        # =================================================================
        # STAGE 3: Trend Analysis (LLM)
        # =================================================================
        logger.info("Stage 3: Trend Analysis (LLM)")
        with self._stage(progress, "generate_trend"):
            trend_analysis = await self.generate_trend(symbol, historical_data_id)
        logger.info(f"Stage 3 complete: {len(trend_analysis)} chars")

        # =================================================================
        # STAGE 4: Support & Resistance (API + LLM)
        # =================================================================
        logger.info("Stage 4: Support & Resistance")
        with self._stage(progress, "generate_sr"):
            sr_analysis = await self.generate_sr(symbol, historical_data_id)

        # =================================================================
        # STAGE 5: Trading Strategies (LLM)
        # =================================================================
        logger.info("Stage 5: Trading Strategies (LLM)")
        with self._stage(progress, "generate_strategy"):
            strategy_analysis = await self.generate_strategy(symbol, trend_analysis, sr_analysis)

        # =================================================================
        # STAGE 6: Combine and Save
        # =================================================================
        logger.info("Stage 6: Saving")
        combined = combine_sections(trend_analysis, sr_analysis, strategy_analysis)
        with self._stage(progress, "saving"):
            analysis_id = await self.save(symbol, combined)

        logger.info(f"Pipeline complete for {symbol}: analysis {analysis_id}")
        return AnalysisResult(
            symbol=symbol,
            analysis_text=combined,
            analysis_type=AnalysisType.TREND_AND_SR,
            analysis_id=analysis_id,
            cached=False,
            steps=progress.snapshot(),
        )

    async def health_check(self) -> bool:
        """Check database and LLM availability."""
        try:
            async with session_scope(self.session_factory) as session:
                await find_recent_analysis(session, "HEALTHCHECK", _utc_now())
            return await self.ai_manager.health_check()
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False


# Singleton instance
_service_instance: Optional[AnalysisPipeline] = None


def get_analysis_pipeline() -> AnalysisPipeline:
    """Get or create analysis pipeline instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = AnalysisPipeline()
    return _service_instance
