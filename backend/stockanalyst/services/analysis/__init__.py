"""
Analysis Pipeline Service

CONTRACT:
    Input:  AnalysisRequest (symbol + optional progress tracker)
    Output: AnalysisResult (combined markdown report)

RESPONSIBILITIES:
    - Orchestrate the full pipeline:
        1. Session cache -> stored report
        2. Historical data -> cache row
        3. Trend LLM -> trend markdown
        4. S&R API + LLM -> S&R markdown
        5. Strategy LLM -> strategy markdown
        6. Combine and save
    - Report step progress to the caller
    - Substitute fallback text for failed non-critical stages

This is the main entry point for generating stock analyses.
"""

from stockanalyst.services.analysis.interface import (
    AnalysisPipelineInterface,
    AnalysisRequest,
    AnalysisResult,
)
from stockanalyst.services.analysis.progress import AnalysisProgress, STEP_DEFINITIONS
from stockanalyst.services.analysis.service import AnalysisPipeline, get_analysis_pipeline

__all__ = [
    "AnalysisPipelineInterface",
    "AnalysisRequest",
    "AnalysisResult",
    "AnalysisProgress",
    "STEP_DEFINITIONS",
    "AnalysisPipeline",
    "get_analysis_pipeline",
]
