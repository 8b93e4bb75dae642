"""
Analysis API Endpoints

Run the analysis pipeline, stream its progress and read saved analyses.
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from stockanalyst.api.errors import error_message, status_code_for, to_http_exception
from stockanalyst.db.database import get_analysis, get_db, insert_analysis
from stockanalyst.schemas.analysis import (
    AnalysisRecord,
    AnalysisRunRequest,
    AnalysisRunResponse,
    SaveAnalysisRequest,
    SaveAnalysisResponse,
)
from stockanalyst.services.analysis import (
    AnalysisPipeline,
    AnalysisProgress,
    AnalysisRequest,
    get_analysis_pipeline,
)
from stockanalyst.services.base import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


@router.post("/run", response_model=AnalysisRunResponse)
async def run_analysis(
    request: AnalysisRunRequest,
    pipeline: AnalysisPipeline = Depends(get_analysis_pipeline),
):
    """
    Run the full analysis for a symbol.

    Returns the analysis from the current session window when one exists,
    otherwise runs every stage:
    1. Fetch historical data
    2. Trend analysis (LLM)
    3. Support & resistance (level API + LLM)
    4. Trading strategies (LLM)
    5. Save
    """
    progress = AnalysisProgress()
    try:
        result = await pipeline.execute(AnalysisRequest(symbol=request.symbol, progress=progress))
    except Exception as e:
        raise to_http_exception(e, progress.snapshot())
    return result.to_response()


@router.post("/stream")
async def stream_analysis(
    request: AnalysisRunRequest,
    pipeline: AnalysisPipeline = Depends(get_analysis_pipeline),
):
    """
    Run the analysis and stream progress via SSE.

    Emits a `step` event for every step change, then exactly one `result`
    or `error` event.

    Usage (JavaScript):
    ```js
    const response = await fetch('/api/v1/analysis/stream', {
      method: 'POST',
      headers: {'Content-Type': 'application/json'},
      body: JSON.stringify({symbol: 'AAPL'}),
    });
    ```
    """
    progress = AnalysisProgress()
    queue: asyncio.Queue = asyncio.Queue()
    progress.subscribe(queue.put_nowait)

    async def event_generator():
        task = asyncio.create_task(
            pipeline.execute(AnalysisRequest(symbol=request.symbol, progress=progress))
        )
        # Sentinel after the last step update
        task.add_done_callback(lambda _: queue.put_nowait(None))

        try:
            while True:
                step = await queue.get()
                if step is None:
                    break
                yield _sse("step", step.model_dump(mode="json"))

            error = task.exception()
            if error is not None:
                logger.error(f"Streamed analysis for {request.symbol} failed: {error}")
                yield _sse("error", {
                    "status_code": status_code_for(error),
                    "message": error_message(error),
                    "steps": [s.model_dump(mode="json") for s in progress.snapshot()],
                })
            else:
                yield _sse("result", task.result().to_response().model_dump(mode="json"))
        finally:
            if not task.done():
                task.cancel()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable buffering for nginx
        },
    )


@router.get("/recent/{symbol}", response_model=AnalysisRecord)
async def get_recent_analysis(
    symbol: str,
    pipeline: AnalysisPipeline = Depends(get_analysis_pipeline),
):
    """Get the analysis for a symbol from the current session window."""
    try:
        analysis = await pipeline.find_cached(symbol.strip().upper())
    except ServiceError as e:
        raise to_http_exception(e)

    if analysis is None:
        raise HTTPException(
            status_code=404,
            detail=f"No analysis for {symbol.upper()} in the current trading period",
        )
    return AnalysisRecord.model_validate(analysis)


@router.post("", response_model=SaveAnalysisResponse, status_code=201)
async def save_analysis(
    request: SaveAnalysisRequest,
    db: AsyncSession = Depends(get_db),
):
    """Save an analysis produced elsewhere."""
    try:
        analysis = await insert_analysis(
            db, request.symbol, request.analysis_type.value, request.analysis_text
        )
    except ServiceError as e:
        raise to_http_exception(e)

    logger.info(f"Saved {request.analysis_type.value} analysis {analysis.id} for {request.symbol}")
    return SaveAnalysisResponse(
        id=analysis.id,
        symbol=analysis.symbol,
        analysis_type=request.analysis_type,
        created_at=analysis.created_at,
    )


@router.get("/{analysis_id}", response_model=AnalysisRecord)
async def get_analysis_by_id(
    analysis_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Get a saved analysis by ID."""
    try:
        analysis = await get_analysis(db, analysis_id)
    except ServiceError as e:
        raise to_http_exception(e)

    if analysis is None:
        raise HTTPException(status_code=404, detail=f"Analysis {analysis_id} not found")
    return AnalysisRecord.model_validate(analysis)
