"""
History API Endpoints

Browse saved analyses with search, type filter, sort and pagination.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockanalyst.api.errors import to_http_exception
from stockanalyst.core.config import settings
from stockanalyst.db.database import get_db, list_analyses, total_pages
from stockanalyst.db.models import StockAnalysis
from stockanalyst.schemas.analysis import (
    AnalysisType,
    HistoryItem,
    HistoryPage,
    SortOrder,
)
from stockanalyst.services.analysis.summary import (
    extract_overall_trend,
    format_date_et,
    format_relative_date_et,
    get_analysis_preview,
    get_analysis_type_label,
)
from stockanalyst.services.base import ServiceError

router = APIRouter()


def to_history_item(analysis: StockAnalysis) -> HistoryItem:
    return HistoryItem(
        id=analysis.id,
        symbol=analysis.symbol,
        analysis_type=analysis.analysis_type,
        analysis_text=analysis.analysis_text,
        created_at=analysis.created_at,
        updated_at=analysis.updated_at,
        preview=get_analysis_preview(analysis.analysis_text),
        type_label=get_analysis_type_label(analysis.analysis_type),
        overall_trend=extract_overall_trend(analysis.analysis_text),
        created_at_et=format_date_et(analysis.created_at),
        created_at_relative=format_relative_date_et(analysis.created_at),
    )


@router.get("", response_model=HistoryPage)
async def list_history(
    search: Optional[str] = Query(default=None, description="Symbol contains (case-insensitive)"),
    analysis_type: Optional[AnalysisType] = Query(default=None),
    sort: SortOrder = Query(default=SortOrder.NEWEST),
    page: int = Query(default=1, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """
    List saved analyses, newest first by default.

    Each item carries a preview, a readable type label and the overall
    trend detected in its text.
    """
    page_size = settings.history_page_size
    try:
        rows, count = await list_analyses(
            db,
            search=search,
            analysis_type=analysis_type.value if analysis_type else None,
            newest_first=sort == SortOrder.NEWEST,
            page=page,
            page_size=page_size,
        )
    except ServiceError as e:
        raise to_http_exception(e)

    return HistoryPage(
        items=[to_history_item(row) for row in rows],
        page=page,
        page_size=page_size,
        total_count=count,
        total_pages=total_pages(count, page_size),
    )
