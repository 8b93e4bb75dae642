"""
Database connection and session management.

Uses SQLite with aiosqlite for async support unless DATABASE_URL points
elsewhere.
"""

import math
import os
import logging
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from stockanalyst.db.models import Base, HistoricalDataCache, StockAnalysis
from stockanalyst.core.config import settings
from stockanalyst.services.base import StoreError

logger = logging.getLogger(__name__)

# Database path - create data directory if needed
DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "data")

SQLITE_PATH = os.path.join(DATA_DIR, "stockanalyst.db")
DATABASE_URL = settings.database_url or f"sqlite+aiosqlite:///{SQLITE_PATH}"


def create_engine_for(url: str) -> AsyncEngine:
    """Create an async engine; SQLite gets a single shared connection."""
    if url.startswith("sqlite"):
        if url == f"sqlite+aiosqlite:///{SQLITE_PATH}":
            os.makedirs(DATA_DIR, exist_ok=True)
        return create_async_engine(
            url,
            echo=False,  # Set to True for SQL debugging
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,  # Recommended for SQLite
        )
    return create_async_engine(url, echo=False, pool_pre_ping=True)


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = create_engine_for(DATABASE_URL)
AsyncSessionLocal = create_session_factory(engine)


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """
    Initialize the database - create all tables.
    Called on application startup.
    """
    bind = bind or engine
    try:
        async with bind.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Database initialized at: {bind.url}")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def close_db() -> None:
    """
    Close database connections.
    Called on application shutdown.
    """
    await engine.dispose()
    logger.info("Database connections closed")


@contextmanager
def store_errors(operation: str):
    """Translate SQLAlchemy failures into StoreError."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Store operation '{operation}' failed: {e}")
        raise StoreError("Database", f"Failed to {operation}: {e}") from e


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.
    Use with FastAPI Depends().
    """
    async with session_scope() as session:
        yield session


@asynccontextmanager
async def session_scope(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions.
    Commits on success, rolls back on any exception.
    """
    factory = session_factory or AsyncSessionLocal
    async with factory() as session:
        try:
            yield session
            with store_errors("commit transaction"):
                await session.commit()
        except Exception:
            await session.rollback()
            raise


def as_naive_utc(dt: datetime) -> datetime:
    """Stored timestamps are naive UTC; normalize aware values to match."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


# CRUD helper functions

async def insert_historical_data(session: AsyncSession, symbol: str, data: dict) -> HistoricalDataCache:
    """Store a raw historical-data provider response."""
    row = HistoricalDataCache(symbol=symbol.upper(), data=data)
    with store_errors("store historical data"):
        session.add(row)
        await session.flush()
    return row


async def get_historical_data(session: AsyncSession, historical_data_id: str) -> Optional[HistoricalDataCache]:
    """Get a cached historical payload by id."""
    with store_errors("load historical data"):
        result = await session.execute(
            select(HistoricalDataCache).where(HistoricalDataCache.id == historical_data_id)
        )
        return result.scalar_one_or_none()


async def insert_analysis(
    session: AsyncSession,
    symbol: str,
    analysis_type: str,
    analysis_text: str,
) -> StockAnalysis:
    """Store a finished analysis."""
    analysis = StockAnalysis(
        symbol=symbol.upper(),
        analysis_type=analysis_type,
        analysis_text=analysis_text,
    )
    with store_errors("save analysis"):
        session.add(analysis)
        await session.flush()
    return analysis


async def get_analysis(session: AsyncSession, analysis_id: str) -> Optional[StockAnalysis]:
    """Get one analysis by id."""
    with store_errors("load analysis"):
        result = await session.execute(
            select(StockAnalysis).where(StockAnalysis.id == analysis_id)
        )
        return result.scalar_one_or_none()


async def find_recent_analysis(
    session: AsyncSession,
    symbol: str,
    since: datetime,
) -> Optional[StockAnalysis]:
    """Newest analysis for `symbol` created at or after `since`."""
    with store_errors("look up recent analysis"):
        result = await session.execute(
            select(StockAnalysis)
            .where(StockAnalysis.symbol == symbol.upper())
            .where(StockAnalysis.created_at >= as_naive_utc(since))
            .order_by(StockAnalysis.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()


async def list_analyses(
    session: AsyncSession,
    search: Optional[str] = None,
    analysis_type: Optional[str] = None,
    newest_first: bool = True,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[StockAnalysis], int]:
    """
    Page through saved analyses.

    `search` matches anywhere in the symbol, case-insensitively.
    Returns (rows, total_count).
    """
    query = select(StockAnalysis)
    count_query = select(func.count()).select_from(StockAnalysis)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(StockAnalysis.symbol.ilike(pattern))
        count_query = count_query.where(StockAnalysis.symbol.ilike(pattern))

    if analysis_type:
        query = query.where(StockAnalysis.analysis_type == analysis_type)
        count_query = count_query.where(StockAnalysis.analysis_type == analysis_type)

    order = StockAnalysis.created_at.desc() if newest_first else StockAnalysis.created_at.asc()
    offset = (max(page, 1) - 1) * page_size

    with store_errors("list analyses"):
        total = (await session.execute(count_query)).scalar_one()
        result = await session.execute(
            query.order_by(order).offset(offset).limit(page_size)
        )
        return list(result.scalars().all()), total


def total_pages(total_count: int, page_size: int) -> int:
    return math.ceil(total_count / page_size) if page_size > 0 else 0
