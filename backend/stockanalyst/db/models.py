"""
SQLAlchemy models for the Stock Analyst database.

Two tables:
- stock_analyses: saved AI reports (never updated after insert)
- historical_data_cache: raw historical-data provider responses
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Text,
    Index,
    JSON,
)
from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite stores datetimes without offset)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class StockAnalysis(Base):
    """
    AI-generated analysis report.
    Looked up by symbol + created_at for the per-session cache.
    """
    __tablename__ = "stock_analyses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    symbol = Column(String(20), nullable=False, index=True)
    analysis_type = Column(String(32), nullable=False)  # historical, support_resistance, combined, trend_and_sr
    analysis_text = Column(Text, nullable=False)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_stock_analyses_symbol_created", "symbol", "created_at"),
    )


class HistoricalDataCache(Base):
    """
    Raw historical-data provider response, stored as-is.
    One row per fetch; freshness is judged by the pipeline, not by expiry.
    """
    __tablename__ = "historical_data_cache"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    symbol = Column(String(20), nullable=False, index=True)
    data = Column(JSON, nullable=False)  # {"success": true, "data": {"week": {...}, "day": {...}, "30min": {...}}}

    created_at = Column(DateTime, nullable=False, default=utcnow)
