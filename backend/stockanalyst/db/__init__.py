"""
Database module for Stock Analyst.

Provides the async database connection, models and CRUD helpers.
"""

from stockanalyst.db.database import (
    get_db,
    init_db,
    session_scope,
    AsyncSessionLocal,
)
from stockanalyst.db.models import Base, StockAnalysis, HistoricalDataCache

__all__ = [
    "get_db",
    "init_db",
    "session_scope",
    "AsyncSessionLocal",
    "Base",
    "StockAnalysis",
    "HistoricalDataCache",
]
