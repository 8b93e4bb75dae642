"""
Stock Analyst Services

Service layer containing the analysis pipeline and its external adapters.
"""

from stockanalyst.services.base import BaseService, ServiceError

__all__ = ["BaseService", "ServiceError"]
