"""
Map service exceptions onto HTTP responses.
"""

import logging
from typing import Optional

from fastapi import HTTPException

from stockanalyst.schemas.analysis import LoadingStep
from stockanalyst.services.base import (
    AllProvidersExhausted,
    ConfigurationError,
    NoContentError,
    StoreError,
    UpstreamHttpError,
    UpstreamTimeout,
)

logger = logging.getLogger(__name__)

UPSTREAM_ERRORS = (UpstreamHttpError, UpstreamTimeout, NoContentError, AllProvidersExhausted)


def status_code_for(error: Exception) -> int:
    if isinstance(error, ValueError):
        return 400
    if isinstance(error, ConfigurationError):
        return 503
    if isinstance(error, UPSTREAM_ERRORS):
        return 502
    return 500


def error_message(error: Exception) -> str:
    message = str(error) or error.__class__.__name__
    if isinstance(error, (ValueError, StoreError, ConfigurationError) + UPSTREAM_ERRORS):
        return message
    return f"Analysis failed: {message}"


def to_http_exception(error: Exception, steps: Optional[list[LoadingStep]] = None) -> HTTPException:
    """HTTPException whose detail carries the message and step list."""
    status_code = status_code_for(error)
    if status_code >= 500:
        logger.error(f"Request failed ({status_code}): {error}")
    detail = {"message": error_message(error)}
    if steps is not None:
        detail["steps"] = [step.model_dump(mode="json") for step in steps]
    return HTTPException(status_code=status_code, detail=detail)
