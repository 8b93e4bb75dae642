"""
Shared JSON-over-HTTP helper for external APIs.

Maps transport failures onto the service error taxonomy so callers only
deal with UpstreamHttpError / UpstreamTimeout / NoContentError.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from stockanalyst.services.base import NoContentError, UpstreamHttpError, UpstreamTimeout

logger = logging.getLogger(__name__)

# Longest error body kept on an exception
MAX_ERROR_BODY = 2000


async def post_json(
    service_name: str,
    url: str,
    payload: dict,
    headers: Optional[dict] = None,
    timeout: float = 30.0,
) -> dict:
    """
    POST `payload` as JSON and return the decoded JSON response.

    Raises:
        UpstreamHttpError: non-2xx status or connection failure
        UpstreamTimeout: no complete answer within `timeout` seconds
        NoContentError: 2xx response whose body is not a JSON object
    """
    request_headers = {"Content-Type": "application/json"}
    if headers:
        request_headers.update(headers)

    try:
        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as session:
            async with session.post(url, json=payload, headers=request_headers) as response:
                logger.debug(f"{service_name} responded {response.status} {response.reason}")

                if response.status >= 400:
                    body = (await response.text())[:MAX_ERROR_BODY]
                    raise UpstreamHttpError(
                        service_name,
                        f"{service_name} API error: {response.status} {response.reason or ''}".strip(),
                        status=response.status,
                        body=body,
                    )

                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise NoContentError(
                        service_name, f"{service_name} returned a non-JSON response"
                    ) from e

    except asyncio.TimeoutError as e:
        raise UpstreamTimeout(
            service_name, f"{service_name} did not respond within {timeout:g}s"
        ) from e
    except aiohttp.ClientError as e:
        raise UpstreamHttpError(
            service_name, f"{service_name} request failed: {e}"
        ) from e

    if not isinstance(data, dict):
        raise NoContentError(service_name, f"{service_name} returned an unexpected payload")

    return data
