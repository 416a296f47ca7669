"""Shared async HTTP client with connection pooling."""

import logging
from typing import Optional

import httpx

from ..config import get_settings

logger = logging.getLogger(__name__)

_client: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    """Return the process-wide client, creating it on first use."""
    global _client
    if _client is None or _client.is_closed:
        settings = get_settings()
        _client = httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=httpx.Timeout(settings.request_timeout),
            headers={"Content-Type": "application/json", **settings.auth_headers()},
        )
        logger.debug("Created shared HTTP client for %s", settings.api_base_url)
    return _client


async def close_http_client() -> None:
    """Close the shared client. A later call to get_http_client() opens a new one."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
