"""Retry with exponential backoff for backend requests.

Transparent to callers: wrap any async callable and it retries on transient failures.
"""

import asyncio
import logging
import random
from typing import Any, Callable, Awaitable, Set

import httpx

from .exceptions import (
    ApiAuthError,
    ApiForbiddenError,
    ApiNotFoundError,
    ApiRateLimitError,
    ApiResponseError,
    ApiTimeoutError,
    ApiTransportError,
)

logger = logging.getLogger(__name__)

# Status codes that trigger a retry
RETRYABLE_STATUS_CODES: Set[int] = {429, 500, 502, 503, 504}

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 0.5
DEFAULT_MAX_DELAY = 10.0


async def retry_with_backoff(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    **kwargs: Any,
) -> Any:
    """Execute an async function with retry and exponential backoff.

    Retries on:
      - HTTP 429, 500, 502, 503, 504
      - httpx.TimeoutException, httpx.NetworkError (connect, read, write, close)

    Never retries:
      - HTTP 401 (raises ApiAuthError immediately)
      - HTTP 403 (raises ApiForbiddenError immediately)
      - Other httpx request errors (raises ApiTransportError immediately)

    On 429, uses Retry-After header if present, else exponential backoff.
    Uses full jitter: delay = random(0, min(max_delay, base_delay * 2^attempt)).

    Raises:
        ApiAuthError: On 401.
        ApiForbiddenError: On 403.
        ApiNotFoundError: On 404.
        ApiRateLimitError: On 429 after exhausting retries.
        ApiResponseError: On other HTTP errors after exhausting retries.
        ApiTimeoutError: On timeout or network failure after exhausting retries.
        ApiTransportError: On any other httpx request error.
    """
    for attempt in range(max_retries + 1):
        try:
            return await fn(*args, **kwargs)

        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code

            if status == 401:
                raise ApiAuthError("Authentication failed: HTTP 401") from exc
            if status == 403:
                raise ApiForbiddenError("Permission denied: HTTP 403") from exc

            if status in RETRYABLE_STATUS_CODES and attempt < max_retries:
                delay = _compute_delay(
                    attempt, base_delay, max_delay, exc.response
                )
                logger.warning(
                    "Retryable HTTP %d (attempt %d/%d), waiting %.1fs",
                    status,
                    attempt + 1,
                    max_retries,
                    delay,
                )
                await asyncio.sleep(delay)
                continue

            # Exhausted retries or non-retryable status
            if status == 429:
                raise ApiRateLimitError(
                    "Rate limited: HTTP 429",
                    retry_after=_parse_retry_after(exc.response),
                ) from exc
            if status == 404:
                raise ApiNotFoundError("Not found: HTTP 404") from exc
            raise ApiResponseError(
                f"API error: HTTP {status}",
                status_code=status,
                response_body=exc.response.text[:500],
            ) from exc

        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            if attempt < max_retries:
                delay = _compute_delay(attempt, base_delay, max_delay)
                logger.warning(
                    "Connection error (attempt %d/%d), waiting %.1fs: %s",
                    attempt + 1,
                    max_retries,
                    delay,
                    type(exc).__name__,
                )
                await asyncio.sleep(delay)
                continue

            raise ApiTimeoutError(
                f"Request failed after {max_retries} retries: {type(exc).__name__}"
            ) from exc

        except httpx.RequestError as exc:
            raise ApiTransportError(f"Request failed: {type(exc).__name__}: {exc}") from exc


def _compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    response: httpx.Response | None = None,
) -> float:
    """Compute retry delay with full jitter.

    On 429, prefers the Retry-After header value if present.
    """
    if response is not None:
        retry_after = _parse_retry_after(response)
        if retry_after is not None:
            return min(retry_after, max_delay)

    exp_delay = base_delay * (2**attempt)
    return random.uniform(0, min(exp_delay, max_delay))


def _parse_retry_after(response: httpx.Response) -> float | None:
    """Parse Retry-After header (seconds only, not HTTP-date)."""
    value = response.headers.get("Retry-After") or response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None
