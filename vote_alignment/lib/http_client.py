"""
Bounded-retry HTTP helper shared by every external call site.

The open-data API answers bursts with HTTP 429, and the static bulk files
are occasionally unavailable. Each caller picks its own retry policy:

    # Bulk dataset: a few exponential retries on 429/5xx and transport errors
    response = await resilient_request("GET", url, client=client)

    # Roster fetch: exactly one retry after a fixed wait, only on 429
    response = await resilient_request(
        "GET",
        url,
        client=client,
        max_retries=1,
        base_delay=3.0,
        exponential=False,
        jitter=False,
        retry_on_status={429},
        retry_on_exceptions=(),
        respect_retry_after=False,
    )
"""

import asyncio
import logging
import random
from typing import Any, Optional, Set, Tuple, Type

import httpx

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 30.0  # seconds
DEFAULT_RETRY_STATUS_CODES: Set[int] = {429, 500, 502, 503, 504}

# Transport errors retried by default
RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.ReadError,
    httpx.WriteError,
)


def calculate_backoff_delay(
    attempt: int,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    jitter: bool = True,
    exponential: bool = True,
) -> float:
    """Seconds to wait before retry number `attempt` (0-based).

    base_delay * 2**attempt when exponential, else base_delay; capped at
    max_delay, then stretched by up to 25% when jitter is set.
    """
    delay = base_delay * (2 ** attempt) if exponential else base_delay
    delay = min(delay, max_delay)
    return delay * (1 + random.random() * 0.25) if jitter else delay


async def _wait_before_retry(
    url: str,
    attempt: int,
    max_retries: int,
    reason: str,
    delay: float,
) -> None:
    logger.warning(
        f"{reason} from {url}, attempt {attempt + 1}/{max_retries + 1}, waiting {delay:.1f}s"
    )
    await asyncio.sleep(delay)


def _retry_after_seconds(response: httpx.Response) -> Optional[float]:
    """Numeric Retry-After header value, None when absent or an HTTP date."""
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


async def resilient_request(
    method: str,
    url: str,
    *,
    client: httpx.AsyncClient,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    exponential: bool = True,
    jitter: bool = True,
    retry_on_status: Optional[Set[int]] = None,
    retry_on_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    respect_retry_after: bool = True,
    raise_for_status: bool = True,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send a request, retrying at most max_retries times.

    Args:
        method: HTTP method
        url: Request URL
        client: Client that sends the request
        max_retries: Retries after the first attempt
        base_delay: Wait before the first retry, in seconds
        max_delay: Cap on any single wait
        exponential: Double the wait per retry; False keeps base_delay
        jitter: Stretch each wait by up to 25% at random
        retry_on_status: Statuses worth retrying (default 429 and gateway 5xx)
        retry_on_exceptions: Transport errors worth retrying; () retries none
        respect_retry_after: Never wait less than a numeric Retry-After
        raise_for_status: Raise httpx.HTTPStatusError for a final 4xx/5xx
        **kwargs: Passed through to client.request()

    Raises:
        httpx.HTTPStatusError: Final response is an error and raise_for_status is set
        httpx.HTTPError: Transport failure not retried, or still failing on the last attempt
    """
    retry_codes = DEFAULT_RETRY_STATUS_CODES if retry_on_status is None else retry_on_status
    retry_exceptions = (
        RETRYABLE_EXCEPTIONS if retry_on_exceptions is None else retry_on_exceptions
    )

    def backoff(attempt: int) -> float:
        return calculate_backoff_delay(
            attempt, base_delay, max_delay, jitter=jitter, exponential=exponential
        )

    for attempt in range(max_retries + 1):
        last_attempt = attempt >= max_retries
        try:
            response = await client.request(method, url, **kwargs)
        except retry_exceptions as e:
            if last_attempt:
                logger.error(f"{method} {url} failed after {attempt + 1} attempts: {e}")
                raise
            await _wait_before_retry(
                url, attempt, max_retries, type(e).__name__, backoff(attempt)
            )
            continue

        if response.status_code in retry_codes and not last_attempt:
            delay = backoff(attempt)
            retry_after = _retry_after_seconds(response) if respect_retry_after else None
            if retry_after is not None:
                delay = max(delay, retry_after)
            await _wait_before_retry(
                url, attempt, max_retries, f"HTTP {response.status_code}", delay
            )
            continue

        if raise_for_status:
            response.raise_for_status()
        return response

    # max_retries < 0: nothing was attempted
    raise ValueError(f"max_retries must be >= 0, got {max_retries}")
