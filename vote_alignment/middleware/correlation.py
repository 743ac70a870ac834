"""
Correlation ID middleware.

A caller driving a full pass issues one POST /sync/alignment per window; by
sending the same X-Correlation-ID on each call, every log line of the pass
(including skipped vote events) can be grouped. Without a header a fresh id
is used per request.
"""

import logging
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from vote_alignment.lib.logging_config import (
    clear_correlation_id,
    log_with_context,
    set_correlation_id,
)

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Polled by orchestrators; not worth a log line each
QUIET_PATHS = frozenset({"/health"})


def _log_request(
    request: Request,
    started: float,
    status_code: Optional[int] = None,
    error: Optional[BaseException] = None,
) -> None:
    duration_ms = round((time.monotonic() - started) * 1000, 2)
    fields = {"method": request.method, "path": request.url.path, "duration_ms": duration_ms}

    if error is not None:
        fields["error_type"] = type(error).__name__
        log_with_context(
            logger,
            logging.ERROR,
            f"{request.method} {request.url.path} failed: {type(error).__name__}: {error} ({duration_ms}ms)",
            **fields,
        )
        return

    fields["status_code"] = status_code
    level = logging.DEBUG if request.url.path in QUIET_PATHS else logging.INFO
    log_with_context(
        logger,
        level,
        f"{request.method} {request.url.path} - {status_code} ({duration_ms}ms)",
        **fields,
    )


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Scopes a correlation ID to each request and echoes it in the response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = (
            request.headers.get(CORRELATION_ID_HEADER)
            or request.headers.get(REQUEST_ID_HEADER)
            or str(uuid.uuid4())
        )
        set_correlation_id(correlation_id)
        started = time.monotonic()

        try:
            response = await call_next(request)
            _log_request(request, started, status_code=response.status_code)
        except Exception as e:
            _log_request(request, started, error=e)
            raise
        finally:
            clear_correlation_id()

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
