"""
Structured logging for the sync service.

Two context variables are attached to every record:

- correlation_id: set per HTTP request (or per background job)
- sync window: year and [batch_start, batch_start + batch_size) of the
  batch currently running, set by the batch controller

so a skipped vote event logged deep inside the fetcher can still be traced
to the invocation and window it belongs to.
"""

import json
import logging
import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

SERVICE_NAME = "vote-alignment-sync"

TEXT_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "[%(correlation_id)s%(sync_window)s] %(message)s"
)

NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "asyncio")

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
sync_window_var: ContextVar[Optional[Dict[str, int]]] = ContextVar("sync_window", default=None)


def get_correlation_id() -> str:
    """Current correlation ID; one is generated (and kept) if none is set."""
    cid = correlation_id_var.get()
    if cid is None:
        cid = str(uuid.uuid4())
        correlation_id_var.set(cid)
    return cid


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


@contextmanager
def sync_window(year: int, batch_start: int, batch_size: int) -> Iterator[None]:
    """Tag every record logged inside the block with the batch window."""
    token = sync_window_var.set(
        {"year": year, "batch_start": batch_start, "batch_size": batch_size}
    )
    try:
        yield
    finally:
        sync_window_var.reset(token)


def _format_window(window: Optional[Dict[str, int]]) -> str:
    if not window:
        return ""
    return f" {window['year']}:{window['batch_start']}+{window['batch_size']}"


class SyncContextFilter(logging.Filter):
    """Copy correlation ID and sync window onto the record for formatters."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = correlation_id_var.get() or "-"
        record.sync_window = _format_window(sync_window_var.get())
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def __init__(self, service_name: str = SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        correlation_id = getattr(record, "correlation_id", None) or correlation_id_var.get()
        if correlation_id and correlation_id != "-":
            entry["correlation_id"] = correlation_id

        window = sync_window_var.get()
        if window:
            entry["sync_window"] = window

        entry["source"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            entry["extra"] = extra_fields

        return json.dumps(entry, default=str)


def configure_logging(
    level: int = logging.INFO,
    service_name: str = SERVICE_NAME,
    json_format: bool = True,
) -> None:
    """Replace the root handlers with a single stdout handler.

    Args:
        level: Root log level
        service_name: Value of the "service" field in JSON output
        json_format: JSON lines when True, human-readable text otherwise
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(SyncContextFilter())
    if json_format:
        handler.setFormatter(StructuredFormatter(service_name=service_name))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(handler)

    # One line per roster request otherwise
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging_from_env() -> None:
    """LOG_LEVEL (default INFO) and LOG_FORMAT json|text (default json)."""
    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), None)
    if not isinstance(level, int):
        level = logging.INFO
    json_format = os.getenv("LOG_FORMAT", "json").lower() != "text"
    configure_logging(level=level, json_format=json_format)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context: Any,
) -> None:
    """Log with structured fields, emitted under "extra" in JSON output."""
    extra: Dict[str, Any] = {"extra_fields": context}
    correlation_id = correlation_id_var.get()
    if correlation_id:
        extra["correlation_id"] = correlation_id
    logger.log(level, message, extra=extra)
