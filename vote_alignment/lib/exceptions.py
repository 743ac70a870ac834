"""
Exception hierarchy for the vote alignment service.

Exception Hierarchy:
    VoteAlignmentError (base)
    ├── ConfigurationError - Invalid or missing configuration
    ├── PersistenceError - Required write did not complete (fatal)
    └── SourceError - Upstream open-data source failures
        └── OrientationLoadError - Bulk orientation dataset unusable (fatal)

Per-item roster failures are not exceptions: the fetcher logs and skips them.
"""

from typing import Any, Optional


class VoteAlignmentError(Exception):
    """Base exception for all vote alignment errors.

    Attributes:
        message: Human-readable error description
        context: Additional context about the error (year, url, ...)
    """

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message


class ConfigurationError(VoteAlignmentError):
    """Raised when configuration is invalid or missing."""
    pass


class SourceError(VoteAlignmentError):
    """Base class for upstream data source errors.

    Attributes:
        url: The URL that was being fetched
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        context = kwargs.pop("context", {})
        if url:
            context["url"] = url
        super().__init__(message, context=context)
        self.url = url


class OrientationLoadError(SourceError):
    """The bulk orientation dataset could not be fetched or parsed.

    Aborts the whole sync invocation.

    Attributes:
        year: Year whose dataset failed to load
        status_code: HTTP status code if the failure was an HTTP error
    """

    def __init__(
        self,
        message: str,
        year: Optional[int] = None,
        status_code: Optional[int] = None,
        **kwargs: Any
    ) -> None:
        context = kwargs.pop("context", {})
        if year is not None:
            context["year"] = year
        if status_code is not None:
            context["status_code"] = status_code
        super().__init__(message, context=context, **kwargs)
        self.year = year
        self.status_code = status_code


class PersistenceError(VoteAlignmentError):
    """A write the sync cannot continue without did not complete.

    Attributes:
        table: Target table
    """

    def __init__(self, message: str, table: Optional[str] = None, **context: Any) -> None:
        if table:
            context["table"] = table
        super().__init__(message, context=context)
        self.table = table
