"""
Custom exceptions for the ingestion job with structured error context.

Every failure the job can raise carries a context dictionary so the
run log and the process logs can record where it happened (source,
table, URL, status code) without parsing the message.

Exception Hierarchy:
    IngestError (base)
    ├── ConfigError
    ├── ExtractionError
    │   ├── FetchError
    │   └── TransportError
    └── LoadError
        └── SinkError

Malformed field values are never raised: coercion degrades them to
None or an empty default instead.
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone

# Response bodies embedded in errors are cut to this many characters.
MAX_BODY_CHARS = 500


class IngestError(Exception):
    """
    Base exception for all ingestion errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (source, table, url, ...)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += (
                f" | Caused by: {type(self.original_exception).__name__}: "
                f"{self.original_exception}"
            )

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


class ConfigError(IngestError):
    """
    Required configuration is missing or invalid.

    Raised by core.config.load_settings before any network or storage
    I/O takes place. Context carries the offending variable names under
    ``variables``.
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(IngestError):
    """Base exception for upstream source failures."""
    pass


class FetchError(ExtractionError):
    """
    The upstream source answered, but not with usable data.

    Raised on a non-2xx status, or when a paged endpoint returns a body
    that is not a JSON array.
    """

    def __init__(
        self,
        message: str,
        url: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        context = dict(context or {})
        context["url"] = url
        if status_code is not None:
            context["status_code"] = status_code
        if body:
            context["response_body"] = body[:MAX_BODY_CHARS]
        super().__init__(message, context, original_exception)
        self.url = url
        self.status_code = status_code
        self.body = body


class TransportError(ExtractionError):
    """The upstream source could not be reached (DNS, connect, timeout)."""

    def __init__(
        self,
        message: str,
        url: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        context = dict(context or {})
        context["url"] = url
        super().__init__(message, context, original_exception)
        self.url = url


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(IngestError):
    """Base exception for destination write failures."""
    pass


class SinkError(LoadError):
    """
    A destination write was rejected.

    The message embeds the table name, the status code (None for
    direct database writes) and the response body, matching what the
    run log records for a failed task.
    """

    def __init__(
        self,
        table: str,
        status_code: Optional[int] = None,
        body: str = "",
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        context = dict(context or {})
        context["table"] = table
        context["status_code"] = status_code
        message = f"Upsert failed ({table}): {status_code}\n{body[:MAX_BODY_CHARS]}"
        super().__init__(message, context, original_exception)
        self.table = table
        self.status_code = status_code
        self.body = body


def error_message(exc: BaseException) -> str:
    """Plain failure message for the run log and the trigger response."""
    if isinstance(exc, IngestError):
        return exc.message
    return str(exc) or type(exc).__name__
