"""
Unified exception hierarchy for the Nakadi client.

Provides typed exceptions with retry classification so callers can decide
whether to retry, refresh credentials, reconnect or give up. The client
itself never retries.
"""

from typing import Any

# Import ErrorCategory from canonical source to avoid duplicate enum issues
# (comparing enums from different classes always returns False)
from core.types import ErrorCategory


class NakadiError(Exception):
    """
    Base exception for all client errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category in (
            ErrorCategory.TRANSIENT,
            ErrorCategory.AUTH,
            ErrorCategory.UNKNOWN,
        )

    @property
    def should_refresh_auth(self) -> bool:
        return self.category == ErrorCategory.AUTH

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Base categories
# =============================================================================


class AuthError(NakadiError):
    """Base class for authentication errors."""

    category = ErrorCategory.AUTH


class TransientError(NakadiError):
    """Base class for transient/retriable errors."""

    category = ErrorCategory.TRANSIENT


class PermanentError(NakadiError):
    """Base class for permanent/non-retriable errors."""

    category = ErrorCategory.PERMANENT


# =============================================================================
# Client errors
# =============================================================================


class ConfigurationError(PermanentError):
    """Client or call-site misconfiguration (e.g. authentication required but no token provider)."""

    pass


class TokenError(AuthError):
    """The token provider failed to produce a token."""

    pass


class ConnectivityError(TransientError):
    """Transport-level failure before any application response was received."""

    pass


class DecodeError(PermanentError):
    """A successful-looking response or stream frame could not be parsed."""

    pass


class ProblemError(NakadiError):
    """
    The broker answered with a non-2xx status.

    Carries the decoded problem payload when the body was a well-formed
    problem document, otherwise ``problem`` is None and the message holds a
    body snippet. The category follows the HTTP status.
    """

    def __init__(
        self,
        message: str,
        status: int,
        problem: Any = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.status = status
        self.problem = problem
        self.category = classify_http_status(status)

    @property
    def detail(self) -> str | None:
        return getattr(self.problem, "detail", None)


class PublishError(PermanentError):
    """Publishing was refused for some or all events of a batch."""

    def __init__(
        self,
        message: str,
        status: int,
        items: list | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.status = status
        self.items = items or []

    def _items_with_status(self, status: str) -> list:
        return [item for item in self.items if getattr(item, "publishing_status", None) == status]

    @property
    def submitted(self) -> list:
        return self._items_with_status("submitted")

    @property
    def failed(self) -> list:
        return [item for item in self.items if getattr(item, "publishing_status", None) != "submitted"]


class PartialPublishError(PublishError):
    """Some events were accepted by the broker, others were not.

    Retrying the whole batch would publish the submitted events twice.
    """

    pass


class PublishRejectedError(PublishError):
    """No event of the batch was published."""

    pass


# =============================================================================
# Stream errors (terminal: the stream is closed when these are raised)
# =============================================================================


class StreamClosedError(ConnectivityError):
    """The event stream connection ended (EOF, reset or read timeout)."""

    def __init__(
        self,
        message: str,
        batches_read: int = 0,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.batches_read = batches_read


class StreamDecodeError(DecodeError):
    """A stream frame was not a valid batch; framing can no longer be trusted."""

    def __init__(
        self,
        message: str,
        batches_read: int = 0,
        frame: bytes | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.batches_read = batches_read
        self.frame = frame


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """Classify HTTP status code into error category."""
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code == 401:
        return ErrorCategory.AUTH

    if status_code == 429:
        return ErrorCategory.TRANSIENT  # Rate limited

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT  # Client errors, won't fix with retry

    if status_code >= 500:
        return ErrorCategory.TRANSIENT  # Server errors, may recover

    return ErrorCategory.UNKNOWN


def classify_exception(exc: Exception) -> ErrorCategory:
    """Classify an exception into error category."""
    # Already classified
    if isinstance(exc, NakadiError):
        return exc.category

    exc_type = type(exc).__name__.lower()
    exc_str = str(exc).lower()

    connection_markers = (
        "connectionerror",
        "connection refused",
        "connection reset",
        "connection aborted",
        "serverdisconnected",
        "name resolution",
        "dns",
        "broken pipe",
    )
    if any(m in exc_type or m in exc_str for m in connection_markers):
        return ErrorCategory.TRANSIENT

    if "timeout" in exc_type or "timeout" in exc_str:
        return ErrorCategory.TRANSIENT

    if "401" in exc_str or "unauthorized" in exc_str:
        return ErrorCategory.AUTH

    if "429" in exc_str or "503" in exc_str or "502" in exc_str or "504" in exc_str:
        return ErrorCategory.TRANSIENT

    if "403" in exc_str or "forbidden" in exc_str or "404" in exc_str or "not found" in exc_str:
        return ErrorCategory.PERMANENT

    return ErrorCategory.UNKNOWN


def is_retryable_error(exc: Exception) -> bool:
    """
    Check if exception should be retried.

    Retryable errors include:
    - Transient errors (connection, timeout, 5xx, stream termination)
    - Auth errors (after token refresh)
    - Unknown errors (conservative retry)

    Non-retryable:
    - Permanent errors (4xx problems, decode failures, configuration)
    - Publish errors (retrying may duplicate accepted events)
    """
    if isinstance(exc, NakadiError):
        return exc.is_retryable

    return classify_exception(exc) in (
        ErrorCategory.TRANSIENT,
        ErrorCategory.AUTH,
        ErrorCategory.UNKNOWN,
    )
