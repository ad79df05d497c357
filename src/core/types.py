"""
Core types and protocols used across modules.

This module provides base enums and protocol definitions that are shared
across the core library and the Nakadi client to ensure consistency.
"""

from collections.abc import Awaitable
from enum import Enum
from typing import Protocol


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    The client never retries on its own; callers use the category to decide
    whether to retry, refresh credentials, reconnect or give up.

    Categories:
        TRANSIENT: Temporary failures that may succeed on retry
                   (e.g., connection refused, timeouts, 429/503 responses)
        AUTH: Authentication failures requiring credential refresh
              (e.g., 401 responses, token provider failures)
        PERMANENT: Non-retriable failures that won't succeed on retry
                   (e.g., 404, malformed payloads, configuration issues)
        UNKNOWN: Unclassified errors, may retry conservatively
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class TokenProvider(Protocol):
    """
    Protocol for bearer token providers.

    Any zero-argument callable qualifies: a plain function or lambda
    returning the token, or a coroutine function resolving to it. The token
    is requested again for every authenticated call and never cached here.
    """

    def __call__(self) -> str | Awaitable[str]:
        ...


__all__ = [
    "ErrorCategory",
    "TokenProvider",
]
