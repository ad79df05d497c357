"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- NakadiError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from core.errors.exceptions import (
    AuthError,
    ConfigurationError,
    ConnectivityError,
    DecodeError,
    # Enums
    ErrorCategory,
    # Base classes
    NakadiError,
    PartialPublishError,
    PermanentError,
    ProblemError,
    PublishError,
    PublishRejectedError,
    # Stream errors
    StreamClosedError,
    StreamDecodeError,
    TokenError,
    TransientError,
    # Classification utilities
    classify_exception,
    classify_http_status,
    is_retryable_error,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "NakadiError",
    "AuthError",
    "TransientError",
    "PermanentError",
    # Client errors
    "ConfigurationError",
    "TokenError",
    "ConnectivityError",
    "DecodeError",
    "ProblemError",
    "PublishError",
    "PartialPublishError",
    "PublishRejectedError",
    # Stream errors
    "StreamClosedError",
    "StreamDecodeError",
    # Classification utilities
    "is_retryable_error",
    "classify_http_status",
    "classify_exception",
]
