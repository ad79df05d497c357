"""
Core library: Reusable, broker-agnostic components.

Modules:
    logging     - Structured JSON logging with subscription/stream context
    errors      - Error classification and exception hierarchy
    utils       - JSON serialization helpers

Design Principles:
    - No dependency on the Nakadi client package
    - All modules are independently testable
"""

from .types import ErrorCategory, TokenProvider

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
    "TokenProvider",
]
