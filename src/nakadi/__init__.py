"""
Asyncio client for the Nakadi event broker.

Creates subscriptions, publishes events and consumes subscription event
streams over HTTP, attaching bearer tokens to every request when a token
provider is configured.

Example:
    >>> from nakadi import Client, tokens, url, static_token
    >>> client = Client(url("https://nakadi.example.org"), tokens(static_token("secret")))
"""

from nakadi.auth import apply_auth, authorize, static_token, token_from_env, token_from_file
from nakadi.client import (
    DEFAULT_NAKADI_URL,
    DEFAULT_TIMEOUT,
    Client,
    ClientConfig,
    stream_read_timeout,
    timeout,
    tokens,
    transports,
    url,
)
from nakadi.events import BusinessEvent, DataChangeEvent, DataOperation, EventMetadata
from nakadi.models import BatchItemResponse, Cursor, EventBatch, Problem, Subscription
from nakadi.stream import EventStream, StreamOptions
from nakadi.transport import HttpTransport

__all__ = [
    # Client
    "Client",
    "ClientConfig",
    "DEFAULT_NAKADI_URL",
    "DEFAULT_TIMEOUT",
    # Options
    "url",
    "timeout",
    "tokens",
    "stream_read_timeout",
    "transports",
    # Authentication
    "authorize",
    "apply_auth",
    "static_token",
    "token_from_env",
    "token_from_file",
    # Models
    "Subscription",
    "Cursor",
    "EventBatch",
    "Problem",
    "BatchItemResponse",
    "EventMetadata",
    "BusinessEvent",
    "DataChangeEvent",
    "DataOperation",
    # Streaming
    "EventStream",
    "StreamOptions",
    "HttpTransport",
]
