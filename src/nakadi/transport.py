"""
HTTP transport used by the control-plane and streaming operations.

Wraps an aiohttp ClientSession together with the timeout policy it is used
with. The client keeps two of these: a bounded one for subscribe/publish and
an unbounded one for event streams, since a client-wide total timeout would
sever healthy long-lived streams.

Sessions are created lazily on first use, inside the running event loop.
A session passed in by the caller (a fake in tests, or a shared application
session) is used as-is and never closed by the transport.
"""

import logging

import aiohttp

from core.errors.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

USER_AGENT = "nakadi-client/0.1"
DEFAULT_MAX_CONNECTIONS = 100


def create_session(
    timeout: aiohttp.ClientTimeout,
    max_connections: int = DEFAULT_MAX_CONNECTIONS,
) -> aiohttp.ClientSession:
    """
    Create an aiohttp ClientSession with connection pooling and the given timeouts.

    Args:
        timeout: Default timeout policy for requests made with the session
        max_connections: Total connection pool size

    Returns:
        Configured aiohttp.ClientSession (caller closes it)
    """
    connector = aiohttp.TCPConnector(
        limit=max_connections,
        ttl_dns_cache=300,
    )
    return aiohttp.ClientSession(
        connector=connector,
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
    )


def control_timeout(seconds: float) -> aiohttp.ClientTimeout:
    """Bounded timeout for request/response operations."""
    return aiohttp.ClientTimeout(total=seconds)


def stream_timeout(connect_seconds: float, read_seconds: float | None = None) -> aiohttp.ClientTimeout:
    """Timeout for event streams: no total limit, optional idle read limit."""
    return aiohttp.ClientTimeout(
        total=None,
        connect=connect_seconds,
        sock_read=read_seconds,
    )


class HttpTransport:
    """
    A lazily created aiohttp session plus the timeout applied to its requests.

    Safe for concurrent use by any number of tasks in one event loop.
    """

    def __init__(
        self,
        timeout: aiohttp.ClientTimeout,
        session: aiohttp.ClientSession | None = None,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
    ):
        self.timeout = timeout
        self.max_connections = max_connections
        self._session = session
        self._owns_session = session is None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise ConfigurationError("HttpTransport is closed, cannot create new session")
        if self._session is None or (self._owns_session and self._session.closed):
            self._session = create_session(self.timeout, self.max_connections)
            self._owns_session = True
        return self._session

    def request(self, method: str, url: str, **kwargs):
        """Start a request; use the result as an async context manager or await it."""
        kwargs.setdefault("timeout", self.timeout)
        return self.session.request(method, url, **kwargs)

    async def close(self) -> None:
        self._closed = True
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


__all__ = [
    "USER_AGENT",
    "HttpTransport",
    "create_session",
    "control_timeout",
    "stream_timeout",
]
