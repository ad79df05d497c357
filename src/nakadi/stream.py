"""
Event stream consumption for subscriptions.

The broker answers ``GET /subscriptions/{id}/events`` with an unbounded,
chunked body of newline-terminated JSON batches. This module turns that body
into an async iterator of EventBatch objects without ever buffering more
than one partial frame.

Lifecycle:
- open_stream() checks the handshake status before returning, so "stream
  never opened" (ProblemError/ConnectivityError from open_stream) is
  distinguishable from "stream failed after N batches" (errors raised by
  iteration).
- Iteration ends with a terminal error: StreamDecodeError for a malformed
  frame, StreamClosedError for EOF, reset or read timeout. The connection is
  closed before either is raised. Reconnecting is up to the caller.
- aclose() (or leaving ``async with``, or cancelling the consuming task)
  closes the connection immediately; iteration then simply stops.

Example:
    stream = await client.stream(subscription)
    async with stream:
        async for batch in stream:
            handle(batch.events)
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import asdict, dataclass

import aiohttp
from pydantic import ValidationError

from core.errors.exceptions import (
    ConnectivityError,
    StreamClosedError,
    StreamDecodeError,
    classify_exception,
)
from core.types import TokenProvider
from nakadi.auth import apply_auth
from nakadi.models import Cursor, EventBatch
from nakadi.problem import problem_from_response
from nakadi.transport import HttpTransport

logger = logging.getLogger(__name__)

STREAM_CONTENT_TYPE = "application/x-json-stream"
STREAM_ID_HEADER = "X-Nakadi-StreamId"

# Max bytes of a malformed frame kept in the error message
FRAME_SNIPPET_LENGTH = 200


@dataclass
class StreamOptions:
    """
    Query parameters controlling batching on the broker side.

    Attributes:
        batch_limit: Max events per batch
        stream_limit: Max events before the broker ends the stream
        batch_flush_timeout: Max seconds before a partial batch is flushed
        stream_timeout: Max seconds before the broker ends the stream
        stream_keep_alive_limit: Max consecutive keep-alive batches before the broker ends the stream
        max_uncommitted_events: Max events sent without a cursor commit
    """

    batch_limit: int | None = None
    stream_limit: int | None = None
    batch_flush_timeout: int | None = None
    stream_timeout: int | None = None
    stream_keep_alive_limit: int | None = None
    max_uncommitted_events: int | None = None

    def to_params(self) -> dict[str, str]:
        return {key: str(value) for key, value in asdict(self).items() if value is not None}


async def iter_frames(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """
    Split a chunked byte stream into newline-delimited frames.

    Chunk boundaries are arbitrary: a chunk may hold several frames or a
    fragment of one. Blank lines are skipped, a trailing ``\\r`` is removed,
    and an unterminated frame left at EOF is yielded last.
    """
    buffer = bytearray()
    async for chunk in chunks:
        buffer.extend(chunk)
        start = 0
        while True:
            end = buffer.find(b"\n", start)
            if end < 0:
                break
            frame = bytes(buffer[start:end]).strip()
            start = end + 1
            if frame:
                yield frame
        if start:
            del buffer[:start]

    tail = bytes(buffer).strip()
    if tail:
        yield tail


class EventStream:
    """
    Forward-only async iterator over the batches of one open event stream.

    Keep-alive batches (no events) are consumed silently. Only one task
    should iterate a given stream; any task may close it.

    Attributes:
        subscription_id: Subscription the stream belongs to
        stream_id: Broker assigned stream id (``X-Nakadi-StreamId``), if sent
        batches_read: Number of non-empty batches yielded so far
        heartbeats: Number of keep-alive batches skipped so far
        last_cursor: Cursor of the last yielded batch, for resuming elsewhere
    """

    def __init__(self, response: aiohttp.ClientResponse, subscription_id: str | None = None):
        self._response = response
        self._frames = iter_frames(response.content.iter_any())
        self._closed = False
        self._reading = False
        self.subscription_id = subscription_id
        self.stream_id = response.headers.get(STREAM_ID_HEADER)
        self.batches_read = 0
        self.heartbeats = 0
        self.last_cursor: Cursor | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def _log_extra(self) -> dict:
        return {
            "subscription_id": self.subscription_id,
            "stream_id": self.stream_id,
            "batches_read": self.batches_read,
            "heartbeats": self.heartbeats,
        }

    def __aiter__(self) -> "EventStream":
        return self

    async def __aenter__(self) -> "EventStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def _next_frame(self) -> bytes:
        self._reading = True
        try:
            return await self._frames.__anext__()
        except StopAsyncIteration:
            if self._closed:
                raise
            await self.aclose()
            logger.warning("Event stream ended by broker", extra=self._log_extra())
            raise StreamClosedError(
                "event stream ended by broker",
                batches_read=self.batches_read,
            ) from None
        except asyncio.CancelledError:
            await self.aclose()
            raise
        except (aiohttp.ClientError, TimeoutError, OSError) as e:
            if self._closed:
                raise StopAsyncIteration from None
            await self.aclose()
            logger.warning(
                "Event stream connection lost",
                extra={
                    **self._log_extra(),
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "error_category": classify_exception(e).value,
                },
            )
            raise StreamClosedError(
                "event stream connection lost",
                batches_read=self.batches_read,
                cause=e,
            ) from e
        finally:
            self._reading = False

    async def _decode(self, frame: bytes) -> EventBatch:
        try:
            return EventBatch.model_validate_json(frame)
        except ValidationError as e:
            await self.aclose()
            snippet = frame[:FRAME_SNIPPET_LENGTH].decode("utf-8", errors="replace")
            logger.error(
                "Malformed event stream frame",
                extra={**self._log_extra(), "frame_bytes": len(frame), "error": str(e)},
            )
            raise StreamDecodeError(
                f"malformed event stream frame: {snippet}",
                batches_read=self.batches_read,
                frame=frame,
                cause=e,
            ) from e

    async def __anext__(self) -> EventBatch:
        while True:
            if self._closed:
                raise StopAsyncIteration

            frame = await self._next_frame()
            batch = await self._decode(frame)

            if self._closed:
                raise StopAsyncIteration

            if batch.is_heartbeat:
                self.heartbeats += 1
                logger.debug(
                    "Keep-alive batch",
                    extra={**self._log_extra(), "partition": batch.cursor.partition},
                )
                continue

            self.batches_read += 1
            self.last_cursor = batch.cursor
            return batch

    async def aclose(self) -> None:
        """Close the connection. Idempotent; safe to call from another task."""
        if self._closed:
            return
        self._closed = True
        # Wakes a reader blocked on the body with a connection error
        self._response.close()
        if not self._reading:
            await self._frames.aclose()
        logger.info("Event stream closed", extra=self._log_extra())


async def open_stream(
    transport: HttpTransport,
    url: str,
    token_provider: TokenProvider | None = None,
    options: StreamOptions | None = None,
    subscription_id: str | None = None,
) -> EventStream:
    """
    Open an event stream and validate the handshake.

    Args:
        transport: Streaming transport (no total timeout)
        url: Full ``.../subscriptions/{id}/events`` URL
        token_provider: Optional token provider; authentication is skipped without one
        options: Optional batching parameters
        subscription_id: Subscription id, used for logging and exposed on the stream

    Returns:
        EventStream ready to be iterated

    Raises:
        ConfigurationError/TokenError: Authentication failed (no request sent)
        ConnectivityError: The connection could not be established
        ProblemError: The broker refused the stream (non-2xx handshake)
    """
    headers = {"Accept": STREAM_CONTENT_TYPE}
    await apply_auth(token_provider, headers)
    params = options.to_params() if options else None

    try:
        response = await transport.request("GET", url, headers=headers, params=params)
    except (aiohttp.ClientError, TimeoutError, OSError) as e:
        logger.error(
            "Event stream connection failed",
            exc_info=True,
            extra={
                "subscription_id": subscription_id,
                "http_url": url,
                "error_category": classify_exception(e).value,
            },
        )
        raise ConnectivityError(f"Failed to open event stream: {url}", cause=e) from e

    if not 200 <= response.status < 300:
        try:
            error = await problem_from_response(response)
        finally:
            response.close()
        logger.warning(
            "Event stream refused",
            extra={
                "subscription_id": subscription_id,
                "http_url": url,
                "http_status": response.status,
                "problem_detail": error.detail,
                "error_category": error.category.value,
            },
        )
        raise error

    stream = EventStream(response, subscription_id=subscription_id)
    logger.info(
        "Event stream opened",
        extra={"subscription_id": subscription_id, "stream_id": stream.stream_id, "http_url": url},
    )
    return stream


__all__ = [
    "STREAM_CONTENT_TYPE",
    "STREAM_ID_HEADER",
    "StreamOptions",
    "EventStream",
    "iter_frames",
    "open_stream",
]
