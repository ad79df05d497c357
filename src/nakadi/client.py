"""
Nakadi client: configuration plus the public subscribe/publish/stream operations.

The client is configured once, through option functions applied at
construction, and is read-only afterwards. It owns two HTTP transports:

- http_client: bounded total timeout, for subscribe and publish
- http_stream: no total timeout, for long-lived event streams

Example:
    async with Client(url("https://nakadi.example.org"), tokens(static_token(token))) as client:
        subscription = await client.subscribe("my-app", "order.created")
        stream = await client.stream(subscription)
        async with stream:
            async for batch in stream:
                process(batch.events)
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from pydantic import ValidationError

from core.errors.exceptions import (
    ConfigurationError,
    DecodeError,
    PartialPublishError,
    PublishError,
    PublishRejectedError,
)
from core.types import TokenProvider
from nakadi.models import BatchItemResponse, Subscription
from nakadi.problem import problem_from_payload
from nakadi.requests import request_json
from nakadi.stream import EventStream, StreamOptions, open_stream
from nakadi.transport import HttpTransport, control_timeout, stream_timeout

if TYPE_CHECKING:
    from config.config import NakadiSettings

logger = logging.getLogger(__name__)

DEFAULT_NAKADI_URL = "http://localhost:8080"
DEFAULT_TIMEOUT = 30.0

# Publish responses listing per-event outcomes instead of a problem
PUBLISH_ITEM_STATUSES = (207, 422)


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable client configuration.

    Attributes:
        nakadi_url: Broker base URL, without trailing slash
        timeout: Total timeout for control-plane requests, and connect timeout for streams (seconds)
        stream_read_timeout: Max idle seconds between stream chunks, None for no limit
        token_provider: Bearer token provider, None for unauthenticated brokers
        http_client: Injected control-plane transport (built from timeout when None)
        http_stream: Injected streaming transport (built from timeouts when None)
    """

    nakadi_url: str = DEFAULT_NAKADI_URL
    timeout: float = DEFAULT_TIMEOUT
    stream_read_timeout: float | None = None
    token_provider: TokenProvider | None = None
    http_client: HttpTransport | None = None
    http_stream: HttpTransport | None = None


Option = Callable[[ClientConfig], ClientConfig]


def url(nakadi_url: str) -> Option:
    """Override the broker base URL."""
    if not nakadi_url:
        raise ConfigurationError("Nakadi URL must not be empty")

    def _apply(config: ClientConfig) -> ClientConfig:
        return replace(config, nakadi_url=nakadi_url.rstrip("/"))

    return _apply


def timeout(seconds: float) -> Option:
    """Override the control-plane request timeout."""
    if seconds <= 0:
        raise ConfigurationError(f"timeout must be positive, got {seconds}")

    def _apply(config: ClientConfig) -> ClientConfig:
        return replace(config, timeout=float(seconds))

    return _apply


def tokens(provider: TokenProvider | None) -> Option:
    """Authenticate every request with tokens from the given provider."""

    def _apply(config: ClientConfig) -> ClientConfig:
        return replace(config, token_provider=provider)

    return _apply


def stream_read_timeout(seconds: float | None) -> Option:
    """Fail a stream with StreamClosedError after this many idle seconds."""
    if seconds is not None and seconds <= 0:
        raise ConfigurationError(f"stream_read_timeout must be positive, got {seconds}")

    def _apply(config: ClientConfig) -> ClientConfig:
        return replace(config, stream_read_timeout=seconds)

    return _apply


def transports(http: HttpTransport | None = None, stream: HttpTransport | None = None) -> Option:
    """Use the given transports instead of building them from the timeouts."""

    def _apply(config: ClientConfig) -> ClientConfig:
        return replace(
            config,
            http_client=http or config.http_client,
            http_stream=stream or config.http_stream,
        )

    return _apply


class Client:
    """
    Nakadi client.

    Safe for concurrent use by any number of tasks of one event loop: no
    per-call state is kept on the client.
    """

    def __init__(self, *options: Option):
        config = ClientConfig()
        for option in options:
            config = option(config)
        self._config = config

        self._http_client = config.http_client or HttpTransport(control_timeout(config.timeout))
        self._http_stream = config.http_stream or HttpTransport(
            stream_timeout(config.timeout, config.stream_read_timeout)
        )

    @classmethod
    def from_config(cls, settings: "NakadiSettings") -> "Client":
        """Build a client from the file/environment configuration layer."""
        return cls(
            url(settings.url),
            timeout(settings.timeout_seconds),
            stream_read_timeout(settings.stream_read_timeout_seconds),
            tokens(settings.token_provider()),
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def nakadi_url(self) -> str:
        return self._config.nakadi_url

    @property
    def timeout(self) -> float:
        return self._config.timeout

    @property
    def token_provider(self) -> TokenProvider | None:
        return self._config.token_provider

    @property
    def http_client(self) -> HttpTransport:
        return self._http_client

    @property
    def http_stream(self) -> HttpTransport:
        return self._http_stream

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close both transports. Open event streams should be closed first."""
        await self._http_client.close()
        await self._http_stream.close()

    async def subscribe(
        self,
        owning_application: str,
        event_type: str,
        consumer_group: str = "default",
        read_from: str = "end",
    ) -> Subscription:
        """
        Create the subscription, or fetch it if it already exists.

        The broker matches existing subscriptions on owning application,
        event types and consumer group, so calling this repeatedly is safe.

        Args:
            owning_application: Application owning the subscription
            event_type: Event type to consume
            consumer_group: Consumer group name
            read_from: Where a new subscription starts reading ("begin" or "end")

        Returns:
            Subscription as stored by the broker, with its ``id`` assigned

        Raises:
            TokenError: The token provider failed (no request sent)
            ConnectivityError: The broker could not be reached
            ProblemError: The broker refused the subscription
            DecodeError: The response is not a subscription
        """
        payload: dict[str, Any] = {
            "owning_application": owning_application,
            "event_types": [event_type],
        }
        if consumer_group:
            payload["consumer_group"] = consumer_group
        if read_from:
            payload["read_from"] = read_from

        endpoint = f"{self.nakadi_url}/subscriptions"
        status, data = await request_json(
            self._http_client,
            "POST",
            endpoint,
            token_provider=self.token_provider,
            payload=payload,
        )

        try:
            subscription = Subscription.model_validate(data)
        except ValidationError as e:
            raise DecodeError(
                "Invalid subscription in response",
                cause=e,
                context={"http_status": status, "http_url": endpoint},
            ) from e

        logger.info(
            "Subscription ready",
            extra={
                "subscription_id": subscription.id,
                "owning_application": owning_application,
                "event_type": event_type,
                "consumer_group": subscription.consumer_group,
                "http_status": status,
            },
        )
        return subscription

    async def publish(self, event_type: str, *events: Any) -> None:
        """
        Publish events to an event type in one batch.

        Events may be dicts or pydantic models (see nakadi.events).

        Raises:
            TokenError: The token provider failed (no request sent)
            ConnectivityError: The broker could not be reached
            PartialPublishError: Some events were published, others were not
            PublishRejectedError: None of the events were published
            ProblemError: The broker refused the whole request
            DecodeError: The per-event response could not be parsed
        """
        if not events:
            logger.debug("Nothing to publish", extra={"event_type": event_type})
            return None

        endpoint = f"{self.nakadi_url}/event-types/{quote(event_type, safe='')}/events"
        status, data = await request_json(
            self._http_client,
            "POST",
            endpoint,
            token_provider=self.token_provider,
            payload=list(events),
            accept=PUBLISH_ITEM_STATUSES,
        )

        if status not in PUBLISH_ITEM_STATUSES:
            logger.info(
                "Events published",
                extra={"event_type": event_type, "events_count": len(events), "http_status": status},
            )
            return None

        if not isinstance(data, list):
            raise problem_from_payload(status, data, url=endpoint)

        raise self._publish_error(event_type, status, data, endpoint)

    def _publish_error(self, event_type: str, status: int, data: list, endpoint: str) -> PublishError:
        context = {"http_status": status, "http_url": endpoint, "event_type": event_type}
        try:
            items = [BatchItemResponse.model_validate(item) for item in data]
        except ValidationError as e:
            raise DecodeError("Invalid publishing result in response", cause=e, context=context) from e

        submitted = sum(1 for item in items if item.publishing_status == "submitted")
        reasons = [item.detail for item in items if item.publishing_status != "submitted" and item.detail]

        if submitted:
            message = f"{submitted} of {len(items)} events published to {event_type}"
            error_class: type[PublishError] = PartialPublishError
        else:
            message = f"no events published to {event_type}"
            error_class = PublishRejectedError
        if reasons:
            message = f"{message}: {reasons[0]}"

        logger.warning(
            "Publishing failed",
            extra={
                "event_type": event_type,
                "http_status": status,
                "events_count": len(items),
                "events_submitted": submitted,
                "events_failed": len(items) - submitted,
            },
        )
        return error_class(message, status=status, items=items, context=context)

    async def stream(
        self,
        subscription: Subscription | str,
        options: StreamOptions | None = None,
    ) -> EventStream:
        """
        Open the event stream of a subscription.

        The subscription must already exist (its ``id`` set); the id is never
        looked up. The handshake is checked before returning, so errors raised
        here mean the stream never opened.

        Args:
            subscription: Subscription, or its id
            options: Optional batching parameters

        Returns:
            EventStream to iterate; close it (or use ``async with``) when done

        Raises:
            ConfigurationError: The subscription has no id
            TokenError: The token provider failed (no request sent)
            ConnectivityError: The broker could not be reached
            ProblemError: The broker refused the stream
        """
        subscription_id = subscription if isinstance(subscription, str) else subscription.id
        if not subscription_id:
            raise ConfigurationError("subscription id is required to open a stream")

        endpoint = f"{self.nakadi_url}/subscriptions/{quote(subscription_id, safe='')}/events"
        return await open_stream(
            self._http_stream,
            endpoint,
            token_provider=self.token_provider,
            options=options,
            subscription_id=subscription_id,
        )


__all__ = [
    "DEFAULT_NAKADI_URL",
    "DEFAULT_TIMEOUT",
    "Client",
    "ClientConfig",
    "Option",
    "url",
    "timeout",
    "tokens",
    "stream_read_timeout",
    "transports",
]
