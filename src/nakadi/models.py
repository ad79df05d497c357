"""
Broker wire models.

Pydantic models for the JSON documents exchanged with the broker: the
subscription resource, stream batches and their cursors, problem payloads
and per-event publish results.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Subscription(BaseModel):
    """A durable consumption group over one or more event types.

    The broker assigns ``id`` when the subscription is created; it stays
    empty on locally built instances until then. Instances are immutable.

    Example:
        >>> sub = Subscription(
        ...     owning_application="nakadi-client",
        ...     event_types=["test-data"],
        ... )
        >>> sub.consumer_group
        'default'
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default="", description="Broker assigned identifier")
    owning_application: str = Field(..., min_length=1)
    event_types: list[str] = Field(default_factory=list)
    consumer_group: str = Field(default="default")
    read_from: str = Field(default="end", description="'begin', 'end' or 'cursors'")
    created_at: datetime | None = Field(default=None)


class Cursor(BaseModel):
    """Position within a partition of an event type. Opaque to the client."""

    model_config = ConfigDict(frozen=True)

    partition: str
    offset: str
    event_type: str | None = None
    cursor_token: str | None = None


class EventBatch(BaseModel):
    """One decoded frame of the event stream.

    ``events`` is empty for keep-alive frames, which the broker sends to
    keep idle connections open.
    """

    cursor: Cursor
    events: list[dict[str, Any]] = Field(default_factory=list)
    info: dict[str, Any] | None = None

    @field_validator("events", mode="before")
    @classmethod
    def default_missing_events(cls, v: Any) -> Any:
        """Keep-alive frames may carry ``"events": null``."""
        return [] if v is None else v

    @property
    def is_heartbeat(self) -> bool:
        return not self.events


class Problem(BaseModel):
    """Problem document (RFC 7807) returned by the broker on errors."""

    type: str | None = None
    title: str | None = None
    status: int | None = None
    detail: str | None = None
    instance: str | None = None


class BatchItemResponse(BaseModel):
    """Publishing outcome of a single event within a published batch."""

    eid: str | None = None
    publishing_status: str = Field(..., description="'submitted', 'failed' or 'aborted'")
    step: str | None = Field(default=None, description="'none', 'validating', 'partitioning', 'enriching' or 'publishing'")
    detail: str | None = None


__all__ = [
    "Subscription",
    "Cursor",
    "EventBatch",
    "Problem",
    "BatchItemResponse",
]
