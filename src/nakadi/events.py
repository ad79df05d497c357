"""
Event envelopes for the broker's standard event categories.

``publish()`` accepts these models as well as plain dicts; models are
serialized with ``json_serializer`` (JSON mode, ``None`` fields dropped).
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class DataOperation(str, Enum):
    CREATE = "C"
    UPDATE = "U"
    DELETE = "D"
    SNAPSHOT = "S"


class EventMetadata(BaseModel):
    """Metadata block common to business and data change events.

    ``eid`` and ``occurred_at`` default to a fresh UUID and the current UTC
    time; the broker fills in ``event_type``, ``partition`` and
    ``received_at`` on enrichment.
    """

    eid: UUID = Field(default_factory=uuid4)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    event_type: str | None = None
    parent_eids: list[UUID] | None = None
    flow_id: str | None = None
    partition: str | None = None


class BusinessEvent(BaseModel):
    """Business event: metadata plus arbitrary top-level payload fields.

    Example:
        >>> event = BusinessEvent(order_number="24873243241")
        >>> event.model_dump(mode="json")["order_number"]
        '24873243241'
    """

    model_config = ConfigDict(extra="allow")

    metadata: EventMetadata = Field(default_factory=EventMetadata)


class DataChangeEvent(BaseModel):
    """Data change event describing an operation on an entity."""

    metadata: EventMetadata = Field(default_factory=EventMetadata)
    data_type: str = Field(..., min_length=1)
    data_op: DataOperation
    data: dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "DataOperation",
    "EventMetadata",
    "BusinessEvent",
    "DataChangeEvent",
]
