"""Context variables for structured logging."""

from contextvars import ContextVar
from typing import Dict, Optional

_subscription_id: ContextVar[str] = ContextVar("subscription_id", default="")
_event_type: ContextVar[str] = ContextVar("event_type", default="")
_stream_id: ContextVar[str] = ContextVar("stream_id", default="")
_trace_id: ContextVar[str] = ContextVar("trace_id", default="")


def set_log_context(
    subscription_id: Optional[str] = None,
    event_type: Optional[str] = None,
    stream_id: Optional[str] = None,
    trace_id: Optional[str] = None,
) -> None:
    if subscription_id is not None:
        _subscription_id.set(subscription_id)
    if event_type is not None:
        _event_type.set(event_type)
    if stream_id is not None:
        _stream_id.set(stream_id)
    if trace_id is not None:
        _trace_id.set(trace_id)


def get_log_context() -> Dict[str, str]:
    return {
        "subscription_id": _subscription_id.get(),
        "event_type": _event_type.get(),
        "stream_id": _stream_id.get(),
        "trace_id": _trace_id.get(),
    }


def clear_log_context() -> None:
    _subscription_id.set("")
    _event_type.set("")
    _stream_id.set("")
    _trace_id.set("")
