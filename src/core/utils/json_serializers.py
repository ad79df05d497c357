"""Shared JSON serialization utilities for type-safe JSON encoding."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import UUID

from pydantic import BaseModel


def _serialize_known_type(obj: Any) -> tuple[bool, Any]:
    """Try to serialize by known type. Returns (handled, result)."""
    if isinstance(obj, BaseModel):
        return True, obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(obj, (datetime, date)):
        return True, obj.isoformat()
    if isinstance(obj, Decimal):
        return True, float(obj)
    if isinstance(obj, (Path, UUID)):
        return True, str(obj)
    if isinstance(obj, Enum):
        return True, obj.value
    return False, None


def json_serializer(obj: Any) -> Any:
    """
    Type-safe JSON serializer for ``json.dumps(default=...)``.

    Keeps proper JSON types instead of converting everything to strings:
    - pydantic models → JSON-mode dict (aliases applied, None fields dropped)
    - datetime/date → ISO 8601 string
    - Decimal → float
    - Path/UUID → string
    - Enums → value
    - Everything else → string (fallback)

    Used both for structured log lines and for event payloads sent to the
    broker.

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable representation with proper types
    """
    handled, result = _serialize_known_type(obj)
    if handled:
        return result
    if hasattr(obj, "__dict__"):
        return obj.__dict__
    return str(obj)


__all__ = ["json_serializer"]
