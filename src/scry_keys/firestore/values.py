"""Firestore REST typed value encoding.

Every field on the wire is an object tagged with its type, for example
``{"stringValue": "abc"}`` or ``{"timestampValue": "2024-01-01T00:00:00Z"}``.
"""

import re
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any


# Firestore returns up to nanosecond precision; datetime only holds microseconds
_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


def format_timestamp(value: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC timestamp ending in ``Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def parse_timestamp(text: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp, returning None if it cannot be read."""
    if not isinstance(text, str) or not text:
        return None
    normalized = _FRACTION_RE.sub(r".\1", text.strip())
    if normalized.endswith(("Z", "z")):
        normalized = normalized[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a Firestore REST value."""
    if value is None:
        return {"nullValue": None}
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": str(value)}
    if isinstance(value, datetime):
        return {"timestampValue": format_timestamp(value)}
    if isinstance(value, Mapping):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, list | tuple):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    return {"stringValue": str(value)}


def encode_fields(values: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """Encode a mapping of field values, omitting fields set to None."""
    return {key: encode_value(v) for key, v in values.items() if v is not None}


def decode_value(value: Any) -> Any:
    """Decode a Firestore REST value into a Python value.

    Unknown value shapes are returned unchanged. Timestamps that cannot be
    parsed decode to None.
    """
    if not isinstance(value, Mapping):
        return value

    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        try:
            return int(value["integerValue"])
        except (TypeError, ValueError):
            return None
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return parse_timestamp(value["timestampValue"])
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields") or {})
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values") or []]
    return value


def decode_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Decode every field of a document's ``fields`` object."""
    return {key: decode_value(v) for key, v in fields.items()}
