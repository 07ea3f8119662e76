"""Firestore REST typed-value codec.

Firestore's JSON API wraps every field in a one-key object naming its
type, e.g. ``{"integerValue": "85000"}``. These helpers convert between
that shape and plain Python values.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from fleetview.exceptions import FleetDecodeError

# Firestore may send nanosecond fractions; datetime keeps microseconds.
_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


def encode_value(value: Any) -> dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        stamp = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
        return {"timestampValue": stamp.astimezone(UTC).isoformat().replace("+00:00", "Z")}
    if isinstance(value, Mapping):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(values: Mapping[str, Any]) -> dict[str, Any]:
    return {str(key): encode_value(value) for key, value in values.items()}


def parse_timestamp(text: str) -> datetime:
    stamp = datetime.fromisoformat(_FRACTION_RE.sub(r".\1", text.strip()))
    return stamp if stamp.tzinfo is not None else stamp.replace(tzinfo=UTC)


def decode_value(wrapped: Any) -> Any:
    if not isinstance(wrapped, Mapping) or len(wrapped) != 1:
        raise FleetDecodeError(f"Not a Firestore value: {wrapped!r:.80}")
    kind, value = next(iter(wrapped.items()))
    try:
        if kind == "nullValue":
            return None
        if kind == "booleanValue":
            return bool(value)
        if kind == "integerValue":
            return int(value)
        if kind == "doubleValue":
            return float(value)
        if kind in ("stringValue", "referenceValue", "bytesValue"):
            return str(value)
        if kind == "timestampValue":
            return parse_timestamp(value)
        if kind == "geoPointValue":
            return dict(value)
        if kind == "mapValue":
            return decode_fields(value.get("fields", {}))
        if kind == "arrayValue":
            return [decode_value(item) for item in value.get("values", [])]
    except (TypeError, ValueError, AttributeError) as exc:
        raise FleetDecodeError(f"Bad Firestore {kind}: {value!r:.80}") from exc
    raise FleetDecodeError(f"Unsupported Firestore value type {kind!r}")


def decode_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {str(key): decode_value(value) for key, value in fields.items()}


def document_id(name: str) -> str:
    """Last path segment of a document resource name."""
    return name.rsplit("/", 1)[-1]
