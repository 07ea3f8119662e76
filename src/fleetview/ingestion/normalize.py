"""Normalization helpers.

Centralizes defensive parsing of numbers and text coming from stores and
entry forms.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if value in ("", "--"):
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def is_blank(value: Any) -> bool:
    """Return True for ``None`` and empty or whitespace-only text."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def coerce_int(value: Any, *, default: int = 0) -> int:
    """Parse *value* to an int, falling back to *default* when it is not numeric.

    This is the permissive policy used for form input: ``"abc"`` becomes
    ``0`` rather than an error.
    """
    parsed = safe_int(value)
    return default if parsed is None else parsed
