"""Helpers for safe debug logging.

REST calls carry bearer ID tokens and web API keys, and broker settings
carry passwords. :func:`redact_for_log` masks those before anything is
written to a DEBUG log.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

_MAX_DEPTH = 20

# Compared after lower-casing and dropping "_" and "-".
_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "idtoken",
        "authtoken",
        "accesstoken",
        "refreshtoken",
        "authorization",
        "key",
        "apikey",
        "cookie",
    }
)

# Secrets that leak into free text, e.g. a URL in an error message.
_INLINE_SECRET_RE = re.compile(r"(?i)(bearer\s+|[?&]key=)[^\s&\"']+")


def _is_sensitive(key: Any) -> bool:
    normalized = str(key).lower().replace("_", "").replace("-", "")
    return normalized in _SENSITIVE_KEYS


def _redact_text(text: str, max_string: int) -> str:
    text = _INLINE_SECRET_RE.sub(r"\1<redacted>", text)
    if len(text) > max_string:
        return f"{text[:max_string]}…<truncated>"
    return text


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* with secrets masked and long text cut."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _redact_text(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    def nested(item: Any) -> Any:
        return redact_for_log(item, max_string=max_string, _depth=_depth + 1)

    if isinstance(value, Mapping):
        return {str(k): "<redacted>" if _is_sensitive(k) else nested(v) for k, v in value.items()}
    if isinstance(value, Sequence):
        return [nested(item) for item in value]
    return repr(value)
