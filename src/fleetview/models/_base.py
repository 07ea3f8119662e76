"""Base model and enum for fleet documents.

Every document model inherits from :class:`FleetBaseModel` which
provides:

* ``alias_generator=to_camel`` so camelCase store keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that strips empty-text
  sentinels (``""``, NaN) so the field default is used.
* A ``raw`` dict that captures the original document.

Enumerations inherit from :class:`FleetEnum` which adds an ``UNKNOWN``
member and a ``_missing_`` hook that returns it for unmapped values.
"""

from __future__ import annotations

import enum
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Values the entry form and older documents use for "not set".
_SENTINELS = frozenset({"", "NaN", "nan"})


class FleetEnum(enum.StrEnum):
    """Base for stored text enumerations.

    Values without a mapped member resolve to ``UNKNOWN``. A subclass
    that does not define it raises ``ValueError`` like a plain enum.
    """

    @classmethod
    def _missing_(cls, value: object) -> FleetEnum | None:
        unknown: FleetEnum | None = getattr(cls, "UNKNOWN", None)
        return unknown


class FleetBaseModel(BaseModel):
    """Base for fleet document models.

    Handles:
    * camelCase → snake_case via ``alias_generator=to_camel``
    * sentinel values (``""``, NaN) → dropped so the field default is used
    * stashes the original document in ``raw``
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)
    """Original document dict."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Strip sentinel values and stash the raw document."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = FleetBaseModel._clean_dict(original)

        # Keep an explicitly passed raw= (e.g. from model_copy callers).
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned
