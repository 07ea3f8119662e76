"""Vehicle draft validation.

Runs before anything reaches the store. The first violated rule raises;
rules are checked in a fixed order so callers always see the same error
for the same draft.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic.alias_generators import to_camel

from fleetview._constants import MAX_VIN_LENGTH, MIN_MODEL_YEAR
from fleetview.exceptions import (
    InvalidChoiceError,
    InvalidNumberError,
    MileageInversionError,
    MissingRequiredFieldError,
    NegativeMileageError,
    VinTooLongError,
    YearOutOfRangeError,
)
from fleetview.ingestion.normalize import coerce_int, is_blank, safe_int
from fleetview.models.vehicle import FuelType, VehicleDraft, VehicleStatus

_logger = logging.getLogger(__name__)

_REQUIRED_TEXT_FIELDS = ("make", "model", "vin")
_MILEAGE_FIELDS = ("mileage", "next_service_mileage")

# camelCase form keys → draft field names
_ALIASES: dict[str, str] = {to_camel(name): name for name in VehicleDraft.model_fields if name != "raw"}


def _field_values(draft: VehicleDraft | Mapping[str, Any]) -> dict[str, Any]:
    """Snake-case field dict for a draft or raw form mapping.

    Keys missing from a mapping keep the blank draft's defaults.
    """
    if isinstance(draft, VehicleDraft):
        return draft.model_dump(exclude={"raw"})
    values = VehicleDraft.blank().model_dump(exclude={"raw"})
    for key, value in draft.items():
        name = _ALIASES.get(key, key)
        if name in values:
            values[name] = value
    return values


def _parse_number(name: str, value: Any, *, strict: bool) -> int:
    if is_blank(value):
        return 0
    if strict and safe_int(value) is None:
        raise InvalidNumberError(f"{name} must be a whole number, got {value!r}", field=name)
    return coerce_int(value)


def _parse_choice(name: str, enum_cls: type[FuelType] | type[VehicleStatus], value: Any) -> Any:
    member = enum_cls(value) if isinstance(value, str) else enum_cls.UNKNOWN
    if member == enum_cls.UNKNOWN:
        allowed = ", ".join(m.value for m in enum_cls if m != enum_cls.UNKNOWN)
        raise InvalidChoiceError(f"{name} must be one of: {allowed}", field=name)
    return member


def validate_draft(
    draft: VehicleDraft | Mapping[str, Any],
    *,
    strict: bool = False,
    current_year: int | None = None,
) -> VehicleDraft:
    """Normalize and check *draft*, returning a draft ready to insert.

    Numeric text is parsed first. With ``strict=False`` non-numeric input
    becomes ``0``; with ``strict=True`` it raises
    :class:`~fleetview.exceptions.InvalidNumberError`. Then, in order:

    1. make, model and VIN are non-empty (``MissingRequiredField``)
    2. mileage does not exceed next service mileage (``MileageInversion``)
    3. neither mileage is negative (``NegativeMileage``)
    4. VIN has at most 17 characters (``VinTooLong``)
    5. year, when given, is within 1900 .. next year (``YearOutOfRange``)
    6. fuel type and status are known values (``InvalidChoice``)

    Acceptance does not persist anything.
    """
    values = _field_values(draft)

    for name in _REQUIRED_TEXT_FIELDS:
        raw_text = values.get(name)
        values[name] = "" if raw_text is None else str(raw_text).strip()
    for name in _MILEAGE_FIELDS:
        values[name] = _parse_number(name, values.get(name), strict=strict)
    year = values.get("year")
    values["year"] = None if is_blank(year) else _parse_number("year", year, strict=strict)

    missing = [name for name in _REQUIRED_TEXT_FIELDS if not values[name]]
    if missing:
        _logger.debug("Draft rejected, missing fields=%s", missing)
        raise MissingRequiredFieldError("Make, Model, and VIN are required.", field=missing[0])

    if values["mileage"] > values["next_service_mileage"]:
        raise MileageInversionError(
            "Current Mileage cannot be higher than Next Service Mileage.",
            field="mileage",
        )

    for name in _MILEAGE_FIELDS:
        if values[name] < 0:
            raise NegativeMileageError(f"{name} cannot be negative.", field=name)

    if len(values["vin"]) > MAX_VIN_LENGTH:
        raise VinTooLongError(f"VIN cannot be longer than {MAX_VIN_LENGTH} characters.", field="vin")

    if values["year"] is not None:
        max_year = (current_year or datetime.now(UTC).year) + 1
        if not MIN_MODEL_YEAR <= values["year"] <= max_year:
            raise YearOutOfRangeError(f"Year must be between {MIN_MODEL_YEAR} and {max_year}.", field="year")

    values["fuel_type"] = _parse_choice("fuel_type", FuelType, values.get("fuel_type"))
    values["status"] = _parse_choice("status", VehicleStatus, values.get("status"))

    return VehicleDraft.model_validate(values)
