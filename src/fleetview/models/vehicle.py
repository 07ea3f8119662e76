"""Vehicle record and draft models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import Field, field_validator

from fleetview._constants import DEFAULT_NEXT_SERVICE_MILEAGE
from fleetview.models._base import FleetBaseModel, FleetEnum


class FuelType(FleetEnum):
    DIESEL = "Diesel"
    GASOLINE = "Gasoline"
    ELECTRIC = "Electric"
    HYBRID = "Hybrid"
    UNKNOWN = "Unknown"


class VehicleStatus(FleetEnum):
    """Stored operational status (not the derived service status)."""

    ACTIVE = "Active"
    IN_MAINTENANCE = "In Maintenance"
    UNKNOWN = "Unknown"


class VehicleDraft(FleetBaseModel):
    """A vehicle not yet persisted.

    Drafts are what the entry form edits and what bulk seeding inserts.
    The store assigns ``id`` and ``createdAt`` on insert.
    """

    make: str = ""
    model: str = ""
    year: int | None = None
    vin: str = ""
    mileage: int = 0
    next_service_mileage: int = DEFAULT_NEXT_SERVICE_MILEAGE
    fuel_type: FuelType = FuelType.DIESEL
    status: VehicleStatus = VehicleStatus.ACTIVE

    @classmethod
    def blank(cls) -> VehicleDraft:
        """The draft an entry form is reset to after a successful add."""
        return cls()

    def to_document(self) -> dict[str, Any]:
        """camelCase payload for the store, ``year`` omitted when unset."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class VehicleRecord(FleetBaseModel):
    """A persisted vehicle as delivered by a store snapshot.

    Numeric fields missing from the document read as ``0``. Derived
    service status is never stored here; see :mod:`fleetview.status`.
    """

    id: str = Field(min_length=1)
    """Store-assigned id, stable for the record's lifetime."""
    make: str = ""
    model: str = ""
    year: int | None = None
    vin: str = ""
    mileage: int = 0
    """Current odometer reading in miles."""
    next_service_mileage: int = 0
    """Odometer reading at which the next service is due."""
    fuel_type: FuelType = FuelType.UNKNOWN
    status: VehicleStatus = VehicleStatus.UNKNOWN
    created_at: datetime | None = None
    """Server timestamp; ``None`` while a write is still pending."""

    @field_validator("created_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def display_name(self) -> str:
        name = f"{self.make} {self.model}".strip()
        return f"{name} ({self.year})" if self.year is not None else name
