"""Immutable fleet view and its ordering policy."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from fleetview.models.stats import FleetStats
from fleetview.models.vehicle import VehicleRecord
from fleetview.stats import compute_stats
from fleetview.status import VehicleSummary, urgency_bucket


def sort_key(record: VehicleRecord) -> tuple[int, str]:
    """Urgent vehicles first, then by model (case-sensitive, missing as ``""``)."""
    return urgency_bucket(record), record.model or ""


def order_vehicles(records: Iterable[VehicleRecord]) -> tuple[VehicleRecord, ...]:
    """Display order for *records*. Ties keep their input order."""
    return tuple(sorted(records, key=sort_key))


class FleetView(BaseModel):
    """Ordered projection of one owner's vehicles.

    A view is never mutated. Every snapshot produces a new one, so readers
    can hold on to a view without locking.
    """

    model_config = ConfigDict(frozen=True)

    owner_id: str | None = None
    vehicles: tuple[VehicleRecord, ...] = ()
    stats: FleetStats = Field(default_factory=FleetStats)
    generation: int = 0
    """Subscription generation the view was built for."""
    updated_at: datetime | None = None
    """When the snapshot was applied; ``None`` for the empty initial view."""

    @classmethod
    def empty(cls, owner_id: str | None = None, *, generation: int = 0) -> FleetView:
        return cls(owner_id=owner_id, generation=generation)

    @classmethod
    def build(
        cls,
        records: Iterable[VehicleRecord],
        *,
        owner_id: str | None,
        generation: int,
        updated_at: datetime | None = None,
    ) -> FleetView:
        ordered = order_vehicles(records)
        return cls(
            owner_id=owner_id,
            vehicles=ordered,
            stats=compute_stats(ordered),
            generation=generation,
            updated_at=updated_at,
        )

    @property
    def is_empty(self) -> bool:
        return not self.vehicles

    def get(self, record_id: str) -> VehicleRecord | None:
        for record in self.vehicles:
            if record.id == record_id:
                return record
        return None

    def summaries(self) -> tuple[VehicleSummary, ...]:
        """Derived values for each vehicle, in display order."""
        return tuple(VehicleSummary.of(record) for record in self.vehicles)
