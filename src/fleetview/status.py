"""Derived service status.

Everything here is a pure function of a record's current field values.
Nothing is cached on the record or persisted; callers re-evaluate on
every view refresh.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict

from fleetview._constants import SERVICE_WARNING_MILES
from fleetview.models.vehicle import VehicleRecord, VehicleStatus


class DerivedStatus(enum.StrEnum):
    IN_MAINTENANCE = "In Maintenance"
    SERVICE_DUE = "Service Due"
    ACTIVE = "Active"


class ServiceTier(enum.StrEnum):
    """Urgency tier of the service progress bar."""

    OVERDUE = "overdue"
    WARNING = "warning"
    OK = "ok"


#: Derived states that sort ahead of everything else.
URGENT_STATUSES = frozenset({DerivedStatus.IN_MAINTENANCE, DerivedStatus.SERVICE_DUE})


def derive_status(record: VehicleRecord) -> DerivedStatus:
    """Classify *record*.

    ``In Maintenance`` always wins. Otherwise a vehicle at or past its
    service mileage is ``Service Due``.
    """
    if record.status == VehicleStatus.IN_MAINTENANCE:
        return DerivedStatus.IN_MAINTENANCE
    if record.mileage >= record.next_service_mileage:
        return DerivedStatus.SERVICE_DUE
    return DerivedStatus.ACTIVE


def urgency_bucket(record: VehicleRecord) -> int:
    """Primary sort key: ``0`` for urgent vehicles, ``1`` for the rest."""
    return 0 if derive_status(record) in URGENT_STATUSES else 1


def mileage_remaining(record: VehicleRecord) -> int:
    """Miles left until service; negative when overdue."""
    return record.next_service_mileage - record.mileage


def service_progress_percent(record: VehicleRecord) -> float:
    """Share of the service interval used, clamped to ``0..100``."""
    if record.next_service_mileage <= 0:
        return 0.0
    percent = record.mileage / record.next_service_mileage * 100
    return min(100.0, max(0.0, percent))


def service_tier(record: VehicleRecord) -> ServiceTier:
    remaining = mileage_remaining(record)
    if remaining <= 0:
        return ServiceTier.OVERDUE
    if remaining < SERVICE_WARNING_MILES:
        return ServiceTier.WARNING
    return ServiceTier.OK


def remaining_label(record: VehicleRecord) -> str:
    """``"4,200 mi left"``, or ``"OVERDUE"`` once nothing is left."""
    remaining = mileage_remaining(record)
    if remaining > 0:
        return f"{remaining:,} mi left"
    return "OVERDUE"


class VehicleSummary(BaseModel):
    """Derived values for one record, bundled for display code."""

    model_config = ConfigDict(frozen=True)

    record: VehicleRecord
    status: DerivedStatus
    mileage_remaining: int
    progress_percent: float
    tier: ServiceTier
    remaining_label: str

    @classmethod
    def of(cls, record: VehicleRecord) -> VehicleSummary:
        return cls(
            record=record,
            status=derive_status(record),
            mileage_remaining=mileage_remaining(record),
            progress_percent=service_progress_percent(record),
            tier=service_tier(record),
            remaining_label=remaining_label(record),
        )
