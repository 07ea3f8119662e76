"""Aggregate statistics over a fleet view."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from fleetview.models.stats import FleetStats
from fleetview.models.vehicle import VehicleRecord, VehicleStatus


def _round_half_up(numerator: int, denominator: int) -> int:
    quotient = Decimal(numerator) / Decimal(denominator)
    return int(quotient.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_stats(records: Iterable[VehicleRecord]) -> FleetStats:
    """Reduce *records* to dashboard counters.

    ``active_vehicles`` is stricter than the ``Active`` derived status: it
    requires stored status ``Active`` and mileage still below the service
    mileage, so vehicles with an unknown stored status are not counted.
    """
    total = 0
    active = 0
    due = 0
    total_mileage = 0
    for record in records:
        total += 1
        total_mileage += record.mileage
        if record.status == VehicleStatus.ACTIVE and record.mileage < record.next_service_mileage:
            active += 1
        if record.mileage >= record.next_service_mileage or record.status == VehicleStatus.IN_MAINTENANCE:
            due += 1

    return FleetStats(
        total_vehicles=total,
        active_vehicles=active,
        service_due=due,
        total_mileage=total_mileage,
        avg_mileage=_round_half_up(total_mileage, total) if total else 0,
    )
