"""Aggregate fleet statistics model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class FleetStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_vehicles: int = 0
    active_vehicles: int = 0
    """Status ``Active`` and not yet at the service mileage."""
    service_due: int = 0
    """At or past the service mileage, or in maintenance."""
    total_mileage: int = 0
    avg_mileage: int = 0
