"""Data models for fleet documents."""

from fleetview.models._base import FleetBaseModel, FleetEnum
from fleetview.models.stats import FleetStats
from fleetview.models.vehicle import FuelType, VehicleDraft, VehicleRecord, VehicleStatus

__all__ = [
    "FleetBaseModel",
    "FleetEnum",
    "FleetStats",
    "FuelType",
    "VehicleDraft",
    "VehicleRecord",
    "VehicleStatus",
]
