"""Sample vehicles loaded by :meth:`FleetViewEngine.seed`."""

from __future__ import annotations

from fleetview.models.vehicle import FuelType, VehicleDraft, VehicleStatus

# Seeding skips validation; the Tesla VIN is one character over the form limit.
SAMPLE_VEHICLES: tuple[VehicleDraft, ...] = (
    VehicleDraft(
        make="Ford",
        model="Transit 350",
        year=2021,
        vin="1FTSE1EL1MJD12345",
        mileage=85000,
        next_service_mileage=80000,
        fuel_type=FuelType.DIESEL,
        status=VehicleStatus.ACTIVE,
    ),
    VehicleDraft(
        make="Tesla",
        model="Model 3",
        year=2023,
        vin="5YJSA1E20NF1234567",
        mileage=12000,
        next_service_mileage=25000,
        fuel_type=FuelType.ELECTRIC,
        status=VehicleStatus.ACTIVE,
    ),
    VehicleDraft(
        make="Freightliner",
        model="Cascadia 126",
        year=2019,
        vin="3FLXA9EMXKJ123456",
        mileage=150000,
        next_service_mileage=160000,
        fuel_type=FuelType.DIESEL,
        status=VehicleStatus.IN_MAINTENANCE,
    ),
    VehicleDraft(
        make="Toyota",
        model="Tacoma",
        year=2020,
        vin="3TMYF5AN6LK123456",
        mileage=45000,
        next_service_mileage=55000,
        fuel_type=FuelType.GASOLINE,
        status=VehicleStatus.ACTIVE,
    ),
)
