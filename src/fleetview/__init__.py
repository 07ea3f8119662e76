"""fleetview - Live fleet-maintenance view over a remote vehicle collection."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fleetview")
except PackageNotFoundError:
    __version__ = "0+local"
from fleetview.config import FleetConfig, MqttSettings
from fleetview.exceptions import (
    FleetConfigError,
    FleetConnectionError,
    FleetDecodeError,
    FleetError,
    FleetInsertError,
    FleetTransportError,
    FleetValidationError,
    InvalidChoiceError,
    InvalidNumberError,
    MileageInversionError,
    MissingRequiredFieldError,
    NegativeMileageError,
    VinTooLongError,
    YearOutOfRangeError,
)
from fleetview.identity import IdentityProvider, StaticIdentityProvider
from fleetview.models import FleetStats, FuelType, VehicleDraft, VehicleRecord, VehicleStatus
from fleetview.samples import SAMPLE_VEHICLES
from fleetview.state.engine import FleetViewEngine
from fleetview.state.stream import SnapshotStream
from fleetview.state.view import FleetView, order_vehicles
from fleetview.stats import compute_stats
from fleetview.status import (
    DerivedStatus,
    ServiceTier,
    VehicleSummary,
    derive_status,
    mileage_remaining,
    service_progress_percent,
    service_tier,
)
from fleetview.store import FirestoreRecordStore, InMemoryRecordStore, RecordStore
from fleetview.validation import validate_draft

__all__ = [
    "__version__",
    "DerivedStatus",
    "FirestoreRecordStore",
    "FleetConfig",
    "FleetConfigError",
    "FleetConnectionError",
    "FleetDecodeError",
    "FleetError",
    "FleetInsertError",
    "FleetStats",
    "FleetTransportError",
    "FleetValidationError",
    "FleetView",
    "FleetViewEngine",
    "FuelType",
    "IdentityProvider",
    "InMemoryRecordStore",
    "InvalidChoiceError",
    "InvalidNumberError",
    "MileageInversionError",
    "MissingRequiredFieldError",
    "MqttSettings",
    "NegativeMileageError",
    "RecordStore",
    "SAMPLE_VEHICLES",
    "ServiceTier",
    "SnapshotStream",
    "StaticIdentityProvider",
    "VehicleDraft",
    "VehicleRecord",
    "VehicleStatus",
    "VehicleSummary",
    "VinTooLongError",
    "YearOutOfRangeError",
    "compute_stats",
    "derive_status",
    "mileage_remaining",
    "order_vehicles",
    "service_progress_percent",
    "service_tier",
    "validate_draft",
]
