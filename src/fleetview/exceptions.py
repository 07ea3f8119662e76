"""Custom exception hierarchy for fleetview."""

from __future__ import annotations


class FleetError(Exception):
    """Base exception for all fleetview errors."""


class FleetConfigError(FleetError):
    """Invalid or missing configuration."""


class FleetTransportError(FleetError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FleetConnectionError(FleetError):
    """Subscription failed to establish or dropped.

    Surfaced as a persistent collection-level error. The held view stays
    at its last-known-good state until a new subscription delivers.
    """


class FleetDecodeError(FleetError):
    """A delivered snapshot contained a malformed document."""

    def __init__(self, message: str, *, document_id: str | None = None) -> None:
        self.document_id = document_id
        super().__init__(message)


class FleetValidationError(FleetError):
    """A vehicle draft was rejected before reaching the store.

    ``rule`` names the violated rule (e.g. ``"MileageInversion"``) and
    ``field`` the offending draft field, when there is a single one.
    """

    rule: str = "Invalid"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class MissingRequiredFieldError(FleetValidationError):
    """Make, model or VIN is empty."""

    rule = "MissingRequiredField"


class MileageInversionError(FleetValidationError):
    """Current mileage is higher than the next service mileage."""

    rule = "MileageInversion"


class NegativeMileageError(FleetValidationError):
    rule = "NegativeMileage"


class VinTooLongError(FleetValidationError):
    rule = "VinTooLong"


class YearOutOfRangeError(FleetValidationError):
    rule = "YearOutOfRange"


class InvalidChoiceError(FleetValidationError):
    """Fuel type or status outside the supported enumeration."""

    rule = "InvalidChoice"


class InvalidNumberError(FleetValidationError):
    """Non-numeric text in a numeric field (strict coercion only)."""

    rule = "InvalidNumber"


class FleetInsertError(FleetError):
    """Persisting a record failed.

    For bulk seeding ``index`` is the position of the failed draft and
    ``inserted_ids`` the ids persisted before it. Those are not rolled back.
    """

    def __init__(
        self,
        message: str,
        *,
        index: int | None = None,
        inserted_ids: tuple[str, ...] = (),
    ) -> None:
        self.index = index
        self.inserted_ids = inserted_ids
        super().__init__(message)
