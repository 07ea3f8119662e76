from __future__ import annotations

import pytest

from fleetview.exceptions import (
    FleetValidationError,
    InvalidChoiceError,
    InvalidNumberError,
    MileageInversionError,
    MissingRequiredFieldError,
    NegativeMileageError,
    VinTooLongError,
    YearOutOfRangeError,
)
from fleetview.models.vehicle import FuelType, VehicleDraft, VehicleStatus
from fleetview.validation import validate_draft


def _form(**overrides: object) -> dict[str, object]:
    values: dict[str, object] = {
        "make": "Ford",
        "model": "Transit",
        "year": "2021",
        "vin": "1FTSE1EL1MJD12345",
        "mileage": "1000",
        "nextServiceMileage": "5000",
        "fuelType": "Diesel",
        "status": "Active",
    }
    values.update(overrides)
    return values


def test_missing_make_is_rejected() -> None:
    with pytest.raises(MissingRequiredFieldError) as excinfo:
        validate_draft({"make": "", "model": "X", "vin": "123"})

    assert excinfo.value.rule == "MissingRequiredField"
    assert excinfo.value.field == "make"


def test_mileage_inversion_is_rejected() -> None:
    with pytest.raises(MileageInversionError) as excinfo:
        validate_draft({"make": "A", "model": "B", "vin": "C", "mileage": 100, "nextServiceMileage": 50})

    assert excinfo.value.rule == "MileageInversion"


def test_required_fields_are_checked_before_mileage() -> None:
    with pytest.raises(MissingRequiredFieldError):
        validate_draft({"make": "A", "model": "", "vin": "C", "mileage": 100, "nextServiceMileage": 50})


def test_whitespace_only_counts_as_missing() -> None:
    with pytest.raises(MissingRequiredFieldError) as excinfo:
        validate_draft(_form(vin="   "))

    assert excinfo.value.field == "vin"


def test_accepted_form_is_normalized() -> None:
    draft = validate_draft(_form(make="  Ford  "))

    assert isinstance(draft, VehicleDraft)
    assert draft.make == "Ford"
    assert draft.year == 2021
    assert draft.mileage == 1000
    assert draft.next_service_mileage == 5000
    assert draft.fuel_type == FuelType.DIESEL
    assert draft.status == VehicleStatus.ACTIVE


def test_equal_mileages_are_accepted() -> None:
    draft = validate_draft(_form(mileage="5000", nextServiceMileage="5000"))

    assert draft.mileage == draft.next_service_mileage == 5000


def test_non_numeric_text_is_coerced_to_zero() -> None:
    draft = validate_draft(_form(mileage="lots", nextServiceMileage="5000"))

    assert draft.mileage == 0


def test_non_numeric_service_mileage_coerces_then_fails_inversion() -> None:
    with pytest.raises(MileageInversionError):
        validate_draft(_form(mileage="100", nextServiceMileage="soon"))


def test_strict_mode_rejects_non_numeric_text() -> None:
    with pytest.raises(InvalidNumberError) as excinfo:
        validate_draft(_form(mileage="lots"), strict=True)

    assert excinfo.value.field == "mileage"


def test_blank_year_is_unset() -> None:
    draft = validate_draft(_form(year=""))

    assert draft.year is None
    assert "year" not in draft.to_document()


def test_negative_mileage_is_rejected() -> None:
    with pytest.raises(NegativeMileageError):
        validate_draft(_form(mileage="-10", nextServiceMileage="50"))


def test_vin_longer_than_17_is_rejected() -> None:
    with pytest.raises(VinTooLongError):
        validate_draft(_form(vin="5YJSA1E20NF1234567"))


def test_year_range_uses_current_year() -> None:
    assert validate_draft(_form(year="2027"), current_year=2026).year == 2027
    with pytest.raises(YearOutOfRangeError):
        validate_draft(_form(year="2028"), current_year=2026)
    with pytest.raises(YearOutOfRangeError):
        validate_draft(_form(year="1899"), current_year=2026)


def test_unknown_fuel_type_is_rejected() -> None:
    with pytest.raises(InvalidChoiceError) as excinfo:
        validate_draft(_form(fuelType="Steam"))

    assert excinfo.value.field == "fuel_type"


def test_draft_instances_are_accepted() -> None:
    draft = VehicleDraft(make="Tesla", model="Model 3", vin="5YJSA1E20NF12345", mileage=10, next_service_mileage=20)

    assert validate_draft(draft).model_dump() == draft.model_dump()


def test_all_rule_errors_share_a_base_class() -> None:
    with pytest.raises(FleetValidationError):
        validate_draft({})


def test_blank_draft_defaults() -> None:
    draft = VehicleDraft.blank()

    assert draft.mileage == 0
    assert draft.next_service_mileage == 5000
    assert draft.fuel_type == FuelType.DIESEL
    assert draft.status == VehicleStatus.ACTIVE
    assert draft.make == draft.model == draft.vin == ""
