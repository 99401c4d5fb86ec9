"""Tests for booking request validation."""
import re
from datetime import datetime

import pytest

from exceptions import InvalidDurationUnit, ValidationError
from services.request_validator import validate_booking_request


NOW = datetime(2024, 1, 15, 8, 30, 0)


def test_valid_instant_request(booking_payload):
    """A complete instant request builds a pending booking."""
    booking = validate_booking_request(booking_payload, user_id="shipper-1", now=NOW)

    assert booking.status == "pending"
    assert booking.booking_type == "Agri"
    assert booking.booking_mode == "instant"
    assert booking.weight_kg == 1500.0
    assert booking.urgency_level == "Medium"
    assert booking.user_id == "shipper-1"
    assert booking.pick_up_date is None
    assert booking.recurrence["isRecurring"] is False
    assert booking.actual_distance > 100  # Nairobi to Nakuru by great circle


def test_request_id_format(booking_payload):
    """Request IDs carry the type initial, a base-36 timestamp and a bounded suffix."""
    booking = validate_booking_request(booking_payload, now=NOW)

    match = re.fullmatch(r"A-([0-9A-Z]+)-(\d{1,3})", booking.request_id)
    assert match is not None
    assert int(match.group(1), 36) == int((NOW - datetime(1970, 1, 1)).total_seconds() * 1000)


def test_readable_id_format(booking_payload):
    """Readable IDs encode creation time, type and mode."""
    booking = validate_booking_request(booking_payload, now=NOW)

    assert re.fullmatch(r"240115-083000-AGR-I[0-9A-Z]{3}", booking.readable_id)


def test_defaults_applied(booking_payload):
    """bookingType, bookingMode and urgencyLevel have defaults."""
    del booking_payload["bookingType"]
    del booking_payload["bookingMode"]
    del booking_payload["urgencyLevel"]

    booking = validate_booking_request(booking_payload, now=NOW)

    assert booking.booking_type == "Agri"
    assert booking.booking_mode == "instant"
    assert booking.urgency_level == "Low"


@pytest.mark.parametrize("field", ["fromLocation", "toLocation", "weightKg", "productType"])
def test_required_fields(booking_payload, field):
    """Missing required fields reject the request and are named."""
    del booking_payload[field]

    with pytest.raises(ValidationError) as exc_info:
        validate_booking_request(booking_payload, now=NOW)

    assert field in exc_info.value.offending


@pytest.mark.parametrize("field,value", [
    ("bookingType", "Livestock"),
    ("bookingMode", "later"),
    ("urgencyLevel", "Critical"),
])
def test_foreign_enumerations_rejected(booking_payload, field, value):
    """Enumerated fields only accept their vocabulary."""
    booking_payload[field] = value

    with pytest.raises(ValidationError):
        validate_booking_request(booking_payload, now=NOW)


@pytest.mark.parametrize("pick_up_date", [None, "", "next tuesday", "2024-13-45"])
def test_scheduled_booking_requires_parseable_pickup(booking_payload, pick_up_date):
    """bookingMode=booking is rejected when pickUpDate is absent or unparseable."""
    booking_payload["bookingMode"] = "booking"
    if pick_up_date is not None:
        booking_payload["pickUpDate"] = pick_up_date

    with pytest.raises(ValidationError):
        validate_booking_request(booking_payload, now=NOW)


def test_scheduled_booking_with_pickup(booking_payload):
    """A parseable pickup date is normalized to naive UTC."""
    booking_payload["bookingMode"] = "booking"
    booking_payload["pickUpDate"] = "2024-01-16T10:00:00+03:00"

    booking = validate_booking_request(booking_payload, now=NOW)

    assert booking.pick_up_date == datetime(2024, 1, 16, 7, 0, 0)
    assert "-AGR-B" in booking.readable_id


def test_special_cargo_foreign_entries_named(booking_payload):
    """Any foreign specialCargo entry rejects the request, naming every offender."""
    booking_payload["bookingType"] = "Cargo"
    booking_payload["specialCargo"] = ["Fragile", "Radioactive", "Bulk", "Explosive"]

    with pytest.raises(ValidationError) as exc_info:
        validate_booking_request(booking_payload, now=NOW)

    assert exc_info.value.offending == ["Radioactive", "Explosive"]


def test_special_cargo_accepted_for_cargo(booking_payload):
    """Vocabulary entries are kept for Cargo bookings."""
    booking_payload["bookingType"] = "Cargo"
    booking_payload["specialCargo"] = ["Fragile", "Temperature Controlled"]

    booking = validate_booking_request(booking_payload, now=NOW)

    assert booking.special_cargo == ["Fragile", "Temperature Controlled"]
    assert booking.request_id.startswith("C-")


def test_special_cargo_ignored_for_agri(booking_payload):
    """Agri bookings carry no special cargo categories."""
    booking_payload["specialCargo"] = ["Anything"]

    booking = validate_booking_request(booking_payload, now=NOW)

    assert booking.special_cargo == []


def test_legacy_humidity_key(booking_payload):
    """The misspelt humidyControl key is still honoured."""
    booking_payload["humidyControl"] = True

    booking = validate_booking_request(booking_payload, now=NOW)

    assert booking.humidity_control is True


@pytest.mark.parametrize("weight", [0, -5, "heavy", True])
def test_invalid_weight(booking_payload, weight):
    """Weight must be a positive number."""
    booking_payload["weightKg"] = weight

    with pytest.raises(ValidationError):
        validate_booking_request(booking_payload, now=NOW)


def test_location_needs_coordinates(booking_payload):
    """Locations need numeric coordinates in range."""
    booking_payload["fromLocation"] = {"address": "Somewhere", "latitude": 95, "longitude": 10}

    with pytest.raises(ValidationError):
        validate_booking_request(booking_payload, now=NOW)


def test_recurrence_plan_built(booking_payload):
    """A recurring request gets start and end dates."""
    booking_payload["bookingMode"] = "booking"
    booking_payload["pickUpDate"] = "2024-01-15T00:00:00Z"
    booking_payload["recurrence"] = {
        "isRecurring": True,
        "frequency": "weekly",
        "timeFrame": "morning",
        "duration": "3 months",
    }

    booking = validate_booking_request(booking_payload, now=NOW)

    assert booking.recurrence["isRecurring"] is True
    assert booking.recurrence["startDate"] == "2024-01-15T00:00:00Z"
    assert booking.recurrence["endDate"] == "2024-04-15T00:00:00Z"


def test_recurrence_requires_fields(booking_payload):
    """frequency, timeFrame and duration are required when recurring."""
    booking_payload["recurrence"] = {"isRecurring": True, "frequency": "daily"}

    with pytest.raises(ValidationError) as exc_info:
        validate_booking_request(booking_payload, now=NOW)

    assert exc_info.value.offending == ["timeFrame", "duration"]


def test_recurrence_invalid_unit(booking_payload):
    """An unknown duration unit is rejected at intake."""
    booking_payload["recurrence"] = {
        "isRecurring": True,
        "frequency": "daily",
        "timeFrame": "morning",
        "duration": "3 fortnights",
    }

    with pytest.raises(InvalidDurationUnit):
        validate_booking_request(booking_payload, now=NOW)


def test_non_recurring_plan_not_validated(booking_payload):
    """Recurrence details are ignored unless isRecurring is set."""
    booking_payload["recurrence"] = {"isRecurring": False, "duration": "3 fortnights"}

    booking = validate_booking_request(booking_payload, now=NOW)

    assert booking.recurrence["isRecurring"] is False
