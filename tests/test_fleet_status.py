"""Tests for fleet status classification."""
from datetime import datetime, timedelta

import pytest

from models import FleetStatus
from services.fleet_status import FleetStatusEngine, calculate_status_counts, classify


NOW = datetime(2024, 1, 15, 8, 0, 0)
EXPIRED = NOW - timedelta(days=1)
VALID = NOW + timedelta(days=365)


class TestClassify:
    """First matching rule wins."""

    def test_inactive_account_beats_active_trip(self, make_transporter, make_booking):
        transporter = make_transporter(account_status=False)
        trip = make_booking(status="in-progress", transporter_id=transporter.id)

        assert classify(transporter, trip, now=NOW) == FleetStatus.INACTIVE

    def test_expired_document_is_non_compliant(self, make_transporter, make_booking):
        transporter = make_transporter(insurance_expiry_date=VALID, driver_license_expiry_date=EXPIRED)
        trip = make_booking(status="accepted", transporter_id=transporter.id)

        assert classify(transporter, trip, now=NOW) == FleetStatus.NON_COMPLIANT

    @pytest.mark.parametrize("booking_status,expected", [
        ("in-progress", FleetStatus.ACTIVE),
        ("picked-up", FleetStatus.ACTIVE),
        ("accepted", FleetStatus.ASSIGNED),
    ])
    def test_operational_states(self, make_transporter, make_booking, booking_status, expected):
        transporter = make_transporter(insurance_expiry_date=VALID)
        trip = make_booking(status=booking_status, transporter_id=transporter.id)

        assert classify(transporter, trip, now=NOW) == expected

    def test_available_and_idle(self, make_transporter):
        assert classify(make_transporter(accepting_booking=True), now=NOW) == FleetStatus.AVAILABLE
        assert classify(make_transporter(accepting_booking=False), now=NOW) == FleetStatus.IDLE


def test_status_counts_include_every_status():
    counts = calculate_status_counts(["available", "available", "idle"])

    assert counts == {
        "inactive": 0,
        "non-compliant": 0,
        "active": 0,
        "assigned": 0,
        "available": 2,
        "idle": 1,
    }


class TestFleetStatusEngine:
    """Dashboard over the whole fleet."""

    @pytest.fixture
    def fleet(self, make_transporter, make_booking):
        on_trip = make_transporter()
        make_booking(status="accepted", transporter_id=on_trip.id)
        make_booking(status="picked-up", transporter_id=on_trip.id)
        make_transporter(accepting_booking=True)
        make_transporter(accepting_booking=False)
        make_transporter(account_status=False)
        return on_trip

    def test_summary_and_entries(self, db_session, fleet):
        result = FleetStatusEngine(db_session).get_fleet_status(now=NOW)

        assert result["summary"] == {
            "total": 4,
            "inactive": 1,
            "non-compliant": 0,
            "active": 1,
            "assigned": 0,
            "available": 1,
            "idle": 1,
        }

        entry = next(e for e in result["fleet"] if e["transporterId"] == fleet.id)
        assert entry["status"] == "active"
        assert entry["booking"]["status"] == "picked-up"
        assert entry["driver"]["name"] == fleet.display_name
        assert entry["registration"] == fleet.vehicle_registration
        assert entry["features"] == {"refrigerated": False, "humidityControl": False}
        assert set(entry["booking"]["specialRequirements"]) == {
            "perishable", "refrigeration", "humidityControl", "insured",
        }

    def test_filter_narrows_entries_not_summary(self, db_session, fleet):
        result = FleetStatusEngine(db_session).get_fleet_status(status_filter="IDLE", now=NOW)

        assert [entry["status"] for entry in result["fleet"]] == ["idle"]
        assert result["summary"]["total"] == 4

    def test_unnamed_driver(self, db_session, make_transporter):
        make_transporter(display_name=None)

        entry = FleetStatusEngine(db_session).get_fleet_status(now=NOW)["fleet"][0]

        assert entry["driver"]["name"] == "Unknown Driver"
        assert entry["booking"] is None
