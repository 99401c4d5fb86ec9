"""Tests for merging pending bookings into one shipment."""
from datetime import datetime

import pytest

from exceptions import BookingNotFoundError, ConflictError, ValidationError
from models import Booking
from repositories import BookingRepository
from services.booking_service import BookingService
from services.consolidation import consolidation_payload, normalize_booking_ids
from services.notification_service import NotificationDispatcher
from tests.locations import MOMBASA, NAIROBI, NAKURU, THIKA


@pytest.fixture
def service(db_session, settings):
    return BookingService(db_session, settings, notifier=NotificationDispatcher(settings))


class TestNormalizeBookingIds:
    """At least two distinct bookings."""

    def test_duplicates_dropped_in_order(self):
        assert normalize_booking_ids(["b-2", "b-1", "b-2"]) == ["b-2", "b-1"]

    @pytest.mark.parametrize("booking_ids", [["b-1"], ["b-1", "b-1"], [], "b-1,b-2", ["b-1", ""]])
    def test_rejected(self, booking_ids):
        with pytest.raises(ValidationError) as exc_info:
            normalize_booking_ids(booking_ids)
        assert exc_info.value.offending == ["bookingIds"]


class TestConsolidationPayload:
    """Loads combine into one request."""

    def test_merges_loads(self, make_booking):
        first = make_booking(
            from_location=NAIROBI, to_location=THIKA, weight_kg=1000.0,
            product_type="Maize", urgency_level="Low", value=100.0,
        )
        second = make_booking(
            from_location=THIKA, to_location=NAKURU, weight_kg=2500.0,
            product_type="Beans", urgency_level="High", needs_refrigeration=True,
        )

        payload = consolidation_payload([first, second])

        assert payload["weightKg"] == 3500.0
        assert payload["fromLocation"] == NAIROBI
        assert payload["toLocation"] == NAKURU
        assert payload["productType"] == "Maize, Beans"
        assert payload["urgencyLevel"] == "High"
        assert payload["needsRefrigeration"] is True
        assert payload["value"] == 100.0
        assert payload["bookingMode"] == "instant"

    def test_scheduled_from_first_pickup(self, make_booking):
        first = make_booking(booking_mode="booking", pick_up_date=datetime(2030, 5, 1, 6, 0))
        second = make_booking(booking_mode="booking", pick_up_date=datetime(2030, 5, 3, 6, 0))

        payload = consolidation_payload([first, second])

        assert payload["bookingMode"] == "booking"
        assert payload["pickUpDate"] == "2030-05-01T06:00:00Z"

    def test_mixed_types_rejected(self, make_booking):
        agri = make_booking()
        cargo = make_booking(booking_type="Cargo")

        with pytest.raises(ValidationError) as exc_info:
            consolidation_payload([agri, cargo])
        assert exc_info.value.offending == ["Agri", "Cargo"]


class TestConsolidateBookings:
    """Merge, retire sources, match."""

    def test_merged_booking_is_matched(self, db_session, service, make_transporter, make_booking):
        transporter = make_transporter(location=THIKA)
        first = make_booking(weight_kg=1000.0)
        second = make_booking(weight_kg=500.0)

        outcome = service.consolidate_bookings([first.id, second.id])

        merged = outcome.booking
        assert merged.consolidated is True
        assert merged.consolidated_booking_ids == [first.id, second.id]
        assert merged.weight_kg == 1500.0
        assert "-AGR-C" in merged.readable_id
        assert merged.status == "accepted"
        assert outcome.matched_transporter.id == transporter.id

        db_session.expire_all()
        for source_id in (first.id, second.id):
            source = db_session.get(Booking, source_id)
            assert source.status == "cancelled"
            assert source.consolidated_into == merged.id
            assert source.cancellation_reason == f"Consolidated into {merged.id}"

    def test_without_candidates_stays_pending(self, service, make_booking):
        first = make_booking()
        second = make_booking()

        outcome = service.consolidate_bookings([first.id, second.id])

        assert outcome.booking.status == "pending"
        assert outcome.matched_transporter is None

    def test_claimed_source_conflicts(self, db_session, service, make_booking):
        first = make_booking()
        taken = make_booking(status="accepted", transporter_id="T-001")

        with pytest.raises(ConflictError) as exc_info:
            service.consolidate_bookings([first.id, taken.id])

        assert exc_info.value.current_status == "accepted"
        assert db_session.query(Booking).count() == 2

    def test_unknown_source(self, service, make_booking):
        with pytest.raises(BookingNotFoundError):
            service.consolidate_bookings([make_booking().id, "missing"])


def test_sources_claimed_mid_write_leave_nothing_behind(db_session, make_booking):
    """The merged insert and the source cancellation commit together or not at all."""
    first = make_booking()
    claimed = make_booking(status="accepted", transporter_id="T-001")
    first_id, claimed_id = first.id, claimed.id
    merged = Booking(
        id="merged-1",
        request_id="A-MERGED-1",
        booking_type="Agri",
        booking_mode="instant",
        weight_kg=2000.0,
        product_type="Maize",
        from_location=NAIROBI,
        to_location=MOMBASA,
        status="pending",
        consolidated=True,
    )

    with pytest.raises(ConflictError):
        BookingRepository(db_session).add_consolidated(merged, [first_id, claimed_id])

    db_session.expire_all()
    assert db_session.get(Booking, first_id).status == "pending"
    assert db_session.query(Booking).filter(Booking.request_id == "A-MERGED-1").count() == 0
