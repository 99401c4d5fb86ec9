"""Fleet status engine: operational classification of transporters."""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from constants import STATUS_ACCEPTED, STATUS_IN_PROGRESS, STATUS_PICKED_UP
from logging_config import get_logger
from models import Booking, FleetStatus, Transporter
from repositories import BookingRepository, TransporterRepository
from utils.date_helpers import isoformat_or_none, utc_now

logger = get_logger(__name__)

# Booking status precedence when a transporter holds several active bookings
_ACTIVE_PRECEDENCE = {STATUS_PICKED_UP: 0, STATUS_IN_PROGRESS: 1, STATUS_ACCEPTED: 2}


def has_expired_documents(transporter: Transporter, now: Optional[datetime] = None) -> bool:
    """
    Check whether any compliance document has expired.

    Args:
        transporter: Transporter to check
        now: Reference time (default: current UTC)

    Returns:
        True if insurance, driver license or ID expiry is in the past
    """
    now = now or utc_now()
    return any(
        expiry is not None and expiry < now
        for expiry in transporter.document_expiries().values()
    )


def classify(
    transporter: Transporter,
    active_booking: Optional[Booking] = None,
    now: Optional[datetime] = None
) -> FleetStatus:
    """
    Classify a transporter; the first matching rule wins.

    Account and compliance gates come before operational state, so a
    deactivated account with a trip underway is still inactive.

    Args:
        transporter: Transporter to classify
        active_booking: Booking the transporter currently holds, if any
        now: Reference time for document expiry

    Returns:
        Fleet status
    """
    if not transporter.account_status:
        return FleetStatus.INACTIVE

    if has_expired_documents(transporter, now=now):
        return FleetStatus.NON_COMPLIANT

    if active_booking is not None:
        if active_booking.status in (STATUS_IN_PROGRESS, STATUS_PICKED_UP):
            return FleetStatus.ACTIVE
        if active_booking.status == STATUS_ACCEPTED:
            return FleetStatus.ASSIGNED

    if transporter.accepting_booking:
        return FleetStatus.AVAILABLE

    return FleetStatus.IDLE


def calculate_status_counts(statuses: Iterable[str]) -> Dict[str, int]:
    """Tally of fleet statuses, with every status present."""
    counts = {status.value: 0 for status in FleetStatus}
    for status in statuses:
        counts[status] = counts.get(status, 0) + 1
    return counts


def format_booking_info(booking: Booking) -> Dict[str, Any]:
    """Booking summary shown on a fleet entry."""
    return {
        "bookingId": booking.id,
        "requestId": booking.request_id,
        "status": booking.status,
        "fromLocation": booking.from_location,
        "toLocation": booking.to_location,
        "productType": booking.product_type,
        "weightKg": booking.weight_kg,
        "cost": booking.cost,
        "pickUpDate": isoformat_or_none(booking.pick_up_date),
        "urgencyLevel": booking.urgency_level,
        "specialRequirements": {
            "perishable": bool(booking.perishable),
            "refrigeration": bool(booking.needs_refrigeration),
            "humidityControl": bool(booking.humidity_control),
            "insured": bool(booking.insured),
        },
    }


class FleetStatusEngine:
    """Builds the fleet dashboard."""

    def __init__(self, db: Session):
        """
        Initialize fleet status engine.

        Args:
            db: Database session
        """
        self.db = db
        self.bookings = BookingRepository(db)
        self.transporters = TransporterRepository(db)

    def _active_bookings_by_transporter(self) -> Dict[str, Booking]:
        by_transporter: Dict[str, Booking] = {}
        for booking in self.bookings.get_active():
            current = by_transporter.get(booking.transporter_id)
            if current is None or _ACTIVE_PRECEDENCE[booking.status] < _ACTIVE_PRECEDENCE[current.status]:
                by_transporter[booking.transporter_id] = booking
        return by_transporter

    def build_entry(
        self,
        transporter: Transporter,
        active_booking: Optional[Booking],
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Dashboard entry for one transporter.

        Args:
            transporter: Transporter
            active_booking: Booking it currently holds, if any
            now: Reference time for document expiry

        Returns:
            Fleet entry document
        """
        return {
            "transporterId": transporter.id,
            "registration": transporter.vehicle_registration,
            "vehicleType": transporter.vehicle_type,
            "capacity": transporter.vehicle_capacity,
            "driver": {
                "userId": transporter.user_id,
                "name": transporter.display_name or "Unknown Driver",
                "phone": transporter.phone_number,
                "rating": transporter.rating,
            },
            "status": classify(transporter, active_booking, now=now).value,
            "booking": format_booking_info(active_booking) if active_booking else None,
            "location": transporter.last_known_location,
            "lastUpdated": isoformat_or_none(transporter.updated_at),
            "features": {
                "refrigerated": bool(transporter.refrigerated),
                "humidityControl": bool(transporter.humidity_control),
            },
        }

    def get_fleet_status(
        self,
        status_filter: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Classify every transporter and tally the fleet.

        The summary always covers the whole fleet; the filter only narrows
        the returned entries.

        Args:
            status_filter: Case-insensitive status to keep
            now: Reference time for document expiry

        Returns:
            {"fleet": [...], "summary": {"total": n, <status>: count, ...}}
        """
        now = now or utc_now()
        active = self._active_bookings_by_transporter()
        fleet: List[Dict[str, Any]] = [
            self.build_entry(transporter, active.get(transporter.id), now=now)
            for transporter in self.transporters.get_all()
        ]

        summary = {"total": len(fleet), **calculate_status_counts(entry["status"] for entry in fleet)}

        if status_filter:
            wanted = status_filter.strip().lower()
            fleet = [entry for entry in fleet if entry["status"] == wanted]

        logger.info("Fleet status computed", total=summary["total"], filter=status_filter, returned=len(fleet))
        return {"fleet": fleet, "summary": summary}
