"""Route compatibility scanner: backhaul loads for a transporter's route."""
from datetime import datetime, timedelta
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from config import Settings, get_settings
from exceptions import CapacityNotFoundError, RouteNotFoundError
from logging_config import get_logger
from models import Booking, RouteLoad, Transporter
from repositories import BookingRepository, TransporterRepository
from utils.date_helpers import is_within_window, utc_now
from utils.geo import is_nearby

logger = get_logger(__name__)


def is_route_compatible(transporter: Transporter, booking: Booking, cutoff_meters: float) -> bool:
    """
    Pickup lies within the cutoff of where the transporter is.

    The reference point is the last known location, else the last route
    waypoint. A transporter without a current route passes.
    """
    if not transporter.route_samples:
        return True

    reference = transporter.route_reference_point
    if reference is None:
        return True

    return is_nearby(reference, booking.from_location, cutoff_meters)


def is_capacity_compatible(transporter: Transporter, booking: Booking) -> bool:
    """Weight fits and handling requirements are met."""
    if booking.weight_kg is not None and transporter.vehicle_capacity is not None:
        if booking.weight_kg > transporter.vehicle_capacity:
            return False

    if booking.needs_refrigeration and not transporter.refrigerated:
        return False

    if booking.humidity_control and not transporter.humidity_control:
        return False

    return True


def is_schedule_compatible(booking: Booking, window: timedelta, now: Optional[datetime] = None) -> bool:
    """Pickup falls within [now, now + window]; no pickup date passes."""
    if booking.pick_up_date is None:
        return True
    return is_within_window(booking.pick_up_date, window, now=now)


class RouteCompatibilityScanner:
    """Finds unassigned bookings a transporter could pick up along its route."""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        """
        Initialize scanner.

        Args:
            db: Database session
            settings: Cutoff and schedule window (default: application settings)
        """
        self.db = db
        self.settings = settings or get_settings()
        self.bookings = BookingRepository(db)
        self.transporters = TransporterRepository(db)

    def find_compatible_loads(self, transporter_id: str, now: Optional[datetime] = None) -> List[RouteLoad]:
        """
        List unassigned bookings passing the route, capacity and schedule checks.

        Args:
            transporter_id: Transporter ID
            now: Reference time (default: current UTC)

        Returns:
            RouteLoad projections, oldest booking first

        Raises:
            TransporterNotFoundError: Unknown transporter
            RouteNotFoundError: Transporter has never reported a route
            CapacityNotFoundError: Transporter has no vehicle capacity
        """
        now = now or utc_now()
        transporter = self.transporters.get_or_raise(transporter_id)

        if transporter.current_route is None:
            raise RouteNotFoundError(f"Transporter {transporter_id} has no route")

        if transporter.vehicle_capacity is None:
            raise CapacityNotFoundError(f"Transporter {transporter_id} has no vehicle capacity")

        cutoff = self.settings.nearby_cutoff_meters
        window = timedelta(hours=self.settings.schedule_window_hours)

        available = self.bookings.get_available()
        loads = [
            RouteLoad.from_booking(booking)
            for booking in available
            if is_route_compatible(transporter, booking, cutoff)
            and is_capacity_compatible(transporter, booking)
            and is_schedule_compatible(booking, window, now=now)
        ]

        logger.info(
            "Route loads scanned",
            transporter_id=transporter_id,
            available=len(available),
            compatible=len(loads),
        )
        return loads

    def scan(self, transporter_id: str, now: Optional[datetime] = None) -> List[dict[str, Any]]:
        """Compatible loads as wire documents."""
        return [load.to_dict() for load in self.find_compatible_loads(transporter_id, now=now)]
