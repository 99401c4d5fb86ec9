"""Domain services."""
from services.booking_service import BookingService, BookingCreation
from services.fleet_status import FleetStatusEngine, classify
from services.matching_engine import MatchingEngine, NoMatch
from services.notification_service import NotificationDispatcher
from services.recurrence import RecurrenceScheduler, calculate_end_date, expand
from services.request_validator import validate_booking_request
from services.route_scanner import RouteCompatibilityScanner

__all__ = [
    "BookingService",
    "BookingCreation",
    "FleetStatusEngine",
    "classify",
    "MatchingEngine",
    "NoMatch",
    "NotificationDispatcher",
    "RecurrenceScheduler",
    "calculate_end_date",
    "expand",
    "validate_booking_request",
    "RouteCompatibilityScanner",
]
