"""Database models and value types."""
from models.database import Base, get_db, init_db
from models.booking import Booking
from models.transporter import Transporter, FleetStatus
from models.assignment import AssignmentSnapshot
from models.recurrence import RecurrencePlan
from models.route_load import RouteLoad

__all__ = [
    "Base",
    "get_db",
    "init_db",
    "Booking",
    "Transporter",
    "FleetStatus",
    "AssignmentSnapshot",
    "RecurrencePlan",
    "RouteLoad",
]
