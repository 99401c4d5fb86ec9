"""Booking model: a shipment request tracked through its lifecycle."""
from typing import Any, Dict, Optional

from sqlalchemy import Column, String, Float, DateTime, Text, Boolean, JSON

from constants import STATUS_PENDING, BOOKING_MODE_INSTANT
from models.database import Base
from models.assignment import AssignmentSnapshot
from models.recurrence import RecurrencePlan
from utils.date_helpers import isoformat_or_none, utc_now
from utils.identifiers import generate_booking_id


class Booking(Base):
    """Agri or Cargo shipment request, instant or scheduled."""

    __tablename__ = "bookings"

    id = Column(String(32), primary_key=True, default=generate_booking_id)

    # Identifiers
    request_id = Column(String(64), unique=True, nullable=False, index=True)
    readable_id = Column(String(40), index=True)
    user_id = Column(String(128), index=True)

    # Classification
    booking_type = Column(String(10), nullable=False)  # Agri, Cargo
    booking_mode = Column(String(10), nullable=False, default=BOOKING_MODE_INSTANT)  # instant, booking
    urgency_level = Column(String(10), nullable=False, default="Low")
    priority = Column(Boolean, default=False)

    # Load
    weight_kg = Column(Float, nullable=False)
    product_type = Column(String(255), nullable=False)
    special_request = Column(Text)
    special_cargo = Column(JSON, default=list)
    additional_notes = Column(Text)

    # Handling requirements
    perishable = Column(Boolean, default=False)
    needs_refrigeration = Column(Boolean, default=False)
    humidity_control = Column(Boolean, default=False)
    insured = Column(Boolean, default=False)
    value = Column(Float)

    # Route
    from_location = Column(JSON, nullable=False)  # {address, latitude, longitude}
    to_location = Column(JSON, nullable=False)
    actual_distance = Column(Float)  # km
    pick_up_date = Column(DateTime, index=True)

    # Recurrence
    recurrence = Column(JSON)
    base_booking_id = Column(String(32), index=True)
    is_recurrence_instance = Column(Boolean, default=False)

    # Consolidation
    consolidated = Column(Boolean, default=False)
    consolidated_booking_ids = Column(JSON)  # sources merged into this booking
    consolidated_into = Column(String(32), index=True)  # set on each source

    # Lifecycle
    status = Column(String(20), nullable=False, default=STATUS_PENDING, index=True)
    cancellation_reason = Column(Text)

    # Assignment (written only through the conditional update)
    transporter_id = Column(String(128), index=True)
    driver_id = Column(String(128))
    assignment = Column(JSON)

    # Pass-through pricing
    cost = Column(Float)

    # Timestamps
    accepted_at = Column(DateTime)
    started_at = Column(DateTime)
    picked_up_at = Column(DateTime)
    completed_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    @property
    def recurrence_plan(self) -> RecurrencePlan:
        """Recurrence plan as a value object."""
        return RecurrencePlan.from_dict(self.recurrence)

    @property
    def assignment_snapshot(self) -> Optional[AssignmentSnapshot]:
        """Assignment snapshot as a value object, if assigned."""
        return AssignmentSnapshot.from_dict(self.assignment)

    @property
    def is_unassigned(self) -> bool:
        """Pending and not yet claimed by any transporter."""
        return self.status == STATUS_PENDING and self.transporter_id is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire document."""
        return {
            "bookingId": self.id,
            "requestId": self.request_id,
            "readableId": self.readable_id,
            "userId": self.user_id,
            "bookingType": self.booking_type,
            "bookingMode": self.booking_mode,
            "weightKg": self.weight_kg,
            "productType": self.product_type,
            "specialRequest": self.special_request,
            "perishable": bool(self.perishable),
            "needsRefrigeration": bool(self.needs_refrigeration),
            "humidityControl": bool(self.humidity_control),
            "insured": bool(self.insured),
            "value": self.value,
            "urgencyLevel": self.urgency_level,
            "priority": bool(self.priority),
            "recurrence": self.recurrence_plan.to_dict(),
            "fromLocation": self.from_location,
            "toLocation": self.to_location,
            "status": self.status,
            "pickUpDate": isoformat_or_none(self.pick_up_date),
            "specialCargo": list(self.special_cargo or []),
            "additionalNotes": self.additional_notes,
            "actualDistance": self.actual_distance,
            "transporterId": self.transporter_id,
            "driverId": self.driver_id,
            "cost": self.cost,
            "assignment": self.assignment,
            "baseBookingId": self.base_booking_id,
            "isRecurrenceInstance": bool(self.is_recurrence_instance),
            "consolidated": bool(self.consolidated),
            "consolidatedBookingIds": list(self.consolidated_booking_ids or []),
            "consolidatedInto": self.consolidated_into,
            "cancellationReason": self.cancellation_reason,
            "acceptedAt": isoformat_or_none(self.accepted_at),
            "startedAt": isoformat_or_none(self.started_at),
            "pickedUpAt": isoformat_or_none(self.picked_up_at),
            "completedAt": isoformat_or_none(self.completed_at),
            "cancelledAt": isoformat_or_none(self.cancelled_at),
            "createdAt": isoformat_or_none(self.created_at),
            "updatedAt": isoformat_or_none(self.updated_at),
        }

    def __repr__(self):
        return f"<Booking(id='{self.id}', request='{self.request_id}', status='{self.status}')>"
