"""Merging several pending bookings into one shipment."""
from typing import Any, Dict, List, Sequence

from constants import (
    BOOKING_MODE_INSTANT,
    BOOKING_MODE_SCHEDULED,
    DEFAULT_URGENCY_LEVEL,
    URGENCY_LEVELS,
)
from exceptions import ValidationError
from models import Booking
from utils.date_helpers import isoformat_or_none

MIN_CONSOLIDATION_SIZE = 2


def normalize_booking_ids(booking_ids: Any) -> List[str]:
    """
    Validate the IDs of bookings to consolidate.

    Duplicates are dropped; order is preserved because the first booking
    supplies the pickup and the last one the drop-off.

    Raises:
        ValidationError: Fewer than two distinct IDs
    """
    if not isinstance(booking_ids, list) or not all(isinstance(i, str) and i for i in booking_ids):
        raise ValidationError("bookingIds must be a list of booking IDs", offending=["bookingIds"])

    distinct = list(dict.fromkeys(booking_ids))
    if len(distinct) < MIN_CONSOLIDATION_SIZE:
        raise ValidationError(
            f"At least {MIN_CONSOLIDATION_SIZE} distinct bookings are required for consolidation",
            offending=["bookingIds"],
        )
    return distinct


def _most_urgent(bookings: Sequence[Booking]) -> str:
    levels = [b.urgency_level for b in bookings if b.urgency_level in URGENCY_LEVELS]
    if not levels:
        return DEFAULT_URGENCY_LEVEL
    return max(levels, key=URGENCY_LEVELS.index)


def consolidation_payload(bookings: Sequence[Booking]) -> Dict[str, Any]:
    """
    Request payload for the booking that replaces ``bookings``.

    Weights and declared values are summed, handling requirements are
    combined, and the route runs from the first booking's pickup to the
    last booking's drop-off. The merged booking is scheduled for the first
    booking's pickup date, or instant when it has none.

    Args:
        bookings: Source bookings, in route order

    Returns:
        Payload for the request validator
    """
    types = sorted({b.booking_type for b in bookings})
    if len(types) > 1:
        raise ValidationError("Only bookings of one type can be consolidated", offending=types)

    first, last = bookings[0], bookings[-1]
    values = [b.value for b in bookings if b.value is not None]
    special_cargo = list(dict.fromkeys(
        category for b in bookings for category in (b.special_cargo or [])
    ))
    products = ", ".join(dict.fromkeys(b.product_type for b in bookings))

    return {
        "bookingType": first.booking_type,
        "bookingMode": BOOKING_MODE_SCHEDULED if first.pick_up_date else BOOKING_MODE_INSTANT,
        "pickUpDate": isoformat_or_none(first.pick_up_date),
        "fromLocation": first.from_location,
        "toLocation": last.to_location,
        "weightKg": sum(b.weight_kg or 0 for b in bookings),
        "productType": products[:255],
        "urgencyLevel": _most_urgent(bookings),
        "priority": any(b.priority for b in bookings),
        "perishable": any(b.perishable for b in bookings),
        "needsRefrigeration": any(b.needs_refrigeration for b in bookings),
        "humidityControl": any(b.humidity_control for b in bookings),
        "insured": any(b.insured for b in bookings),
        "value": sum(values) if values else None,
        "specialCargo": special_cargo,
        "additionalNotes": "Consolidated from " + ", ".join(b.readable_id or b.id for b in bookings),
    }
