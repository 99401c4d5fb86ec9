"""Inbound booking request validation and normalization."""
from datetime import datetime
from typing import Any, Dict, Optional

from constants import (
    BOOKING_MODES,
    BOOKING_MODE_INSTANT,
    BOOKING_MODE_SCHEDULED,
    BOOKING_TYPES,
    BOOKING_TYPE_AGRI,
    BOOKING_TYPE_CARGO,
    DEFAULT_URGENCY_LEVEL,
    RECURRENCE_FREQUENCIES,
    SPECIAL_CARGO_TYPES,
    STATUS_PENDING,
    URGENCY_LEVELS,
)
from exceptions import ValidationError
from logging_config import get_logger
from models import Booking, RecurrencePlan
from services.recurrence import calculate_end_date
from utils.date_helpers import parse_datetime, utc_now
from utils.geo import distance_or_none
from utils.identifiers import generate_booking_id, generate_readable_id, generate_request_id
from utils.validation import (
    as_bool,
    validate_choice,
    validate_location,
    validate_positive_amount,
    validate_required_string,
    validate_vocabulary_list,
)

logger = get_logger(__name__)


def _optional_amount(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    return validate_positive_amount(value, field_name, allow_zero=True)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_recurrence_plan(
    raw: Any,
    start_date: datetime
) -> RecurrencePlan:
    """
    Validate a recurrence block and compute its end date.

    Only validated when ``isRecurring`` is set; anything else yields an
    inactive plan.

    Args:
        raw: ``recurrence`` object from the payload
        start_date: Pickup date of the base booking

    Returns:
        Recurrence plan with start and end dates filled in

    Raises:
        ValidationError: Missing or invalid frequency, timeFrame or duration
        InvalidDurationUnit: Unknown duration unit
    """
    if not isinstance(raw, dict) or not as_bool(raw.get("isRecurring")):
        return RecurrencePlan.inactive()

    missing = [key for key in ("frequency", "timeFrame", "duration") if not raw.get(key)]
    if missing:
        raise ValidationError(
            f"Recurrence requires {', '.join(missing)}",
            offending=missing,
        )

    frequency = validate_choice(raw["frequency"], RECURRENCE_FREQUENCIES, "recurrence.frequency")

    interval = raw.get("interval") or 1
    try:
        interval = int(interval)
    except (TypeError, ValueError):
        raise ValidationError(f"recurrence.interval must be an integer, got {interval!r}")
    if interval < 1:
        raise ValidationError(f"recurrence.interval must be at least 1, got {interval}")

    duration = str(raw["duration"]).strip()

    return RecurrencePlan(
        is_recurring=True,
        frequency=frequency,
        time_frame=str(raw["timeFrame"]),
        duration=duration,
        start_date=start_date,
        end_date=calculate_end_date(start_date, duration),
        interval=interval,
    )


def validate_booking_request(
    payload: Dict[str, Any],
    user_id: Optional[str] = None,
    now: Optional[datetime] = None
) -> Booking:
    """
    Validate a booking request and build an unsaved Booking.

    Args:
        payload: Raw request body (camelCase wire fields)
        user_id: Requesting user
        now: Reference time (default: current UTC)

    Returns:
        Transient Booking in pending status

    Raises:
        ValidationError: On any malformed, missing or illegal field
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    now = now or utc_now()

    booking_type = validate_choice(
        payload.get("bookingType"), BOOKING_TYPES, "bookingType", default=BOOKING_TYPE_AGRI
    )
    booking_mode = validate_choice(
        payload.get("bookingMode"), BOOKING_MODES, "bookingMode", default=BOOKING_MODE_INSTANT
    )

    missing = [
        key for key in ("fromLocation", "toLocation", "weightKg", "productType")
        if payload.get(key) in (None, "", {})
    ]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            offending=missing,
        )

    from_location = validate_location(payload["fromLocation"], "fromLocation")
    to_location = validate_location(payload["toLocation"], "toLocation")
    weight_kg = validate_positive_amount(payload["weightKg"], "weightKg")
    product_type = validate_required_string(payload["productType"], "productType", max_length=255)

    pick_up_date = None
    if booking_mode == BOOKING_MODE_SCHEDULED:
        raw_date = payload.get("pickUpDate")
        if raw_date in (None, ""):
            raise ValidationError("pickUpDate is required for scheduled bookings")
        pick_up_date = parse_datetime(raw_date)
        if pick_up_date is None:
            raise ValidationError(
                f"Invalid pickUpDate: {raw_date!r}",
                offending=[str(raw_date)],
            )

    urgency_level = validate_choice(
        payload.get("urgencyLevel"), URGENCY_LEVELS, "urgencyLevel", default=DEFAULT_URGENCY_LEVEL
    )

    # Special cargo categories only apply to Cargo bookings
    special_cargo = []
    if booking_type == BOOKING_TYPE_CARGO:
        special_cargo = validate_vocabulary_list(
            payload.get("specialCargo"), SPECIAL_CARGO_TYPES, "specialCargo"
        )

    # Older clients send the misspelt key
    humidity_control = payload.get("humidityControl", payload.get("humidyControl"))

    recurrence = build_recurrence_plan(payload.get("recurrence"), pick_up_date or now)

    actual_distance = _optional_amount(payload.get("actualDistance"), "actualDistance")
    if actual_distance is None:
        meters = distance_or_none(from_location, to_location)
        actual_distance = round(meters / 1000.0, 2) if meters is not None else None

    request_id = _optional_text(payload.get("requestId")) or generate_request_id(booking_type, now=now)

    booking_id = generate_booking_id()

    booking = Booking(
        id=booking_id,
        request_id=request_id,
        readable_id=generate_readable_id(booking_type, booking_mode, now, seed=booking_id),
        user_id=user_id,
        booking_type=booking_type,
        booking_mode=booking_mode,
        urgency_level=urgency_level,
        priority=as_bool(payload.get("priority")),
        weight_kg=weight_kg,
        product_type=product_type,
        special_request=_optional_text(payload.get("specialRequest")),
        special_cargo=special_cargo,
        additional_notes=_optional_text(payload.get("additionalNotes")),
        perishable=as_bool(payload.get("perishable")),
        needs_refrigeration=as_bool(payload.get("needsRefrigeration")),
        humidity_control=as_bool(humidity_control),
        insured=as_bool(payload.get("insured")),
        value=_optional_amount(payload.get("value"), "value"),
        from_location=from_location,
        to_location=to_location,
        actual_distance=actual_distance,
        pick_up_date=pick_up_date,
        recurrence=recurrence.to_dict(),
        status=STATUS_PENDING,
        cost=_optional_amount(payload.get("cost"), "cost"),
        created_at=now,
        updated_at=now,
    )

    logger.debug(
        "Validated booking request",
        request_id=request_id,
        booking_type=booking_type,
        booking_mode=booking_mode,
        recurring=recurrence.is_recurring,
    )
    return booking
