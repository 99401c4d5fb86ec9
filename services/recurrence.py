"""Recurrence plans: end-date arithmetic, lazy expansion and scheduling."""
import re
from datetime import datetime, timedelta
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from constants import (
    BOOKING_MODE_SCHEDULED,
    DURATION_UNITS,
    DURATION_UNIT_MONTHS,
    DURATION_UNIT_WEEKS,
    DURATION_UNIT_YEARS,
    RECURRENCE_FREQUENCIES,
)
from exceptions import DispatchError, InvalidDurationUnit, ValidationError
from logging_config import get_logger
from models import Booking, RecurrencePlan
from repositories import BookingRepository
from utils.date_helpers import add_months, add_weeks, add_years, isoformat_or_none
from utils.identifiers import generate_request_id
from utils.retry import retry_with_backoff

logger = get_logger(__name__)

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s+([A-Za-z]+)\s*$")


def parse_duration(duration: str) -> Tuple[int, str]:
    """
    Split a duration such as "3 months" into count and canonical unit.

    Args:
        duration: "<count> <unit>" with unit week(s), month(s) or year(s)

    Returns:
        (count, unit) with unit one of weeks/months/years

    Raises:
        ValidationError: If the text is not "<count> <unit>"
        InvalidDurationUnit: If the unit is not recognised
    """
    if not isinstance(duration, str):
        raise ValidationError(f"Invalid duration: {duration!r}")

    match = _DURATION_PATTERN.match(duration)
    if not match:
        raise ValidationError(f"Invalid duration format: {duration!r}. Use '<count> <unit>'")

    count = int(match.group(1))
    unit = DURATION_UNITS.get(match.group(2).lower())
    if unit is None:
        raise InvalidDurationUnit(
            f"Invalid duration unit: {match.group(2)!r}",
            offending=[match.group(2)],
        )
    if count <= 0:
        raise ValidationError(f"Duration count must be positive, got {count}")

    return count, unit


def calculate_end_date(start_date: datetime, duration: str) -> datetime:
    """
    Compute startDate + duration.

    Months and years are calendar-aware (same day of month, clamped to the
    month's length); weeks are exactly 7 x 24 hours.

    Args:
        start_date: Plan start
        duration: "<count> <unit>"

    Returns:
        Plan end date
    """
    count, unit = parse_duration(duration)

    if unit == DURATION_UNIT_WEEKS:
        return add_weeks(start_date, count)
    if unit == DURATION_UNIT_MONTHS:
        return add_months(start_date, count)
    if unit == DURATION_UNIT_YEARS:
        return add_years(start_date, count)

    raise InvalidDurationUnit(f"Invalid duration unit: {unit!r}", offending=[unit])


def occurrence_dates(plan: RecurrencePlan) -> Iterator[datetime]:
    """
    Lazily yield pickup dates after start_date up to end_date inclusive.

    The start date itself belongs to the base booking and is not yielded.
    Monthly steps are computed from the start date each time so day
    clamping in short months does not drift later occurrences.

    Args:
        plan: Recurrence plan with start/end dates

    Yields:
        Occurrence pickup datetimes
    """
    if plan.frequency not in RECURRENCE_FREQUENCIES:
        raise ValidationError(
            f"Invalid frequency: {plan.frequency!r}",
            offending=[str(plan.frequency)],
        )

    start = plan.start_date
    end = plan.end_date
    if end is None:
        end = calculate_end_date(start, plan.duration)

    interval = max(1, int(plan.interval or 1))
    step = 1
    while True:
        if plan.frequency == "daily":
            current = start + timedelta(days=step * interval)
        elif plan.frequency == "weekly":
            current = start + timedelta(weeks=step * interval)
        else:
            current = add_months(start, step * interval)

        if current > end:
            return

        yield current
        step += 1


def occurrence_payload(base_booking: Booking, pick_up_date: datetime) -> Dict[str, Any]:
    """
    Request payload for one occurrence, derived from the base booking.

    Occurrences are scheduled bookings for a concrete date; they go
    through the same validator as any inbound request.
    """
    document = base_booking.to_dict()
    payload = {
        key: document[key]
        for key in (
            "bookingType", "weightKg", "productType", "specialRequest",
            "perishable", "needsRefrigeration", "humidityControl", "insured",
            "value", "urgencyLevel", "priority", "fromLocation", "toLocation",
            "specialCargo", "additionalNotes", "actualDistance", "cost",
        )
    }
    payload["bookingMode"] = BOOKING_MODE_SCHEDULED
    payload["pickUpDate"] = isoformat_or_none(pick_up_date)
    return payload


def expand(
    plan: RecurrencePlan,
    base_booking: Booking,
    max_occurrences: Optional[int] = None
) -> Iterator[Booking]:
    """
    Lazily yield future booking instances for a recurrence plan.

    Each instance is a full, independent, transient Booking that references
    the base booking. Request IDs are stamped with the creation time and
    are distinct within the series. Nothing is persisted here.

    Args:
        plan: Recurrence plan
        base_booking: Persisted base booking
        max_occurrences: Optional cap on the number of instances

    Yields:
        Transient Booking instances
    """
    from services.request_validator import validate_booking_request

    issued: Set[str] = set()
    for index, pick_up_date in enumerate(occurrence_dates(plan)):
        if max_occurrences is not None and index >= max_occurrences:
            logger.warning(
                "Recurrence expansion capped",
                base_booking_id=base_booking.id,
                max_occurrences=max_occurrences,
            )
            return

        try:
            occurrence = validate_booking_request(
                occurrence_payload(base_booking, pick_up_date),
                user_id=base_booking.user_id,
            )
        except ValidationError as e:
            logger.error(
                "Skipping invalid recurrence occurrence",
                base_booking_id=base_booking.id,
                pick_up_date=isoformat_or_none(pick_up_date),
                error=str(e),
            )
            continue

        request_id = generate_request_id(base_booking.booking_type)
        while request_id in issued:
            request_id = generate_request_id(base_booking.booking_type)
        issued.add(request_id)

        occurrence.request_id = request_id
        occurrence.base_booking_id = base_booking.id
        occurrence.is_recurrence_instance = True
        occurrence.recurrence = RecurrencePlan(base_booking_id=base_booking.id).to_dict()
        yield occurrence


class RecurrenceScheduler:
    """Persist the occurrences of a base booking's recurrence plan."""

    def __init__(self, db: Session, max_occurrences: Optional[int] = None):
        """
        Initialize scheduler.

        Args:
            db: Database session
            max_occurrences: Cap on instances created per plan
        """
        self.db = db
        self.bookings = BookingRepository(db)
        self.max_occurrences = max_occurrences

    @retry_with_backoff()
    def _persist_occurrence(self, occurrence: Booking) -> Booking:
        return self.bookings.add_with_generated_request_id(occurrence)

    def schedule(self, base_booking_id: str) -> List[str]:
        """
        Expand and persist every occurrence of a base booking.

        Failures are isolated per occurrence: a failing instance is logged
        and skipped, and never affects the base booking.

        Args:
            base_booking_id: ID of the persisted base booking

        Returns:
            IDs of the occurrences that were created
        """
        base_booking = self.bookings.get_or_raise(base_booking_id)
        plan = base_booking.recurrence_plan

        if not plan.is_recurring:
            logger.info("Booking has no recurrence plan", base_booking_id=base_booking_id)
            return []

        created: List[str] = []
        failed = 0
        occurrences = expand(plan, base_booking, self.max_occurrences)

        while True:
            try:
                occurrence = next(occurrences)
            except StopIteration:
                break
            except DispatchError as e:
                # Plan-level error (e.g. unknown duration unit): nothing more to yield
                logger.error("Recurrence expansion aborted", base_booking_id=base_booking_id, error=str(e))
                failed += 1
                break

            try:
                saved = self._persist_occurrence(occurrence)
                created.append(saved.id)
            except DispatchError as e:
                failed += 1
                logger.error(
                    "Failed to create recurrence occurrence",
                    base_booking_id=base_booking_id,
                    pick_up_date=isoformat_or_none(occurrence.pick_up_date),
                    error=str(e),
                )

        if created:
            self.bookings.record_occurrences(base_booking_id, created)

        logger.info(
            "Scheduled recurring bookings",
            base_booking_id=base_booking_id,
            created=len(created),
            failed=failed,
        )
        return created


def expand_recurrence_in_background(base_booking_id: str) -> List[str]:
    """
    Expand a base booking's plan in its own session.

    Entry point for the in-process background task and the Celery task.
    Never raises: the base booking already exists and must not be affected,
    so any failure is logged and swallowed.

    Args:
        base_booking_id: ID of the persisted base booking

    Returns:
        IDs of created occurrences (empty on failure)
    """
    from config import get_settings
    from models.database import db_session

    settings = get_settings()
    try:
        with db_session() as db:
            scheduler = RecurrenceScheduler(db, max_occurrences=settings.max_recurrence_occurrences)
            return scheduler.schedule(base_booking_id)
    except Exception as e:
        logger.error(
            "Recurrence expansion failed",
            base_booking_id=base_booking_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        return []
