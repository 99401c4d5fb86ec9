"""Booking orchestration: intake, instant matching and lifecycle."""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from config import Settings, get_settings
from constants import BOOKING_MODE_INSTANT
from exceptions import ConflictError, DownstreamError
from logging_config import get_logger
from models import Booking, Transporter
from repositories import BookingRepository, TransporterRepository
from services.consolidation import consolidation_payload, normalize_booking_ids
from services.matching_engine import MatchingEngine, NoMatch
from services.notification_service import NotificationDispatcher
from services.request_validator import validate_booking_request
from utils.identifiers import generate_readable_id

logger = get_logger(__name__)


@dataclass
class BookingCreation:
    """Outcome of creating a booking."""
    booking: Booking
    matched_transporter: Optional[Transporter] = None
    recurrence_scheduled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        document = self.booking.to_dict()
        document["matchedTransporter"] = (
            self.matched_transporter.to_dict() if self.matched_transporter is not None else None
        )
        return document


class BookingService:
    """Service for creating bookings and moving them through their lifecycle."""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        notifier: Optional[NotificationDispatcher] = None,
        schedule_recurrence: Optional[Callable[[str], Any]] = None
    ):
        """
        Initialize booking service.

        Args:
            db: Database session
            settings: Application settings
            notifier: Notification dispatcher
            schedule_recurrence: Starts recurrence expansion for a base booking ID
                in the background; expansion is skipped when not given
        """
        self.db = db
        self.settings = settings or get_settings()
        self.repository = BookingRepository(db)
        self.notifier = notifier or NotificationDispatcher(self.settings)
        self.matching = MatchingEngine(db, self.settings, notifier=self.notifier)
        self.schedule_recurrence = schedule_recurrence

    def create_booking(
        self,
        payload: Dict[str, Any],
        user_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> BookingCreation:
        """
        Validate, persist and (for instant bookings) match a booking request.

        Matching and recurrence are best-effort: their failures are logged
        and the created booking is still returned.

        Args:
            payload: Raw request body
            user_id: Requesting user
            now: Creation timestamp (default: current UTC)

        Returns:
            Creation outcome

        Raises:
            ValidationError: Invalid request
            DuplicateRecordError: Client-supplied requestId already exists
            DownstreamError: Booking could not be persisted
        """
        booking = validate_booking_request(payload, user_id=user_id, now=now)
        if payload.get("requestId"):
            booking = self.repository.add(booking)
        else:
            booking = self.repository.add_with_generated_request_id(booking)

        logger.info(
            "Booking created",
            booking_id=booking.id,
            request_id=booking.request_id,
            readable_id=booking.readable_id,
            booking_mode=booking.booking_mode,
        )
        self.notifier.booking_created(booking)

        outcome = BookingCreation(booking=booking)

        if booking.recurrence_plan.is_recurring and self.schedule_recurrence is not None:
            try:
                self.schedule_recurrence(booking.id)
                outcome.recurrence_scheduled = True
            except Exception as e:
                logger.error("Failed to schedule recurrence expansion", booking_id=booking.id, error=str(e))

        if booking.booking_mode == BOOKING_MODE_INSTANT:
            outcome.matched_transporter = self._match_on_create(booking.id)
            outcome.booking = self.repository.get_or_raise(booking.id)

        return outcome

    def consolidate_bookings(
        self,
        booking_ids: Any,
        now: Optional[datetime] = None
    ) -> BookingCreation:
        """
        Merge pending bookings into one and run matching on it.

        The merged booking goes through the same validation as an inbound
        request. Its sources are cancelled and point at it, atomically with
        its creation. Matching is best-effort, as on creation.

        Args:
            booking_ids: IDs of the bookings to merge, in route order
            now: Creation timestamp (default: current UTC)

        Returns:
            Outcome for the merged booking

        Raises:
            ValidationError: Fewer than two bookings, or mixed booking types
            BookingNotFoundError: Unknown booking
            ConflictError: A source is no longer pending and unassigned
        """
        source_ids = normalize_booking_ids(booking_ids)
        sources = [self.repository.get_or_raise(booking_id) for booking_id in source_ids]

        for source in sources:
            if not source.is_unassigned:
                raise ConflictError(
                    f"Booking {source.id} cannot be consolidated",
                    current_status=source.status,
                )

        booking = validate_booking_request(
            consolidation_payload(sources),
            user_id=sources[0].user_id,
            now=now,
        )
        booking.consolidated = True
        booking.consolidated_booking_ids = source_ids
        booking.readable_id = generate_readable_id(
            booking.booking_type,
            booking.booking_mode,
            booking.created_at,
            seed=booking.id,
            consolidated=True,
        )

        booking = self.repository.add_with_generated_request_id(
            booking,
            save=lambda candidate: self.repository.add_consolidated(candidate, source_ids, now=now),
        )
        logger.info(
            "Bookings consolidated",
            booking_id=booking.id,
            readable_id=booking.readable_id,
            sources=source_ids,
            weight_kg=booking.weight_kg,
        )
        self.notifier.booking_created(booking)

        outcome = BookingCreation(booking=booking)
        outcome.matched_transporter = self._match_on_create(booking.id)
        outcome.booking = self.repository.get_or_raise(booking.id)
        return outcome

    def _match_on_create(self, booking_id: str) -> Optional[Transporter]:
        try:
            result = self.matching.match(booking_id)
        except (ConflictError, DownstreamError) as e:
            logger.warning("Instant matching failed; booking left pending", booking_id=booking_id, error=str(e))
            return None

        if isinstance(result, NoMatch):
            return None
        return result

    def get_booking(self, booking_id: str) -> Booking:
        """Get a booking or raise BookingNotFoundError."""
        return self.repository.get_or_raise(booking_id)

    def list_available(self) -> List[Booking]:
        """Pending bookings no transporter has claimed."""
        return self.repository.get_available()

    def list_for_user(self, user_id: str, skip: int = 0, limit: int = 100) -> List[Booking]:
        """Bookings requested by a user, newest first."""
        return self.repository.get_by_user(user_id, skip=skip, limit=limit)

    def list_for_transporter(self, transporter_id: str) -> List[Booking]:
        """
        Bookings assigned to a transporter, newest first.

        Raises:
            TransporterNotFoundError: Unknown transporter
        """
        TransporterRepository(self.db).get_or_raise(transporter_id)
        return self.repository.get_by_transporter(transporter_id)

    def accept_booking(self, booking_id: str, transporter_id: str) -> Booking:
        """
        Manual acceptance by a transporter.

        Returns:
            The accepted booking

        Raises:
            ConflictError: Booking already taken
        """
        self.matching.accept(booking_id, transporter_id)
        return self.repository.get_or_raise(booking_id)

    def update_status(self, booking_id: str, status: str, reason: Optional[str] = None) -> Booking:
        """
        Advance a booking's lifecycle.

        Args:
            booking_id: Booking ID
            status: Target status (not "accepted"; use accept_booking)
            reason: Cancellation reason

        Returns:
            Updated booking
        """
        booking = self.repository.transition_status(booking_id, status, reason=reason)
        logger.info("Booking status updated", booking_id=booking_id, status=status)
        return booking
