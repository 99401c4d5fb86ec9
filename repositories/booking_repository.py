"""Repository for booking operations."""
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from constants import (
    ACTIVE_BOOKING_STATUSES,
    ALLOWED_STATUS_TRANSITIONS,
    BOOKING_STATUSES,
    REQUEST_ID_MAX_ATTEMPTS,
    STATUS_ACCEPTED,
    STATUS_CANCELLED,
    STATUS_PENDING,
    STATUS_TIMESTAMP_FIELDS,
)
from exceptions import (
    BookingNotFoundError,
    ConflictError,
    DuplicateRecordError,
    InvalidStatusTransition,
    ValidationError,
)
from models import Booking, AssignmentSnapshot
from repositories.base import BaseRepository, translate_store_error
from logging_config import get_logger
from utils.date_helpers import utc_now
from utils.identifiers import generate_request_id

logger = get_logger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking-specific document-store operations."""

    def __init__(self, db: Session):
        """
        Initialize booking repository.

        Args:
            db: Database session
        """
        super().__init__(Booking, db)

    def get_or_raise(self, booking_id: str) -> Booking:
        """
        Get booking by ID.

        Raises:
            BookingNotFoundError: If no booking has this ID
        """
        booking = self.get_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    def add_with_generated_request_id(
        self,
        booking: Booking,
        max_attempts: int = REQUEST_ID_MAX_ATTEMPTS,
        save: Optional[Callable[[Booking], Booking]] = None
    ) -> Booking:
        """
        Persist a booking whose request ID was generated, not client-supplied.

        Generated IDs carry a bounded random suffix, so a unique-key
        collision gets a fresh ID and another attempt.

        Args:
            booking: Transient booking
            max_attempts: Inserts tried before giving up
            save: Insert to attempt (default: add)

        Returns:
            Persisted booking

        Raises:
            DuplicateRecordError: Every attempt collided
        """
        save = save or self.add
        for attempt in range(1, max_attempts + 1):
            try:
                return save(booking)
            except DuplicateRecordError:
                if attempt == max_attempts:
                    raise
                previous = booking.request_id
                booking.request_id = generate_request_id(booking.booking_type)
                logger.warning(
                    "Request ID collision, regenerating",
                    booking_id=booking.id,
                    previous_request_id=previous,
                    request_id=booking.request_id,
                    attempt=attempt,
                )

    def get_available(self) -> List[Booking]:
        """
        Get pending bookings no transporter has claimed.

        Returns:
            List of unassigned bookings, oldest first
        """
        try:
            return self.db.query(Booking).filter(
                Booking.status == STATUS_PENDING,
                Booking.transporter_id.is_(None),
            ).order_by(Booking.created_at.asc()).all()
        except SQLAlchemyError as e:
            raise translate_store_error(e, "list available bookings") from e

    def get_active(self) -> List[Booking]:
        """
        Get bookings currently held by a transporter.

        Returns:
            List of accepted / in-progress / picked-up bookings
        """
        try:
            return self.db.query(Booking).filter(
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                Booking.transporter_id.isnot(None),
            ).order_by(Booking.updated_at.desc()).all()
        except SQLAlchemyError as e:
            raise translate_store_error(e, "list active bookings") from e

    def get_by_user(self, user_id: str, skip: int = 0, limit: int = 100) -> List[Booking]:
        """
        Get bookings requested by a user.

        Args:
            user_id: Requester ID
            skip: Pagination offset
            limit: Page size

        Returns:
            List of bookings, newest first
        """
        try:
            return self.db.query(Booking).filter(
                Booking.user_id == user_id
            ).order_by(Booking.created_at.desc()).offset(skip).limit(limit).all()
        except SQLAlchemyError as e:
            raise translate_store_error(e, "list bookings by user") from e

    def get_by_transporter(self, transporter_id: str) -> List[Booking]:
        """
        Get bookings assigned to a transporter.

        Args:
            transporter_id: Transporter ID

        Returns:
            List of bookings, newest first
        """
        try:
            return self.db.query(Booking).filter(
                Booking.transporter_id == transporter_id
            ).order_by(Booking.created_at.desc()).all()
        except SQLAlchemyError as e:
            raise translate_store_error(e, "list bookings by transporter") from e

    def conditional_update(
        self,
        booking_id: str,
        expected_status: str,
        require_unassigned: bool = False,
        **values
    ) -> bool:
        """
        Apply an update only if the booking is still in the expected status.

        Issued as a single ``UPDATE ... WHERE id = ? AND status = ?`` so two
        racing writers cannot both succeed.

        Args:
            booking_id: Booking ID
            expected_status: Status the writer observed
            require_unassigned: Also require transporter_id to be NULL
            **values: Column values to write

        Returns:
            True if this writer won, False if the condition no longer held
        """
        conditions = [Booking.id == booking_id, Booking.status == expected_status]
        if require_unassigned:
            conditions.append(Booking.transporter_id.is_(None))

        statement = (
            update(Booking)
            .where(*conditions)
            .values(updated_at=utc_now(), **values)
            .execution_options(synchronize_session=False)
        )

        try:
            result = self.db.execute(statement)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Conditional booking update failed", booking_id=booking_id, error=str(e))
            raise translate_store_error(e, "update booking") from e

        won = result.rowcount == 1
        logger.info(
            "Conditional booking update",
            booking_id=booking_id,
            expected_status=expected_status,
            applied=won,
        )
        return won

    def assign(self, booking_id: str, snapshot: AssignmentSnapshot) -> bool:
        """
        Move a pending, unassigned booking to accepted for one transporter.

        Args:
            booking_id: Booking ID
            snapshot: Transporter/vehicle snapshot to embed

        Returns:
            True if the assignment was applied
        """
        return self.conditional_update(
            booking_id,
            STATUS_PENDING,
            require_unassigned=True,
            status=STATUS_ACCEPTED,
            transporter_id=snapshot.transporter_id,
            assignment=snapshot.to_dict(),
            accepted_at=snapshot.assigned_at,
        )

    def transition_status(
        self,
        booking_id: str,
        new_status: str,
        reason: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Booking:
        """
        Advance a booking along its lifecycle.

        Acceptance is not handled here because it must carry an assignment;
        use assign() for that.

        Args:
            booking_id: Booking ID
            new_status: Target status
            reason: Cancellation reason (cancelled only)
            now: Transition timestamp (default: current UTC)

        Returns:
            Refreshed booking

        Raises:
            BookingNotFoundError: Unknown booking
            InvalidStatusTransition: Target would regress or skip the lifecycle
            ConflictError: Another writer changed the status first
        """
        if new_status not in BOOKING_STATUSES:
            raise ValidationError(f"Invalid status: {new_status!r}", offending=[str(new_status)])

        if new_status == STATUS_ACCEPTED:
            raise ValidationError("Acceptance requires a transporter; use the accept operation")

        booking = self.get_or_raise(booking_id)
        current = booking.status

        if new_status not in ALLOWED_STATUS_TRANSITIONS.get(current, []):
            raise InvalidStatusTransition(
                f"Cannot move booking {booking_id} from {current} to {new_status}"
            )

        values = {"status": new_status, STATUS_TIMESTAMP_FIELDS[new_status]: now or utc_now()}
        if new_status == STATUS_CANCELLED:
            values["cancellation_reason"] = reason

        if not self.conditional_update(booking_id, current, **values):
            latest = self.get_or_raise(booking_id)
            raise ConflictError(
                f"Booking {booking_id} changed from {current} to {latest.status} concurrently",
                current_status=latest.status,
            )

        return self.get_or_raise(booking_id)

    def record_occurrences(self, base_booking_id: str, occurrence_ids: List[str]) -> None:
        """
        Store the IDs of bookings created from a recurrence plan.

        Args:
            base_booking_id: Booking that owns the plan
            occurrence_ids: IDs of created occurrences
        """
        booking = self.get_or_raise(base_booking_id)
        plan = booking.recurrence_plan
        plan.occurrences = list(plan.occurrences) + list(occurrence_ids)
        plan.base_booking_id = base_booking_id
        self.update(base_booking_id, recurrence=plan.to_dict())

    def add_consolidated(
        self,
        booking: Booking,
        source_ids: List[str],
        now: Optional[datetime] = None
    ) -> Booking:
        """
        Insert a consolidated booking and retire its sources in one transaction.

        Sources move from pending to cancelled and point at the new booking.
        If any source is no longer pending and unassigned, nothing is written.

        Args:
            booking: Transient consolidated booking (ID already set)
            source_ids: Bookings merged into it
            now: Cancellation timestamp (default: current UTC)

        Returns:
            Persisted consolidated booking

        Raises:
            ConflictError: A source was claimed or changed concurrently
            DuplicateRecordError: Request ID already taken
        """
        now = now or utc_now()
        statement = (
            update(Booking)
            .where(
                Booking.id.in_(source_ids),
                Booking.status == STATUS_PENDING,
                Booking.transporter_id.is_(None),
            )
            .values(
                status=STATUS_CANCELLED,
                cancelled_at=now,
                updated_at=now,
                cancellation_reason=f"Consolidated into {booking.id}",
                consolidated_into=booking.id,
            )
            .execution_options(synchronize_session=False)
        )

        try:
            result = self.db.execute(statement)
            if result.rowcount != len(source_ids):
                self.db.rollback()
                raise ConflictError("One or more bookings changed before they could be consolidated")

            self.db.add(booking)
            self.db.commit()
            self.db.refresh(booking)

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Consolidation write failed", booking_id=booking.id, error=str(e))
            raise translate_store_error(e, "create consolidated booking") from e

        logger.info("Created consolidated booking", booking_id=booking.id, sources=len(source_ids))
        return booking
