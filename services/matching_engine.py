"""
Matching engine: filter, rank and assign a transporter to an instant booking.

The pipeline is hard filters, then a two-pass geo filter (narrow to the
nearby cutoff, widen to the whole filtered pool if nothing is nearby),
then soft ranking. The winner is written with a single conditional update
so racing callers get exactly one assignment.
"""
import math
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from config import Settings, get_settings
from constants import COMPATIBLE_VEHICLE_TYPES
from exceptions import ConflictError, MatchTimeout
from logging_config import get_logger
from models import AssignmentSnapshot, Booking, Transporter
from repositories import BookingRepository, TransporterRepository
from services.notification_service import NotificationDispatcher
from utils.date_helpers import utc_now
from utils.geo import distance_or_none

logger = get_logger(__name__)

GEO_PASS_NARROW = "narrow"
GEO_PASS_WIDE = "wide"


@dataclass(frozen=True)
class NoMatch:
    """Nothing suitable right now; the booking stays pending."""
    booking_id: str
    reason: str
    candidates_considered: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bookingId": self.booking_id,
            "reason": self.reason,
            "candidatesConsidered": self.candidates_considered,
        }


@dataclass(frozen=True)
class RankedCandidate:
    """A transporter with its ranking score and distance to pickup."""
    transporter: Transporter
    score: float
    distance_m: float


MatchResult = Union[Transporter, NoMatch]


def passes_hard_filters(transporter: Transporter, booking: Booking) -> bool:
    """
    Check every hard requirement of a booking against one transporter.

    Args:
        transporter: Candidate
        booking: Booking to carry

    Returns:
        True only if all filters pass
    """
    if not transporter.accepting_booking:
        return False

    if transporter.is_suspended:
        return False

    if booking.weight_kg:
        if transporter.vehicle_capacity is None or transporter.vehicle_capacity < booking.weight_kg:
            return False

    if booking.needs_refrigeration and not transporter.refrigerated:
        return False

    if booking.humidity_control and not transporter.humidity_control:
        return False

    compatible = COMPATIBLE_VEHICLE_TYPES.get(booking.booking_type, [])
    if transporter.vehicle_type not in compatible:
        return False

    return True


def narrow_then_widen(
    candidates: Sequence[Transporter],
    pickup: Any,
    cutoff_meters: float,
    widen_pool: Optional[Callable[[], Sequence[Transporter]]] = None
) -> Tuple[List[Transporter], str]:
    """
    Two-pass geo filter.

    Pass one keeps candidates within the cutoff of the pickup. If that
    leaves nobody, pass two returns the widened pool (``widen_pool()`` if
    given, else ``candidates``) with no distance restriction.

    Args:
        candidates: Hard-filtered candidates for the narrow pass
        pickup: Pickup location
        cutoff_meters: Nearby cutoff
        widen_pool: Supplies the pool for the wide pass

    Returns:
        (survivors, pass name)
    """
    nearby = [
        transporter for transporter in candidates
        if _within(transporter, pickup, cutoff_meters)
    ]
    if nearby:
        return nearby, GEO_PASS_NARROW

    pool = widen_pool() if widen_pool is not None else candidates
    return list(pool), GEO_PASS_WIDE


def _within(transporter: Transporter, pickup: Any, cutoff_meters: float) -> bool:
    distance = distance_or_none(transporter.last_known_location, pickup)
    return distance is not None and distance <= cutoff_meters


def rank_candidates(
    candidates: Sequence[Transporter],
    pickup: Any,
    rating_weight: float = 0.7,
    experience_weight: float = 0.3
) -> List[RankedCandidate]:
    """
    Order candidates by weighted rating and experience.

    Both measures are normalized against the pool maximum. Ties are broken
    by ascending distance to pickup; unknown distance sorts last.

    Args:
        candidates: Filtered candidates
        pickup: Pickup location
        rating_weight: Weight of normalized rating
        experience_weight: Weight of normalized trip count

    Returns:
        Ranked candidates, best first
    """
    if not candidates:
        return []

    max_rating = max(float(t.rating or 0.0) for t in candidates)
    max_trips = max(float(t.total_trips or 0) for t in candidates)

    ranked = []
    for transporter in candidates:
        rating = float(transporter.rating or 0.0) / max_rating if max_rating > 0 else 0.0
        experience = float(transporter.total_trips or 0) / max_trips if max_trips > 0 else 0.0
        distance = distance_or_none(transporter.last_known_location, pickup)
        ranked.append(RankedCandidate(
            transporter=transporter,
            score=round(rating_weight * rating + experience_weight * experience, 9),
            distance_m=distance if distance is not None else math.inf,
        ))

    ranked.sort(key=lambda candidate: (-candidate.score, candidate.distance_m))
    return ranked


class MatchingEngine:
    """Assigns transporters to bookings."""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        notifier: Optional[NotificationDispatcher] = None
    ):
        """
        Initialize matching engine.

        Args:
            db: Database session
            settings: Engine thresholds (default: application settings)
            notifier: Notification dispatcher for assignment events
        """
        self.db = db
        self.settings = settings or get_settings()
        self.bookings = BookingRepository(db)
        self.transporters = TransporterRepository(db)
        self.notifier = notifier or NotificationDispatcher(self.settings)

    def _check_deadline(self, deadline: float, booking_id: str, stage: str) -> None:
        if time.monotonic() > deadline:
            logger.warning("Matching timed out", booking_id=booking_id, stage=stage)
            raise MatchTimeout(f"Matching booking {booking_id} timed out during {stage}")

    def find_candidates(self, booking: Booking) -> Tuple[List[RankedCandidate], str, int]:
        """
        Run filters and ranking for a booking without assigning.

        Args:
            booking: Booking to match

        Returns:
            (ranked candidates, geo pass used, hard-filtered pool size)
        """
        pickup = booking.from_location
        vehicle_types = COMPATIBLE_VEHICLE_TYPES.get(booking.booking_type, [])
        cutoff = self.settings.nearby_cutoff_meters

        def load_pool(near=None) -> List[Transporter]:
            pool = self.transporters.find_candidates(
                vehicle_types=vehicle_types,
                min_capacity=booking.weight_kg,
                near=near,
                radius_m=cutoff if near is not None else None,
            )
            return [t for t in pool if passes_hard_filters(t, booking)]

        wide_pool: List[Transporter] = []

        def widen() -> List[Transporter]:
            wide_pool.extend(load_pool())
            return wide_pool

        survivors, geo_pass = narrow_then_widen(load_pool(near=pickup), pickup, cutoff, widen_pool=widen)

        ranked = rank_candidates(
            survivors,
            pickup,
            rating_weight=self.settings.rating_weight,
            experience_weight=self.settings.experience_weight,
        )
        return ranked, geo_pass, len(survivors)

    def match(self, booking_id: str, now: Optional[datetime] = None) -> MatchResult:
        """
        Find and assign the best transporter for a pending booking.

        Args:
            booking_id: Booking ID
            now: Assignment timestamp (default: current UTC)

        Returns:
            The assigned Transporter, or NoMatch

        Raises:
            BookingNotFoundError: Unknown booking
            ConflictError: Booking was no longer pending, or another caller won
            MatchTimeout: Matching exceeded its time budget
            DownstreamError: Store failure
        """
        deadline = time.monotonic() + self.settings.match_timeout_seconds

        booking = self.bookings.get_or_raise(booking_id)
        if not booking.is_unassigned:
            raise ConflictError(
                f"Booking {booking_id} is {booking.status}, not pending",
                current_status=booking.status,
            )

        ranked, geo_pass, considered = self.find_candidates(booking)
        self._check_deadline(deadline, booking_id, "candidate search")

        if not ranked:
            logger.info("No transporter matched", booking_id=booking_id, geo_pass=geo_pass)
            return NoMatch(
                booking_id=booking_id,
                reason="No transporter satisfies the booking requirements",
                candidates_considered=considered,
            )

        winner = ranked[0]
        logger.info(
            "Selected transporter",
            booking_id=booking_id,
            transporter_id=winner.transporter.id,
            score=winner.score,
            distance_m=None if math.isinf(winner.distance_m) else round(winner.distance_m),
            geo_pass=geo_pass,
            candidates=considered,
        )

        self._check_deadline(deadline, booking_id, "assignment")
        return self._assign(booking_id, winner.transporter, now or utc_now(), source="auto")

    def accept(
        self,
        booking_id: str,
        transporter_id: str,
        now: Optional[datetime] = None
    ) -> Transporter:
        """
        Manual acceptance of a pending booking by a transporter.

        Uses the same conditional write as automatic matching.

        Args:
            booking_id: Booking ID
            transporter_id: Accepting transporter
            now: Assignment timestamp (default: current UTC)

        Returns:
            The assigned transporter

        Raises:
            BookingNotFoundError: Unknown booking
            TransporterNotFoundError: Unknown transporter
            ConflictError: Booking already accepted or otherwise not pending
        """
        booking = self.bookings.get_or_raise(booking_id)
        transporter = self.transporters.get_or_raise(transporter_id)

        if not booking.is_unassigned:
            raise ConflictError(
                f"Booking {booking_id} has already been {booking.status}",
                current_status=booking.status,
            )

        return self._assign(booking_id, transporter, now or utc_now(), source="manual")

    def _assign(self, booking_id: str, transporter: Transporter, now: datetime, source: str) -> Transporter:
        snapshot = AssignmentSnapshot.capture(transporter, assigned_at=now, source=source)

        if not self.bookings.assign(booking_id, snapshot):
            latest = self.bookings.get_or_raise(booking_id)
            logger.warning(
                "Lost assignment race",
                booking_id=booking_id,
                transporter_id=transporter.id,
                current_status=latest.status,
                current_transporter=latest.transporter_id,
            )
            raise ConflictError(
                f"Booking {booking_id} was assigned concurrently",
                current_status=latest.status,
            )

        logger.info(
            "Booking assigned",
            booking_id=booking_id,
            transporter_id=transporter.id,
            source=source,
        )
        self.notifier.booking_assigned(booking_id, snapshot)
        return transporter
