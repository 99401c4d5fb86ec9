"""Transporter directory: read-oriented queries over the fleet."""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from constants import TRANSPORTER_STATUS_SUSPENDED
from exceptions import TransporterNotFoundError, ValidationError
from models import Transporter
from models.transporter import route_sample, sample_timestamp
from repositories.base import BaseRepository, translate_store_error
from logging_config import get_logger
from utils.date_helpers import isoformat_or_none, utc_now
from utils.geo import coordinates_of, get_covering_geohashes
from utils.validation import validate_location

logger = get_logger(__name__)


class TransporterRepository(BaseRepository[Transporter]):
    """
    Directory of transporters.

    Matching and route scanning read eventually-consistent snapshots from
    here. The only writer is the location-update path.
    """

    def __init__(self, db: Session):
        """
        Initialize transporter repository.

        Args:
            db: Database session
        """
        super().__init__(Transporter, db)

    def get_or_raise(self, transporter_id: str) -> Transporter:
        """
        Get transporter by ID.

        Raises:
            TransporterNotFoundError: If no transporter has this ID
        """
        transporter = self.get_by_id(transporter_id)
        if transporter is None:
            raise TransporterNotFoundError(f"Transporter {transporter_id} not found")
        return transporter

    def find_candidates(
        self,
        vehicle_types: Optional[List[str]] = None,
        min_capacity: Optional[float] = None,
        near: Optional[Any] = None,
        radius_m: Optional[float] = None
    ) -> List[Transporter]:
        """
        Indexed candidate lookup for matching.

        Applies the cheap, indexable hard filters (accepting bookings, not
        suspended, vehicle type, capacity) and, when ``near`` is given, a
        geocell prefilter. Callers still apply exact distance checks.

        Args:
            vehicle_types: Allowed vehicle types (None = any)
            min_capacity: Minimum vehicle capacity in kg (None = any)
            near: Location to search around
            radius_m: Search radius in meters (required with ``near``)

        Returns:
            Candidate transporters
        """
        try:
            query = self.db.query(Transporter).filter(
                Transporter.accepting_booking.is_(True),
                or_(Transporter.status.is_(None), Transporter.status != TRANSPORTER_STATUS_SUSPENDED),
            )

            if vehicle_types is not None:
                query = query.filter(Transporter.vehicle_type.in_(vehicle_types))

            if min_capacity:
                query = query.filter(Transporter.vehicle_capacity >= min_capacity)

            if near is not None and radius_m is not None:
                coords = coordinates_of(near)
                if coords is None:
                    return []
                cells = get_covering_geohashes(coords[0], coords[1], radius_m)
                query = query.filter(Transporter.geocell.in_(sorted(cells)))

            candidates = query.all()

        except SQLAlchemyError as e:
            logger.error("Candidate lookup failed", error=str(e))
            raise translate_store_error(e, "query transporter directory") from e

        logger.debug(
            "Directory candidates",
            count=len(candidates),
            vehicle_types=vehicle_types,
            min_capacity=min_capacity,
            geo_filtered=near is not None,
        )
        return candidates

    def record_location(
        self,
        transporter_id: str,
        location: Dict[str, Any],
        at: Optional[datetime] = None,
        window_hours: int = 48,
        now: Optional[datetime] = None
    ) -> Transporter:
        """
        Add one route sample and evict samples older than the window.

        The window is measured back from the current time, never from the
        reported sample. Samples stay ordered by timestamp and the last known
        location follows the newest one, so a late report cannot overwrite a
        fresher position. Future timestamps are clamped to the current time.

        The row is locked for the read-modify-write so updates for the same
        transporter serialize; other transporters are unaffected.

        Args:
            transporter_id: Transporter ID
            location: {address?, latitude, longitude}
            at: Sample timestamp (default: current UTC)
            window_hours: Rolling window size
            now: Current time (default: current UTC)

        Returns:
            Updated transporter

        Raises:
            ValidationError: Invalid coordinates, or a sample already outside the window
            TransporterNotFoundError: Unknown transporter
        """
        now = now or utc_now()
        at = min(at or now, now)
        cutoff = now - timedelta(hours=window_hours)

        location = validate_location(
            {**location, "address": location.get("address") or "unknown"},
            "location",
        )
        if at < cutoff:
            raise ValidationError(
                f"Location sample from {isoformat_or_none(at)} is outside the {window_hours}h route window",
                offending=["timestamp"],
            )

        try:
            transporter = (
                self.db.query(Transporter)
                .filter(Transporter.id == transporter_id)
                .with_for_update()
                .first()
            )
            if transporter is None:
                raise TransporterNotFoundError(f"Transporter {transporter_id} not found")

            # Untimestamped samples cannot be aged and are dropped
            timed = []
            for sample in transporter.route_samples:
                timestamp = sample_timestamp(sample)
                if timestamp is not None and timestamp >= cutoff:
                    timed.append((timestamp, sample))
            timed.append((at, route_sample(location, at)))
            timed.sort(key=lambda pair: pair[0])
            samples = [sample for _, sample in timed]

            transporter.current_route = samples
            transporter.last_known_location = samples[-1]["location"]
            self.db.commit()
            self.db.refresh(transporter)

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Location update failed", transporter_id=transporter_id, error=str(e))
            raise translate_store_error(e, "record transporter location") from e

        logger.info(
            "Recorded transporter location",
            transporter_id=transporter_id,
            samples=len(samples),
            newest=samples[-1]["timestamp"],
            geocell=transporter.geocell,
        )
        return transporter
