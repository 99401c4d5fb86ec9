"""Assignment snapshot embedded on a booking when a transporter wins it."""
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Optional

from utils.date_helpers import isoformat_or_none, parse_datetime


@dataclass(frozen=True)
class AssignmentSnapshot:
    """
    Copy of the transporter and vehicle fields at assignment time.

    Later edits to the transporter profile do not alter booking history;
    this is a value, not a reference to the live Transporter row.
    """
    transporter_id: str
    transporter_name: Optional[str]
    transporter_phone: Optional[str]
    transporter_rating: float
    vehicle_type: Optional[str]
    vehicle_registration: Optional[str]
    vehicle_capacity: Optional[float]
    assigned_at: datetime
    source: str  # "auto" or "manual"

    @classmethod
    def capture(cls, transporter, assigned_at: datetime, source: str) -> "AssignmentSnapshot":
        """
        Snapshot a transporter.

        Args:
            transporter: Transporter ORM instance
            assigned_at: Assignment timestamp
            source: "auto" for matching engine, "manual" for direct acceptance

        Returns:
            Immutable snapshot
        """
        return cls(
            transporter_id=transporter.id,
            transporter_name=transporter.display_name,
            transporter_phone=transporter.phone_number,
            transporter_rating=float(transporter.rating or 0.0),
            vehicle_type=transporter.vehicle_type,
            vehicle_registration=transporter.vehicle_registration,
            vehicle_capacity=transporter.vehicle_capacity,
            assigned_at=assigned_at,
            source=source,
        )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["AssignmentSnapshot"]:
        """Build from the stored wire document."""
        if not data:
            return None
        return cls(
            transporter_id=data["transporterId"],
            transporter_name=data.get("transporterName"),
            transporter_phone=data.get("transporterPhone"),
            transporter_rating=float(data.get("transporterRating") or 0.0),
            vehicle_type=data.get("vehicleType"),
            vehicle_registration=data.get("vehicleRegistration"),
            vehicle_capacity=data.get("vehicleCapacity"),
            assigned_at=parse_datetime(data.get("assignedAt")),
            source=data.get("source", "auto"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire document."""
        raw = asdict(self)
        return {
            "transporterId": raw["transporter_id"],
            "transporterName": raw["transporter_name"],
            "transporterPhone": raw["transporter_phone"],
            "transporterRating": raw["transporter_rating"],
            "vehicleType": raw["vehicle_type"],
            "vehicleRegistration": raw["vehicle_registration"],
            "vehicleCapacity": raw["vehicle_capacity"],
            "assignedAt": isoformat_or_none(self.assigned_at),
            "source": raw["source"],
        }
