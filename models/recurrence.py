"""Recurrence plan value type stored on a base booking."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from utils.date_helpers import isoformat_or_none, parse_datetime


@dataclass
class RecurrencePlan:
    """
    Rule expanding one base booking into a series of future bookings.

    Attributes:
        is_recurring: Whether the plan is active
        frequency: Cadence ("daily", "weekly", "monthly")
        time_frame: Client-supplied label for the slot (e.g. "morning")
        duration: Count plus unit, e.g. "3 months"
        start_date: First occurrence (the base booking's pickup)
        end_date: start_date + duration
        interval: Step multiplier for the cadence
        occurrences: IDs of the bookings created from this plan
        base_booking_id: Booking the plan belongs to
    """
    is_recurring: bool = False
    frequency: Optional[str] = None
    time_frame: Optional[str] = None
    duration: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    interval: int = 1
    occurrences: List[str] = field(default_factory=list)
    base_booking_id: Optional[str] = None

    @classmethod
    def inactive(cls) -> "RecurrencePlan":
        """Plan for a one-off booking."""
        return cls()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RecurrencePlan":
        """Build from the stored wire document."""
        if not data:
            return cls.inactive()
        return cls(
            is_recurring=bool(data.get("isRecurring")),
            frequency=data.get("frequency"),
            time_frame=data.get("timeFrame"),
            duration=data.get("duration"),
            start_date=parse_datetime(data.get("startDate")),
            end_date=parse_datetime(data.get("endDate")),
            interval=int(data.get("interval") or 1),
            occurrences=list(data.get("occurrences") or []),
            base_booking_id=data.get("baseBookingId"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire document."""
        return {
            "isRecurring": self.is_recurring,
            "frequency": self.frequency,
            "timeFrame": self.time_frame,
            "duration": self.duration,
            "startDate": isoformat_or_none(self.start_date),
            "endDate": isoformat_or_none(self.end_date),
            "interval": self.interval,
            "occurrences": list(self.occurrences),
            "baseBookingId": self.base_booking_id,
        }
