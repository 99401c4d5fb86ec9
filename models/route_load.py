"""Route load projection produced by the route compatibility scanner."""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from utils.date_helpers import isoformat_or_none


@dataclass(frozen=True)
class RouteLoad:
    """Minimal view of an unassigned booking offered as a backhaul."""

    booking_id: str
    from_location: Dict[str, Any]
    to_location: Dict[str, Any]
    weight_kg: Optional[float]
    needs_refrigeration: bool
    humidity_control: bool
    pick_up_date: Optional[datetime]
    product_type: Optional[str]
    cost: Optional[float]

    @classmethod
    def from_booking(cls, booking) -> "RouteLoad":
        """Project a booking."""
        return cls(
            booking_id=booking.id,
            from_location=booking.from_location,
            to_location=booking.to_location,
            weight_kg=booking.weight_kg,
            needs_refrigeration=bool(booking.needs_refrigeration),
            humidity_control=bool(booking.humidity_control),
            pick_up_date=booking.pick_up_date,
            product_type=booking.product_type,
            cost=booking.cost,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire document."""
        return {
            "bookingId": self.booking_id,
            "fromLocation": self.from_location,
            "toLocation": self.to_location,
            "weightKg": self.weight_kg,
            "needsRefrigeration": self.needs_refrigeration,
            "humidityControl": self.humidity_control,
            "pickUpDate": isoformat_or_none(self.pick_up_date),
            "productType": self.product_type,
            "cost": self.cost,
        }
