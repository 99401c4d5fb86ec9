"""Transporter model: a vehicle plus operator eligible to carry bookings."""
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, String, Float, Integer, DateTime, Boolean, JSON
from sqlalchemy.orm import validates

from constants import TRANSPORTER_STATUS_APPROVED, TRANSPORTER_STATUS_SUSPENDED
from models.database import Base
from utils.date_helpers import isoformat_or_none, parse_datetime, utc_now
from utils.geo import geocell_for


class FleetStatus(str, Enum):
    """Derived operational classification of a transporter."""
    INACTIVE = "inactive"
    NON_COMPLIANT = "non-compliant"
    ACTIVE = "active"
    ASSIGNED = "assigned"
    AVAILABLE = "available"
    IDLE = "idle"


class Transporter(Base):
    """Transporter profile, vehicle and live availability."""

    __tablename__ = "transporters"

    id = Column(String(128), primary_key=True)  # transporterId
    user_id = Column(String(128), index=True)

    # Operator
    display_name = Column(String(255))
    phone_number = Column(String(50))
    rating = Column(Float, default=0.0)
    total_trips = Column(Integer, default=0)

    # Vehicle
    vehicle_type = Column(String(50), index=True)  # truck, pickup, trailer, container
    vehicle_registration = Column(String(50))
    vehicle_capacity = Column(Float, index=True)  # kg
    refrigerated = Column(Boolean, default=False)
    humidity_control = Column(Boolean, default=False)

    # Availability (refreshed by the location-update path)
    current_route = Column(JSON)  # [{location, timestamp}], rolling window
    last_known_location = Column(JSON)
    geocell = Column(String(12), index=True)
    accepting_booking = Column(Boolean, default=False, index=True)

    # Account health
    status = Column(String(20), default=TRANSPORTER_STATUS_APPROVED, index=True)
    account_status = Column(Boolean, default=True)
    insurance_expiry_date = Column(DateTime)
    driver_license_expiry_date = Column(DateTime)
    id_expiry_date = Column(DateTime)

    # Timestamps
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    @validates("last_known_location")
    def _sync_geocell(self, key, location):
        """Keep the indexed geocell in step with the last known location."""
        self.geocell = geocell_for(location)
        return location

    @property
    def is_suspended(self) -> bool:
        """Suspended by administration."""
        return self.status == TRANSPORTER_STATUS_SUSPENDED

    @property
    def route_samples(self) -> List[Dict[str, Any]]:
        """Route samples, oldest first."""
        return list(self.current_route or [])

    @property
    def route_reference_point(self) -> Optional[Dict[str, Any]]:
        """Last known location, else the last route waypoint."""
        if self.last_known_location:
            return self.last_known_location
        samples = self.route_samples
        if samples:
            return samples[-1].get("location")
        return None

    def document_expiries(self) -> Dict[str, Any]:
        """Compliance document expiry dates keyed by document."""
        return {
            "insurance": self.insurance_expiry_date,
            "driverLicense": self.driver_license_expiry_date,
            "id": self.id_expiry_date,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire document."""
        return {
            "transporterId": self.id,
            "userId": self.user_id,
            "displayName": self.display_name,
            "phoneNumber": self.phone_number,
            "rating": self.rating,
            "totalTrips": self.total_trips,
            "vehicleType": self.vehicle_type,
            "vehicleRegistration": self.vehicle_registration,
            "vehicleCapacity": self.vehicle_capacity,
            "refrigerated": bool(self.refrigerated),
            "humidityControl": bool(self.humidity_control),
            "currentRoute": self.current_route,
            "lastKnownLocation": self.last_known_location,
            "acceptingBooking": bool(self.accepting_booking),
            "status": self.status,
            "accountStatus": bool(self.account_status),
            "insuranceExpiryDate": isoformat_or_none(self.insurance_expiry_date),
            "driverLicenseExpiryDate": isoformat_or_none(self.driver_license_expiry_date),
            "idExpiryDate": isoformat_or_none(self.id_expiry_date),
            "updatedAt": isoformat_or_none(self.updated_at),
        }

    def __repr__(self):
        return f"<Transporter(id='{self.id}', vehicle='{self.vehicle_type}', capacity={self.vehicle_capacity})>"


def route_sample(location: Dict[str, Any], timestamp) -> Dict[str, Any]:
    """Build one stored route sample."""
    return {"location": location, "timestamp": isoformat_or_none(timestamp)}


def sample_timestamp(sample: Dict[str, Any]):
    """Timestamp of a stored route sample (naive UTC) or None."""
    return parse_datetime(sample.get("timestamp"))
