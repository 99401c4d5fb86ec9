"""Transporter endpoints."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.dependencies import get_booking_service
from config import Settings, get_settings
from models import get_db
from repositories import TransporterRepository
from services import BookingService, RouteCompatibilityScanner
from utils.date_helpers import to_naive_utc

router = APIRouter()


class LocationUpdate(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: Optional[str] = None
    timestamp: Optional[datetime] = None


@router.get("/transporters/{transporter_id}/route-loads")
def get_route_loads(
    transporter_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> List[Dict[str, Any]]:
    """Unassigned bookings compatible with the transporter's route, capacity and schedule."""
    return RouteCompatibilityScanner(db, settings).scan(transporter_id)


@router.post("/transporters/{transporter_id}/location")
def record_location(
    transporter_id: str,
    update: LocationUpdate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Append a location sample to the transporter's rolling route window."""
    transporter = TransporterRepository(db).record_location(
        transporter_id,
        {"address": update.address, "latitude": update.latitude, "longitude": update.longitude},
        at=to_naive_utc(update.timestamp) if update.timestamp else None,
        window_hours=settings.route_window_hours,
    )
    return transporter.to_dict()


@router.get("/transporters/{transporter_id}/bookings")
def list_transporter_bookings(
    transporter_id: str,
    service: BookingService = Depends(get_booking_service),
) -> List[Dict[str, Any]]:
    """Bookings assigned to the transporter, newest first."""
    return [booking.to_dict() for booking in service.list_for_transporter(transporter_id)]
