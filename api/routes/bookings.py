"""Booking endpoints."""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from api.dependencies import Caller, get_booking_service, get_caller, get_notifier
from config import Settings, get_settings
from exceptions import ValidationError
from models import get_db
from services import BookingService, MatchingEngine, NoMatch, NotificationDispatcher

router = APIRouter()


class AcceptRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transporter_id: str = Field(alias="transporterId", min_length=1)


class ConsolidateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    booking_ids: List[str] = Field(alias="bookingIds")


class StatusUpdateRequest(BaseModel):
    status: str
    reason: Optional[str] = None


@router.post("/bookings", status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: Dict[str, Any] = Body(...),
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_booking_service),
):
    """Create a booking; instant bookings are matched immediately."""
    outcome = service.create_booking(payload, user_id=caller.user_id)
    return outcome.to_dict()


@router.post("/bookings/consolidate")
def consolidate_bookings(
    request: ConsolidateRequest,
    service: BookingService = Depends(get_booking_service),
):
    """Merge pending bookings into one shipment and match it."""
    return service.consolidate_bookings(request.booking_ids).to_dict()


@router.get("/bookings")
def list_my_bookings(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_booking_service),
) -> List[Dict[str, Any]]:
    """List the caller's bookings, newest first."""
    if not caller.user_id:
        raise ValidationError("X-User-Id header is required", offending=["X-User-Id"])
    return [booking.to_dict() for booking in service.list_for_user(caller.user_id, skip=skip, limit=limit)]


@router.get("/bookings/available")
def list_available_bookings(
    service: BookingService = Depends(get_booking_service),
) -> List[Dict[str, Any]]:
    """List pending bookings no transporter has claimed."""
    return [booking.to_dict() for booking in service.list_available()]


@router.get("/bookings/{booking_id}")
def get_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
):
    """Get booking by ID."""
    return service.get_booking(booking_id).to_dict()


@router.post("/bookings/{booking_id}/match")
def match_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Run the matching engine for a pending booking."""
    result = MatchingEngine(db, settings, notifier=notifier).match(booking_id)

    if isinstance(result, NoMatch):
        return {"matched": False, "transporter": None, "reason": result.reason}

    return {"matched": True, "transporter": result.to_dict(), "reason": None}


@router.post("/bookings/{booking_id}/accept")
def accept_booking(
    booking_id: str,
    request: AcceptRequest,
    service: BookingService = Depends(get_booking_service),
):
    """Transporter accepts a pending booking."""
    return service.accept_booking(booking_id, request.transporter_id).to_dict()


@router.patch("/bookings/{booking_id}/status")
def update_booking_status(
    booking_id: str,
    request: StatusUpdateRequest,
    service: BookingService = Depends(get_booking_service),
):
    """Advance a booking along its lifecycle."""
    return service.update_status(booking_id, request.status, reason=request.reason).to_dict()
