"""Fleet dashboard endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from models import get_db
from services import FleetStatusEngine

router = APIRouter()


@router.get("/fleet/status")
def get_fleet_status(status: Optional[str] = None, db: Session = Depends(get_db)):
    """Classified fleet with a summary tally; ``status`` filters the entries."""
    return FleetStatusEngine(db).get_fleet_status(status_filter=status)
