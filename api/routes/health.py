"""Health check endpoints."""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import Settings, get_settings
from health_checks import HealthCheckService, HealthStatus
from models import get_db

router = APIRouter()


@router.get("/health")
def health_check(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """Database (and broker, when Celery is enabled) connectivity."""
    result = HealthCheckService(db, settings).check_all()
    status_code = 503 if result["status"] == HealthStatus.UNHEALTHY.value else 200
    return JSONResponse(status_code=status_code, content=result)
