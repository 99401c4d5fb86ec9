"""Health checks for the document store and the background-job broker."""
import time
from typing import Any, Dict, Optional
from enum import Enum

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from redis import Redis
from redis.exceptions import RedisError

from config import Settings, get_settings
from logging_config import get_logger
from utils.date_helpers import isoformat_or_none, utc_now

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    """Health check status values."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth:
    """Health status for a system component."""

    def __init__(
        self,
        status: HealthStatus,
        message: Optional[str] = None,
        latency_ms: Optional[float] = None
    ):
        self.status = status
        self.message = message
        self.latency_ms = latency_ms

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = {"status": self.status.value}

        if self.message:
            result["message"] = self.message

        if self.latency_ms is not None:
            result["latency_ms"] = round(self.latency_ms, 2)

        return result


class HealthCheckService:
    """Service for checking dependencies of the dispatch API."""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        """
        Initialize health check service.

        Args:
            db: Database session
            settings: Application settings (default: cached settings)
        """
        self.db = db
        self.settings = settings or get_settings()

    def check_database(self) -> ComponentHealth:
        """Check the document store answers a trivial query."""
        start = time.monotonic()
        try:
            result = self.db.execute(text("SELECT 1")).scalar()
        except SQLAlchemyError as e:
            logger.error("Database health check failed", error=str(e))
            return ComponentHealth(HealthStatus.UNHEALTHY, message=f"Database error: {e}")

        latency_ms = (time.monotonic() - start) * 1000
        if result != 1:
            return ComponentHealth(HealthStatus.UNHEALTHY, message="Database query returned unexpected result")
        return ComponentHealth(HealthStatus.HEALTHY, latency_ms=latency_ms)

    def check_broker(self) -> ComponentHealth:
        """
        Ping the Celery broker.

        A broker outage only delays recurrence expansion, so it degrades
        rather than fails the service.
        """
        start = time.monotonic()
        try:
            Redis.from_url(self.settings.redis_url, socket_timeout=2).ping()
        except RedisError as e:
            logger.warning("Broker health check failed", error=str(e))
            return ComponentHealth(HealthStatus.DEGRADED, message=f"Broker error: {e}")

        return ComponentHealth(HealthStatus.HEALTHY, latency_ms=(time.monotonic() - start) * 1000)

    def check_all(self) -> Dict[str, Any]:
        """
        Run every applicable check.

        Returns:
            Overall status, environment and per-component results
        """
        checks = {"database": self.check_database()}
        if self.settings.celery_enabled:
            checks["broker"] = self.check_broker()

        statuses = [check.status for check in checks.values()]
        if all(s == HealthStatus.HEALTHY for s in statuses):
            overall = HealthStatus.HEALTHY
        elif any(s == HealthStatus.UNHEALTHY for s in statuses):
            overall = HealthStatus.UNHEALTHY
        else:
            overall = HealthStatus.DEGRADED

        logger.debug("Health checks completed", overall_status=overall.value, checks_count=len(checks))

        return {
            "status": overall.value,
            "timestamp": isoformat_or_none(utc_now()),
            "environment": self.settings.app_env,
            "checks": {name: check.to_dict() for name, check in checks.items()},
        }
