"""Tests for dependency health checks."""
from redis.exceptions import ConnectionError as RedisConnectionError

from health_checks import HealthCheckService


def test_database_only_when_celery_disabled(db_session, settings):
    result = HealthCheckService(db_session, settings).check_all()

    assert result["status"] == "healthy"
    assert set(result["checks"]) == {"database"}
    assert result["environment"] == "testing"


def test_broker_outage_degrades(db_session, settings, monkeypatch):
    settings.celery_enabled = True

    def unreachable(url, **kwargs):
        raise RedisConnectionError("connection refused")

    monkeypatch.setattr("health_checks.Redis.from_url", unreachable)

    result = HealthCheckService(db_session, settings).check_all()

    assert result["status"] == "degraded"
    assert result["checks"]["broker"]["status"] == "degraded"
    assert result["checks"]["database"]["status"] == "healthy"
