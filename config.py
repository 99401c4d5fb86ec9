"""Application configuration."""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_env: str = "development"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./freight_dispatch.db"
    database_timeout_seconds: float = 5.0

    # Background jobs
    redis_url: str = "redis://localhost:6379/0"
    celery_enabled: bool = False

    # Notifications
    notification_webhook_url: Optional[str] = None
    notification_timeout_seconds: float = 3.0

    # Matching / route compatibility
    nearby_cutoff_km: float = 50.0
    route_window_hours: int = 48
    schedule_window_hours: int = 24
    rating_weight: float = 0.7
    experience_weight: float = 0.3
    match_timeout_seconds: float = 10.0

    # Recurrence
    max_recurrence_occurrences: int = 366

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.app_env == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.app_env == "testing"

    @property
    def nearby_cutoff_meters(self) -> float:
        """Nearby cutoff expressed in meters."""
        return self.nearby_cutoff_km * 1000.0

    def validate_required_settings(self) -> list[str]:
        """
        Validate that all required settings are configured.

        Returns:
            List of missing or invalid settings
        """
        errors = []

        if not self.database_url:
            errors.append("DATABASE_URL is required")
        elif self.is_production and self.database_url.startswith("sqlite"):
            errors.append("DATABASE_URL must point to a server database in production")

        if self.celery_enabled and not self.redis_url:
            errors.append("REDIS_URL is required when Celery is enabled")

        if self.nearby_cutoff_km <= 0:
            errors.append("nearby_cutoff_km must be positive")

        if self.route_window_hours <= 0:
            errors.append("route_window_hours must be positive")

        if self.schedule_window_hours <= 0:
            errors.append("schedule_window_hours must be positive")

        if self.rating_weight < 0 or self.experience_weight < 0:
            errors.append("ranking weights must be non-negative")
        elif abs(self.rating_weight + self.experience_weight - 1.0) > 1e-9:
            errors.append("rating_weight and experience_weight must sum to 1")

        if self.match_timeout_seconds <= 0:
            errors.append("match_timeout_seconds must be positive")

        return errors


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
