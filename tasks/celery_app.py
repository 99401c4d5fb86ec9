"""Celery application configuration."""
from celery import Celery

from config import get_settings

settings = get_settings()

celery_app = Celery(
    "freight_dispatch",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["tasks.celery_tasks"],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,  # 10 minutes
    task_acks_late=True,
    worker_prefetch_multiplier=4,
    worker_max_tasks_per_child=1000,
)


if __name__ == "__main__":
    celery_app.start()
