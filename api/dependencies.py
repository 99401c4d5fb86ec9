"""Request-scoped dependencies."""
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import BackgroundTasks, Depends, Header
from sqlalchemy.orm import Session

from config import Settings, get_settings
from logging_config import bind_context
from models import get_db
from services import BookingService, NotificationDispatcher
from services.recurrence import expand_recurrence_in_background


@dataclass(frozen=True)
class Caller:
    """Identity supplied by the upstream gateway; trusted as-is."""
    user_id: Optional[str]
    role: Optional[str]


def get_caller(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Caller:
    """Caller identity from the X-User-Id / X-User-Role headers."""
    bind_context(caller_id=x_user_id, caller_role=x_user_role)
    return Caller(user_id=x_user_id, role=x_user_role)


def get_notifier(
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
) -> NotificationDispatcher:
    """Dispatcher that delivers after the response is sent."""
    return NotificationDispatcher(settings, schedule=background_tasks.add_task)


def get_recurrence_scheduler(
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
) -> Callable[[str], None]:
    """
    Starts recurrence expansion for a base booking.

    Celery when enabled, otherwise an in-process background task.
    """
    def schedule(booking_id: str) -> None:
        if settings.celery_enabled:
            from tasks.celery_tasks import expand_recurring_booking

            expand_recurring_booking.delay(booking_id)
        else:
            background_tasks.add_task(expand_recurrence_in_background, booking_id)

    return schedule


def get_booking_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: NotificationDispatcher = Depends(get_notifier),
    schedule_recurrence: Callable[[str], None] = Depends(get_recurrence_scheduler),
) -> BookingService:
    """Booking service bound to the request's session."""
    return BookingService(db, settings, notifier=notifier, schedule_recurrence=schedule_recurrence)
