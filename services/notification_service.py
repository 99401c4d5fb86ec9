"""Booking event notifications."""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import BaseModel, Field

from config import Settings, get_settings
from models import AssignmentSnapshot, Booking
from utils.date_helpers import utc_now
from utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

EVENT_BOOKING_CREATED = "booking.created"
EVENT_BOOKING_ASSIGNED = "booking.assigned"


class NotificationEvent(BaseModel):
    """Event posted to the notification webhook."""
    event: str
    booking_id: str = Field(serialization_alias="bookingId")
    occurred_at: datetime = Field(default_factory=utc_now, serialization_alias="occurredAt")
    data: Dict[str, Any] = Field(default_factory=dict)


class NotificationDispatcher:
    """
    Fire-and-forget delivery of booking events.

    Delivery problems are logged and swallowed; they never change the
    outcome of the operation that triggered them.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        schedule: Optional[Callable[..., Any]] = None
    ):
        """
        Initialize dispatcher.

        Args:
            settings: Application settings (webhook URL, timeout)
            schedule: Runs ``fn(*args)`` later, e.g. FastAPI BackgroundTasks.add_task.
                Defaults to calling inline.
        """
        self.settings = settings or get_settings()
        self.webhook_url = self.settings.notification_webhook_url
        self.timeout = self.settings.notification_timeout_seconds
        self.schedule = schedule

    def booking_created(self, booking: Booking) -> None:
        """Announce a newly created booking."""
        self.dispatch(NotificationEvent(
            event=EVENT_BOOKING_CREATED,
            booking_id=booking.id,
            data={
                "requestId": booking.request_id,
                "readableId": booking.readable_id,
                "bookingType": booking.booking_type,
                "bookingMode": booking.booking_mode,
                "userId": booking.user_id,
            },
        ))

    def booking_assigned(self, booking_id: str, snapshot: AssignmentSnapshot) -> None:
        """Announce that a transporter won a booking."""
        self.dispatch(NotificationEvent(
            event=EVENT_BOOKING_ASSIGNED,
            booking_id=booking_id,
            data=snapshot.to_dict(),
        ))

    def dispatch(self, event: NotificationEvent) -> None:
        """
        Hand an event to the delivery path without raising.

        Args:
            event: Event to deliver
        """
        try:
            if self.schedule is not None:
                self.schedule(self.deliver, event)
            else:
                self.deliver(event)
        except Exception as e:
            logger.error(f"Failed to dispatch {event.event} for booking {event.booking_id}: {e}")

    def deliver(self, event: NotificationEvent) -> bool:
        """
        Deliver one event to the webhook.

        Args:
            event: Event to deliver

        Returns:
            True if delivered (or logged when no webhook is configured)
        """
        if not self.webhook_url:
            logger.info(f"Notification {event.event} for booking {event.booking_id} (no webhook configured)")
            return True

        try:
            self._post(event.model_dump(mode="json", by_alias=True))
            logger.info(f"Delivered {event.event} for booking {event.booking_id}")
            return True
        except Exception as e:
            logger.error(f"Error delivering {event.event} for booking {event.booking_id}: {e}")
            return False

    @retry_with_backoff(max_attempts=2, base_delay=0.2, exceptions=(httpx.TransportError,))
    def _post(self, body: Dict[str, Any]) -> None:
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(self.webhook_url, json=body)
            response.raise_for_status()
