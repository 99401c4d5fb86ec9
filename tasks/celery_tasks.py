"""Celery background tasks."""
import logging

from tasks.celery_app import celery_app
from services.recurrence import expand_recurrence_in_background

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.celery_tasks.expand_recurring_booking")
def expand_recurring_booking(booking_id: str):
    """Create the future bookings of a recurring base booking."""
    logger.info(f"Expanding recurrence for booking {booking_id}")
    created = expand_recurrence_in_background(booking_id)
    logger.info(f"Recurrence expansion complete for {booking_id}: {len(created)} bookings created")
    return {"booking_id": booking_id, "created": created}
