"""Repository pattern for document-store access."""
from repositories.base import BaseRepository
from repositories.booking_repository import BookingRepository
from repositories.transporter_repository import TransporterRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "TransporterRepository",
]
