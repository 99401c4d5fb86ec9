"""Custom exceptions for the dispatch engine."""
from typing import Optional, Sequence


class DispatchError(Exception):
    """Base exception for dispatch engine errors."""
    pass


class ValidationError(DispatchError):
    """Raised when a request is malformed, incomplete or illegal."""

    def __init__(self, message: str, offending: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.offending = list(offending) if offending else []


class InvalidDurationUnit(ValidationError):
    """Raised when a recurrence duration uses an unknown unit."""
    pass


class InvalidStatusTransition(ValidationError):
    """Raised when a booking status change would regress the lifecycle."""
    pass


class NotFoundError(DispatchError):
    """Raised when an entity is not found."""
    pass


class BookingNotFoundError(NotFoundError):
    """Raised when booking is not found."""
    pass


class TransporterNotFoundError(NotFoundError):
    """Raised when transporter is not found."""
    pass


class RouteNotFoundError(NotFoundError):
    """Raised when a transporter has never reported a route."""
    pass


class CapacityNotFoundError(NotFoundError):
    """Raised when a transporter has no vehicle capacity on record."""
    pass


class ConflictError(DispatchError):
    """Raised when a conditional write loses to a concurrent writer."""

    def __init__(self, message: str, current_status: Optional[str] = None):
        super().__init__(message)
        self.current_status = current_status


class DuplicateRecordError(ConflictError):
    """Raised when a write collides with an existing unique key."""
    pass


class DownstreamError(DispatchError):
    """Raised when the document store or directory fails."""
    pass


class MatchTimeout(DownstreamError):
    """Raised when matching exceeds its time budget."""
    pass
