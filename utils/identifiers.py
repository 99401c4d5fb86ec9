"""Booking identifier generation."""
import random
import string
import uuid
import zlib
from datetime import datetime
from typing import Optional

from constants import BOOKING_TYPE_AGRI, BOOKING_MODE_INSTANT, REQUEST_ID_RANDOM_BOUND
from utils.date_helpers import utc_now

_BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(number: int) -> str:
    """
    Encode a non-negative integer in upper-case base 36.

    Args:
        number: Value to encode

    Returns:
        Base-36 string
    """
    if number < 0:
        raise ValueError("Only non-negative integers can be encoded")
    if number == 0:
        return "0"

    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_request_id(
    booking_type: str,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None
) -> str:
    """
    Build a human-scannable request ID.

    Format: ``{type initial}-{base36 epoch millis}-{random 0..999}``,
    e.g. ``A-LXK3Q2ZC-417``.

    Args:
        booking_type: "Agri" or "Cargo"
        now: Timestamp to encode (default: current UTC)
        rng: Random source for the suffix

    Returns:
        Request ID string
    """
    now = now or utc_now()
    rng = rng or random
    millis = int((now - datetime(1970, 1, 1)).total_seconds() * 1000)
    suffix = rng.randrange(REQUEST_ID_RANDOM_BOUND)
    return f"{booking_type[0].upper()}-{to_base36(millis)}-{suffix}"


def generate_booking_id() -> str:
    """Generate an opaque booking document ID."""
    return uuid.uuid4().hex


def _short_token(seed: str) -> str:
    """Three-character base-36 token derived from a seed."""
    return to_base36(zlib.crc32(seed.encode("utf-8")))[-3:].rjust(3, "0")


def generate_readable_id(
    booking_type: str,
    booking_mode: str,
    created_at: datetime,
    seed: str,
    consolidated: bool = False
) -> str:
    """
    Build the display ID shown to shippers and transporters.

    Format: ``YYMMDD-HHMMSS-{AGR|CAR}-{I|B|C}{token}``; C marks a booking
    consolidated from several others.

    Args:
        booking_type: "Agri" or "Cargo"
        booking_mode: "instant" or "booking"
        created_at: Creation timestamp
        seed: Stable seed (the booking ID)
        consolidated: Booking merges several others

    Returns:
        Readable ID string
    """
    kind = "AGR" if booking_type == BOOKING_TYPE_AGRI else "CAR"
    if consolidated:
        letter = "C"
    else:
        letter = "I" if booking_mode == BOOKING_MODE_INSTANT else "B"
    return f"{created_at:%y%m%d-%H%M%S}-{kind}-{letter}{_short_token(seed)}"
