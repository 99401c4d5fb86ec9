"""Application-wide constants.

Engine thresholds that operators may tune (nearby cutoff, route window,
ranking weights) live in config.Settings; the values here are the wire
vocabulary shared with other collaborators and must not change.
"""

# Booking types
BOOKING_TYPE_AGRI = "Agri"
BOOKING_TYPE_CARGO = "Cargo"

BOOKING_TYPES = [
    BOOKING_TYPE_AGRI,
    BOOKING_TYPE_CARGO,
]

# Booking modes
BOOKING_MODE_INSTANT = "instant"
BOOKING_MODE_SCHEDULED = "booking"

BOOKING_MODES = [
    BOOKING_MODE_INSTANT,
    BOOKING_MODE_SCHEDULED,
]

# Urgency levels
URGENCY_LEVELS = ["Low", "Medium", "High"]
DEFAULT_URGENCY_LEVEL = "Low"

# Special cargo vocabulary (Cargo bookings only)
SPECIAL_CARGO_TYPES = [
    "Fragile",
    "Oversized",
    "Hazardous",
    "Temperature Controlled",
    "High Value",
    "Livestock/Animals",
    "Bulk",
    "Perishable",
    "Other",
]

# Vehicle compatibility per booking type
COMPATIBLE_VEHICLE_TYPES = {
    BOOKING_TYPE_AGRI: ["truck", "pickup", "trailer"],
    BOOKING_TYPE_CARGO: ["truck", "trailer", "container"],
}

# Booking statuses
STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_IN_PROGRESS = "in-progress"
STATUS_PICKED_UP = "picked-up"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

BOOKING_STATUSES = [
    STATUS_PENDING,
    STATUS_ACCEPTED,
    STATUS_IN_PROGRESS,
    STATUS_PICKED_UP,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
]

# Forward-only lifecycle
ALLOWED_STATUS_TRANSITIONS = {
    STATUS_PENDING: [STATUS_ACCEPTED, STATUS_CANCELLED],
    STATUS_ACCEPTED: [STATUS_IN_PROGRESS, STATUS_CANCELLED],
    STATUS_IN_PROGRESS: [STATUS_PICKED_UP],
    STATUS_PICKED_UP: [STATUS_COMPLETED],
    STATUS_COMPLETED: [],
    STATUS_CANCELLED: [],
}

ACTIVE_BOOKING_STATUSES = [
    STATUS_ACCEPTED,
    STATUS_IN_PROGRESS,
    STATUS_PICKED_UP,
]

# Timestamp column stamped on entering each status
STATUS_TIMESTAMP_FIELDS = {
    STATUS_ACCEPTED: "accepted_at",
    STATUS_IN_PROGRESS: "started_at",
    STATUS_PICKED_UP: "picked_up_at",
    STATUS_COMPLETED: "completed_at",
    STATUS_CANCELLED: "cancelled_at",
}

# Transporter approval states
TRANSPORTER_STATUS_APPROVED = "approved"
TRANSPORTER_STATUS_SUSPENDED = "suspended"

# Recurrence
RECURRENCE_FREQUENCIES = ["daily", "weekly", "monthly"]

DURATION_UNIT_WEEKS = "weeks"
DURATION_UNIT_MONTHS = "months"
DURATION_UNIT_YEARS = "years"

DURATION_UNITS = {
    "week": DURATION_UNIT_WEEKS,
    "weeks": DURATION_UNIT_WEEKS,
    "month": DURATION_UNIT_MONTHS,
    "months": DURATION_UNIT_MONTHS,
    "year": DURATION_UNIT_YEARS,
    "years": DURATION_UNIT_YEARS,
}

# Geo
EARTH_RADIUS_METERS = 6371000
GEOCELL_PRECISION = 4

# Request identifiers
REQUEST_ID_RANDOM_BOUND = 1000
REQUEST_ID_MAX_ATTEMPTS = 5

# Retry configuration
MAX_RETRY_ATTEMPTS = 3
RETRY_BACKOFF_FACTOR = 2
RETRY_INITIAL_DELAY = 0.5  # seconds
