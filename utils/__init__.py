"""Utility modules."""
from utils.validation import (
    validate_choice,
    validate_location,
    validate_positive_amount,
    validate_required_string,
    validate_vocabulary_list,
)
from utils.date_helpers import (
    utc_now,
    parse_datetime,
    add_months,
    add_years,
    add_weeks,
)
from utils.geo import (
    distance_meters,
    encode_geohash,
    get_covering_geohashes,
)
from utils.identifiers import (
    generate_request_id,
    generate_readable_id,
)
from utils.retry import (
    retry_with_backoff,
    exponential_backoff,
)

__all__ = [
    "validate_choice",
    "validate_location",
    "validate_positive_amount",
    "validate_required_string",
    "validate_vocabulary_list",
    "utc_now",
    "parse_datetime",
    "add_months",
    "add_years",
    "add_weeks",
    "distance_meters",
    "encode_geohash",
    "get_covering_geohashes",
    "generate_request_id",
    "generate_readable_id",
    "retry_with_backoff",
    "exponential_backoff",
]
