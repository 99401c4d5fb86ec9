"""Field-level validation helpers for inbound payloads."""
import math
from typing import Any, Dict, List, Optional, Sequence

from exceptions import ValidationError


def validate_choice(
    value: Any,
    allowed: Sequence[str],
    field_name: str,
    default: Optional[str] = None
) -> str:
    """
    Validate that a value belongs to a fixed vocabulary.

    Args:
        value: Value to validate
        allowed: Accepted values (case-sensitive, wire contract)
        field_name: Name of field for error message
        default: Value used when the field is absent

    Returns:
        Validated value

    Raises:
        ValidationError: If the value is missing (with no default) or foreign
    """
    if value is None or value == "":
        if default is not None:
            return default
        raise ValidationError(f"{field_name} is required")

    if value not in allowed:
        raise ValidationError(
            f"Invalid {field_name}: {value!r}. Use one of: {', '.join(allowed)}",
            offending=[str(value)],
        )

    return value


def validate_positive_amount(
    amount: Any,
    field_name: str = "Amount",
    allow_zero: bool = False
) -> float:
    """
    Validate that amount is positive (and optionally non-zero).

    Numeric strings are accepted since mobile clients send form values.

    Args:
        amount: Amount to validate
        field_name: Name of field for error message
        allow_zero: Whether to allow zero values

    Returns:
        Validated amount

    Raises:
        ValidationError: If amount is invalid
    """
    if amount is None or amount == "":
        raise ValidationError(f"{field_name} is required")

    if isinstance(amount, bool):
        raise ValidationError(f"{field_name} must be a number, got {type(amount).__name__}")

    try:
        number = float(amount)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number, got {amount!r}")

    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{field_name} must be a finite number")

    if allow_zero:
        if number < 0:
            raise ValidationError(f"{field_name} must be non-negative, got {amount}")
    else:
        if number <= 0:
            raise ValidationError(f"{field_name} must be positive, got {amount}")

    return number


def validate_required_string(
    value: Optional[str],
    field_name: str,
    max_length: Optional[int] = None
) -> str:
    """
    Validate required string field.

    Args:
        value: String value to validate
        field_name: Name of field for error message
        max_length: Maximum allowed length

    Returns:
        Validated string (stripped)

    Raises:
        ValidationError: If string is invalid
    """
    if not value:
        raise ValidationError(f"{field_name} is required")

    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string, got {type(value).__name__}")

    stripped = value.strip()

    if not stripped:
        raise ValidationError(f"{field_name} cannot be empty or whitespace")

    if max_length and len(stripped) > max_length:
        raise ValidationError(
            f"{field_name} must be at most {max_length} characters, "
            f"got {len(stripped)}"
        )

    return stripped


def validate_location(value: Any, field_name: str) -> Dict[str, Any]:
    """
    Validate a location document.

    A location needs a non-empty address and numeric latitude/longitude
    within range. Geocoding is done by clients before submission.

    Args:
        value: Location mapping from the payload
        field_name: Name of field for error message

    Returns:
        Normalized location dict

    Raises:
        ValidationError: If location is invalid
    """
    if not value:
        raise ValidationError(f"{field_name} is required")

    if not isinstance(value, dict):
        raise ValidationError(f"{field_name} must be an object")

    address = validate_required_string(value.get("address"), f"{field_name}.address")

    coordinates = {}
    for axis, bound in (("latitude", 90.0), ("longitude", 180.0)):
        raw = value.get(axis)
        if raw is None or isinstance(raw, bool):
            raise ValidationError(f"{field_name}.{axis} is required and must be a number")
        try:
            number = float(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"{field_name}.{axis} must be a number, got {raw!r}")
        if math.isnan(number) or abs(number) > bound:
            raise ValidationError(f"{field_name}.{axis} must be between -{bound:g} and {bound:g}")
        coordinates[axis] = number

    return {"address": address, **coordinates}


def validate_vocabulary_list(
    values: Any,
    allowed: Sequence[str],
    field_name: str
) -> List[str]:
    """
    Validate that every entry of a list belongs to a fixed vocabulary.

    Args:
        values: List from the payload
        allowed: Accepted entries
        field_name: Name of field for error message

    Returns:
        Validated list

    Raises:
        ValidationError: Naming every foreign entry
    """
    if values is None:
        return []

    if not isinstance(values, list):
        raise ValidationError(f"{field_name} must be a list")

    invalid = [str(item) for item in values if item not in allowed]
    if invalid:
        raise ValidationError(
            f"Invalid {field_name} types: {', '.join(invalid)}",
            offending=invalid,
        )

    return list(values)


def as_bool(value: Any) -> bool:
    """Coerce loosely-typed payload flags ("true", 1, None) to bool."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)
