"""
Input validation functions for the PCB Tracker application.

Each validator returns ``(is_valid, error_message)`` so callers can collect
every problem with a payload and raise a single ValidationError.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Tuple

from .constants import (
    ERROR_REQUIRED_FIELD,
    ERROR_INVALID_POSITIVE,
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_INTEGER,
)


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a string field is not empty.

    Args:
        value: The string value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    return True, ""


def validate_string_length(
    value: Optional[str], max_length: int, field_name: str = "Field"
) -> Tuple[bool, str]:
    """
    Validate that a string doesn't exceed maximum length.

    Args:
        value: The string value to validate
        max_length: Maximum allowed length
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value and len(value) > max_length:
        return False, f"{field_name}: Must be {max_length} characters or less"
    return True, ""


def _is_integer(value: Any) -> bool:
    # bool is an int subclass; True is not a quantity
    return isinstance(value, int) and not isinstance(value, bool)


def validate_positive_integer(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is an integer greater than zero.

    Args:
        value: The value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not _is_integer(value):
        return False, f"{field_name}: {ERROR_INVALID_INTEGER}"
    if value <= 0:
        return False, f"{field_name}: {ERROR_INVALID_POSITIVE}"
    return True, ""


def validate_non_negative_integer(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is an integer greater than or equal to zero.

    Args:
        value: The value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not _is_integer(value):
        return False, f"{field_name}: {ERROR_INVALID_INTEGER}"
    if value < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    return True, ""


def validate_non_negative_decimal(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value converts to a Decimal >= 0.

    Args:
        value: The value to validate (Decimal, int, float or numeric string)
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return False, f"{field_name}: Please enter a valid number"
    if not number.is_finite() or number < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    return True, ""


def collect_errors(*results: Tuple[bool, str]) -> List[str]:
    """Return the error messages of every failed validation result."""
    return [message for is_valid, message in results if not is_valid]
