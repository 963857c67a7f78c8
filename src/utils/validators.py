"""
Input validation functions for Recipe Costing.

This module provides validation functions for user inputs:
- Numeric coercion to Decimal
- Numeric validation (positive, non-negative)
- String validation (required, length)

Validators return (is_valid, error_message) tuples so callers can collect
several problems before raising a single ValidationError.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Tuple

from .constants import (
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_POSITIVE,
    ERROR_NAME_TOO_LONG,
    ERROR_REQUIRED_FIELD,
    MAX_NAME_LENGTH,
    STOCK_DECIMAL_PLACES,
)

ERROR_INVALID_NUMBER = "Must be a valid number"

STOCK_QUANTUM = Decimal(1).scaleb(-STOCK_DECIMAL_PLACES)


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a numeric value to Decimal without binary float artefacts.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not
    Decimal("0.1000000000000000055511151231257827...").

    Raises:
        ValueError: If the value is not numeric
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a number: {value!r}")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def to_stock_quantity(value: Any) -> Decimal:
    """Coerce a stock quantity to Decimal at the stock column's scale."""
    return to_decimal(value).quantize(STOCK_QUANTUM, rounding=ROUND_HALF_UP)


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a string field is not empty or too long.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    if len(value) > MAX_NAME_LENGTH:
        return False, f"{field_name}: {ERROR_NAME_TOO_LONG}"
    return True, ""


def validate_positive_number(value: Any, field_name: str = "Value") -> Tuple[bool, str]:
    """
    Validate that a value is a number greater than zero.

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        number = to_decimal(value)
    except ValueError:
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if number <= 0:
        return False, f"{field_name}: {ERROR_INVALID_POSITIVE}"
    return True, ""


def validate_non_negative_number(value: Any, field_name: str = "Value") -> Tuple[bool, str]:
    """
    Validate that a value is a number greater than or equal to zero.

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        number = to_decimal(value)
    except ValueError:
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if number < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    return True, ""
