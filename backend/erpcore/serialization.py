# Overview: Small helpers shared by model to_dict() methods and report builders.

from __future__ import annotations

from decimal import Decimal, InvalidOperation


def to_number(value):
    """Decimal/None -> float/None for JSON output (ints pass through)."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return float(value)
    return value


def to_decimal(value, *, field: str = "value") -> Decimal:
    """
    Parse a JSON number or numeric string into Decimal.

    Raises ValueError with the field name on bad input; booleans are rejected
    even though they are ints.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{field} must be a number")
    if isinstance(value, Decimal):
        return value
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"{field} must be a number")
    if not result.is_finite():
        raise ValueError(f"{field} must be a number")
    return result
