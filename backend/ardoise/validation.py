from __future__ import annotations

from typing import Any


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

MAX_NAME_LENGTH = 128


class ValidationError(ValueError):
    """Input rejected before any mutation."""


def clean_name(value: Any, *, field: str = "name") -> str:
    """Strip and validate a display name."""
    if value is None:
        raise ValidationError(f"{field} is required")
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    stripped = value.strip()
    if stripped == "":
        raise ValidationError(f"{field} cannot be blank")
    if len(stripped) > MAX_NAME_LENGTH:
        raise ValidationError(f"{field} exceeds max length {MAX_NAME_LENGTH}")
    return stripped


def clean_price_cents(value: Any, *, field: str) -> int:
    """
    Strict integer-cents validation.

    - bools and floats are rejected (2.5 is almost always a euros/cents mixup)
    - plain digit strings are accepted
    - 0 <= value <= MAX_PRICE_CENTS
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or not stripped.lstrip("-").isdigit():
            raise ValidationError(f"{field} must be a plain integer")
        value = int(stripped)
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value < 0:
        raise ValidationError(f"{field} must be >= 0")
    if value > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")
    return value


def clean_choice(value: Any, *, field: str, choices: tuple[str, ...]) -> str:
    """Normalize an enum-like string (case-insensitive) against allowed values."""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be one of {', '.join(choices)}")
    normalized = value.strip().upper()
    if normalized not in choices:
        raise ValidationError(f"{field} must be one of {', '.join(choices)}")
    return normalized
