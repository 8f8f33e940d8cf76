"""Shared abstractions used across settlement modules."""

from .exceptions import SettlementError
from .money import format_minor, parse_amount, to_minor
from .phone import PhoneValidationError, normalize_phone, validate_phone
from .references import new_reference

__all__ = [
    "SettlementError",
    "format_minor",
    "parse_amount",
    "to_minor",
    "PhoneValidationError",
    "normalize_phone",
    "validate_phone",
    "new_reference",
]
