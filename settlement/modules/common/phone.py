"""Beneficiary phone normalization (Ghana local 10-digit form)."""

from __future__ import annotations

import re

from .exceptions import SettlementError

_NON_DIGITS = re.compile(r"\D")


class PhoneValidationError(SettlementError):
    """Raised when a beneficiary phone cannot be normalized to 10 digits."""

    def __init__(self, phone: str) -> None:
        super().__init__(f"Invalid phone number: {phone}. Expected 10 digits, e.g. 0241234567")
        self.phone = phone


def normalize_phone(phone: str) -> str:
    """``+233 24 123 4567`` / ``233241234567`` / ``241234567`` -> ``0241234567``."""
    digits = _NON_DIGITS.sub("", phone or "")
    if digits.startswith("233"):
        digits = "0" + digits[3:]
    if not digits.startswith("0"):
        digits = "0" + digits
    return digits


def validate_phone(phone: str) -> str:
    normalized = normalize_phone(phone)
    if len(normalized) != 10:
        raise PhoneValidationError(phone)
    return normalized
