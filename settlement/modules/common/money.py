"""Fixed-point money helpers.

Amounts are stored as integer minor units (pesewas) and exchanged over HTTP as
decimal strings with two places.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MINOR_PER_MAJOR = 100
_QUANTUM = Decimal("0.01")


def parse_amount(value: str | int | Decimal) -> Decimal:
    """Parse a major-unit amount (``"3.50"``) into a two-place ``Decimal``."""
    if isinstance(value, float):
        raise TypeError("float amounts are not accepted")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return amount.quantize(_QUANTUM, rounding=ROUND_HALF_UP)


def to_minor(value: str | int | Decimal) -> int:
    return int(parse_amount(value) * MINOR_PER_MAJOR)


def format_minor(amount_minor: int) -> str:
    sign = "-" if amount_minor < 0 else ""
    whole, cents = divmod(abs(amount_minor), MINOR_PER_MAJOR)
    return f"{sign}{whole}.{cents:02d}"


__all__ = ["MINOR_PER_MAJOR", "parse_amount", "to_minor", "format_minor"]
