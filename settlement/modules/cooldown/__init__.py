"""Beneficiary cooldown guard."""

from .exceptions import CooldownActiveError
from .models import CooldownDecision
from .service import CooldownGuard

__all__ = ["CooldownActiveError", "CooldownDecision", "CooldownGuard"]
