"""Cooldown decision value object."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class CooldownDecision:
    phone: str
    allowed: bool
    remaining_seconds: int = 0

    @property
    def remaining_minutes(self) -> int:
        return math.ceil(self.remaining_seconds / 60) if self.remaining_seconds > 0 else 0
