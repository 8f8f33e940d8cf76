"""Repository protocol for cooldown lookups."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class CooldownRepository(Protocol):
    async def latest_bundle_order_at(self, phone: str) -> datetime | None:
        """Creation time of the newest paid data-bundle order naming ``phone``."""
        ...
