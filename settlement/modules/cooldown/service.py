"""Per-beneficiary cooldown between data-bundle purchases."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from settlement.infrastructure.database.repositories.cooldown_repository import SqlCooldownRepository
from settlement.modules.common import validate_phone
from settlement.modules.common.clock import Clock, as_utc, utcnow

from .exceptions import CooldownActiveError
from .models import CooldownDecision
from .repository import CooldownRepository

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 20 * 60


@dataclass(slots=True)
class CooldownGuard:
    repository: CooldownRepository
    window_seconds: int = DEFAULT_WINDOW_SECONDS
    clock: Clock = field(default=utcnow)

    @classmethod
    def with_session(
        cls,
        session: AsyncSession,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Clock = utcnow,
    ) -> "CooldownGuard":
        return cls(SqlCooldownRepository(session), window_seconds, clock)

    async def check(self, phone: str) -> CooldownDecision:
        normalized = validate_phone(phone)
        latest = as_utc(await self.repository.latest_bundle_order_at(normalized))
        if latest is None:
            return CooldownDecision(phone=normalized, allowed=True)
        elapsed = (self.clock() - latest).total_seconds()
        remaining = self.window_seconds - elapsed
        if remaining <= 0:
            return CooldownDecision(phone=normalized, allowed=True)
        return CooldownDecision(phone=normalized, allowed=False, remaining_seconds=math.ceil(remaining))

    async def check_many(self, phones: Iterable[str]) -> list[CooldownDecision]:
        """Check every distinct phone; raise on the first one still cooling down."""
        decisions: list[CooldownDecision] = []
        seen: set[str] = set()
        for phone in phones:
            normalized = validate_phone(phone)
            if normalized in seen:
                continue
            seen.add(normalized)
            decision = await self.check(normalized)
            if not decision.allowed:
                logger.info(
                    "Cooldown active for %s: %ss remaining",
                    normalized,
                    decision.remaining_seconds,
                )
                raise CooldownActiveError(normalized, decision.remaining_seconds, decision.remaining_minutes)
            decisions.append(decision)
        return decisions
