"""Folding item outcomes into the order and settling the first completion."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from settlement.core.config import Settings
from settlement.modules.common.clock import Clock, utcnow
from settlement.modules.ledger import LedgerInvariantError, LedgerService, SettlementOutcome

from .models import RollupResult
from .service import OrderService

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CompletionResult:
    rollup: RollupResult
    settlement: Optional[SettlementOutcome] = None


@dataclass(slots=True)
class OrderCompletion:
    orders: OrderService
    ledger: LedgerService

    @classmethod
    def with_session(cls, session: AsyncSession, settings: Settings, clock: Clock = utcnow) -> "OrderCompletion":
        return cls(
            OrderService.with_session(session, clock),
            LedgerService.with_session(
                session,
                currency=settings.currency,
                tolerance_minor=settings.settlement.split_tolerance_minor,
                clock=clock,
            ),
        )

    async def fold(self, reference: str) -> CompletionResult:
        rollup = await self.orders.apply_rollup(reference)
        if not rollup.completed_now:
            return CompletionResult(rollup)
        try:
            settlement = await self.ledger.settle_order(rollup.order)
        except LedgerInvariantError:
            logger.error("Ledger split invariant violated for order %s; completion rolled back", reference)
            raise
        return CompletionResult(rollup, settlement)
