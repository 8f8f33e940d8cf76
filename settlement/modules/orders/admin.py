"""Administrative exits and corrections for orders."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from settlement.core.config import Settings
from settlement.core.locks import KeyedLock
from settlement.infrastructure.database import Database
from settlement.modules.common.clock import Clock, utcnow
from settlement.modules.common.enums import DeliveryStatus, PaymentMethod, PaymentStatus
from settlement.modules.ledger import LedgerService, WalletPosting, wallet_lock_key

from .completion import CompletionResult, OrderCompletion
from .models import OrderSnapshot
from .service import OrderService, order_lock_key

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RefundResult:
    order: OrderSnapshot
    posting: Optional[WalletPosting] = None

    @property
    def wallet_credited(self) -> bool:
        return bool(self.posting and self.posting.applied)


class OrderAdminService:
    def __init__(
        self,
        database: Database,
        locks: KeyedLock,
        settings: Settings,
        clock: Clock = utcnow,
    ) -> None:
        self._database = database
        self._locks = locks
        self._settings = settings
        self._clock = clock

    async def refund(self, reference: str) -> RefundResult:
        """Move the order to REFUNDED and return wallet funds at most once.

        Only wallet-paid orders with a known buyer get a wallet credit; gateway
        refunds are settled outside the system.
        """
        async with self._locks.hold(order_lock_key(reference)):
            async with self._database.session() as session:
                orders = OrderService.with_session(session, self._clock)
                order = await orders.get(reference)
                credit_wallet = (
                    order.payment_method is PaymentMethod.WALLET
                    and order.payment_status is PaymentStatus.PAID
                    and order.buyer_id is not None
                )
                if not credit_wallet:
                    order = await orders.mark_refunded(reference)
                    logger.info("Order %s refunded without wallet credit", reference)
                    return RefundResult(order)

                assert order.buyer_id is not None
                async with self._locks.hold(wallet_lock_key(order.buyer_id)):
                    order = await orders.mark_refunded(reference)
                    posting = await self._ledger(session).refund_order(
                        order.buyer_id, order.amount_minor, order_reference=reference
                    )
        logger.info("Order %s refunded; wallet credit applied=%s", reference, posting.applied)
        return RefundResult(order, posting)

    async def cancel(self, reference: str, reason: str | None = None) -> OrderSnapshot:
        async with self._locks.hold(order_lock_key(reference)):
            async with self._database.session() as session:
                return await OrderService.with_session(session, self._clock).cancel(reference, reason)

    async def override_delivery_status(self, reference: str, delivery_status: DeliveryStatus) -> CompletionResult:
        """Force the items' outcome; a resulting completion settles like any other."""
        async with self._locks.hold(order_lock_key(reference)):
            async with self._database.session() as session:
                completion = OrderCompletion.with_session(session, self._settings, self._clock)
                rollup = await completion.orders.override_delivery_status(reference, delivery_status)
                if not rollup.completed_now:
                    return CompletionResult(rollup)
                settlement = await completion.ledger.settle_order(rollup.order)
                return CompletionResult(rollup, settlement)

    async def purge_resolved(self, older_than_days: int) -> int:
        if older_than_days < 1:
            raise ValueError("older_than_days must be at least 1")
        cutoff = self._clock() - timedelta(days=older_than_days)
        async with self._database.session() as session:
            deleted = await OrderService.with_session(session, self._clock).purge_resolved(cutoff)
        logger.info("Purged %s resolved order(s) older than %s day(s)", deleted, older_than_days)
        return deleted

    def _ledger(self, session) -> LedgerService:
        return LedgerService.with_session(
            session,
            currency=self._settings.currency,
            tolerance_minor=self._settings.settlement.split_tolerance_minor,
            clock=self._clock,
        )
