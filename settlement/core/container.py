"""Explicit dependency container: the process bootstrap builds it once."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from settlement.core.config import Settings, get_settings
from settlement.core.locks import KeyedLock
from settlement.infrastructure.database import Database
from settlement.jobs import SettlementScheduler
from settlement.modules.checkout import CheckoutService
from settlement.modules.common.clock import Clock, utcnow
from settlement.modules.fulfillment import (
    FulfillmentDispatcher,
    FulfillmentQueue,
    FulfillmentService,
    SupplierClient,
)
from settlement.modules.orders.admin import OrderAdminService
from settlement.modules.payments import PaystackClient
from settlement.modules.reconciliation import ReconciliationService
from settlement.modules.topups import TopupService
from settlement.modules.withdrawals import WithdrawalService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    database: Database
    http: httpx.AsyncClient
    locks: KeyedLock
    paystack: PaystackClient
    supplier: SupplierClient
    fulfillment: FulfillmentService
    queue: FulfillmentQueue
    checkout: CheckoutService
    topups: TopupService
    withdrawals: WithdrawalService
    reconciliation: ReconciliationService
    admin: OrderAdminService
    scheduler: SettlementScheduler
    clock: Clock = field(default=utcnow)
    _owns_http: bool = True

    @classmethod
    def build(
        cls,
        settings: Optional[Settings] = None,
        *,
        database: Optional[Database] = None,
        http: Optional[httpx.AsyncClient] = None,
        clock: Clock = utcnow,
    ) -> "ApplicationContainer":
        settings = settings or get_settings()
        database = database or Database.from_settings(settings)
        owns_http = http is None
        http = http or httpx.AsyncClient()
        locks = KeyedLock()

        paystack = PaystackClient(http, settings.paystack)
        supplier = SupplierClient(http, timeout=settings.supplier.timeout)
        dispatcher = FulfillmentDispatcher(
            supplier,
            max_attempts=settings.fulfillment.max_attempts,
            fallback=settings.supplier,
            clock=clock,
        )
        fulfillment = FulfillmentService(database, dispatcher, locks, settings, clock)
        queue = FulfillmentQueue(
            fulfillment.process,
            workers=settings.fulfillment.workers,
            maxsize=settings.fulfillment.queue_size,
            max_attempts=settings.fulfillment.max_attempts,
            retry_base_delay=settings.fulfillment.retry_base_delay,
        )
        topups = TopupService(database, paystack, locks, settings, clock)
        withdrawals = WithdrawalService(database, paystack, locks, settings, clock)
        reconciliation = ReconciliationService(
            database,
            locks,
            settings,
            paystack=paystack,
            supplier=supplier,
            topups=topups,
            withdrawals=withdrawals,
            queue=queue,
            clock=clock,
        )
        return cls(
            settings=settings,
            database=database,
            http=http,
            locks=locks,
            paystack=paystack,
            supplier=supplier,
            fulfillment=fulfillment,
            queue=queue,
            checkout=CheckoutService(database, paystack, locks, settings, queue, clock),
            topups=topups,
            withdrawals=withdrawals,
            reconciliation=reconciliation,
            admin=OrderAdminService(database, locks, settings, clock),
            scheduler=SettlementScheduler(reconciliation, settings.scheduler),
            clock=clock,
            _owns_http=owns_http,
        )

    async def start(self) -> None:
        if self.settings.database.create_tables:
            await self.database.create_all()
        await self.queue.start()
        self.scheduler.start()
        logger.info("Settlement services started (%s)", self.settings.environment)

    async def stop(self) -> None:
        self.scheduler.shutdown()
        await self.queue.stop()
        if self._owns_http:
            await self.http.aclose()
        await self.database.dispose()
        logger.info("Settlement services stopped")


__all__ = ["ApplicationContainer"]
