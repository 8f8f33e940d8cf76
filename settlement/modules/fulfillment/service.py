"""Queue processor: one dispatch attempt per order, then a fold of the results."""

from __future__ import annotations

import logging

from settlement.core.config import Settings
from settlement.core.locks import KeyedLock
from settlement.infrastructure.database import Database
from settlement.modules.common.clock import Clock, utcnow
from settlement.modules.orders import order_lock_key
from settlement.modules.orders.completion import OrderCompletion

from .dispatcher import FulfillmentDispatcher

logger = logging.getLogger(__name__)


class FulfillmentService:
    def __init__(
        self,
        database: Database,
        dispatcher: FulfillmentDispatcher,
        locks: KeyedLock,
        settings: Settings,
        clock: Clock = utcnow,
    ) -> None:
        self._database = database
        self._dispatcher = dispatcher
        self._locks = locks
        self._settings = settings
        self._clock = clock

    async def process(self, reference: str) -> bool:
        """Dispatch outstanding items and fold the results; True if a retry is due."""
        async with self._locks.hold(order_lock_key(reference)):
            results = await self._dispatcher.dispatch(self._database, reference)
            async with self._database.session() as session:
                completion = await OrderCompletion.with_session(session, self._settings, self._clock).fold(reference)
        order = completion.rollup.order
        logger.info(
            "Fulfillment pass for %s: %s item(s) submitted, order %s/%s",
            reference,
            len(results),
            order.status.value,
            order.delivery_status.value,
        )
        return any(result.retryable for result in results)
