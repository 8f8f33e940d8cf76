"""Hands confirmed orders to the supply provider (or to result-checker stock)."""

from __future__ import annotations

import logging
from typing import Optional, assert_never

from settlement.core.config import SupplierSettings
from settlement.infrastructure.database import Database
from settlement.infrastructure.database.repositories.stock_repository import SqlStockRepository
from settlement.modules.common.clock import Clock, utcnow
from settlement.modules.common.enums import DeliveryStatus, ProductType
from settlement.modules.orders import OrderItemSnapshot, OrderService, OrderSnapshot
from settlement.modules.orders import state_machine
from settlement.modules.providers import NoProviderConfiguredError, ProviderCredentials, ProviderService

from .client import SupplierClient
from .exceptions import SupplierError
from .models import PerItemResult, SupplierResponse
from .repository import StockRepository

logger = logging.getLogger(__name__)


class FulfillmentDispatcher:
    """Submits every undispatched line item of an order exactly once per attempt.

    One item's failure never aborts the others; a transport failure leaves the
    item retryable until ``max_attempts`` submissions have been made. Each
    item's outcome is committed on its own, so no transaction stays open while
    the supplier is being called.
    """

    def __init__(
        self,
        client: SupplierClient,
        *,
        max_attempts: int = 3,
        fallback: Optional[SupplierSettings] = None,
        clock: Clock = utcnow,
    ) -> None:
        self._client = client
        self._max_attempts = max_attempts
        self._fallback = fallback
        self._clock = clock

    async def dispatch(self, database: Database, reference: str) -> list[PerItemResult]:
        async with database.session() as session:
            orders = OrderService.with_session(session, self._clock)
            order = await orders.get(reference)
            if not state_machine.awaits_fulfillment(order.status):
                logger.info("Order %s is %s; nothing to dispatch", reference, order.status.value)
                return []

            match order.product_type:
                case ProductType.DATA_BUNDLE:
                    providers = ProviderService.with_session(session, self._fallback)
                    results, pending = await self._plan_bundles(providers, orders, order)
                case ProductType.RESULT_CHECKER:
                    return await self._deliver_checkers(SqlStockRepository(session), orders, order)
                case _:
                    assert_never(order.product_type)

        for item, provider in pending:
            results.append(await self._submit(database, order, item, provider))
        return results

    async def _plan_bundles(
        self, providers: ProviderService, orders: OrderService, order: OrderSnapshot
    ) -> tuple[list[PerItemResult], list[tuple[OrderItemSnapshot, ProviderCredentials]]]:
        results: list[PerItemResult] = []
        pending: list[tuple[OrderItemSnapshot, ProviderCredentials]] = []
        for item in order.items:
            if not item.awaiting_dispatch:
                continue
            try:
                provider = await providers.resolve_for_network(item.network or order.network)
            except NoProviderConfiguredError as exc:
                await orders.record_item(
                    item.id,
                    delivery_status=DeliveryStatus.FAILED,
                    retryable=False,
                    failure_reason=str(exc),
                )
                results.append(PerItemResult(item.id, item.phone, DeliveryStatus.FAILED, failure_reason=str(exc)))
                continue
            pending.append((item, provider))
        return results, pending

    async def _submit(
        self,
        database: Database,
        order: OrderSnapshot,
        item: OrderItemSnapshot,
        provider: ProviderCredentials,
    ) -> PerItemResult:
        attempts = item.attempts + 1
        network = provider.network_code(item.network or order.network)
        try:
            response = await self._client.create_order(
                provider,
                network=network,
                recipient=item.phone,
                capacity_mb=item.capacity_mb or 1024,
                idempotency_key=item.idempotency_key,
            )
        except SupplierError as exc:
            retryable = exc.retryable and attempts < self._max_attempts
            return await self._record_failure(database, order, item, provider, attempts, str(exc), retryable, exc.body)
        except Exception as exc:
            logger.exception("Unexpected error dispatching %s for order %s", item.phone, order.reference)
            retryable = attempts < self._max_attempts
            return await self._record_failure(database, order, item, provider, attempts, str(exc), retryable, None)

        if not self._accepted(response):
            # 5xx responses are transient on the provider side
            retryable = response.status_code >= 500 and attempts < self._max_attempts
            return await self._record_failure(
                database, order, item, provider, attempts, response.error, retryable, response.raw
            )

        async with database.session() as session:
            orders = OrderService.with_session(session, self._clock)
            await orders.record_provider_response(
                order.reference,
                response.raw,
                recipient=item.phone,
                source="dispatch",
                http_status=response.status_code,
            )
            await orders.record_item(
                item.id,
                delivery_status=DeliveryStatus.PENDING,
                provider_id=provider.id,
                provider_reference=response.reference,
                attempts=attempts,
                retryable=False,
                failure_reason=None,
                provider_response=response.raw,
            )
        logger.info(
            "Dispatched %s for order %s via %s (ref %s)",
            item.phone,
            order.reference,
            provider.name,
            response.reference,
        )
        return PerItemResult(item.id, item.phone, DeliveryStatus.PENDING, provider_reference=response.reference)

    async def _record_failure(
        self,
        database: Database,
        order: OrderSnapshot,
        item: OrderItemSnapshot,
        provider: ProviderCredentials,
        attempts: int,
        reason: str,
        retryable: bool,
        raw: str | None,
    ) -> PerItemResult:
        async with database.session() as session:
            orders = OrderService.with_session(session, self._clock)
            await orders.record_item(
                item.id,
                delivery_status=DeliveryStatus.FAILED,
                provider_id=provider.id,
                attempts=attempts,
                retryable=retryable,
                failure_reason=reason,
                provider_response=raw,
            )
            if raw is not None:
                await orders.record_provider_response(order.reference, raw, recipient=item.phone, source="dispatch")
        logger.warning(
            "Dispatch of %s for order %s failed (attempt %s, retryable=%s): %s",
            item.phone,
            order.reference,
            attempts,
            retryable,
            reason,
        )
        return PerItemResult(item.id, item.phone, DeliveryStatus.FAILED, failure_reason=reason, retryable=retryable)

    async def _deliver_checkers(
        self, stock: StockRepository, orders: OrderService, order: OrderSnapshot
    ) -> list[PerItemResult]:
        results: list[PerItemResult] = []
        for item in order.items:
            if not item.awaiting_dispatch:
                continue
            product_id = item.bundle_id or order.product_id or ""
            units = await stock.claim(
                product_id,
                item.quantity,
                order_reference=order.reference,
                sold_at=self._clock(),
            )
            if not units:
                reason = "Result checker out of stock"
                await orders.record_item(
                    item.id,
                    delivery_status=DeliveryStatus.FAILED,
                    attempts=item.attempts + 1,
                    retryable=False,
                    failure_reason=reason,
                )
                logger.warning(
                    "Order %s: %s (%s requested, %s available)",
                    order.reference,
                    reason,
                    item.quantity,
                    await stock.count_available(product_id),
                )
                results.append(PerItemResult(item.id, item.phone, DeliveryStatus.FAILED, failure_reason=reason))
                continue
            await orders.record_item(
                item.id,
                delivery_status=DeliveryStatus.DELIVERED,
                attempts=item.attempts + 1,
                retryable=False,
                failure_reason=None,
                delivered_pin=",".join(unit.pin for unit in units),
                delivered_serial=",".join(unit.serial_number for unit in units),
            )
            logger.info("Order %s: delivered %s result checker(s)", order.reference, len(units))
            results.append(PerItemResult(item.id, item.phone, DeliveryStatus.DELIVERED))
        return results

    @staticmethod
    def _accepted(response: SupplierResponse) -> bool:
        # a duplicate submission answered with 409 still carries the original ref
        return (response.ok or response.status_code == 409) and response.reference is not None
