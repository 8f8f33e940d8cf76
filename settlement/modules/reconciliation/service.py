"""Drives orders to a terminal state from three independent channels.

Synchronous verification, webhooks and the periodic sweep all funnel into
:meth:`ReconciliationService.apply_provider_status`, which serializes per
order and settles the first completion exactly once.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, Optional

from settlement.core.config import Settings
from settlement.core.locks import KeyedLock
from settlement.core.signing import verify_supplier_signature
from settlement.infrastructure.database import Database
from settlement.modules.common import normalize_phone
from settlement.modules.common.clock import Clock, utcnow
from settlement.modules.common.enums import DeliveryStatus, PaymentMethod, PaymentStatus
from settlement.modules.fulfillment import FulfillmentQueue, SupplierClient, SupplierError, SupplierResponse
from settlement.modules.orders import OrderItemSnapshot, OrderService, OrderSnapshot, order_lock_key
from settlement.modules.orders import state_machine
from settlement.modules.orders.completion import OrderCompletion
from settlement.modules.payments import PaystackClient, PaystackError, PaystackVerification
from settlement.modules.providers import ProviderCredentials, ProviderError, ProviderNotFoundError, ProviderService
from settlement.modules.topups import TopupService
from settlement.modules.withdrawals import WithdrawalNotFoundError, WithdrawalService

from .exceptions import WebhookPayloadError, WebhookSignatureError
from .models import SweepReport, WebhookResult
from .status_map import ProviderOutcome, delivery_status_for, map_provider_status

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ReconciliationService:
    def __init__(
        self,
        database: Database,
        locks: KeyedLock,
        settings: Settings,
        *,
        paystack: PaystackClient,
        supplier: SupplierClient,
        topups: TopupService,
        withdrawals: WithdrawalService,
        queue: Optional[FulfillmentQueue] = None,
        clock: Clock = utcnow,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._database = database
        self._locks = locks
        self._settings = settings
        self._paystack = paystack
        self._supplier = supplier
        self._topups = topups
        self._withdrawals = withdrawals
        self._queue = queue
        self._clock = clock
        self._sleep = sleep

    # -- shared contract ------------------------------------------------

    async def apply_provider_status(
        self,
        reference: str,
        provider_status: str | None,
        *,
        recipient: str | None = None,
        payload: Any = None,
        source: str = "webhook",
    ) -> OrderSnapshot:
        outcome = map_provider_status(provider_status)
        phone = normalize_phone(recipient) if recipient else None
        async with self._locks.hold(order_lock_key(reference)):
            async with self._database.session() as session:
                completion = OrderCompletion.with_session(session, self._settings, self._clock)
                orders = completion.orders
                order = await orders.get(reference)
                if payload is not None:
                    await orders.record_provider_response(
                        reference, _as_text(payload), recipient=phone, source=source
                    )
                if state_machine.is_reconciled(order.status):
                    logger.info(
                        "Ignoring %s status %r for %s: order already %s",
                        source,
                        provider_status,
                        reference,
                        order.status.value,
                    )
                    return order
                if outcome is None:
                    logger.warning("Unrecognized provider status %r for order %s", provider_status, reference)
                    return order

                target = delivery_status_for(outcome)
                reason = _failure_reason(payload, provider_status) if outcome is ProviderOutcome.FAILED else None
                for item in order.items:
                    if phone is not None and item.phone != phone:
                        continue
                    if item.is_terminal:
                        continue
                    if outcome is ProviderOutcome.IN_PROGRESS and item.delivery_status is not DeliveryStatus.PENDING:
                        continue
                    await orders.record_item(item.id, delivery_status=target, retryable=False, failure_reason=reason)
                result = await completion.fold(reference)
                return result.rollup.order

    # -- driver 1: synchronous verify -------------------------------------

    async def verify(self, reference: str) -> OrderSnapshot:
        order = await self._get(reference)
        if order.payment_status is PaymentStatus.PENDING and order.payment_method is PaymentMethod.PAYSTACK:
            verification = await self._verify_payment(reference)
            if verification is None:
                return order
            return await self.confirm_order_payment(reference, verification)

        if not state_machine.awaits_fulfillment(order.status):
            return order

        if any(item.awaiting_dispatch for item in order.items):
            self._submit(reference)
        for item, provider in await self._outstanding(order):
            response = await self._poll(provider, item, attempts=self._settings.settlement.verify_attempts)
            if response is not None:
                order = await self.apply_provider_status(
                    reference, response.status, recipient=item.phone, payload=response.raw, source="poll"
                )
        return await self._get(reference)

    async def confirm_order_payment(self, reference: str, verification: PaystackVerification) -> OrderSnapshot:
        """Advance a gateway-funded order once the payment is known to have settled."""
        confirmed = False
        async with self._locks.hold(order_lock_key(reference)):
            async with self._database.session() as session:
                orders = OrderService.with_session(session, self._clock)
                order = await orders.get(reference)
                if order.payment_status is not PaymentStatus.PENDING:
                    return order
                if verification.succeeded:
                    if verification.amount_minor < order.amount_minor:
                        logger.error(
                            "Order %s underpaid: expected %s, gateway reports %s",
                            reference,
                            order.amount_minor,
                            verification.amount_minor,
                        )
                        await orders.fail_payment(reference, "Paid amount does not match order amount")
                    else:
                        confirmed = await orders.confirm_payment(reference)
                elif verification.failed:
                    await orders.fail_payment(reference, f"Payment {verification.status}")
                order = await orders.get(reference)
        if confirmed:
            logger.info("Payment confirmed for order %s", reference)
            self._submit(reference)
        return order

    async def _verify_payment(self, reference: str) -> PaystackVerification | None:
        attempts = max(1, self._settings.settlement.verify_attempts)
        verification: PaystackVerification | None = None
        for attempt in range(1, attempts + 1):
            try:
                verification = await self._paystack.verify_transaction(reference)
            except PaystackError as exc:
                logger.warning("Payment verification for %s failed (attempt %s): %s", reference, attempt, exc)
            else:
                if verification.succeeded or verification.failed:
                    return verification
            if attempt < attempts:
                await self._sleep(self._settings.settlement.verify_retry_delay)
        return verification

    # -- driver 2: webhooks ---------------------------------------------------

    async def handle_supplier_webhook(
        self,
        raw_body: bytes,
        *,
        path: str,
        timestamp: str | None,
        signature: str | None,
    ) -> OrderSnapshot | None:
        try:
            body = raw_body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WebhookPayloadError("Supplier webhook body is not UTF-8") from exc
        async with self._database.session() as session:
            providers = await ProviderService.with_session(session, self._settings.supplier).list_active()
        if not any(
            verify_supplier_signature(provider.api_secret, "POST", path, body, timestamp or "", signature or "")
            for provider in providers
        ):
            raise WebhookSignatureError("Invalid supplier webhook signature")

        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise WebhookPayloadError("Supplier webhook body is not JSON") from exc
        if not isinstance(payload, dict):
            raise WebhookPayloadError("Supplier webhook body is not a JSON object")
        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        key = data.get("ref") or data.get("reference") or data.get("idempotencyKey")
        if not key:
            raise WebhookPayloadError("Supplier webhook carries no order reference")

        async with self._database.session() as session:
            match = await OrderService.with_session(session, self._clock).find_by_provider_reference(str(key))
        if match is None:
            logger.warning("Supplier webhook for unknown reference %s", key)
            return None
        order, item = match
        return await self.apply_provider_status(
            order.reference,
            data.get("status"),
            recipient=item.phone,
            payload=body,
            source="webhook",
        )

    async def handle_paystack_webhook(self, raw_body: bytes, signature: str | None) -> WebhookResult:
        if not self._paystack.verify_signature(raw_body, signature):
            raise WebhookSignatureError("Invalid Paystack signature")
        try:
            event = json.loads(raw_body)
        except ValueError as exc:
            raise WebhookPayloadError("Paystack webhook body is not JSON") from exc
        if not isinstance(event, dict) or not isinstance(event.get("data") or {}, dict):
            raise WebhookPayloadError("Paystack webhook body is not a JSON object")

        name = str(event.get("event") or "")
        data = event.get("data") or {}
        reference = data.get("reference")
        if not reference:
            return WebhookResult(name, None, "ignored")

        match name:
            case "charge.success" | "charge.failed":
                try:
                    amount_minor = int(data.get("amount") or 0)
                except (TypeError, ValueError) as exc:
                    raise WebhookPayloadError(f"Paystack {name} carries an invalid amount") from exc
                verification = PaystackVerification(
                    reference=reference,
                    status="success" if name == "charge.success" else "failed",
                    amount_minor=amount_minor,
                    currency=data.get("currency") or self._paystack.currency,
                    channel=data.get("channel"),
                    gateway_response=data.get("gateway_response"),
                    paid_at=data.get("paid_at"),
                    raw=data,
                )
                if await self._topups.get(reference) is not None:
                    confirmation = await self._topups.confirm(reference, verification)
                    return WebhookResult(name, reference, "topup_credited" if confirmation.credited else "topup_unchanged")
                if await self._find(reference) is None:
                    logger.warning("Paystack %s for unknown reference %s", name, reference)
                    return WebhookResult(name, reference, "ignored")
                order = await self.confirm_order_payment(reference, verification)
                return WebhookResult(name, reference, f"order_{order.status.value}")
            case "transfer.success":
                return await self._withdrawal_event(name, reference, paid=True)
            case "transfer.failed" | "transfer.reversed":
                return await self._withdrawal_event(name, reference, paid=False)
            case _:
                logger.info("Ignoring Paystack event %s for %s", name, reference)
                return WebhookResult(name, reference, "ignored")

    async def _withdrawal_event(self, name: str, reference: str, *, paid: bool) -> WebhookResult:
        try:
            if paid:
                withdrawal = await self._withdrawals.mark_paid(reference)
            else:
                withdrawal = await self._withdrawals.mark_failed(reference, name.replace("transfer.", "Transfer "))
        except WithdrawalNotFoundError:
            logger.warning("Paystack %s for unknown transfer %s", name, reference)
            return WebhookResult(name, reference, "ignored")
        return WebhookResult(name, reference, f"withdrawal_{withdrawal.status.value}")

    # -- driver 3: periodic sweep ---------------------------------------------

    async def sweep_pending(self, older_than: timedelta | None = None) -> SweepReport:
        config = self._settings.settlement
        cutoff = self._clock() - (older_than or timedelta(minutes=config.sweep_min_age_minutes))
        async with self._database.session() as session:
            stale = await OrderService.with_session(session, self._clock).list_awaiting_fulfillment(
                cutoff, config.sweep_batch_size
            )

        report = SweepReport()
        for order in stale:
            report.checked += 1
            if any(item.awaiting_dispatch for item in order.items) and self._submit(order.reference):
                report.requeued += 1
            for item, provider in await self._outstanding(order):
                report.polled += 1
                response = await self._poll(provider, item, attempts=1)
                if response is None:
                    report.errors += 1
                else:
                    updated = await self.apply_provider_status(
                        order.reference, response.status, recipient=item.phone, payload=response.raw, source="poll"
                    )
                    if updated.status is not order.status or updated.delivery_status is not order.delivery_status:
                        report.updated += 1
                await self._sleep(config.sweep_request_delay)
        logger.info(
            "Sweep checked %s order(s): %s polled, %s updated, %s requeued, %s error(s)",
            report.checked,
            report.polled,
            report.updated,
            report.requeued,
            report.errors,
        )
        return report

    async def cleanup_failed(self, older_than: timedelta | None = None) -> int:
        cutoff = self._clock() - (older_than or timedelta(hours=self._settings.settlement.failed_order_age_hours))
        async with self._database.session() as session:
            flagged = await OrderService.with_session(session, self._clock).flag_permanently_failed(cutoff)
        if flagged:
            logger.info("Flagged %s order(s) as permanently failed", flagged)
        return flagged

    # -- helpers -----------------------------------------------------------------

    def _submit(self, reference: str) -> bool:
        if self._queue is None:
            return False
        return self._queue.submit(reference)

    async def _get(self, reference: str) -> OrderSnapshot:
        async with self._database.session() as session:
            return await OrderService.with_session(session, self._clock).get(reference)

    async def _find(self, reference: str) -> OrderSnapshot | None:
        async with self._database.session() as session:
            return await OrderService.with_session(session, self._clock).find(reference)

    async def _outstanding(self, order: OrderSnapshot) -> list[tuple[OrderItemSnapshot, ProviderCredentials]]:
        pending = [item for item in order.items if item.provider_reference and not item.is_terminal]
        if not pending:
            return []
        resolved: list[tuple[OrderItemSnapshot, ProviderCredentials]] = []
        async with self._database.session() as session:
            providers = ProviderService.with_session(session, self._settings.supplier)
            for item in pending:
                try:
                    provider = await providers.get(item.provider_id or "")
                except ProviderNotFoundError:
                    try:
                        provider = await providers.resolve_for_network(item.network or order.network)
                    except ProviderError as exc:
                        logger.warning("Cannot poll %s for order %s: %s", item.phone, order.reference, exc)
                        continue
                resolved.append((item, provider))
        return resolved

    async def _poll(
        self, provider: ProviderCredentials, item: OrderItemSnapshot, *, attempts: int
    ) -> SupplierResponse | None:
        assert item.provider_reference is not None
        for attempt in range(1, max(1, attempts) + 1):
            try:
                response = await self._supplier.get_order_status(provider, item.provider_reference)
            except SupplierError as exc:
                logger.warning(
                    "Status poll for %s (%s) failed on attempt %s: %s",
                    item.provider_reference,
                    item.phone,
                    attempt,
                    exc,
                )
            else:
                if response.ok:
                    return response
                logger.warning(
                    "Status poll for %s returned HTTP %s: %s",
                    item.provider_reference,
                    response.status_code,
                    response.error,
                )
            if attempt < attempts:
                await self._sleep(self._settings.settlement.verify_retry_delay)
        return None


def _as_text(payload: Any) -> str:
    if isinstance(payload, (bytes, bytearray)):
        return payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, default=str)


def _failure_reason(payload: Any, provider_status: str | None) -> str:
    data: Any = payload
    if isinstance(payload, (str, bytes, bytearray)):
        try:
            data = json.loads(payload)
        except ValueError:
            data = None
    if isinstance(data, dict):
        nested = data.get("data") if isinstance(data.get("data"), dict) else data
        message = nested.get("error") or nested.get("message") or nested.get("reason")
        if message:
            return str(message)
    return f"Provider reported {provider_status}"
