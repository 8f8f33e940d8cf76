import asyncio
import json
from datetime import timedelta

import pytest

from settlement.core.signing import paystack_signature, sign_supplier_request
from settlement.modules.checkout import CheckoutRequest
from settlement.modules.common.enums import (
    BuyerRole,
    DeliveryStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    WalletEntryType,
)
from settlement.modules.ledger import LedgerService
from settlement.modules.orders import OrderService
from settlement.modules.pricing import BuyerContext, LineRequest
from settlement.modules.reconciliation import (
    ProviderOutcome,
    WebhookPayloadError,
    WebhookSignatureError,
    map_provider_status,
)

from conftest import PAYSTACK_SECRET, SUPPLIER_SECRET

USER = BuyerContext(user_id="user-1", role=BuyerRole.USER)
WEBHOOK_PATH = "/api/webhooks/supplier"


def bulk(product_id: str, *phones: str) -> CheckoutRequest:
    return CheckoutRequest(lines=tuple(LineRequest(phone=phone, product_id=product_id) for phone in phones))


async def load(database, reference: str):
    async with database.session() as session:
        return await OrderService.with_session(session).get(reference)


async def supplier_event(container, ref: str, status: str, **extra):
    body = json.dumps({"ref": ref, "status": status, **extra})
    timestamp, signature = sign_supplier_request(SUPPLIER_SECRET, "POST", WEBHOOK_PATH, body)
    return await container.reconciliation.handle_supplier_webhook(
        body.encode("utf-8"), path=WEBHOOK_PATH, timestamp=timestamp, signature=signature
    )


async def paystack_event(container, event: str, data: dict):
    raw = json.dumps({"event": event, "data": data}).encode("utf-8")
    return await container.reconciliation.handle_paystack_webhook(raw, paystack_signature(PAYSTACK_SECRET, raw))


class TestProviderStatusVocabulary:
    @pytest.mark.parametrize("raw", ["completed", "Delivered", " success "])
    def test_delivered_synonyms(self, raw):
        assert map_provider_status(raw) is ProviderOutcome.DELIVERED

    def test_unknown_status_maps_to_nothing(self):
        assert map_provider_status("on_hold") is None
        assert map_provider_status(None) is None


class TestPartialBulkFailure:
    async def test_one_rejected_recipient_fails_the_order_without_refund(
        self, container, database, seed, bundle, provider, upstream
    ):
        await seed.wallet("user-1", 900)
        upstream.rejected["0242222222"] = "Invalid recipient"
        result = await container.checkout.checkout(
            bulk(bundle.id, "0241111111", "0242222222", "0243333333"), USER, PaymentMethod.WALLET
        )
        reference = result.order.reference
        await container.fulfillment.process(reference)

        upstream.report("0241111111", "completed")
        upstream.report("0243333333", "completed")
        order = await container.reconciliation.verify(reference)

        assert order.status is OrderStatus.FAILED
        assert order.delivery_status is DeliveryStatus.FAILED
        assert order.failure_reason == "Delivery failed for: 0242222222 (Invalid recipient)"
        delivered = [entry.phone for entry in order.items if entry.delivery_status is DeliveryStatus.DELIVERED]
        assert sorted(delivered) == ["0241111111", "0243333333"]

        async with database.session() as session:
            ledger = LedgerService.with_session(session)
            wallet = await ledger.ensure_wallet("user-1")
            entries = await ledger.list_wallet_entries("user-1")
        assert wallet.balance_minor == 0
        assert [entry.type for entry in entries] == [WalletEntryType.DEBIT]


class TestConcurrentCompletion:
    async def test_webhook_and_verify_racing_settle_once(self, container, database, seed, bundle, provider, upstream):
        agent = await seed.reseller("agent-1")
        await seed.custom_price(bundle.id, agent, 350)
        await seed.wallet("agent-1", 1000)
        result = await container.checkout.checkout(
            CheckoutRequest.single(bundle.id, "0241234567"), agent, PaymentMethod.WALLET
        )
        reference = result.order.reference
        await container.fulfillment.process(reference)
        ref = upstream.report("0241234567", "completed")

        await asyncio.gather(
            supplier_event(container, ref, "completed"),
            container.reconciliation.verify(reference),
        )

        order = await load(database, reference)
        assert order.status is OrderStatus.COMPLETED
        assert order.settled_at is not None
        async with database.session() as session:
            ledger = LedgerService.with_session(session)
            profit = await ledger.ensure_profit_wallet(agent.reseller_id)
            entries = await ledger.list_profit_entries(agent.reseller_id)
        assert profit.available_minor == 50
        assert profit.total_earned_minor == 50
        assert len(entries) == 1

    async def test_late_status_after_completion_is_ignored(self, container, database, seed, bundle, provider, upstream):
        await seed.wallet("user-1", 1000)
        result = await container.checkout.checkout(
            CheckoutRequest.single(bundle.id, "0241234567"), USER, PaymentMethod.WALLET
        )
        await container.fulfillment.process(result.order.reference)
        ref = upstream.ref_for("0241234567")

        await supplier_event(container, ref, "completed")
        order = await supplier_event(container, ref, "failed", error="Recipient unreachable")

        assert order.status is OrderStatus.COMPLETED
        assert order.items[0].delivery_status is DeliveryStatus.DELIVERED


class TestSupplierWebhook:
    async def test_bad_signature_is_rejected(self, container, provider):
        with pytest.raises(WebhookSignatureError):
            await container.reconciliation.handle_supplier_webhook(
                b'{"ref": "SUP-1", "status": "completed"}', path=WEBHOOK_PATH, timestamp="1", signature="deadbeef"
            )

    async def test_unknown_reference_is_dropped(self, container, provider):
        assert await supplier_event(container, "SUP-404", "completed") is None

    async def test_owning_order_is_found_from_a_fresh_session(self, container, database, seed, bundle, provider, upstream):
        await seed.wallet("user-1", 1000)
        result = await container.checkout.checkout(
            CheckoutRequest.single(bundle.id, "0241234567"), USER, PaymentMethod.WALLET
        )
        await container.fulfillment.process(result.order.reference)

        async with database.session() as session:
            orders = OrderService.with_session(session)
            by_ref = await orders.find_by_provider_reference(upstream.ref_for("0241234567"))
            by_key = await orders.find_by_provider_reference(f"{result.order.reference}-0241234567")

        assert by_ref is not None and by_key is not None
        assert by_ref[0].reference == by_key[0].reference == result.order.reference
        assert by_ref[1].phone == "0241234567"

    async def test_malformed_bodies_are_payload_errors(self, container, provider):
        body = json.dumps([{"ref": "SUP-1", "status": "completed"}])
        timestamp, signature = sign_supplier_request(SUPPLIER_SECRET, "POST", WEBHOOK_PATH, body)

        with pytest.raises(WebhookPayloadError):
            await container.reconciliation.handle_supplier_webhook(
                body.encode("utf-8"), path=WEBHOOK_PATH, timestamp=timestamp, signature=signature
            )
        with pytest.raises(WebhookPayloadError):
            await container.reconciliation.handle_supplier_webhook(
                b"\xff\xfe\x00", path=WEBHOOK_PATH, timestamp=timestamp, signature=signature
            )

    async def test_failure_carries_provider_reason(self, container, database, seed, bundle, provider, upstream):
        await seed.wallet("user-1", 1000)
        result = await container.checkout.checkout(
            CheckoutRequest.single(bundle.id, "0241234567"), USER, PaymentMethod.WALLET
        )
        await container.fulfillment.process(result.order.reference)

        order = await supplier_event(container, upstream.ref_for("0241234567"), "failed", error="Number not registered")

        assert order.status is OrderStatus.FAILED
        assert order.failure_reason == "Delivery failed for: 0241234567 (Number not registered)"

    async def test_unrecognized_status_changes_nothing(self, container, seed, bundle, provider, upstream):
        await seed.wallet("user-1", 1000)
        result = await container.checkout.checkout(
            CheckoutRequest.single(bundle.id, "0241234567"), USER, PaymentMethod.WALLET
        )
        await container.fulfillment.process(result.order.reference)

        order = await supplier_event(container, upstream.ref_for("0241234567"), "on_hold")

        assert order.status is OrderStatus.CONFIRMED
        assert order.items[0].delivery_status is DeliveryStatus.PENDING


class TestPaystackConfirmation:
    async def _guest_order(self, container, bundle) -> str:
        result = await container.checkout.checkout(
            CheckoutRequest.single(bundle.id, "0241234567"), BuyerContext.guest(), PaymentMethod.PAYSTACK
        )
        return result.order.reference

    async def test_charge_success_webhook_confirms_and_queues(self, container, bundle):
        reference = await self._guest_order(container, bundle)

        result = await paystack_event(container, "charge.success", {"reference": reference, "amount": 300})

        assert result.outcome == "order_confirmed"
        assert container.queue.stats().queued == 1

    async def test_replayed_webhook_is_a_no_op(self, container, bundle):
        reference = await self._guest_order(container, bundle)

        await paystack_event(container, "charge.success", {"reference": reference, "amount": 300})
        await paystack_event(container, "charge.success", {"reference": reference, "amount": 300})

        assert container.queue.stats().queued == 1

    async def test_underpayment_fails_the_order(self, container, database, bundle):
        reference = await self._guest_order(container, bundle)

        result = await paystack_event(container, "charge.success", {"reference": reference, "amount": 100})

        assert result.outcome == "order_failed"
        order = await load(database, reference)
        assert order.payment_status is PaymentStatus.FAILED

    async def test_bad_signature_is_rejected(self, container):
        with pytest.raises(WebhookSignatureError):
            await container.reconciliation.handle_paystack_webhook(b'{"event": "charge.success"}', "bogus")

    async def test_unknown_reference_is_ignored(self, container):
        result = await paystack_event(container, "charge.success", {"reference": "ORD-NOPE", "amount": 300})

        assert result.outcome == "ignored"

    async def test_malformed_events_are_payload_errors(self, container, bundle):
        reference = await self._guest_order(container, bundle)
        listed = b'[{"event": "charge.success"}]'

        with pytest.raises(WebhookPayloadError):
            await container.reconciliation.handle_paystack_webhook(listed, paystack_signature(PAYSTACK_SECRET, listed))
        with pytest.raises(WebhookPayloadError):
            await paystack_event(container, "charge.success", {"reference": reference, "amount": "three cedis"})

        order = await container.reconciliation.verify(reference)
        assert order.payment_status is PaymentStatus.PENDING

    async def test_verify_polls_the_gateway(self, container, database, bundle, upstream):
        reference = await self._guest_order(container, bundle)
        upstream.settle_transaction(reference, "success")

        order = await container.reconciliation.verify(reference)

        assert order.status is OrderStatus.CONFIRMED
        assert order.payment_status is PaymentStatus.PAID
        assert container.queue.stats().queued == 1

    async def test_verify_leaves_unsettled_payment_pending(self, container, bundle):
        reference = await self._guest_order(container, bundle)

        order = await container.reconciliation.verify(reference)

        assert order.status is OrderStatus.PENDING
        assert order.payment_status is PaymentStatus.PENDING


class TestSweep:
    async def test_sweep_polls_stale_orders(self, container, database, seed, bundle, provider, upstream, clock):
        await seed.wallet("user-1", 1000)
        result = await container.checkout.checkout(
            CheckoutRequest.single(bundle.id, "0241234567"), USER, PaymentMethod.WALLET
        )
        await container.fulfillment.process(result.order.reference)
        upstream.report("0241234567", "completed")

        fresh = await container.reconciliation.sweep_pending()
        clock.advance(minutes=10)
        stale = await container.reconciliation.sweep_pending()

        assert fresh.checked == 0
        assert (stale.checked, stale.polled, stale.updated) == (1, 1, 1)
        order = await load(database, result.order.reference)
        assert order.status is OrderStatus.COMPLETED

    async def test_sweep_requeues_undispatched_orders(self, container, seed, bundle, clock):
        await seed.wallet("user-1", 1000)
        await container.checkout.checkout(CheckoutRequest.single(bundle.id, "0241234567"), USER, PaymentMethod.WALLET)
        clock.advance(minutes=10)

        report = await container.reconciliation.sweep_pending()

        assert report.requeued == 1
        assert container.queue.stats().queued == 2

    async def test_cleanup_flags_old_failures(self, container, database, seed, bundle, clock):
        await seed.wallet("user-1", 1000)
        result = await container.checkout.checkout(
            CheckoutRequest.single(bundle.id, "0241234567"), USER, PaymentMethod.WALLET
        )
        await container.fulfillment.process(result.order.reference)

        assert await container.reconciliation.cleanup_failed() == 0
        clock.advance(hours=25)
        assert await container.reconciliation.cleanup_failed() == 1
        assert await container.reconciliation.cleanup_failed() == 0

        order = await load(database, result.order.reference)
        assert order.permanently_failed
        assert order.status is OrderStatus.FAILED

    async def test_sweep_ignores_polling_errors(self, container, seed, bundle, provider, upstream, clock):
        await seed.wallet("user-1", 1000)
        result = await container.checkout.checkout(
            CheckoutRequest.single(bundle.id, "0241234567"), USER, PaymentMethod.WALLET
        )
        await container.fulfillment.process(result.order.reference)
        upstream.statuses.clear()
        clock.advance(minutes=10)

        report = await container.reconciliation.sweep_pending(timedelta(minutes=5))

        assert report.errors == 1
        assert report.updated == 0
