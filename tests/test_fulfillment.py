import asyncio
import json
import logging

from settlement.modules.checkout import CheckoutRequest
from settlement.modules.common.enums import BuyerRole, DeliveryStatus, OrderStatus, PaymentMethod
from settlement.modules.fulfillment import FulfillmentQueue, parse_capacity_mb
from settlement.modules.ledger import LedgerService
from settlement.modules.orders import OrderService
from settlement.modules.pricing import BuyerContext, LineRequest

USER = BuyerContext(user_id="user-1", role=BuyerRole.USER)


async def wallet_order(container, seed, product_id: str, *phones: str) -> str:
    await seed.wallet("user-1", 10_000)
    request = CheckoutRequest(lines=tuple(LineRequest(phone=phone, product_id=product_id) for phone in phones))
    result = await container.checkout.checkout(request, USER, PaymentMethod.WALLET)
    return result.order.reference


async def load(database, reference: str):
    async with database.session() as session:
        return await OrderService.with_session(session).get(reference)


class TestDispatch:
    async def test_items_are_submitted_with_signed_canonical_body(self, container, database, seed, bundle, provider, upstream):
        reference = await wallet_order(container, seed, bundle.id, "0241234567")

        retry = await container.fulfillment.process(reference)

        assert not retry
        [submitted] = upstream.supplier_orders()
        assert submitted == {
            "network": "MTN",
            "recipient": "0241234567",
            "capacity": 1024,
            "idempotencyKey": f"{reference}-0241234567",
        }
        order = await load(database, reference)
        assert order.items[0].provider_reference == upstream.ref_for("0241234567")
        assert order.items[0].provider_id == provider.id
        assert order.items[0].attempts == 1
        assert order.status is OrderStatus.CONFIRMED

    async def test_processing_twice_does_not_resubmit(self, container, seed, bundle, provider, upstream):
        reference = await wallet_order(container, seed, bundle.id, "0241234567")

        await container.fulfillment.process(reference)
        await container.fulfillment.process(reference)

        assert len(upstream.supplier_orders()) == 1

    async def test_rejection_fails_only_that_item(self, container, database, seed, bundle, provider, upstream):
        upstream.rejected["0242222222"] = "Invalid recipient"
        reference = await wallet_order(container, seed, bundle.id, "0241111111", "0242222222", "0243333333")

        retry = await container.fulfillment.process(reference)

        assert not retry
        order = await load(database, reference)
        statuses = {entry.phone: (entry.delivery_status, entry.retryable) for entry in order.items}
        assert statuses["0242222222"] == (DeliveryStatus.FAILED, False)
        assert statuses["0241111111"] == (DeliveryStatus.PENDING, False)
        assert len(upstream.supplier_orders()) == 3
        assert order.status is OrderStatus.PROCESSING

    async def test_transport_error_is_retried_until_attempts_run_out(self, container, database, seed, bundle, provider, upstream):
        upstream.unreachable.add("0241234567")
        reference = await wallet_order(container, seed, bundle.id, "0241234567")

        assert await container.fulfillment.process(reference)
        assert await container.fulfillment.process(reference)
        assert not await container.fulfillment.process(reference)

        order = await load(database, reference)
        assert order.items[0].attempts == 3
        assert order.items[0].delivery_status is DeliveryStatus.FAILED
        assert order.status is OrderStatus.FAILED
        assert "0241234567" in order.failure_reason

    async def test_duplicate_submission_keeps_original_reference(self, container, database, seed, bundle, provider, upstream):
        reference = await wallet_order(container, seed, bundle.id, "0241234567")
        upstream.accepted[f"{reference}-0241234567"] = "SUP-ORIGINAL"

        await container.fulfillment.process(reference)

        order = await load(database, reference)
        assert order.items[0].provider_reference == "SUP-ORIGINAL"
        assert order.items[0].delivery_status is DeliveryStatus.PENDING

    async def test_missing_provider_fails_the_items(self, container, database, seed, bundle):
        reference = await wallet_order(container, seed, bundle.id, "0241234567")

        await container.fulfillment.process(reference)

        order = await load(database, reference)
        assert order.status is OrderStatus.FAILED
        assert "No active provider" in order.items[0].failure_reason

    async def test_supplier_calls_run_outside_the_write_transaction(
        self, container, database, seed, bundle, provider, upstream
    ):
        reference = await wallet_order(container, seed, bundle.id, "0241111111", "0242222222")
        observed: list[dict[str, str | None]] = []

        async def during_supplier_call(payload):
            async with database.session() as session:
                await LedgerService.with_session(session).credit_wallet(
                    "user-2", 100, reference=f"TOPUP-{payload['recipient']}"
                )
            order = await load(database, reference)
            observed.append({entry.phone: entry.provider_reference for entry in order.items})

        upstream.on_supplier_order = during_supplier_call
        await container.fulfillment.process(reference)

        assert observed[0] == {"0241111111": None, "0242222222": None}
        assert observed[1]["0241111111"] is not None
        assert observed[1]["0242222222"] is None
        async with database.session() as session:
            wallet = await LedgerService.with_session(session).ensure_wallet("user-2")
        assert wallet.balance_minor == 200

    async def test_result_checker_is_delivered_from_stock(self, container, database, seed, checker, upstream):
        reference = await wallet_order(container, seed, checker.id, "0241234567")

        await container.fulfillment.process(reference)

        order = await load(database, reference)
        assert order.status is OrderStatus.COMPLETED
        assert order.items[0].delivered_pin == "PIN-0"
        assert order.items[0].delivered_serial == "SN-0"
        assert upstream.supplier_orders() == []


    async def test_short_stock_fails_without_selling_any_unit(self, container, database, seed, checker, caplog):
        await seed.wallet("user-1", 10_000)
        short = await container.checkout.checkout(
            CheckoutRequest.single(checker.id, "0241234567", quantity=3), USER, PaymentMethod.WALLET
        )

        with caplog.at_level(logging.WARNING, logger="settlement.modules.fulfillment.dispatcher"):
            await container.fulfillment.process(short.order.reference)

        order = await load(database, short.order.reference)
        assert order.status is OrderStatus.FAILED
        assert order.items[0].failure_reason == "Result checker out of stock"
        assert "3 requested, 2 available" in caplog.text
        covered = await container.checkout.checkout(
            CheckoutRequest.single(checker.id, "0241234567", quantity=2), USER, PaymentMethod.WALLET
        )
        await container.fulfillment.process(covered.order.reference)
        assert (await load(database, covered.order.reference)).items[0].delivered_serial == "SN-0,SN-1"


class TestCapacity:
    def test_gigabytes_and_megabytes(self):
        assert parse_capacity_mb("1GB") == 1024
        assert parse_capacity_mb("1.5 gb") == 1536
        assert parse_capacity_mb("500MB") == 500

    def test_falls_back_to_bundle_name_then_one_gigabyte(self):
        assert parse_capacity_mb(None, "MTN 2GB Bundle") == 2048
        assert parse_capacity_mb(None, None) == 1024


class TestQueue:
    async def test_jobs_are_processed_by_workers(self):
        seen: list[str] = []

        async def processor(reference: str) -> bool:
            seen.append(reference)
            return False

        queue = FulfillmentQueue(processor, workers=2)
        await queue.start()
        try:
            assert queue.submit("ORD-1")
            assert queue.submit("ORD-2")
            await asyncio.wait_for(queue.join(), timeout=5)
        finally:
            await queue.stop()

        assert sorted(seen) == ["ORD-1", "ORD-2"]
        assert queue.stats().processed == 2
        assert not queue.running

    async def test_retryable_jobs_back_off_and_stop_at_max_attempts(self):
        calls: list[str] = []

        async def processor(reference: str) -> bool:
            calls.append(reference)
            return True

        queue = FulfillmentQueue(processor, workers=1, max_attempts=3, retry_base_delay=0.001)
        await queue.start()
        try:
            queue.submit("ORD-1")
            await asyncio.wait_for(queue.join(), timeout=5)
        finally:
            await queue.stop()

        assert calls == ["ORD-1", "ORD-1", "ORD-1"]
        assert queue.stats().retried == 2

    async def test_processor_errors_do_not_kill_the_worker(self):
        async def processor(reference: str) -> bool:
            if reference == "boom":
                raise RuntimeError("boom")
            return False

        queue = FulfillmentQueue(processor, workers=1)
        await queue.start()
        try:
            queue.submit("boom")
            queue.submit("ORD-1")
            await asyncio.wait_for(queue.join(), timeout=5)
        finally:
            await queue.stop()

        stats = queue.stats()
        assert stats.failed == 1
        assert stats.processed == 1

    async def test_full_queue_rejects_submissions(self):
        async def processor(reference: str) -> bool:
            return False

        queue = FulfillmentQueue(processor, maxsize=1)

        assert queue.submit("ORD-1")
        assert not queue.submit("ORD-2")
        assert queue.stats().dropped == 1

    async def test_end_to_end_through_the_container_queue(self, container, database, seed, bundle, provider, upstream):
        reference = await wallet_order(container, seed, bundle.id, "0241234567")

        await container.queue.start()
        await asyncio.wait_for(container.queue.join(), timeout=5)

        order = await load(database, reference)
        assert order.items[0].provider_reference is not None
        assert json.loads(upstream.requests[-1].content)["recipient"] == "0241234567"
