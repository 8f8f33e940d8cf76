import json

import pytest

from settlement.modules.checkout import AuthenticationRequiredError, CheckoutError, CheckoutRequest, MixedProductTypesError
from settlement.modules.common.enums import BuyerRole, OrderStatus, PaymentMethod, PaymentStatus
from settlement.modules.ledger import InsufficientFundsError, LedgerService
from settlement.modules.orders import OrderService
from settlement.modules.payments import PaystackError
from settlement.modules.pricing import BuyerContext, LineRequest

USER = BuyerContext(user_id="user-1", role=BuyerRole.USER)


def bulk(product_id: str, *phones: str) -> CheckoutRequest:
    return CheckoutRequest(lines=tuple(LineRequest(phone=phone, product_id=product_id) for phone in phones))


class TestWalletCheckout:
    async def test_wallet_purchase_debits_and_confirms(self, container, database, bundle, seed):
        await seed.wallet("user-1", 1000)

        result = await container.checkout.checkout(
            CheckoutRequest.single(bundle.id, "024 123 4567"), USER, PaymentMethod.WALLET
        )

        assert result.order.status is OrderStatus.CONFIRMED
        assert result.order.payment_status is PaymentStatus.PAID
        assert result.order.customer_phone == "0241234567"
        assert result.wallet.balance_minor == 700
        assert result.queued
        assert container.queue.stats().queued == 1

    async def test_insufficient_balance_leaves_no_order(self, container, database, bundle, seed):
        await seed.wallet("user-1", 100)

        with pytest.raises(InsufficientFundsError):
            await container.checkout.checkout(CheckoutRequest.single(bundle.id, "0241234567"), USER, PaymentMethod.WALLET)

        async with database.session() as session:
            wallet = await LedgerService.with_session(session).ensure_wallet("user-1")
            assert await OrderService.with_session(session).list_for_buyer("user-1") == []
        assert wallet.balance_minor == 100

    async def test_guest_cannot_pay_from_wallet(self, container, bundle):
        with pytest.raises(AuthenticationRequiredError):
            await container.checkout.checkout(
                CheckoutRequest.single(bundle.id, "0241234567"), BuyerContext.guest(), PaymentMethod.WALLET
            )

    async def test_bulk_order_debits_full_amount(self, container, bundle, seed):
        await seed.wallet("user-1", 1000)

        result = await container.checkout.checkout(
            bulk(bundle.id, "0241111111", "0242222222", "0243333333"), USER, PaymentMethod.WALLET
        )

        assert result.order.is_bulk
        assert result.order.amount_minor == 900
        assert len(result.order.items) == 3
        assert result.wallet.balance_minor == 100
        assert len({entry.idempotency_key for entry in result.order.items}) == 3

    async def test_reseller_order_carries_the_margin(self, container, bundle, seed):
        agent = await seed.reseller("agent-1")
        await seed.custom_price(bundle.id, agent, 350)
        await seed.wallet("agent-1", 1000)

        result = await container.checkout.checkout(
            CheckoutRequest.single(bundle.id, "0241234567"), agent, PaymentMethod.WALLET
        )

        assert result.order.amount_minor == 350
        assert result.order.agent_profit_minor == 50
        assert result.order.profit_minor == 300
        assert result.order.reseller_id == agent.reseller_id


class TestPaystackCheckout:
    async def test_guest_checkout_starts_a_payment(self, container, bundle, upstream):
        result = await container.checkout.checkout(
            CheckoutRequest.single(bundle.id, "0241234567"), BuyerContext.guest(), PaymentMethod.PAYSTACK
        )

        assert result.order.status is OrderStatus.PENDING
        assert result.order.payment_status is PaymentStatus.PENDING
        assert result.payment.authorization_url.endswith(result.order.reference)
        initialize = json.loads(upstream.requests[-1].content)
        assert initialize["amount"] == 300
        assert initialize["email"] == "0241234567@guest.resellershub.local"
        assert initialize["metadata"]["order_reference"] == result.order.reference
        assert not result.queued

    async def test_gateway_outage_fails_the_order(self, container, database, bundle, upstream):
        upstream.paystack_down = True

        with pytest.raises(PaystackError):
            await container.checkout.checkout(
                CheckoutRequest.single(bundle.id, "0241234567"), BuyerContext.guest(), PaymentMethod.PAYSTACK
            )

        reference = json.loads(upstream.requests[-1].content)["reference"]
        async with database.session() as session:
            order = await OrderService.with_session(session).get(reference)
        assert order.status is OrderStatus.FAILED
        assert order.payment_status is PaymentStatus.FAILED


class TestCheckoutValidation:
    async def test_mixed_product_types_are_rejected(self, container, bundle, checker):
        request = CheckoutRequest(
            lines=(
                LineRequest(phone="0241234567", product_id=bundle.id),
                LineRequest(phone="0241234568", product_id=checker.id),
            )
        )

        with pytest.raises(MixedProductTypesError):
            await container.checkout.checkout(request, BuyerContext.guest(), PaymentMethod.PAYSTACK)

    async def test_empty_request_is_rejected(self, container):
        with pytest.raises(CheckoutError):
            await container.checkout.checkout(CheckoutRequest(lines=()), BuyerContext.guest(), PaymentMethod.PAYSTACK)

    async def test_result_checker_order_takes_one_line(self, container, checker):
        with pytest.raises(CheckoutError):
            await container.checkout.checkout(
                bulk(checker.id, "0241234567", "0241234568"), BuyerContext.guest(), PaymentMethod.PAYSTACK
            )
