from datetime import datetime, timedelta, timezone

import pytest

from settlement.modules.checkout import CheckoutRequest
from settlement.modules.common import PhoneValidationError
from settlement.modules.common.enums import BuyerRole, PaymentMethod, PaymentStatus
from settlement.modules.cooldown import CooldownActiveError, CooldownGuard
from settlement.modules.pricing import BuyerContext

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
USER = BuyerContext(user_id="user-1", role=BuyerRole.USER)


class StubCooldownRepository:
    def __init__(self, latest: dict[str, datetime]) -> None:
        self.latest = latest

    async def latest_bundle_order_at(self, phone: str) -> datetime | None:
        return self.latest.get(phone)


class TestCooldownGuard:
    async def test_phone_without_history_is_allowed(self):
        guard = CooldownGuard(StubCooldownRepository({}), 1200, lambda: NOW)

        decision = await guard.check("0241234567")

        assert decision.allowed
        assert decision.remaining_minutes == 0

    async def test_recent_purchase_blocks_with_remaining_time(self):
        guard = CooldownGuard(StubCooldownRepository({"0241234567": NOW - timedelta(minutes=5)}), 1200, lambda: NOW)

        decision = await guard.check("+233 24 123 4567")

        assert not decision.allowed
        assert decision.remaining_seconds == 900
        assert decision.remaining_minutes == 15

    async def test_window_elapsed_allows_again(self):
        guard = CooldownGuard(StubCooldownRepository({"0241234567": NOW - timedelta(minutes=20)}), 1200, lambda: NOW)

        assert (await guard.check("0241234567")).allowed

    async def test_naive_timestamps_are_read_as_utc(self):
        naive = (NOW - timedelta(minutes=19)).replace(tzinfo=None)
        guard = CooldownGuard(StubCooldownRepository({"0241234567": naive}), 1200, lambda: NOW)

        decision = await guard.check("0241234567")

        assert decision.remaining_minutes == 1

    async def test_check_many_raises_for_first_blocked_phone(self):
        repository = StubCooldownRepository({"0209876543": NOW - timedelta(minutes=2)})
        guard = CooldownGuard(repository, 1200, lambda: NOW)

        with pytest.raises(CooldownActiveError) as excinfo:
            await guard.check_many(["0241234567", "0209876543", "0241234567"])

        assert excinfo.value.phone == "0209876543"
        assert excinfo.value.remaining_minutes == 18

    async def test_invalid_phone_is_rejected(self):
        guard = CooldownGuard(StubCooldownRepository({}), 1200, lambda: NOW)

        with pytest.raises(PhoneValidationError):
            await guard.check("12345")


class TestCheckoutCooldown:
    async def test_second_purchase_five_minutes_later_is_rejected(self, container, clock, bundle, seed):
        """Minute 0 succeeds; minute 5 is refused with about 15 minutes to wait."""
        await seed.wallet("user-1", 1000)
        request = CheckoutRequest.single(bundle.id, "0241234567")
        await container.checkout.checkout(request, USER, PaymentMethod.WALLET)

        clock.advance(minutes=5)
        with pytest.raises(CooldownActiveError) as excinfo:
            await container.checkout.checkout(request, USER, PaymentMethod.WALLET)

        assert excinfo.value.remaining_minutes == 15

    async def test_paid_gateway_order_starts_the_cooldown(self, container, clock, bundle, upstream):
        request = CheckoutRequest.single(bundle.id, "0241234567")
        first = await container.checkout.checkout(request, BuyerContext.guest(), PaymentMethod.PAYSTACK)
        upstream.settle_transaction(first.order.reference)
        await container.reconciliation.verify(first.order.reference)

        clock.advance(minutes=2)
        with pytest.raises(CooldownActiveError) as excinfo:
            await container.checkout.checkout(request, BuyerContext.guest(), PaymentMethod.PAYSTACK)

        assert excinfo.value.remaining_minutes == 18

    async def test_abandoned_checkout_does_not_block_the_phone(self, container, clock, bundle, seed):
        await seed.wallet("user-1", 1000)
        request = CheckoutRequest.single(bundle.id, "0241234567")
        abandoned = await container.checkout.checkout(request, BuyerContext.guest(), PaymentMethod.PAYSTACK)

        clock.advance(minutes=1)
        purchase = await container.checkout.checkout(request, USER, PaymentMethod.WALLET)

        assert abandoned.order.payment_status is PaymentStatus.PENDING
        assert purchase.order.payment_status is PaymentStatus.PAID

    async def test_failed_payment_does_not_start_a_cooldown(self, container, clock, bundle, upstream):
        request = CheckoutRequest.single(bundle.id, "0241234567")
        first = await container.checkout.checkout(request, BuyerContext.guest(), PaymentMethod.PAYSTACK)
        upstream.settle_transaction(first.order.reference, "failed")
        await container.reconciliation.verify(first.order.reference)

        clock.advance(minutes=1)
        second = await container.checkout.checkout(request, BuyerContext.guest(), PaymentMethod.PAYSTACK)

        assert second.order.reference != first.order.reference

    async def test_result_checkers_are_not_rate_limited(self, container, checker):
        request = CheckoutRequest.single(checker.id, "0241234567")
        await container.checkout.checkout(request, BuyerContext.guest(), PaymentMethod.PAYSTACK)

        second = await container.checkout.checkout(request, BuyerContext.guest(), PaymentMethod.PAYSTACK)

        assert second.order.amount_minor == 1500
