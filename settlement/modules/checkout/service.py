"""Checkout orchestration shared by single, bulk and wallet-funded purchases."""

from __future__ import annotations

import logging
from typing import Optional, assert_never

from sqlalchemy.ext.asyncio import AsyncSession

from settlement.core.config import Settings
from settlement.core.locks import KeyedLock
from settlement.infrastructure.database import Database
from settlement.modules.common import new_reference, validate_phone
from settlement.modules.common.clock import Clock, utcnow
from settlement.modules.common.enums import PaymentMethod, ProductType
from settlement.modules.cooldown import CooldownGuard
from settlement.modules.fulfillment import FulfillmentQueue, parse_capacity_mb
from settlement.modules.ledger import LedgerService, WalletSnapshot, wallet_lock_key
from settlement.modules.orders import NewOrder, NewOrderItem, OrderService, OrderSnapshot
from settlement.modules.payments import PaystackClient, PaystackError, PaystackSetupIntent
from settlement.modules.pricing import BuyerContext, LineRequest, PricedOrder, PriceResolver

from .exceptions import AuthenticationRequiredError, CheckoutError, MixedProductTypesError
from .models import CheckoutRequest, CheckoutResult

logger = logging.getLogger(__name__)

GUEST_EMAIL_DOMAIN = "guest.resellershub.local"


def phone_lock_key(phone: str) -> str:
    return f"phone:{phone}"


class CheckoutService:
    def __init__(
        self,
        database: Database,
        paystack: PaystackClient,
        locks: KeyedLock,
        settings: Settings,
        queue: Optional[FulfillmentQueue] = None,
        clock: Clock = utcnow,
    ) -> None:
        self._database = database
        self._paystack = paystack
        self._locks = locks
        self._settings = settings
        self._queue = queue
        self._clock = clock

    async def checkout(
        self,
        request: CheckoutRequest,
        buyer: BuyerContext,
        payment_method: PaymentMethod,
    ) -> CheckoutResult:
        if not request.lines:
            raise CheckoutError("At least one beneficiary is required")
        if payment_method is PaymentMethod.WALLET and buyer.user_id is None:
            raise AuthenticationRequiredError()

        lines = tuple(
            LineRequest(phone=validate_phone(line.phone), product_id=line.product_id, quantity=line.quantity)
            for line in request.lines
        )
        async with self._database.session() as session:
            priced = await PriceResolver.with_session(session).resolve_lines(lines, buyer)
            self._ledger(session).assert_split(
                priced.amount_minor, priced.agent_profit_minor, priced.platform_revenue_minor
            )
        product_type = self._product_type(priced)

        reference = new_reference("ORD")
        phones = sorted({line.phone for line in lines})
        keys = [phone_lock_key(phone) for phone in phones]
        if payment_method is PaymentMethod.WALLET:
            assert buyer.user_id is not None
            keys.append(wallet_lock_key(buyer.user_id))

        wallet: WalletSnapshot | None = None
        async with self._locks.hold_many(keys):
            async with self._database.session() as session:
                if product_type is ProductType.DATA_BUNDLE:
                    guard = CooldownGuard.with_session(session, self._settings.cooldown_seconds, self._clock)
                    await guard.check_many(phones)

                orders = OrderService.with_session(session, self._clock)
                order = await orders.create(self._new_order(reference, request, priced, product_type, buyer, payment_method))
                if payment_method is PaymentMethod.WALLET:
                    assert buyer.user_id is not None
                    wallet = await self._ledger(session).reserve_and_debit(
                        buyer.user_id,
                        order.amount_minor,
                        order_reference=reference,
                        description=f"Purchase {order.product_name}",
                    )
                    await orders.confirm_payment(reference)
                    order = await orders.get(reference)

        match payment_method:
            case PaymentMethod.WALLET:
                queued = self._queue.submit(reference) if self._queue is not None else False
                if not queued:
                    logger.warning("Order %s paid but not queued; the sweep will dispatch it", reference)
                return CheckoutResult(order=order, wallet=wallet, queued=queued)
            case PaymentMethod.PAYSTACK:
                intent = await self._start_payment(order, request, buyer)
                return CheckoutResult(order=order, payment=intent)
            case _:
                assert_never(payment_method)

    async def _start_payment(
        self, order: OrderSnapshot, request: CheckoutRequest, buyer: BuyerContext
    ) -> PaystackSetupIntent:
        email = request.customer_email or f"{order.customer_phone}@{GUEST_EMAIL_DOMAIN}"
        try:
            return await self._paystack.initialize_transaction(
                email=email,
                amount_minor=order.amount_minor,
                reference=order.reference,
                metadata={
                    "type": "order",
                    "order_reference": order.reference,
                    "buyer_id": buyer.user_id,
                    "items": len(order.items),
                },
                callback_url=request.callback_url,
            )
        except PaystackError as exc:
            logger.warning("Paystack initialization failed for %s: %s", order.reference, exc)
            async with self._database.session() as session:
                await OrderService.with_session(session, self._clock).fail_payment(
                    order.reference, f"Payment initialization failed: {exc}"
                )
            raise

    def _new_order(
        self,
        reference: str,
        request: CheckoutRequest,
        priced: PricedOrder,
        product_type: ProductType,
        buyer: BuyerContext,
        payment_method: PaymentMethod,
    ) -> NewOrder:
        first = priced.lines[0].quote.product
        if product_type is ProductType.RESULT_CHECKER and len(priced.lines) > 1:
            raise CheckoutError("Result checkers are sold one product per order")
        product_ids = {line.quote.product_id for line in priced.lines}
        items = [
            NewOrderItem(
                phone=line.phone,
                bundle_id=line.quote.product_id,
                bundle_name=line.quote.product.name,
                network=line.quote.product.network,
                capacity_mb=(
                    parse_capacity_mb(line.quote.product.data_amount, line.quote.product.name)
                    if product_type is ProductType.DATA_BUNDLE
                    else None
                ),
                quantity=line.quantity,
                unit_price_minor=line.quote.unit_price_minor,
            )
            for line in priced.lines
        ]
        return NewOrder(
            reference=reference,
            product_type=product_type,
            product_id=first.id if len(product_ids) == 1 else None,
            product_name=first.name if len(product_ids) == 1 else f"Bulk order ({len(items)} items)",
            network=first.network,
            customer_phone=validate_phone(request.customer_phone) if request.customer_phone else priced.lines[0].phone,
            customer_email=request.customer_email,
            amount_minor=priced.amount_minor,
            profit_minor=priced.platform_revenue_minor,
            agent_profit_minor=priced.agent_profit_minor,
            payment_method=payment_method,
            buyer_id=buyer.user_id,
            reseller_id=buyer.reseller_id if buyer.prices_as_reseller else None,
            currency=self._settings.currency,
            items=items,
        )

    @staticmethod
    def _product_type(priced: PricedOrder) -> ProductType:
        kinds = {line.quote.product.product_type for line in priced.lines}
        if len(kinds) != 1:
            raise MixedProductTypesError()
        return kinds.pop()

    def _ledger(self, session: AsyncSession) -> LedgerService:
        return LedgerService.with_session(
            session,
            currency=self._settings.currency,
            tolerance_minor=self._settings.settlement.split_tolerance_minor,
            clock=self._clock,
        )
