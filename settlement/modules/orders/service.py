"""Order persistence and compare-and-set status transitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence, assert_never

from sqlalchemy.ext.asyncio import AsyncSession

from settlement.db.models import Order as OrderModel, OrderItem as OrderItemModel
from settlement.infrastructure.database.repositories.order_repository import SqlOrderRepository
from settlement.modules.common.clock import Clock, utcnow
from settlement.modules.common.enums import DeliveryStatus, OrderStatus, PaymentStatus

from . import state_machine
from .exceptions import InvalidTransitionError, OrderNotFoundError
from .models import NewOrder, OrderItemSnapshot, OrderSnapshot, RollupResult
from .repository import OrderRepository

logger = logging.getLogger(__name__)


def idempotency_key(reference: str, phone: str) -> str:
    return f"{reference}-{phone}"


def order_lock_key(reference: str) -> str:
    """Key serializing every writer of one order inside the process."""
    return f"order:{reference}"


@dataclass(slots=True)
class OrderService:
    repository: OrderRepository
    clock: Clock = field(default=utcnow)

    @classmethod
    def with_session(cls, session: AsyncSession, clock: Clock = utcnow) -> "OrderService":
        return cls(SqlOrderRepository(session), clock)

    async def create(self, new_order: NewOrder) -> OrderSnapshot:
        now = self.clock()
        model = OrderModel(
            reference=new_order.reference,
            product_type=new_order.product_type,
            product_id=new_order.product_id,
            product_name=new_order.product_name,
            network=new_order.network,
            customer_phone=new_order.customer_phone,
            customer_email=new_order.customer_email,
            is_bulk=new_order.is_bulk,
            amount_minor=new_order.amount_minor,
            profit_minor=new_order.profit_minor,
            agent_profit_minor=new_order.agent_profit_minor,
            currency=new_order.currency,
            status=OrderStatus.PENDING,
            delivery_status=DeliveryStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            payment_method=new_order.payment_method,
            buyer_id=new_order.buyer_id,
            reseller_id=new_order.reseller_id,
            created_at=now,
            updated_at=now,
        )
        seen_keys: set[str] = set()
        for position, item in enumerate(new_order.items):
            key = idempotency_key(new_order.reference, item.phone)
            if key in seen_keys:
                # the same beneficiary twice in one bulk order
                key = f"{key}-{position}"
            seen_keys.add(key)
            model.items.append(
                OrderItemModel(
                    position=position,
                    phone=item.phone,
                    bundle_id=item.bundle_id,
                    bundle_name=item.bundle_name,
                    network=item.network,
                    capacity_mb=item.capacity_mb,
                    quantity=item.quantity,
                    unit_price_minor=item.unit_price_minor,
                    idempotency_key=key,
                    delivery_status=DeliveryStatus.PENDING,
                    attempts=0,
                    retryable=False,
                )
            )
        await self.repository.add(model)
        logger.info(
            "Created order %s (%s, %s item(s), amount %s)",
            new_order.reference,
            new_order.product_type.value,
            len(new_order.items),
            new_order.amount_minor,
        )
        return await self.get(new_order.reference)

    async def find(self, reference: str) -> OrderSnapshot | None:
        model = await self.repository.get_by_reference(reference)
        return self._to_domain(model) if model else None

    async def get(self, reference: str) -> OrderSnapshot:
        order = await self.find(reference)
        if order is None:
            raise OrderNotFoundError(reference)
        return order

    async def find_by_provider_reference(self, provider_reference: str) -> tuple[OrderSnapshot, OrderItemSnapshot] | None:
        item = await self.repository.find_item_by_provider_reference(provider_reference)
        if item is None:
            item = await self.repository.find_item_by_idempotency_key(provider_reference)
        if item is None:
            return None
        model = await self.repository.get_by_id(item.order_id)
        if model is None:
            return None
        order = self._to_domain(model)
        return order, next(entry for entry in order.items if entry.id == item.id)

    async def list_for_buyer(self, buyer_id: str, limit: int = 20, offset: int = 0) -> list[OrderSnapshot]:
        rows = await self.repository.list_for_buyer(buyer_id, limit, offset)
        return [self._to_domain(row) for row in rows]

    async def try_transition(self, reference: str, target: OrderStatus, **changes: Any) -> bool:
        """Move to ``target`` if legal from the current status; False if another driver won."""
        order = await self.get(reference)
        if not state_machine.can_transition(order.status, target):
            return False
        values = {"status": target, "updated_at": self.clock(), **changes}
        changed = await self.repository.compare_and_set(reference, {order.status}, values)
        if changed:
            logger.info("Order %s: %s -> %s", reference, order.status.value, target.value)
        return changed

    async def transition(self, reference: str, target: OrderStatus, **changes: Any) -> OrderSnapshot:
        order = await self.get(reference)
        state_machine.ensure_transition(order.status, target)
        if not await self.try_transition(reference, target, **changes):
            current = await self.get(reference)
            raise InvalidTransitionError(current.status, target)
        return await self.get(reference)

    async def confirm_payment(self, reference: str) -> bool:
        order = await self.get(reference)
        if order.status is not OrderStatus.PENDING:
            return False
        return await self.try_transition(reference, OrderStatus.CONFIRMED, payment_status=PaymentStatus.PAID)

    async def fail_payment(self, reference: str, reason: str) -> bool:
        order = await self.get(reference)
        if order.status is not OrderStatus.PENDING:
            return False
        return await self.try_transition(
            reference,
            OrderStatus.FAILED,
            payment_status=PaymentStatus.FAILED,
            delivery_status=DeliveryStatus.FAILED,
            failure_reason=reason,
        )

    async def cancel(self, reference: str, reason: str | None = None) -> OrderSnapshot:
        order = await self.get(reference)
        changes: dict[str, Any] = {"failure_reason": reason or order.failure_reason}
        if order.payment_status is PaymentStatus.PENDING:
            changes["payment_status"] = PaymentStatus.CANCELLED
        return await self.transition(reference, OrderStatus.CANCELLED, **changes)

    async def mark_refunded(self, reference: str) -> OrderSnapshot:
        return await self.transition(reference, OrderStatus.REFUNDED)

    async def record_item(self, item_id: str, **values: Any) -> None:
        await self.repository.update_item(item_id, values)

    async def record_provider_response(
        self,
        reference: str,
        body: str | None,
        *,
        recipient: str | None = None,
        source: str,
        http_status: int | None = None,
    ) -> None:
        await self.repository.add_response_log(
            order_reference=reference,
            recipient=recipient,
            source=source,
            http_status=http_status,
            body=body,
        )
        if body is not None:
            await self.repository.update_fields(reference, {"provider_response": body})

    async def apply_rollup(self, reference: str) -> RollupResult:
        """Fold item states into the order; COMPLETED/FAILED only via compare-and-set."""
        order = await self.get(reference)
        if state_machine.is_reconciled(order.status):
            return RollupResult(order)

        folded = state_machine.rollup(order.items)
        completed_now = failed_now = False
        match folded.outcome:
            case OrderStatus.COMPLETED:
                completed_now = await self.try_transition(
                    reference,
                    OrderStatus.COMPLETED,
                    delivery_status=DeliveryStatus.DELIVERED,
                    completed_at=self.clock(),
                    failure_reason=None,
                )
            case OrderStatus.FAILED:
                failed_now = await self.try_transition(
                    reference,
                    OrderStatus.FAILED,
                    delivery_status=DeliveryStatus.FAILED,
                    failure_reason=state_machine.describe_failures(folded.failed),
                )
            case None:
                if order.status is OrderStatus.CONFIRMED and folded.delivery_status is not DeliveryStatus.PENDING:
                    await self.try_transition(reference, OrderStatus.PROCESSING, delivery_status=folded.delivery_status)
                elif order.delivery_status is not folded.delivery_status:
                    await self.repository.update_fields(
                        reference,
                        {"delivery_status": folded.delivery_status, "updated_at": self.clock()},
                    )
            case _:
                raise AssertionError(f"unexpected rollup outcome {folded.outcome}")
        return RollupResult(await self.get(reference), completed_now, failed_now)

    async def override_delivery_status(self, reference: str, delivery_status: DeliveryStatus) -> RollupResult:
        order = await self.get(reference)
        if state_machine.is_reconciled(order.status):
            raise InvalidTransitionError(order.status, order.status)
        match delivery_status:
            case DeliveryStatus.DELIVERED | DeliveryStatus.FAILED:
                for item in order.items:
                    if not item.is_terminal:
                        await self.record_item(
                            item.id,
                            delivery_status=delivery_status,
                            retryable=False,
                            failure_reason=None if delivery_status is DeliveryStatus.DELIVERED else "Marked failed by admin",
                        )
            case DeliveryStatus.PENDING | DeliveryStatus.PROCESSING:
                await self.repository.update_fields(
                    reference,
                    {"delivery_status": delivery_status, "updated_at": self.clock()},
                )
                return RollupResult(await self.get(reference))
            case _:
                assert_never(delivery_status)
        logger.info("Order %s delivery status overridden to %s", reference, delivery_status.value)
        return await self.apply_rollup(reference)

    async def list_awaiting_fulfillment(self, created_before: datetime, limit: int) -> list[OrderSnapshot]:
        rows = await self.repository.list_by_status(
            [OrderStatus.CONFIRMED, OrderStatus.PROCESSING],
            created_before,
            limit,
        )
        return [self._to_domain(row) for row in rows]

    async def flag_permanently_failed(self, updated_before: datetime) -> int:
        return await self.repository.flag_permanently_failed(updated_before)

    async def purge_resolved(self, created_before: datetime) -> int:
        return await self.repository.delete_resolved(created_before)

    @staticmethod
    def _item_to_domain(model: OrderItemModel) -> OrderItemSnapshot:
        return OrderItemSnapshot(
            id=model.id,
            position=model.position,
            phone=model.phone,
            bundle_id=model.bundle_id,
            bundle_name=model.bundle_name,
            network=model.network,
            capacity_mb=model.capacity_mb,
            quantity=model.quantity,
            unit_price_minor=model.unit_price_minor,
            idempotency_key=model.idempotency_key,
            delivery_status=model.delivery_status,
            provider_id=model.provider_id,
            provider_reference=model.provider_reference,
            attempts=model.attempts,
            retryable=bool(model.retryable),
            failure_reason=model.failure_reason,
            delivered_pin=model.delivered_pin,
            delivered_serial=model.delivered_serial,
        )

    @classmethod
    def _to_domain(cls, model: OrderModel) -> OrderSnapshot:
        items: Sequence[OrderItemModel] = model.items
        return OrderSnapshot(
            id=model.id,
            reference=model.reference,
            product_type=model.product_type,
            product_id=model.product_id,
            product_name=model.product_name,
            network=model.network,
            customer_phone=model.customer_phone,
            customer_email=model.customer_email,
            is_bulk=bool(model.is_bulk),
            amount_minor=model.amount_minor,
            profit_minor=model.profit_minor,
            agent_profit_minor=model.agent_profit_minor,
            currency=model.currency,
            status=model.status,
            delivery_status=model.delivery_status,
            payment_status=model.payment_status,
            payment_method=model.payment_method,
            buyer_id=model.buyer_id,
            reseller_id=model.reseller_id,
            failure_reason=model.failure_reason,
            provider_response=model.provider_response,
            settled_at=model.settled_at,
            permanently_failed=bool(model.permanently_failed),
            created_at=model.created_at,
            updated_at=model.updated_at,
            completed_at=model.completed_at,
            items=tuple(cls._item_to_domain(item) for item in sorted(items, key=lambda entry: entry.position)),
        )
