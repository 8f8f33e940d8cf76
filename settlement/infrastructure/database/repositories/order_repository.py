"""SQLAlchemy implementation for orders and line items"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Collection, Sequence

from sqlalchemy import delete, desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from settlement.db.models import Order, OrderItem, ProviderResponseLog
from settlement.modules.common.enums import DeliveryStatus, OrderStatus

RESOLVED_STATUSES = (OrderStatus.COMPLETED, OrderStatus.FAILED, OrderStatus.CANCELLED, OrderStatus.REFUNDED)


class SqlOrderRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, order: Order) -> Order:
        self.session.add(order)
        await self.session.flush()
        return order

    async def get_by_reference(self, reference: str) -> Order | None:
        stmt = (
            select(Order)
            .where(Order.reference == reference)
            .options(selectinload(Order.items))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_id(self, order_id: str) -> Order | None:
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.items))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def _find_item(self, *criteria: Any) -> OrderItem | None:
        stmt = select(OrderItem).where(*criteria).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def find_item_by_provider_reference(self, provider_reference: str) -> OrderItem | None:
        return await self._find_item(OrderItem.provider_reference == provider_reference)

    async def find_item_by_idempotency_key(self, idempotency_key: str) -> OrderItem | None:
        return await self._find_item(OrderItem.idempotency_key == idempotency_key)

    async def compare_and_set(self, reference: str, expected: Collection[OrderStatus], values: dict[str, Any]) -> bool:
        stmt = (
            update(Order)
            .where(Order.reference == reference, Order.status.in_(list(expected)))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def update_fields(self, reference: str, values: dict[str, Any]) -> None:
        stmt = (
            update(Order)
            .where(Order.reference == reference)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def update_item(self, item_id: str, values: dict[str, Any]) -> None:
        item = await self.session.get(OrderItem, item_id)
        if item is None:
            return
        for key, value in values.items():
            setattr(item, key, value)
        await self.session.flush()

    async def add_response_log(
        self,
        *,
        order_reference: str,
        recipient: str | None,
        source: str,
        http_status: int | None,
        body: str | None,
    ) -> None:
        self.session.add(
            ProviderResponseLog(
                order_reference=order_reference,
                recipient=recipient,
                source=source,
                http_status=http_status,
                body=body,
            )
        )
        await self.session.flush()

    async def list_by_status(
        self, statuses: Collection[OrderStatus], created_before: datetime, limit: int
    ) -> Sequence[Order]:
        stmt = (
            select(Order)
            .where(Order.status.in_(list(statuses)), Order.created_at < created_before)
            .options(selectinload(Order.items))
            .order_by(Order.created_at)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_for_buyer(self, buyer_id: str, limit: int, offset: int) -> Sequence[Order]:
        stmt = (
            select(Order)
            .where(Order.buyer_id == buyer_id)
            .options(selectinload(Order.items))
            .order_by(desc(Order.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def flag_permanently_failed(self, updated_before: datetime) -> int:
        stmt = (
            update(Order)
            .where(
                Order.status == OrderStatus.FAILED,
                Order.delivery_status == DeliveryStatus.FAILED,
                Order.permanently_failed.is_(False),
                Order.updated_at < updated_before,
            )
            .values(permanently_failed=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def delete_resolved(self, created_before: datetime) -> int:
        resolved = select(Order.id).where(
            Order.status.in_(RESOLVED_STATUSES),
            Order.created_at < created_before,
        )
        await self.session.execute(
            delete(OrderItem)
            .where(OrderItem.order_id.in_(resolved))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(
            delete(Order)
            .where(Order.status.in_(RESOLVED_STATUSES), Order.created_at < created_before)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
