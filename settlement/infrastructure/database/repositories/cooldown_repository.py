"""SQLAlchemy implementation for cooldown lookups"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.db.models import Order, OrderItem
from settlement.modules.common.enums import PaymentStatus, ProductType


class SqlCooldownRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def latest_bundle_order_at(self, phone: str) -> datetime | None:
        stmt = (
            select(func.max(Order.created_at))
            .join(OrderItem, OrderItem.order_id == Order.id)
            .where(
                OrderItem.phone == phone,
                Order.product_type == ProductType.DATA_BUNDLE,
                Order.payment_status == PaymentStatus.PAID,
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
