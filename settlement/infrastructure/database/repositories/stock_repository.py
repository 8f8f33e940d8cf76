"""SQLAlchemy implementation for result-checker stock"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.db.models import ResultCheckerStock


class SqlStockRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def claim(
        self, product_id: str, quantity: int, *, order_reference: str, sold_at: datetime
    ) -> Sequence[ResultCheckerStock]:
        stmt = (
            select(ResultCheckerStock)
            .where(ResultCheckerStock.product_id == product_id, ResultCheckerStock.is_sold.is_(False))
            .order_by(ResultCheckerStock.serial_number)
            .limit(quantity * 2)
            .with_for_update(skip_locked=True)
        )
        candidates = (await self.session.execute(stmt)).scalars().all()

        claimed: list[ResultCheckerStock] = []
        for unit in candidates:
            if len(claimed) == quantity:
                break
            result = await self.session.execute(
                update(ResultCheckerStock)
                .where(ResultCheckerStock.id == unit.id, ResultCheckerStock.is_sold.is_(False))
                .values(is_sold=True, order_reference=order_reference, sold_at=sold_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                claimed.append(unit)

        if len(claimed) < quantity:
            await self._release([unit.id for unit in claimed])
            return []
        return claimed

    async def _release(self, unit_ids: list[str]) -> None:
        if not unit_ids:
            return
        await self.session.execute(
            update(ResultCheckerStock)
            .where(ResultCheckerStock.id.in_(unit_ids))
            .values(is_sold=False, order_reference=None, sold_at=None)
            .execution_options(synchronize_session=False)
        )

    async def count_available(self, product_id: str) -> int:
        stmt = select(func.count(ResultCheckerStock.id)).where(
            ResultCheckerStock.product_id == product_id,
            ResultCheckerStock.is_sold.is_(False),
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())
