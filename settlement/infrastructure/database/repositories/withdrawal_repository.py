"""SQLAlchemy implementation for withdrawals"""

from __future__ import annotations

from typing import Any, Collection, Sequence

from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.db.models import Withdrawal
from settlement.modules.common.enums import WithdrawalStatus

OUTSTANDING = (WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING)


class SqlWithdrawalRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, **values: Any) -> Withdrawal:
        withdrawal = Withdrawal(**values)
        self.session.add(withdrawal)
        await self.session.flush()
        await self.session.refresh(withdrawal)
        return withdrawal

    async def get(self, withdrawal_id: str) -> Withdrawal | None:
        stmt = (
            select(Withdrawal)
            .where(Withdrawal.id == withdrawal_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_transfer_reference(self, transfer_reference: str) -> Withdrawal | None:
        stmt = (
            select(Withdrawal)
            .where(Withdrawal.transfer_reference == transfer_reference)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def sum_outstanding(self, reseller_id: str) -> int:
        stmt = select(func.coalesce(func.sum(Withdrawal.amount_minor), 0)).where(
            Withdrawal.reseller_id == reseller_id,
            Withdrawal.status.in_(OUTSTANDING),
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def compare_and_set(
        self, withdrawal_id: str, expected: Collection[WithdrawalStatus], values: dict[str, Any]
    ) -> bool:
        stmt = (
            update(Withdrawal)
            .where(Withdrawal.id == withdrawal_id, Withdrawal.status.in_(list(expected)))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def list_for_reseller(self, reseller_id: str, limit: int, offset: int) -> Sequence[Withdrawal]:
        stmt = (
            select(Withdrawal)
            .where(Withdrawal.reseller_id == reseller_id)
            .order_by(desc(Withdrawal.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
