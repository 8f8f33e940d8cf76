"""SQLAlchemy implementation for top-up repository"""

from __future__ import annotations

from datetime import datetime
from typing import Collection, Sequence

from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.db.models import WalletTopup
from settlement.modules.common.enums import TopupStatus


class SqlTopupRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        *,
        account_id: str,
        reference: str,
        amount_minor: int,
        currency: str,
    ) -> WalletTopup:
        topup = WalletTopup(
            account_id=account_id,
            reference=reference,
            amount_minor=amount_minor,
            currency=currency,
            status=TopupStatus.PENDING,
        )
        self.session.add(topup)
        await self.session.flush()
        await self.session.refresh(topup)
        return topup

    async def get_by_reference(self, reference: str) -> WalletTopup | None:
        stmt = (
            select(WalletTopup)
            .where(WalletTopup.reference == reference)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def compare_and_set_status(
        self,
        reference: str,
        *,
        expected: Collection[TopupStatus],
        status: TopupStatus,
        confirmed_at: datetime,
        payment_channel: str | None,
    ) -> bool:
        stmt = (
            update(WalletTopup)
            .where(WalletTopup.reference == reference, WalletTopup.status.in_(list(expected)))
            .values(status=status, confirmed_at=confirmed_at, payment_channel=payment_channel)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def list_for_account(self, account_id: str, limit: int, offset: int) -> Sequence[WalletTopup]:
        stmt = (
            select(WalletTopup)
            .where(WalletTopup.account_id == account_id)
            .order_by(desc(WalletTopup.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
