"""SQLAlchemy implementation for balances, profit and platform revenue"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.db.models import (
    Order,
    PlatformRevenue,
    ProfitTransaction,
    ProfitWallet,
    Wallet,
    WalletTransaction,
)
from settlement.modules.common.enums import OrderStatus, ProfitEntryType, WalletEntryType


class SqlLedgerRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_wallet(self, account_id: str, *, for_update: bool = False) -> Wallet | None:
        stmt = (
            select(Wallet)
            .where(Wallet.account_id == account_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create_wallet(self, account_id: str, currency: str) -> Wallet:
        wallet = Wallet(account_id=account_id, currency=currency, balance_minor=0)
        self.session.add(wallet)
        await self.session.flush()
        # reselect so server-side defaults are loaded
        return await self.get_wallet(account_id)

    async def debit_if_sufficient(self, account_id: str, amount_minor: int) -> int | None:
        stmt = (
            update(Wallet)
            .where(Wallet.account_id == account_id, Wallet.balance_minor >= amount_minor)
            .values(balance_minor=Wallet.balance_minor - amount_minor)
            .returning(Wallet.balance_minor)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def credit(self, account_id: str, amount_minor: int) -> int:
        stmt = (
            update(Wallet)
            .where(Wallet.account_id == account_id)
            .values(balance_minor=Wallet.balance_minor + amount_minor)
            .returning(Wallet.balance_minor)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def get_wallet_entry(
        self, account_id: str, reference: str, type: WalletEntryType
    ) -> WalletTransaction | None:
        stmt = select(WalletTransaction).where(
            WalletTransaction.account_id == account_id,
            WalletTransaction.reference == reference,
            WalletTransaction.type == type,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def add_wallet_entry(
        self,
        *,
        account_id: str,
        reference: str | None,
        amount_minor: int,
        balance_after_minor: int,
        currency: str,
        type: WalletEntryType,
        description: str | None,
    ) -> WalletTransaction:
        entry = WalletTransaction(
            account_id=account_id,
            reference=reference,
            amount_minor=amount_minor,
            balance_after_minor=balance_after_minor,
            currency=currency,
            type=type,
            description=description,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_wallet_entries(self, account_id: str, limit: int, offset: int) -> Sequence[WalletTransaction]:
        stmt = (
            select(WalletTransaction)
            .where(WalletTransaction.account_id == account_id)
            .order_by(desc(WalletTransaction.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_profit_wallet(self, reseller_id: str, *, for_update: bool = False) -> ProfitWallet | None:
        stmt = (
            select(ProfitWallet)
            .where(ProfitWallet.reseller_id == reseller_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create_profit_wallet(self, reseller_id: str) -> ProfitWallet:
        wallet = ProfitWallet(
            reseller_id=reseller_id,
            available_minor=0,
            total_earned_minor=0,
            total_withdrawn_minor=0,
        )
        self.session.add(wallet)
        await self.session.flush()
        return await self.get_profit_wallet(reseller_id)

    async def credit_profit(self, reseller_id: str, amount_minor: int) -> int:
        stmt = (
            update(ProfitWallet)
            .where(ProfitWallet.reseller_id == reseller_id)
            .values(
                available_minor=ProfitWallet.available_minor + amount_minor,
                total_earned_minor=ProfitWallet.total_earned_minor + amount_minor,
            )
            .returning(ProfitWallet.available_minor)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def debit_profit_if_sufficient(self, reseller_id: str, amount_minor: int) -> int | None:
        stmt = (
            update(ProfitWallet)
            .where(ProfitWallet.reseller_id == reseller_id, ProfitWallet.available_minor >= amount_minor)
            .values(
                available_minor=ProfitWallet.available_minor - amount_minor,
                total_withdrawn_minor=ProfitWallet.total_withdrawn_minor + amount_minor,
            )
            .returning(ProfitWallet.available_minor)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_profit_entry(self, reference: str, type: ProfitEntryType) -> ProfitTransaction | None:
        stmt = select(ProfitTransaction).where(
            ProfitTransaction.reference == reference,
            ProfitTransaction.type == type,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def add_profit_entry(
        self, *, reseller_id: str, reference: str, amount_minor: int, type: ProfitEntryType
    ) -> ProfitTransaction:
        entry = ProfitTransaction(reseller_id=reseller_id, reference=reference, amount_minor=amount_minor, type=type)
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_profit_entries(self, reseller_id: str, limit: int, offset: int) -> Sequence[ProfitTransaction]:
        stmt = (
            select(ProfitTransaction)
            .where(ProfitTransaction.reseller_id == reseller_id)
            .order_by(desc(ProfitTransaction.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def has_platform_revenue(self, order_reference: str) -> bool:
        stmt = select(PlatformRevenue.id).where(PlatformRevenue.order_reference == order_reference)
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def add_platform_revenue(self, order_reference: str, amount_minor: int) -> None:
        self.session.add(PlatformRevenue(order_reference=order_reference, amount_minor=amount_minor))
        await self.session.flush()

    async def claim_settlement(self, order_reference: str, settled_at: datetime) -> bool:
        stmt = (
            update(Order)
            .where(
                Order.reference == order_reference,
                Order.status == OrderStatus.COMPLETED,
                Order.settled_at.is_(None),
            )
            .values(settled_at=settled_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
