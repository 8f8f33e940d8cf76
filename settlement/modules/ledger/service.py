"""Balance mutations and the once-only settlement of completed orders.

Every balance change is a conditional update on the owning row paired with a
ledger entry keyed by reference, so replays are detected before any money
moves. Callers serialize per account with ``KeyedLock`` and commit the unit
of work while still holding it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from settlement.db.models import (
    ProfitTransaction as ProfitTransactionModel,
    ProfitWallet as ProfitWalletModel,
    Wallet as WalletModel,
    WalletTransaction as WalletTransactionModel,
)
from settlement.infrastructure.database.repositories.ledger_repository import SqlLedgerRepository
from settlement.modules.common.clock import Clock, utcnow
from settlement.modules.common.enums import ProfitEntryType, WalletEntryType

from .exceptions import InsufficientFundsError, InsufficientProfitError, LedgerInvariantError
from .models import (
    ProfitEntry,
    ProfitWalletSnapshot,
    SettleableOrder,
    SettlementOutcome,
    WalletEntry,
    WalletPosting,
    WalletSnapshot,
)
from .repository import LedgerRepository

logger = logging.getLogger(__name__)


def wallet_lock_key(account_id: str) -> str:
    return f"wallet:{account_id}"


def profit_lock_key(reseller_id: str) -> str:
    return f"profit:{reseller_id}"


@dataclass(slots=True)
class LedgerService:
    repository: LedgerRepository
    currency: str = "GHS"
    tolerance_minor: int = 0
    clock: Clock = field(default=utcnow)

    @classmethod
    def with_session(
        cls,
        session: AsyncSession,
        *,
        currency: str = "GHS",
        tolerance_minor: int = 0,
        clock: Clock = utcnow,
    ) -> "LedgerService":
        return cls(SqlLedgerRepository(session), currency, tolerance_minor, clock)

    # -- buyer wallets -------------------------------------------------

    async def ensure_wallet(self, account_id: str) -> WalletSnapshot:
        wallet = await self.repository.get_wallet(account_id)
        if wallet is None:
            wallet = await self.repository.create_wallet(account_id, self.currency)
        return self._wallet_to_domain(wallet)

    async def reserve_and_debit(
        self,
        account_id: str,
        amount_minor: int,
        *,
        order_reference: str,
        description: str | None = None,
    ) -> WalletSnapshot:
        """Debit ``amount_minor`` or raise without touching the balance."""
        if amount_minor <= 0:
            raise ValueError("debit amount must be positive")
        wallet = await self.repository.get_wallet(account_id, for_update=True)
        if wallet is None:
            raise InsufficientFundsError(account_id, 0, amount_minor)
        if wallet.balance_minor < amount_minor:
            raise InsufficientFundsError(account_id, wallet.balance_minor, amount_minor)

        balance = await self.repository.debit_if_sufficient(account_id, amount_minor)
        if balance is None:
            current = await self.repository.get_wallet(account_id)
            raise InsufficientFundsError(account_id, current.balance_minor if current else 0, amount_minor)

        await self.repository.add_wallet_entry(
            account_id=account_id,
            reference=order_reference,
            amount_minor=-amount_minor,
            balance_after_minor=balance,
            currency=wallet.currency,
            type=WalletEntryType.DEBIT,
            description=description or f"Order {order_reference}",
        )
        logger.info("Debited %s from wallet %s for %s", amount_minor, account_id, order_reference)
        return await self._reload_wallet(account_id)

    async def credit_wallet(
        self,
        account_id: str,
        amount_minor: int,
        *,
        reference: str,
        entry_type: WalletEntryType = WalletEntryType.TOPUP,
        description: str | None = None,
    ) -> WalletPosting:
        if amount_minor <= 0:
            raise ValueError("credit amount must be positive")
        if entry_type is WalletEntryType.DEBIT:
            raise ValueError("use reserve_and_debit for debits")
        wallet = await self.repository.get_wallet(account_id, for_update=True)
        if wallet is None:
            wallet = await self.repository.create_wallet(account_id, self.currency)

        existing = await self.repository.get_wallet_entry(account_id, reference, entry_type)
        if existing is not None:
            logger.info("Wallet %s already credited for %s (%s)", account_id, reference, entry_type.value)
            return WalletPosting(wallet=self._wallet_to_domain(wallet), applied=False)

        balance = await self.repository.credit(account_id, amount_minor)
        await self.repository.add_wallet_entry(
            account_id=account_id,
            reference=reference,
            amount_minor=amount_minor,
            balance_after_minor=balance,
            currency=wallet.currency,
            type=entry_type,
            description=description,
        )
        logger.info("Credited %s to wallet %s for %s", amount_minor, account_id, reference)
        return WalletPosting(wallet=await self._reload_wallet(account_id), applied=True)

    async def refund_order(self, account_id: str, amount_minor: int, *, order_reference: str) -> WalletPosting:
        return await self.credit_wallet(
            account_id,
            amount_minor,
            reference=order_reference,
            entry_type=WalletEntryType.REFUND,
            description=f"Refund for order {order_reference}",
        )

    async def list_wallet_entries(self, account_id: str, limit: int = 50, offset: int = 0) -> list[WalletEntry]:
        rows: Sequence[WalletTransactionModel] = await self.repository.list_wallet_entries(account_id, limit, offset)
        return [self._entry_to_domain(row) for row in rows]

    # -- reseller profit -----------------------------------------------

    async def ensure_profit_wallet(self, reseller_id: str) -> ProfitWalletSnapshot:
        wallet = await self.repository.get_profit_wallet(reseller_id)
        if wallet is None:
            wallet = await self.repository.create_profit_wallet(reseller_id)
        return self._profit_to_domain(wallet)

    async def credit_reseller(self, reseller_id: str, amount_minor: int, *, order_reference: str) -> bool:
        """Credit a reseller's margin once per order reference."""
        if amount_minor <= 0:
            return False
        existing = await self.repository.get_profit_entry(order_reference, ProfitEntryType.CREDIT)
        if existing is not None:
            logger.info("Profit for %s already credited to %s", order_reference, existing.reseller_id)
            return False
        wallet = await self.repository.get_profit_wallet(reseller_id, for_update=True)
        if wallet is None:
            await self.repository.create_profit_wallet(reseller_id)
        await self.repository.add_profit_entry(
            reseller_id=reseller_id,
            reference=order_reference,
            amount_minor=amount_minor,
            type=ProfitEntryType.CREDIT,
        )
        await self.repository.credit_profit(reseller_id, amount_minor)
        logger.info("Credited profit %s to reseller %s for %s", amount_minor, reseller_id, order_reference)
        return True

    async def debit_reseller_payout(self, reseller_id: str, amount_minor: int, *, reference: str) -> ProfitWalletSnapshot:
        """Remove paid-out profit once per withdrawal reference."""
        if amount_minor <= 0:
            raise ValueError("payout amount must be positive")
        existing = await self.repository.get_profit_entry(reference, ProfitEntryType.PAYOUT)
        if existing is None:
            wallet = await self.repository.get_profit_wallet(reseller_id, for_update=True)
            available = wallet.available_minor if wallet else 0
            if available < amount_minor:
                raise InsufficientProfitError(reseller_id, available, amount_minor)
            if await self.repository.debit_profit_if_sufficient(reseller_id, amount_minor) is None:
                current = await self.repository.get_profit_wallet(reseller_id)
                raise InsufficientProfitError(reseller_id, current.available_minor if current else 0, amount_minor)
            await self.repository.add_profit_entry(
                reseller_id=reseller_id,
                reference=reference,
                amount_minor=-amount_minor,
                type=ProfitEntryType.PAYOUT,
            )
            logger.info("Paid out %s of profit for reseller %s (%s)", amount_minor, reseller_id, reference)
        return await self.ensure_profit_wallet(reseller_id)

    async def list_profit_entries(self, reseller_id: str, limit: int = 50, offset: int = 0) -> list[ProfitEntry]:
        rows: Sequence[ProfitTransactionModel] = await self.repository.list_profit_entries(reseller_id, limit, offset)
        return [
            ProfitEntry(
                id=row.id,
                reseller_id=row.reseller_id,
                reference=row.reference,
                amount_minor=row.amount_minor,
                type=row.type,
                created_at=row.created_at,
            )
            for row in rows
        ]

    # -- platform share and settlement ---------------------------------

    async def record_platform_revenue(self, order_reference: str, amount_minor: int) -> bool:
        if await self.repository.has_platform_revenue(order_reference):
            return False
        await self.repository.add_platform_revenue(order_reference, amount_minor)
        return True

    def assert_split(self, amount_minor: int, agent_profit_minor: int, platform_revenue_minor: int) -> None:
        if agent_profit_minor < 0 or platform_revenue_minor < 0:
            raise LedgerInvariantError(
                f"negative split: agent {agent_profit_minor}, platform {platform_revenue_minor}"
            )
        drift = abs(amount_minor - (agent_profit_minor + platform_revenue_minor))
        if drift > self.tolerance_minor:
            raise LedgerInvariantError(
                f"amount {amount_minor} != agent {agent_profit_minor} + platform {platform_revenue_minor}"
            )

    async def settle_order(self, order: SettleableOrder) -> SettlementOutcome:
        """Split a completed order into reseller profit and platform revenue, once."""
        self.assert_split(order.amount_minor, order.agent_profit_minor, order.profit_minor)
        claimed = await self.repository.claim_settlement(order.reference, self.clock())
        if not claimed:
            logger.info("Order %s already settled or not completed; skipping", order.reference)
            return SettlementOutcome(order_reference=order.reference, settled=False)

        credited = False
        if order.reseller_id and order.agent_profit_minor > 0:
            credited = await self.credit_reseller(
                order.reseller_id,
                order.agent_profit_minor,
                order_reference=order.reference,
            )
        recorded = await self.record_platform_revenue(order.reference, order.profit_minor)
        logger.info(
            "Settled order %s: agent %s, platform %s",
            order.reference,
            order.agent_profit_minor if credited else 0,
            order.profit_minor,
        )
        return SettlementOutcome(
            order_reference=order.reference,
            settled=True,
            agent_credited=credited,
            revenue_recorded=recorded,
        )

    # -- mapping -------------------------------------------------------

    async def _reload_wallet(self, account_id: str) -> WalletSnapshot:
        wallet = await self.repository.get_wallet(account_id)
        assert wallet is not None
        return self._wallet_to_domain(wallet)

    @staticmethod
    def _wallet_to_domain(model: WalletModel) -> WalletSnapshot:
        return WalletSnapshot(
            account_id=model.account_id,
            balance_minor=model.balance_minor,
            currency=model.currency,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _profit_to_domain(model: ProfitWalletModel) -> ProfitWalletSnapshot:
        return ProfitWalletSnapshot(
            reseller_id=model.reseller_id,
            available_minor=model.available_minor,
            total_earned_minor=model.total_earned_minor,
            total_withdrawn_minor=model.total_withdrawn_minor,
        )

    @staticmethod
    def _entry_to_domain(model: WalletTransactionModel) -> WalletEntry:
        return WalletEntry(
            id=model.id,
            account_id=model.account_id,
            reference=model.reference,
            amount_minor=model.amount_minor,
            balance_after_minor=model.balance_after_minor,
            currency=model.currency,
            type=model.type,
            description=model.description,
            created_at=model.created_at,
        )
