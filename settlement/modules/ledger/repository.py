"""Repository protocol for ledger persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from settlement.db.models import (
    ProfitTransaction as ProfitTransactionModel,
    ProfitWallet as ProfitWalletModel,
    Wallet as WalletModel,
    WalletTransaction as WalletTransactionModel,
)
from settlement.modules.common.enums import ProfitEntryType, WalletEntryType


class LedgerRepository(Protocol):
    async def get_wallet(self, account_id: str, *, for_update: bool = False) -> WalletModel | None:
        ...

    async def create_wallet(self, account_id: str, currency: str) -> WalletModel:
        ...

    async def debit_if_sufficient(self, account_id: str, amount_minor: int) -> int | None:
        """Conditionally subtract; new balance, or ``None`` when funds are short."""
        ...

    async def credit(self, account_id: str, amount_minor: int) -> int:
        ...

    async def get_wallet_entry(
        self, account_id: str, reference: str, type: WalletEntryType
    ) -> WalletTransactionModel | None:
        ...

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
    ) -> WalletTransactionModel:
        ...

    async def list_wallet_entries(self, account_id: str, limit: int, offset: int) -> Sequence[WalletTransactionModel]:
        ...

    async def get_profit_wallet(self, reseller_id: str, *, for_update: bool = False) -> ProfitWalletModel | None:
        ...

    async def create_profit_wallet(self, reseller_id: str) -> ProfitWalletModel:
        ...

    async def credit_profit(self, reseller_id: str, amount_minor: int) -> int:
        ...

    async def debit_profit_if_sufficient(self, reseller_id: str, amount_minor: int) -> int | None:
        ...

    async def get_profit_entry(self, reference: str, type: ProfitEntryType) -> ProfitTransactionModel | None:
        ...

    async def add_profit_entry(
        self, *, reseller_id: str, reference: str, amount_minor: int, type: ProfitEntryType
    ) -> ProfitTransactionModel:
        ...

    async def list_profit_entries(self, reseller_id: str, limit: int, offset: int) -> Sequence[ProfitTransactionModel]:
        ...

    async def has_platform_revenue(self, order_reference: str) -> bool:
        ...

    async def add_platform_revenue(self, order_reference: str, amount_minor: int) -> None:
        ...

    async def claim_settlement(self, order_reference: str, settled_at: datetime) -> bool:
        """Stamp ``settled_at`` on a completed, unsettled order; False if already stamped."""
        ...
