"""Domain models for balances and settlement."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from settlement.modules.common.enums import ProfitEntryType, WalletEntryType


@dataclass(slots=True)
class WalletSnapshot:
    account_id: str
    balance_minor: int
    currency: str
    updated_at: Optional[datetime]


@dataclass(slots=True)
class WalletPosting:
    """Result of a credit: ``applied`` is False when the reference was already posted."""

    wallet: WalletSnapshot
    applied: bool


@dataclass(slots=True)
class WalletEntry:
    id: str
    account_id: str
    reference: Optional[str]
    amount_minor: int
    balance_after_minor: int
    currency: str
    type: WalletEntryType
    description: Optional[str]
    created_at: Optional[datetime]


@dataclass(slots=True)
class ProfitWalletSnapshot:
    reseller_id: str
    available_minor: int
    total_earned_minor: int
    total_withdrawn_minor: int


@dataclass(slots=True)
class ProfitEntry:
    id: str
    reseller_id: str
    reference: str
    amount_minor: int
    type: ProfitEntryType
    created_at: Optional[datetime]


class SettleableOrder(Protocol):
    reference: str
    amount_minor: int
    agent_profit_minor: int
    profit_minor: int
    reseller_id: Optional[str]


@dataclass(slots=True, frozen=True)
class SettlementOutcome:
    order_reference: str
    settled: bool
    agent_credited: bool = False
    revenue_recorded: bool = False
