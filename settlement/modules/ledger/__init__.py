"""Wallet, reseller profit and platform revenue bookkeeping."""

from .exceptions import InsufficientFundsError, InsufficientProfitError, LedgerError, LedgerInvariantError
from .models import (
    ProfitEntry,
    ProfitWalletSnapshot,
    SettlementOutcome,
    WalletEntry,
    WalletPosting,
    WalletSnapshot,
)
from .service import LedgerService, profit_lock_key, wallet_lock_key

__all__ = [
    "LedgerService",
    "profit_lock_key",
    "wallet_lock_key",
    "LedgerError",
    "InsufficientFundsError",
    "InsufficientProfitError",
    "LedgerInvariantError",
    "ProfitEntry",
    "ProfitWalletSnapshot",
    "SettlementOutcome",
    "WalletEntry",
    "WalletPosting",
    "WalletSnapshot",
]
