"""Ledger errors."""

from settlement.modules.common import SettlementError, format_minor


class LedgerError(SettlementError):
    """Base class for balance and settlement failures."""


class InsufficientFundsError(LedgerError):
    def __init__(self, account_id: str, balance_minor: int, required_minor: int) -> None:
        super().__init__(
            f"Insufficient wallet balance: {format_minor(balance_minor)} available, "
            f"{format_minor(required_minor)} required"
        )
        self.account_id = account_id
        self.balance_minor = balance_minor
        self.required_minor = required_minor


class InsufficientProfitError(LedgerError):
    def __init__(self, reseller_id: str, available_minor: int, required_minor: int) -> None:
        super().__init__(
            f"Insufficient profit balance: {format_minor(available_minor)} available, "
            f"{format_minor(required_minor)} requested"
        )
        self.reseller_id = reseller_id
        self.available_minor = available_minor
        self.required_minor = required_minor


class LedgerInvariantError(LedgerError):
    """amount != agent profit + platform revenue; nothing may be settled."""
