"""Withdrawal errors."""

from settlement.modules.common import SettlementError
from settlement.modules.common.enums import WithdrawalStatus


class WithdrawalError(SettlementError):
    """Base class for withdrawal errors."""


class WithdrawalNotFoundError(WithdrawalError):
    def __init__(self, identifier: str) -> None:
        super().__init__(f"Withdrawal not found: {identifier}")
        self.identifier = identifier


class WithdrawalStateError(WithdrawalError):
    def __init__(self, withdrawal_id: str, status: WithdrawalStatus, action: str) -> None:
        super().__init__(f"Cannot {action} withdrawal {withdrawal_id} in status {status.value}")
        self.withdrawal_id = withdrawal_id
        self.status = status
