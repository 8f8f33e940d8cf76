"""Reseller profit withdrawals."""

from .exceptions import WithdrawalError, WithdrawalNotFoundError, WithdrawalStateError
from .models import PayoutAccount, Withdrawal
from .service import WithdrawalService

__all__ = [
    "PayoutAccount",
    "Withdrawal",
    "WithdrawalError",
    "WithdrawalNotFoundError",
    "WithdrawalService",
    "WithdrawalStateError",
]
