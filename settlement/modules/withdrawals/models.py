"""Domain model for reseller profit withdrawals."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from settlement.modules.common.enums import WithdrawalStatus


@dataclass(slots=True)
class PayoutAccount:
    account_name: str
    account_number: str
    bank_code: str
    recipient_type: str = "mobile_money"


@dataclass(slots=True)
class Withdrawal:
    id: str
    reseller_id: str
    amount_minor: int
    status: WithdrawalStatus
    account_name: str
    account_number: str
    bank_code: str
    recipient_type: str
    transfer_reference: Optional[str]
    transfer_code: Optional[str]
    failure_reason: Optional[str]
    created_at: Optional[datetime]
    paid_at: Optional[datetime]
