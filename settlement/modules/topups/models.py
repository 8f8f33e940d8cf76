"""Domain model for wallet top-ups."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from settlement.modules.common.enums import TopupStatus


@dataclass(slots=True)
class Topup:
    id: str
    account_id: str
    reference: str
    amount_minor: int
    currency: str
    status: TopupStatus
    payment_channel: Optional[str]
    created_at: Optional[datetime]
    confirmed_at: Optional[datetime]


@dataclass(slots=True)
class TopupCheckout:
    topup: Topup
    authorization_url: str
    access_code: str


@dataclass(slots=True)
class TopupConfirmation:
    topup: Topup
    credited: bool
    balance_minor: Optional[int] = None
