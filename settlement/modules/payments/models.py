"""Typed Paystack responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class PaystackSetupIntent:
    """What the buyer needs to continue to Paystack checkout."""

    authorization_url: str
    access_code: str
    reference: str


@dataclass(frozen=True)
class PaystackVerification:
    reference: str
    status: str
    amount_minor: int
    currency: str
    channel: Optional[str] = None
    gateway_response: Optional[str] = None
    paid_at: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "success"

    @property
    def failed(self) -> bool:
        return self.status in {"failed", "reversed"}


@dataclass(frozen=True)
class PaystackResolvedAccount:
    account_name: str
    account_number: str
    bank_code: str


@dataclass(frozen=True)
class PaystackTransfer:
    reference: str
    transfer_code: Optional[str]
    status: str

    @property
    def succeeded(self) -> bool:
        return self.status == "success"

    @property
    def failed(self) -> bool:
        return self.status in {"failed", "reversed", "abandoned"}
