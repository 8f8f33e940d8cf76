"""Checkout request and result."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from settlement.modules.ledger import WalletSnapshot
from settlement.modules.orders import OrderSnapshot
from settlement.modules.payments import PaystackSetupIntent
from settlement.modules.pricing import LineRequest


@dataclass(slots=True, frozen=True)
class CheckoutRequest:
    """One purchase: a single line, or several beneficiaries for a bulk order."""

    lines: tuple[LineRequest, ...]
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    callback_url: Optional[str] = None

    @classmethod
    def single(
        cls,
        product_id: str,
        phone: str,
        *,
        quantity: int = 1,
        customer_email: str | None = None,
        callback_url: str | None = None,
    ) -> "CheckoutRequest":
        return cls(
            lines=(LineRequest(phone=phone, product_id=product_id, quantity=quantity),),
            customer_phone=phone,
            customer_email=customer_email,
            callback_url=callback_url,
        )


@dataclass(slots=True, frozen=True)
class CheckoutResult:
    order: OrderSnapshot
    payment: Optional[PaystackSetupIntent] = None
    wallet: Optional[WalletSnapshot] = None
    queued: bool = False
