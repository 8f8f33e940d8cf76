"""Domain models for orders and their line items."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from settlement.modules.common.enums import (
    DeliveryStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ProductType,
)


@dataclass(slots=True, frozen=True)
class OrderItemSnapshot:
    id: str
    position: int
    phone: str
    bundle_id: Optional[str]
    bundle_name: Optional[str]
    network: Optional[str]
    capacity_mb: Optional[int]
    quantity: int
    unit_price_minor: int
    idempotency_key: str
    delivery_status: DeliveryStatus
    provider_id: Optional[str] = None
    provider_reference: Optional[str] = None
    attempts: int = 0
    retryable: bool = False
    failure_reason: Optional[str] = None
    delivered_pin: Optional[str] = None
    delivered_serial: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        if self.delivery_status is DeliveryStatus.DELIVERED:
            return True
        return self.delivery_status is DeliveryStatus.FAILED and not self.retryable

    @property
    def awaiting_dispatch(self) -> bool:
        """Never accepted by the provider and still eligible for a (re)submission."""
        if self.provider_reference:
            return False
        if self.delivery_status is DeliveryStatus.PENDING:
            return True
        return self.delivery_status is DeliveryStatus.FAILED and self.retryable


@dataclass(slots=True, frozen=True)
class OrderSnapshot:
    id: str
    reference: str
    product_type: ProductType
    product_id: Optional[str]
    product_name: str
    network: Optional[str]
    customer_phone: str
    customer_email: Optional[str]
    is_bulk: bool
    amount_minor: int
    profit_minor: int
    agent_profit_minor: int
    currency: str
    status: OrderStatus
    delivery_status: DeliveryStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    buyer_id: Optional[str]
    reseller_id: Optional[str]
    failure_reason: Optional[str] = None
    provider_response: Optional[str] = None
    settled_at: Optional[datetime] = None
    permanently_failed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    items: tuple[OrderItemSnapshot, ...] = ()

    @property
    def phones(self) -> list[str]:
        return [item.phone for item in self.items]


@dataclass(slots=True)
class NewOrderItem:
    phone: str
    bundle_id: Optional[str]
    bundle_name: Optional[str]
    network: Optional[str]
    capacity_mb: Optional[int]
    quantity: int
    unit_price_minor: int


@dataclass(slots=True)
class NewOrder:
    reference: str
    product_type: ProductType
    product_id: Optional[str]
    product_name: str
    network: Optional[str]
    customer_phone: str
    customer_email: Optional[str]
    amount_minor: int
    profit_minor: int
    agent_profit_minor: int
    payment_method: PaymentMethod
    buyer_id: Optional[str]
    reseller_id: Optional[str]
    currency: str = "GHS"
    items: list[NewOrderItem] = field(default_factory=list)

    @property
    def is_bulk(self) -> bool:
        return len(self.items) > 1


@dataclass(slots=True, frozen=True)
class RollupResult:
    """Order after folding item states; flags mark transitions made by this call."""

    order: OrderSnapshot
    completed_now: bool = False
    failed_now: bool = False
