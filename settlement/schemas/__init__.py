"""Pydantic schemas used across the HTTP interface.

Money crosses the wire as decimal strings with two places (``"3.50"``) and is
held internally as integer minor units.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from settlement.modules.common import format_minor, to_minor
from settlement.modules.common.enums import (
    DeliveryStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ProductType,
    TopupStatus,
    WithdrawalStatus,
)
from settlement.modules.fulfillment import QueueStats
from settlement.modules.ledger import ProfitWalletSnapshot, WalletEntry, WalletSnapshot
from settlement.modules.orders import OrderItemSnapshot, OrderSnapshot
from settlement.modules.reconciliation import SweepReport
from settlement.modules.topups import Topup
from settlement.modules.withdrawals import Withdrawal


def _positive_amount(value: str) -> str:
    if to_minor(value) <= 0:
        raise ValueError("amount must be positive")
    return value


# -- requests -----------------------------------------------------------------


class CheckoutItem(BaseModel):
    phone: str = Field(..., min_length=9, max_length=20)
    product_id: str
    quantity: int = Field(default=1, ge=1, le=100)


class CheckoutRequestBody(BaseModel):
    """A single purchase (``product_id`` + ``phone``) or a bulk ``items`` list."""

    product_id: Optional[str] = None
    phone: Optional[str] = Field(default=None, min_length=9, max_length=20)
    quantity: int = Field(default=1, ge=1, le=100)
    items: list[CheckoutItem] = Field(default_factory=list, max_length=500)
    email: Optional[str] = Field(default=None, max_length=255)
    callback_url: Optional[str] = None

    @model_validator(mode="after")
    def _one_shape(self) -> "CheckoutRequestBody":
        if self.items and (self.product_id or self.phone):
            raise ValueError("send either items or product_id/phone, not both")
        if not self.items and not (self.product_id and self.phone):
            raise ValueError("product_id and phone are required")
        return self

    def lines(self) -> list[CheckoutItem]:
        if self.items:
            return list(self.items)
        assert self.product_id is not None and self.phone is not None
        return [CheckoutItem(phone=self.phone, product_id=self.product_id, quantity=self.quantity)]


class TopupInitializeRequest(BaseModel):
    amount: str
    email: Optional[str] = None

    _amount = field_validator("amount")(_positive_amount)


class WithdrawalCreateRequest(BaseModel):
    amount: str
    account_name: str = Field(..., min_length=2, max_length=150)
    account_number: str = Field(..., min_length=6, max_length=30)
    bank_code: str = Field(..., min_length=2, max_length=20)
    recipient_type: str = "mobile_money"

    _amount = field_validator("amount")(_positive_amount)


class CancelOrderRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=255)


class DeliveryStatusUpdate(BaseModel):
    delivery_status: DeliveryStatus


class RejectWithdrawalRequest(BaseModel):
    reason: str = Field(..., min_length=3, max_length=255)


# -- responses ------------------------------------------------------------------


class OrderItemResponse(BaseModel):
    id: str
    phone: str
    bundle_name: Optional[str] = None
    network: Optional[str] = None
    capacity_mb: Optional[int] = None
    quantity: int
    unit_price: str
    delivery_status: DeliveryStatus
    provider_reference: Optional[str] = None
    failure_reason: Optional[str] = None
    delivered_pin: Optional[str] = None
    delivered_serial: Optional[str] = None

    @classmethod
    def from_domain(cls, item: OrderItemSnapshot) -> "OrderItemResponse":
        return cls(
            id=item.id,
            phone=item.phone,
            bundle_name=item.bundle_name,
            network=item.network,
            capacity_mb=item.capacity_mb,
            quantity=item.quantity,
            unit_price=format_minor(item.unit_price_minor),
            delivery_status=item.delivery_status,
            provider_reference=item.provider_reference,
            failure_reason=item.failure_reason,
            delivered_pin=item.delivered_pin,
            delivered_serial=item.delivered_serial,
        )


class OrderResponse(BaseModel):
    reference: str
    product_type: ProductType
    product_name: str
    network: Optional[str] = None
    customer_phone: str
    is_bulk: bool
    amount: str
    agent_profit: str
    currency: str
    status: OrderStatus
    delivery_status: DeliveryStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    items: list[OrderItemResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, order: OrderSnapshot) -> "OrderResponse":
        return cls(
            reference=order.reference,
            product_type=order.product_type,
            product_name=order.product_name,
            network=order.network,
            customer_phone=order.customer_phone,
            is_bulk=order.is_bulk,
            amount=format_minor(order.amount_minor),
            agent_profit=format_minor(order.agent_profit_minor),
            currency=order.currency,
            status=order.status,
            delivery_status=order.delivery_status,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            failure_reason=order.failure_reason,
            created_at=order.created_at,
            completed_at=order.completed_at,
            items=[OrderItemResponse.from_domain(item) for item in order.items],
        )


class CheckoutResponse(BaseModel):
    order: OrderResponse
    authorization_url: Optional[str] = None
    access_code: Optional[str] = None
    wallet_balance: Optional[str] = None
    queued: bool = False


class WalletResponse(BaseModel):
    account_id: str
    balance: str
    currency: str
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, wallet: WalletSnapshot) -> "WalletResponse":
        return cls(
            account_id=wallet.account_id,
            balance=format_minor(wallet.balance_minor),
            currency=wallet.currency,
            updated_at=wallet.updated_at,
        )


class WalletTransactionResponse(BaseModel):
    id: str
    reference: Optional[str] = None
    type: str
    amount: str
    balance_after: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, entry: WalletEntry) -> "WalletTransactionResponse":
        return cls(
            id=entry.id,
            reference=entry.reference,
            type=entry.type.value,
            amount=format_minor(entry.amount_minor),
            balance_after=format_minor(entry.balance_after_minor),
            description=entry.description,
            created_at=entry.created_at,
        )


class WalletTransactionListResponse(BaseModel):
    total: int
    transactions: list[WalletTransactionResponse]


class TopupResponse(BaseModel):
    reference: str
    amount: str
    currency: str
    status: TopupStatus
    payment_channel: Optional[str] = None
    created_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, topup: Topup) -> "TopupResponse":
        return cls(
            reference=topup.reference,
            amount=format_minor(topup.amount_minor),
            currency=topup.currency,
            status=topup.status,
            payment_channel=topup.payment_channel,
            created_at=topup.created_at,
            confirmed_at=topup.confirmed_at,
        )


class TopupInitializeResponse(BaseModel):
    topup: TopupResponse
    authorization_url: str
    access_code: str


class TopupVerifyResponse(BaseModel):
    topup: TopupResponse
    credited: bool
    balance: Optional[str] = None


class ProfitWalletResponse(BaseModel):
    reseller_id: str
    available: str
    pending_withdrawals: str
    withdrawable: str
    total_earned: str
    total_withdrawn: str

    @classmethod
    def from_domain(cls, wallet: ProfitWalletSnapshot, pending_minor: int) -> "ProfitWalletResponse":
        return cls(
            reseller_id=wallet.reseller_id,
            available=format_minor(wallet.available_minor),
            pending_withdrawals=format_minor(pending_minor),
            withdrawable=format_minor(max(0, wallet.available_minor - pending_minor)),
            total_earned=format_minor(wallet.total_earned_minor),
            total_withdrawn=format_minor(wallet.total_withdrawn_minor),
        )


class WithdrawalResponse(BaseModel):
    id: str
    amount: str
    status: WithdrawalStatus
    account_name: str
    account_number: str
    bank_code: str
    transfer_reference: Optional[str] = None
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, withdrawal: Withdrawal) -> "WithdrawalResponse":
        return cls(
            id=withdrawal.id,
            amount=format_minor(withdrawal.amount_minor),
            status=withdrawal.status,
            account_name=withdrawal.account_name,
            account_number=withdrawal.account_number,
            bank_code=withdrawal.bank_code,
            transfer_reference=withdrawal.transfer_reference,
            failure_reason=withdrawal.failure_reason,
            created_at=withdrawal.created_at,
            paid_at=withdrawal.paid_at,
        )


class WithdrawalListResponse(BaseModel):
    total: int
    withdrawals: list[WithdrawalResponse]


class QueueStatsResponse(BaseModel):
    queued: int
    in_flight: int
    processed: int
    failed: int
    retried: int
    dropped: int
    workers: int
    capacity: int

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_domain(cls, stats: QueueStats) -> "QueueStatsResponse":
        return cls.model_validate(stats)


class SweepReportResponse(BaseModel):
    checked: int
    polled: int
    updated: int
    requeued: int
    errors: int

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_domain(cls, report: SweepReport) -> "SweepReportResponse":
        return cls.model_validate(report)


class CleanupResponse(BaseModel):
    flagged: int


class PurgeResponse(BaseModel):
    deleted: int


class RefundResponse(BaseModel):
    order: OrderResponse
    wallet_credited: bool
    wallet_balance: Optional[str] = None


class WebhookAck(BaseModel):
    status: str = "ok"
    event: Optional[str] = None
    outcome: Optional[str] = None


class ProviderResponse(BaseModel):
    id: str
    name: str
    base_url: str
    is_default: bool
    network_mappings: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class ProviderBalanceResponse(BaseModel):
    provider_id: str
    status_code: int
    data: dict[str, Any]


class HealthResponse(BaseModel):
    status: str
    version: str
    database: bool
    queue: QueueStatsResponse
    scheduler_running: bool
