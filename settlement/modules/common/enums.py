"""Closed value sets shared by the ORM models and the domain services."""

from __future__ import annotations

import enum


class ProductType(str, enum.Enum):
    DATA_BUNDLE = "data_bundle"
    RESULT_CHECKER = "result_checker"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class DeliveryStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DELIVERED = "delivered"
    FAILED = "failed"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    WALLET = "wallet"
    PAYSTACK = "paystack"


class BuyerRole(str, enum.Enum):
    GUEST = "guest"
    USER = "user"
    AGENT = "agent"
    DEALER = "dealer"
    SUPER_DEALER = "super_dealer"
    MASTER = "master"
    ADMIN = "admin"

    @property
    def is_reseller(self) -> bool:
        return self in RESELLER_ROLES


RESELLER_ROLES = frozenset({BuyerRole.AGENT, BuyerRole.DEALER, BuyerRole.SUPER_DEALER, BuyerRole.MASTER})


class WalletEntryType(str, enum.Enum):
    DEBIT = "debit"
    TOPUP = "topup"
    REFUND = "refund"
    ADJUSTMENT = "adjustment"


class ProfitEntryType(str, enum.Enum):
    CREDIT = "credit"
    PAYOUT = "payout"


class TopupStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class WithdrawalStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    REJECTED = "rejected"


__all__ = [
    "ProductType",
    "OrderStatus",
    "DeliveryStatus",
    "PaymentStatus",
    "PaymentMethod",
    "BuyerRole",
    "RESELLER_ROLES",
    "WalletEntryType",
    "ProfitEntryType",
    "TopupStatus",
    "WithdrawalStatus",
]
