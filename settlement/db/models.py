"""SQLAlchemy ORM models."""
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from settlement.infrastructure.database.base import Base
from settlement.modules.common.enums import (
    BuyerRole,
    DeliveryStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ProductType,
    ProfitEntryType,
    TopupStatus,
    WalletEntryType,
    WithdrawalStatus,
)


def generate_uuid() -> str:
    return str(uuid.uuid4())


def _enum(enum_cls):
    return Enum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [member.value for member in members],
    )


class Product(Base):
    """Catalog row (owned by catalog management, read-only here)."""

    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    product_type = Column(_enum(ProductType), nullable=False, default=ProductType.DATA_BUNDLE)
    name = Column(String(150), nullable=False)
    network = Column(String(30), index=True)
    data_amount = Column(String(20))
    validity = Column(String(50))
    base_price_minor = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ResultCheckerStock(Base):
    __tablename__ = "result_checker_stock"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    serial_number = Column(String(100), nullable=False, unique=True)
    pin = Column(String(100), nullable=False)
    is_sold = Column(Boolean, nullable=False, default=False)
    order_reference = Column(String(64), index=True)
    sold_at = Column(DateTime(timezone=True))


class Reseller(Base):
    __tablename__ = "resellers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, unique=True, index=True)
    role = Column(_enum(BuyerRole), nullable=False, default=BuyerRole.AGENT)
    storefront_slug = Column(String(100), unique=True)
    business_name = Column(String(150))
    is_approved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AdminBasePrice(Base):
    __tablename__ = "admin_base_prices"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, unique=True)
    price_minor = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class RoleBasePrice(Base):
    __tablename__ = "role_base_prices"
    __table_args__ = (UniqueConstraint("product_id", "role", name="uq_role_base_prices_product_role"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    role = Column(_enum(BuyerRole), nullable=False)
    price_minor = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class CustomPrice(Base):
    __tablename__ = "custom_prices"
    __table_args__ = (
        UniqueConstraint("product_id", "owner_id", "role", name="uq_custom_prices_product_owner_role"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    owner_id = Column(String(36), ForeignKey("resellers.id"), nullable=False, index=True)
    role = Column(_enum(BuyerRole), nullable=False)
    price_minor = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ExternalProvider(Base):
    __tablename__ = "external_providers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    base_url = Column(String(255), nullable=False)
    api_key = Column(String(255), nullable=False)
    api_secret = Column(String(255), nullable=False)
    orders_path = Column(String(100), nullable=False, default="/api/v1/orders")
    network_mappings = Column(Text, nullable=False, default="{}")  # JSON: {"mtn": "MTN"}
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    reference = Column(String(64), nullable=False, unique=True, index=True)
    product_type = Column(_enum(ProductType), nullable=False)
    product_id = Column(String(36), ForeignKey("products.id"))
    product_name = Column(String(255), nullable=False)
    network = Column(String(30))
    customer_phone = Column(String(20), nullable=False, index=True)
    customer_email = Column(String(255))
    is_bulk = Column(Boolean, nullable=False, default=False)
    amount_minor = Column(Integer, nullable=False)
    profit_minor = Column(Integer, nullable=False, default=0)
    agent_profit_minor = Column(Integer, nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="GHS")
    status = Column(_enum(OrderStatus), nullable=False, default=OrderStatus.PENDING, index=True)
    delivery_status = Column(_enum(DeliveryStatus), nullable=False, default=DeliveryStatus.PENDING, index=True)
    payment_status = Column(_enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    payment_method = Column(_enum(PaymentMethod), nullable=False)
    provider_response = Column(Text)
    failure_reason = Column(Text)
    buyer_id = Column(String(36), index=True)
    reseller_id = Column(String(36), ForeignKey("resellers.id"), index=True)
    settled_at = Column(DateTime(timezone=True))
    permanently_failed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    completed_at = Column(DateTime(timezone=True))

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        lazy="selectin",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    phone = Column(String(20), nullable=False, index=True)
    bundle_id = Column(String(36), ForeignKey("products.id"))
    bundle_name = Column(String(150))
    network = Column(String(30))
    capacity_mb = Column(Integer)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price_minor = Column(Integer, nullable=False, default=0)
    idempotency_key = Column(String(120), nullable=False, unique=True)
    delivery_status = Column(_enum(DeliveryStatus), nullable=False, default=DeliveryStatus.PENDING)
    provider_id = Column(String(36))
    provider_reference = Column(String(100), index=True)
    attempts = Column(Integer, nullable=False, default=0)
    retryable = Column(Boolean, nullable=False, default=False)
    failure_reason = Column(Text)
    provider_response = Column(Text)
    delivered_pin = Column(Text)
    delivered_serial = Column(Text)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    order = relationship("Order", back_populates="items")


class ProviderResponseLog(Base):
    __tablename__ = "provider_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_reference = Column(String(64), nullable=False, index=True)
    recipient = Column(String(20))
    source = Column(String(20), nullable=False)  # dispatch, poll, webhook
    http_status = Column(Integer)
    body = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Wallet(Base):
    __tablename__ = "wallets"
    __table_args__ = (CheckConstraint("balance_minor >= 0", name="ck_wallets_balance_non_negative"),)

    account_id = Column(String(36), primary_key=True)
    balance_minor = Column(Integer, nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="GHS")
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    transactions = relationship("WalletTransaction", back_populates="wallet", cascade="all, delete-orphan")


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"
    __table_args__ = (UniqueConstraint("account_id", "reference", "type", name="uq_wallet_transactions_ref_type"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(36), ForeignKey("wallets.account_id"), nullable=False, index=True)
    reference = Column(String(64), index=True)
    amount_minor = Column(Integer, nullable=False)
    balance_after_minor = Column(Integer, nullable=False)
    currency = Column(String(10), nullable=False, default="GHS")
    type = Column(_enum(WalletEntryType), nullable=False)
    description = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    wallet = relationship("Wallet", back_populates="transactions")


class WalletTopup(Base):
    __tablename__ = "wallet_topups"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(36), nullable=False, index=True)
    reference = Column(String(64), nullable=False, unique=True)
    amount_minor = Column(Integer, nullable=False)
    currency = Column(String(10), nullable=False, default="GHS")
    status = Column(_enum(TopupStatus), nullable=False, default=TopupStatus.PENDING)
    payment_channel = Column(String(50))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    confirmed_at = Column(DateTime(timezone=True))


class ProfitWallet(Base):
    __tablename__ = "profit_wallets"
    __table_args__ = (CheckConstraint("available_minor >= 0", name="ck_profit_wallets_available_non_negative"),)

    reseller_id = Column(String(36), ForeignKey("resellers.id"), primary_key=True)
    available_minor = Column(Integer, nullable=False, default=0)
    total_earned_minor = Column(Integer, nullable=False, default=0)
    total_withdrawn_minor = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class ProfitTransaction(Base):
    __tablename__ = "profit_transactions"
    __table_args__ = (UniqueConstraint("reference", "type", name="uq_profit_transactions_ref_type"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    reseller_id = Column(String(36), ForeignKey("profit_wallets.reseller_id"), nullable=False, index=True)
    reference = Column(String(64), nullable=False)  # order reference or withdrawal id
    amount_minor = Column(Integer, nullable=False)
    type = Column(_enum(ProfitEntryType), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class PlatformRevenue(Base):
    __tablename__ = "platform_revenue"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    order_reference = Column(String(64), nullable=False, unique=True)
    amount_minor = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Withdrawal(Base):
    __tablename__ = "withdrawals"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    reseller_id = Column(String(36), ForeignKey("resellers.id"), nullable=False, index=True)
    amount_minor = Column(Integer, nullable=False)
    status = Column(_enum(WithdrawalStatus), nullable=False, default=WithdrawalStatus.PENDING, index=True)
    recipient_type = Column(String(20), nullable=False, default="mobile_money")
    bank_code = Column(String(20), nullable=False)
    account_number = Column(String(30), nullable=False)
    account_name = Column(String(150), nullable=False)
    recipient_code = Column(String(100))
    transfer_reference = Column(String(64), unique=True)
    transfer_code = Column(String(100))
    failure_reason = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    paid_at = Column(DateTime(timezone=True))
