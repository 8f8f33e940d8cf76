"""create settlement tables

Revision ID: 5e7f1c2a9b30
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "5e7f1c2a9b30"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        "products",
        _id(),
        sa.Column("product_type", sa.String(length=20), nullable=False, server_default="data_bundle"),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("network", sa.String(length=30)),
        sa.Column("data_amount", sa.String(length=20)),
        sa.Column("validity", sa.String(length=50)),
        sa.Column("base_price_minor", sa.Integer()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
    )
    op.create_index("ix_products_network", "products", ["network"])

    op.create_table(
        "resellers",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="agent"),
        sa.Column("storefront_slug", sa.String(length=100), unique=True),
        sa.Column("business_name", sa.String(length=150)),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_resellers_user_id", "resellers", ["user_id"], unique=True)

    op.create_table(
        "result_checker_stock",
        _id(),
        sa.Column("product_id", sa.String(length=36), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("serial_number", sa.String(length=100), nullable=False, unique=True),
        sa.Column("pin", sa.String(length=100), nullable=False),
        sa.Column("is_sold", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("order_reference", sa.String(length=64)),
        sa.Column("sold_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_result_checker_stock_product_id", "result_checker_stock", ["product_id"])
    op.create_index("ix_result_checker_stock_order_reference", "result_checker_stock", ["order_reference"])

    op.create_table(
        "admin_base_prices",
        _id(),
        sa.Column("product_id", sa.String(length=36), sa.ForeignKey("products.id"), nullable=False, unique=True),
        sa.Column("price_minor", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "role_base_prices",
        _id(),
        sa.Column("product_id", sa.String(length=36), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("price_minor", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("product_id", "role", name="uq_role_base_prices_product_role"),
    )
    op.create_index("ix_role_base_prices_product_id", "role_base_prices", ["product_id"])

    op.create_table(
        "custom_prices",
        _id(),
        sa.Column("product_id", sa.String(length=36), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("owner_id", sa.String(length=36), sa.ForeignKey("resellers.id"), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("price_minor", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("product_id", "owner_id", "role", name="uq_custom_prices_product_owner_role"),
    )
    op.create_index("ix_custom_prices_product_id", "custom_prices", ["product_id"])
    op.create_index("ix_custom_prices_owner_id", "custom_prices", ["owner_id"])

    op.create_table(
        "external_providers",
        _id(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("base_url", sa.String(length=255), nullable=False),
        sa.Column("api_key", sa.String(length=255), nullable=False),
        sa.Column("api_secret", sa.String(length=255), nullable=False),
        sa.Column("orders_path", sa.String(length=100), nullable=False, server_default="/api/v1/orders"),
        sa.Column("network_mappings", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
    )

    op.create_table(
        "orders",
        _id(),
        sa.Column("reference", sa.String(length=64), nullable=False),
        sa.Column("product_type", sa.String(length=20), nullable=False),
        sa.Column("product_id", sa.String(length=36), sa.ForeignKey("products.id")),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("network", sa.String(length=30)),
        sa.Column("customer_phone", sa.String(length=20), nullable=False),
        sa.Column("customer_email", sa.String(length=255)),
        sa.Column("is_bulk", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("amount_minor", sa.Integer(), nullable=False),
        sa.Column("profit_minor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("agent_profit_minor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="GHS"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("delivery_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(length=20), nullable=False),
        sa.Column("provider_response", sa.Text()),
        sa.Column("failure_reason", sa.Text()),
        sa.Column("buyer_id", sa.String(length=36)),
        sa.Column("reseller_id", sa.String(length=36), sa.ForeignKey("resellers.id")),
        sa.Column("settled_at", sa.DateTime(timezone=True)),
        sa.Column("permanently_failed", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_orders_reference", "orders", ["reference"], unique=True)
    op.create_index("ix_orders_customer_phone", "orders", ["customer_phone"])
    op.create_index("ix_orders_status", "orders", ["status"])
    op.create_index("ix_orders_delivery_status", "orders", ["delivery_status"])
    op.create_index("ix_orders_buyer_id", "orders", ["buyer_id"])
    op.create_index("ix_orders_reseller_id", "orders", ["reseller_id"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])

    op.create_table(
        "order_items",
        _id(),
        sa.Column("order_id", sa.String(length=36), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("bundle_id", sa.String(length=36), sa.ForeignKey("products.id")),
        sa.Column("bundle_name", sa.String(length=150)),
        sa.Column("network", sa.String(length=30)),
        sa.Column("capacity_mb", sa.Integer()),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("unit_price_minor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("idempotency_key", sa.String(length=120), nullable=False, unique=True),
        sa.Column("delivery_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("provider_id", sa.String(length=36)),
        sa.Column("provider_reference", sa.String(length=100)),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("retryable", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("failure_reason", sa.Text()),
        sa.Column("provider_response", sa.Text()),
        sa.Column("delivered_pin", sa.Text()),
        sa.Column("delivered_serial", sa.Text()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])
    op.create_index("ix_order_items_phone", "order_items", ["phone"])
    op.create_index("ix_order_items_provider_reference", "order_items", ["provider_reference"])

    op.create_table(
        "provider_responses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_reference", sa.String(length=64), nullable=False),
        sa.Column("recipient", sa.String(length=20)),
        sa.Column("source", sa.String(length=20), nullable=False),
        sa.Column("http_status", sa.Integer()),
        sa.Column("body", sa.Text()),
        _created_at(),
    )
    op.create_index("ix_provider_responses_order_reference", "provider_responses", ["order_reference"])

    op.create_table(
        "wallets",
        sa.Column("account_id", sa.String(length=36), primary_key=True),
        sa.Column("balance_minor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="GHS"),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        _created_at(),
        sa.CheckConstraint("balance_minor >= 0", name="ck_wallets_balance_non_negative"),
    )

    op.create_table(
        "wallet_transactions",
        _id(),
        sa.Column("account_id", sa.String(length=36), sa.ForeignKey("wallets.account_id"), nullable=False),
        sa.Column("reference", sa.String(length=64)),
        sa.Column("amount_minor", sa.Integer(), nullable=False),
        sa.Column("balance_after_minor", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="GHS"),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("description", sa.String(length=255)),
        _created_at(),
        sa.UniqueConstraint("account_id", "reference", "type", name="uq_wallet_transactions_ref_type"),
    )
    op.create_index("ix_wallet_transactions_account_id", "wallet_transactions", ["account_id"])
    op.create_index("ix_wallet_transactions_reference", "wallet_transactions", ["reference"])

    op.create_table(
        "wallet_topups",
        _id(),
        sa.Column("account_id", sa.String(length=36), nullable=False),
        sa.Column("reference", sa.String(length=64), nullable=False, unique=True),
        sa.Column("amount_minor", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="GHS"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("payment_channel", sa.String(length=50)),
        _created_at(),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_wallet_topups_account_id", "wallet_topups", ["account_id"])

    op.create_table(
        "profit_wallets",
        sa.Column("reseller_id", sa.String(length=36), sa.ForeignKey("resellers.id"), primary_key=True),
        sa.Column("available_minor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_earned_minor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_withdrawn_minor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("available_minor >= 0", name="ck_profit_wallets_available_non_negative"),
    )

    op.create_table(
        "profit_transactions",
        _id(),
        sa.Column(
            "reseller_id",
            sa.String(length=36),
            sa.ForeignKey("profit_wallets.reseller_id"),
            nullable=False,
        ),
        sa.Column("reference", sa.String(length=64), nullable=False),
        sa.Column("amount_minor", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        _created_at(),
        sa.UniqueConstraint("reference", "type", name="uq_profit_transactions_ref_type"),
    )
    op.create_index("ix_profit_transactions_reseller_id", "profit_transactions", ["reseller_id"])

    op.create_table(
        "platform_revenue",
        _id(),
        sa.Column("order_reference", sa.String(length=64), nullable=False, unique=True),
        sa.Column("amount_minor", sa.Integer(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "withdrawals",
        _id(),
        sa.Column("reseller_id", sa.String(length=36), sa.ForeignKey("resellers.id"), nullable=False),
        sa.Column("amount_minor", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("recipient_type", sa.String(length=20), nullable=False, server_default="mobile_money"),
        sa.Column("bank_code", sa.String(length=20), nullable=False),
        sa.Column("account_number", sa.String(length=30), nullable=False),
        sa.Column("account_name", sa.String(length=150), nullable=False),
        sa.Column("recipient_code", sa.String(length=100)),
        sa.Column("transfer_reference", sa.String(length=64), unique=True),
        sa.Column("transfer_code", sa.String(length=100)),
        sa.Column("failure_reason", sa.Text()),
        _created_at(),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_withdrawals_reseller_id", "withdrawals", ["reseller_id"])
    op.create_index("ix_withdrawals_status", "withdrawals", ["status"])


def downgrade() -> None:
    op.drop_table("withdrawals")
    op.drop_table("platform_revenue")
    op.drop_table("profit_transactions")
    op.drop_table("profit_wallets")
    op.drop_table("wallet_topups")
    op.drop_table("wallet_transactions")
    op.drop_table("wallets")
    op.drop_table("provider_responses")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("external_providers")
    op.drop_table("custom_prices")
    op.drop_table("role_base_prices")
    op.drop_table("admin_base_prices")
    op.drop_table("result_checker_stock")
    op.drop_table("resellers")
    op.drop_table("products")
