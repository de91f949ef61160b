"""p1_partner_and_shop_core

Revision ID: 3a9c1e7b5d20
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "3a9c1e7b5d20"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(64), primary_key=True),
        sa.Column("value", postgresql.JSONB(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "partner_ads",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("owner_username", sa.String(64), nullable=False, server_default=sa.text("''")),
        sa.Column("server_name", sa.String(60), nullable=False),
        sa.Column("address", sa.String(80), nullable=False),
        sa.Column("version", sa.String(30), nullable=False, server_default=sa.text("''")),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("website", sa.String(200), nullable=False, server_default=sa.text("''")),
        sa.Column("discord", sa.String(200), nullable=False, server_default=sa.text("''")),
        sa.Column("banner", sa.String(500), nullable=False, server_default=sa.text("''")),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'PENDING_REVIEW'")),
        sa.Column("rejection_reason", sa.String(300), nullable=False, server_default=sa.text("''")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('PENDING_REVIEW','APPROVED','REJECTED')", name="ck_partner_ads_status"),
        sa.UniqueConstraint("user_id", name="partner_ads_user_id_key"),
    )
    op.create_index("idx_partner_ads_status_created", "partner_ads", ["status", "created_at"])

    op.create_table(
        "partner_bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("ad_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("slot", sa.SmallInteger(), nullable=False),
        sa.Column("kind", sa.String(8), nullable=False, server_default=sa.text("'CUSTOM'")),
        sa.Column("days", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'EUR'")),
        sa.Column("daily_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("discount_pct", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("provider", sa.String(8), nullable=False),
        sa.Column("request_note", sa.String(300), nullable=False, server_default=sa.text("''")),
        sa.Column("slot_active_key", sa.String(16), nullable=True),
        sa.Column("stripe_checkout_session_id", sa.String(255), nullable=True),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=True),
        sa.Column("stripe_status", sa.String(32), nullable=True),
        sa.Column("stripe_payment_status", sa.String(32), nullable=True),
        sa.Column("paypal_order_id", sa.String(64), nullable=True),
        sa.Column("paypal_capture_id", sa.String(64), nullable=True),
        sa.Column("paypal_status", sa.String(32), nullable=True),
        sa.Column("paypal_payer_id", sa.String(64), nullable=True),
        sa.Column("paypal_payer_email", sa.String(255), nullable=True),
        sa.Column("ip", sa.String(64), nullable=False, server_default=sa.text("''")),
        sa.Column("user_agent", sa.String(300), nullable=False, server_default=sa.text("''")),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("slot >= 0 AND slot <= 10", name="ck_partner_bookings_slot_range"),
        sa.CheckConstraint("days >= 1 AND days <= 30", name="ck_partner_bookings_days_range"),
        sa.CheckConstraint("kind IN ('CUSTOM','MONTHLY')", name="ck_partner_bookings_kind"),
        sa.CheckConstraint(
            "status IN ('PENDING','ACTIVE','EXPIRED','CANCELED')",
            name="ck_partner_bookings_status",
        ),
        sa.CheckConstraint("provider IN ('PAYPAL','STRIPE','FREE')", name="ck_partner_bookings_provider"),
        sa.CheckConstraint("total_price >= 0", name="ck_partner_bookings_total_non_negative"),
        sa.CheckConstraint(
            "discount_pct >= 0 AND discount_pct <= 100",
            name="ck_partner_bookings_discount_range",
        ),
        sa.ForeignKeyConstraint(["ad_id"], ["partner_ads.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("stripe_checkout_session_id", name="partner_bookings_stripe_checkout_session_id_key"),
        sa.UniqueConstraint("paypal_order_id", name="partner_bookings_paypal_order_id_key"),
    )
    op.create_index("idx_partner_bookings_status_ends", "partner_bookings", ["status", "ends_at"])
    op.create_index("idx_partner_bookings_slot_status_ends", "partner_bookings", ["slot", "status", "ends_at"])
    op.create_index("idx_partner_bookings_user_created", "partner_bookings", ["user_id", "created_at"])
    op.create_index("idx_partner_bookings_ad", "partner_bookings", ["ad_id"])
    op.create_index(
        "uq_partner_bookings_slot_active_key",
        "partner_bookings",
        ["slot_active_key"],
        unique=True,
        postgresql_where=sa.text("status IN ('PENDING','ACTIVE')"),
    )

    op.create_table(
        "shop_products",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("category", sa.String(16), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "delivery_commands",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("price >= 0", name="ck_shop_products_price_non_negative"),
        sa.CheckConstraint(
            "category IN ('RANK','BUNDLES','CURRENCY','KEYS','SPECIAL')",
            name="ck_shop_products_category",
        ),
    )
    op.create_index("idx_shop_products_active_sort", "shop_products", ["is_active", "sort_order"])

    op.create_table(
        "shop_orders",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("minecraft_username", sa.String(16), nullable=False),
        sa.Column("minecraft_uuid", sa.String(36), nullable=False),
        sa.Column("items", postgresql.JSONB(), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'EUR'")),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("provider", sa.String(8), nullable=False),
        sa.Column("stripe_checkout_session_id", sa.String(255), nullable=True),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=True),
        sa.Column("stripe_status", sa.String(32), nullable=True),
        sa.Column("stripe_payment_status", sa.String(32), nullable=True),
        sa.Column("paypal_order_id", sa.String(64), nullable=True),
        sa.Column("paypal_capture_id", sa.String(64), nullable=True),
        sa.Column("paypal_status", sa.String(32), nullable=True),
        sa.Column("paypal_payer_id", sa.String(64), nullable=True),
        sa.Column("paypal_payer_email", sa.String(255), nullable=True),
        sa.Column("ip", sa.String(64), nullable=False, server_default=sa.text("''")),
        sa.Column("user_agent", sa.String(300), nullable=False, server_default=sa.text("''")),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('PENDING','PAID','DELIVERED','CANCELED')", name="ck_shop_orders_status"),
        sa.CheckConstraint("provider IN ('STRIPE','PAYPAL','MANUAL')", name="ck_shop_orders_provider"),
        sa.CheckConstraint("total_price >= 0", name="ck_shop_orders_total_non_negative"),
        sa.UniqueConstraint("stripe_checkout_session_id", name="shop_orders_stripe_checkout_session_id_key"),
        sa.UniqueConstraint("paypal_order_id", name="shop_orders_paypal_order_id_key"),
    )
    op.create_index("idx_shop_orders_status_created", "shop_orders", ["status", "created_at"])
    op.create_index("idx_shop_orders_mc_uuid_created", "shop_orders", ["minecraft_uuid", "created_at"])
    op.create_index("idx_shop_orders_user_created", "shop_orders", ["user_id", "created_at"])
    op.create_index(
        "idx_shop_orders_paid_at",
        "shop_orders",
        ["paid_at"],
        postgresql_where=sa.text("status = 'PAID'"),
    )

    op.create_table(
        "shop_deliveries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("order_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("minecraft_username", sa.String(16), nullable=False),
        sa.Column("minecraft_uuid", sa.String(36), nullable=False),
        sa.Column("commands", postgresql.JSONB(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_error", sa.String(500), nullable=False, server_default=sa.text("''")),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("locked_by", sa.String(80), nullable=False, server_default=sa.text("''")),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('PENDING','PROCESSING','COMPLETED','FAILED')",
            name="ck_shop_deliveries_status",
        ),
        sa.CheckConstraint("attempts >= 0", name="ck_shop_deliveries_attempts_non_negative"),
        sa.ForeignKeyConstraint(["order_id"], ["shop_orders.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("order_id", name="shop_deliveries_order_id_key"),
    )
    op.create_index("idx_shop_deliveries_status_created", "shop_deliveries", ["status", "created_at"])
    op.create_index("idx_shop_deliveries_mc_uuid_created", "shop_deliveries", ["minecraft_uuid", "created_at"])
    op.create_index(
        "idx_shop_deliveries_processing_locked_at",
        "shop_deliveries",
        ["locked_at"],
        postgresql_where=sa.text("status = 'PROCESSING'"),
    )


def downgrade() -> None:
    op.drop_index("idx_shop_deliveries_processing_locked_at", table_name="shop_deliveries")
    op.drop_index("idx_shop_deliveries_mc_uuid_created", table_name="shop_deliveries")
    op.drop_index("idx_shop_deliveries_status_created", table_name="shop_deliveries")
    op.drop_table("shop_deliveries")

    op.drop_index("idx_shop_orders_paid_at", table_name="shop_orders")
    op.drop_index("idx_shop_orders_user_created", table_name="shop_orders")
    op.drop_index("idx_shop_orders_mc_uuid_created", table_name="shop_orders")
    op.drop_index("idx_shop_orders_status_created", table_name="shop_orders")
    op.drop_table("shop_orders")

    op.drop_index("idx_shop_products_active_sort", table_name="shop_products")
    op.drop_table("shop_products")

    op.drop_index("uq_partner_bookings_slot_active_key", table_name="partner_bookings")
    op.drop_index("idx_partner_bookings_ad", table_name="partner_bookings")
    op.drop_index("idx_partner_bookings_user_created", table_name="partner_bookings")
    op.drop_index("idx_partner_bookings_slot_status_ends", table_name="partner_bookings")
    op.drop_index("idx_partner_bookings_status_ends", table_name="partner_bookings")
    op.drop_table("partner_bookings")

    op.drop_index("idx_partner_ads_status_created", table_name="partner_ads")
    op.drop_table("partner_ads")

    op.drop_table("app_settings")
