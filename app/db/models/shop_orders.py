from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, Index, Numeric, String, text
from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class ShopOrder(Base):
    __tablename__ = "shop_orders"
    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING','PAID','DELIVERED','CANCELED')",
            name="ck_shop_orders_status",
        ),
        CheckConstraint(
            "provider IN ('STRIPE','PAYPAL','MANUAL')",
            name="ck_shop_orders_provider",
        ),
        CheckConstraint("total_price >= 0", name="ck_shop_orders_total_non_negative"),
        Index("idx_shop_orders_status_created", "status", "created_at"),
        Index("idx_shop_orders_mc_uuid_created", "minecraft_uuid", "created_at"),
        Index("idx_shop_orders_user_created", "user_id", "created_at"),
        Index(
            "idx_shop_orders_paid_at",
            "paid_at",
            postgresql_where=text("status = 'PAID'"),
        ),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    minecraft_username: Mapped[str] = mapped_column(String(16), nullable=False)
    minecraft_uuid: Mapped[str] = mapped_column(String(36), nullable=False)
    items: Mapped[list[dict[str, object]]] = mapped_column(JSONB, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default=text("'EUR'"))
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("'PENDING'"))
    provider: Mapped[str] = mapped_column(String(8), nullable=False)

    stripe_checkout_session_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stripe_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    stripe_payment_status: Mapped[str | None] = mapped_column(String(32), nullable=True)

    paypal_order_id: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    paypal_capture_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    paypal_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    paypal_payer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    paypal_payer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    ip: Mapped[str] = mapped_column(String(64), nullable=False, server_default=text("''"))
    user_agent: Mapped[str] = mapped_column(String(300), nullable=False, server_default=text("''"))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
