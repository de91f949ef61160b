from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, SmallInteger, String, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class PartnerBooking(Base):
    __tablename__ = "partner_bookings"
    __table_args__ = (
        CheckConstraint("slot >= 0 AND slot <= 10", name="ck_partner_bookings_slot_range"),
        CheckConstraint("days >= 1 AND days <= 30", name="ck_partner_bookings_days_range"),
        CheckConstraint("kind IN ('CUSTOM','MONTHLY')", name="ck_partner_bookings_kind"),
        CheckConstraint(
            "status IN ('PENDING','ACTIVE','EXPIRED','CANCELED')",
            name="ck_partner_bookings_status",
        ),
        CheckConstraint(
            "provider IN ('PAYPAL','STRIPE','FREE')",
            name="ck_partner_bookings_provider",
        ),
        CheckConstraint("total_price >= 0", name="ck_partner_bookings_total_non_negative"),
        CheckConstraint(
            "discount_pct >= 0 AND discount_pct <= 100",
            name="ck_partner_bookings_discount_range",
        ),
        Index("idx_partner_bookings_status_ends", "status", "ends_at"),
        Index("idx_partner_bookings_slot_status_ends", "slot", "status", "ends_at"),
        Index("idx_partner_bookings_user_created", "user_id", "created_at"),
        Index("idx_partner_bookings_ad", "ad_id"),
        Index(
            "uq_partner_bookings_slot_active_key",
            "slot_active_key",
            unique=True,
            postgresql_where=text("status IN ('PENDING','ACTIVE')"),
        ),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    ad_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("partner_ads.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    slot: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    kind: Mapped[str] = mapped_column(String(8), nullable=False, server_default=text("'CUSTOM'"))
    days: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default=text("'EUR'"))
    daily_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount_pct: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("'PENDING'"))
    provider: Mapped[str] = mapped_column(String(8), nullable=False)
    request_note: Mapped[str] = mapped_column(String(300), nullable=False, server_default=text("''"))
    slot_active_key: Mapped[str | None] = mapped_column(String(16), nullable=True)

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
    starts_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
