from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class ShopDelivery(Base):
    __tablename__ = "shop_deliveries"
    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING','PROCESSING','COMPLETED','FAILED')",
            name="ck_shop_deliveries_status",
        ),
        CheckConstraint("attempts >= 0", name="ck_shop_deliveries_attempts_non_negative"),
        Index("idx_shop_deliveries_status_created", "status", "created_at"),
        Index("idx_shop_deliveries_mc_uuid_created", "minecraft_uuid", "created_at"),
        Index(
            "idx_shop_deliveries_processing_locked_at",
            "locked_at",
            postgresql_where=text("status = 'PROCESSING'"),
        ),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    order_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("shop_orders.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    minecraft_username: Mapped[str] = mapped_column(String(16), nullable=False)
    minecraft_uuid: Mapped[str] = mapped_column(String(36), nullable=False)
    commands: Mapped[list[str]] = mapped_column(JSONB, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("'PENDING'"))
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    last_error: Mapped[str] = mapped_column(String(500), nullable=False, server_default=text("''"))
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    locked_by: Mapped[str] = mapped_column(String(80), nullable=False, server_default=text("''"))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
