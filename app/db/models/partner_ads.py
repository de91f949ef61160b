from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class PartnerAd(Base):
    __tablename__ = "partner_ads"
    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING_REVIEW','APPROVED','REJECTED')",
            name="ck_partner_ads_status",
        ),
        Index("idx_partner_ads_status_created", "status", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    owner_username: Mapped[str] = mapped_column(String(64), nullable=False, server_default=text("''"))
    server_name: Mapped[str] = mapped_column(String(60), nullable=False)
    address: Mapped[str] = mapped_column(String(80), nullable=False)
    version: Mapped[str] = mapped_column(String(30), nullable=False, server_default=text("''"))
    description: Mapped[str] = mapped_column(Text, nullable=False)
    website: Mapped[str] = mapped_column(String(200), nullable=False, server_default=text("''"))
    discord: Mapped[str] = mapped_column(String(200), nullable=False, server_default=text("''"))
    banner: Mapped[str] = mapped_column(String(500), nullable=False, server_default=text("''"))
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        server_default=text("'PENDING_REVIEW'"),
    )
    rejection_reason: Mapped[str] = mapped_column(String(300), nullable=False, server_default=text("''"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
