from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.shop_deliveries import ShopDelivery
from app.db.models.shop_orders import ShopOrder

SETTLED_ORDER_STATUSES = ("PAID", "DELIVERED")


class ShopOrdersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, order_id: UUID) -> ShopOrder | None:
        return await session.get(ShopOrder, order_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, order_id: UUID) -> ShopOrder | None:
        stmt = select(ShopOrder).where(ShopOrder.id == order_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def refresh(session: AsyncSession, order_id: UUID) -> ShopOrder | None:
        return await session.get(ShopOrder, order_id, populate_existing=True)

    @staticmethod
    async def get_by_stripe_session_id(session: AsyncSession, session_id: str) -> ShopOrder | None:
        stmt = select(ShopOrder).where(ShopOrder.stripe_checkout_session_id == session_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def try_mark_paid(
        session: AsyncSession,
        *,
        order_id: UUID,
        now_utc: datetime,
        provider_values: dict[str, object],
    ) -> ShopOrder | None:
        stmt = (
            update(ShopOrder)
            .where(ShopOrder.id == order_id, ShopOrder.status == "PENDING")
            .values(status="PAID", paid_at=now_utc, updated_at=now_utc, **provider_values)
            .returning(ShopOrder.id)
        )
        result = await session.execute(stmt)
        updated_id = result.scalar_one_or_none()
        if updated_id is None:
            return None
        return await ShopOrdersRepo.refresh(session, updated_id)

    @staticmethod
    async def record_provider_status(
        session: AsyncSession,
        *,
        order_id: UUID,
        now_utc: datetime,
        provider_values: dict[str, object],
    ) -> bool:
        stmt = (
            update(ShopOrder)
            .where(ShopOrder.id == order_id, ShopOrder.status == "PENDING")
            .values(updated_at=now_utc, **provider_values)
            .returning(ShopOrder.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def force_mark_paid(session: AsyncSession, *, order_id: UUID, now_utc: datetime) -> bool:
        stmt = (
            update(ShopOrder)
            .where(
                ShopOrder.id == order_id,
                ShopOrder.status.not_in(SETTLED_ORDER_STATUSES),
            )
            .values(status="PAID", paid_at=now_utc, updated_at=now_utc)
            .returning(ShopOrder.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def cancel_unsettled(session: AsyncSession, *, order_id: UUID, now_utc: datetime) -> bool:
        stmt = (
            update(ShopOrder)
            .where(
                ShopOrder.id == order_id,
                ShopOrder.status.not_in(SETTLED_ORDER_STATUSES),
            )
            .values(status="CANCELED", updated_at=now_utc)
            .returning(ShopOrder.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def mark_delivered_if_paid(session: AsyncSession, *, order_id: UUID, now_utc: datetime) -> bool:
        stmt = (
            update(ShopOrder)
            .where(ShopOrder.id == order_id, ShopOrder.status == "PAID")
            .values(status="DELIVERED", updated_at=now_utc)
            .returning(ShopOrder.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def list_paid_without_delivery(
        session: AsyncSession,
        *,
        paid_before_utc: datetime,
        limit: int = 100,
    ) -> list[UUID]:
        has_delivery = select(ShopDelivery.id).where(ShopDelivery.order_id == ShopOrder.id).exists()
        stmt = (
            select(ShopOrder.id)
            .where(
                ShopOrder.status == "PAID",
                ShopOrder.paid_at.is_not(None),
                ShopOrder.paid_at <= paid_before_utc,
                ~has_delivery,
            )
            .order_by(ShopOrder.paid_at.asc())
            .limit(max(1, int(limit)))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def cancel_stale_pending(
        session: AsyncSession,
        *,
        older_than_utc: datetime,
        now_utc: datetime,
    ) -> int:
        stmt = (
            update(ShopOrder)
            .where(ShopOrder.status == "PENDING", ShopOrder.created_at < older_than_utc)
            .values(status="CANCELED", updated_at=now_utc)
            .returning(ShopOrder.id)
        )
        result = await session.execute(stmt)
        return len(list(result.scalars()))

    @staticmethod
    async def count_by_status(session: AsyncSession) -> dict[str, int]:
        stmt = select(ShopOrder.status, func.count(ShopOrder.id)).group_by(ShopOrder.status)
        result = await session.execute(stmt)
        return {str(status): int(count) for status, count in result.all()}

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        order: ShopOrder,
        created_at: datetime,
    ) -> ShopOrder:
        order.created_at = created_at
        order.updated_at = created_at
        session.add(order)
        await session.flush()
        return order
