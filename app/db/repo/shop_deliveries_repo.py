from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.shop_deliveries import ShopDelivery


class ShopDeliveriesRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, delivery_id: UUID) -> ShopDelivery | None:
        return await session.get(ShopDelivery, delivery_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, delivery_id: UUID) -> ShopDelivery | None:
        stmt = select(ShopDelivery).where(ShopDelivery.id == delivery_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_order_id(session: AsyncSession, order_id: UUID) -> ShopDelivery | None:
        stmt = select(ShopDelivery).where(ShopDelivery.order_id == order_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def try_create(
        session: AsyncSession,
        *,
        order_id: UUID,
        user_id: str | None,
        minecraft_username: str,
        minecraft_uuid: str,
        commands: list[str],
        now_utc: datetime,
    ) -> UUID | None:
        stmt = (
            postgresql_insert(ShopDelivery)
            .values(
                order_id=order_id,
                user_id=user_id,
                minecraft_username=minecraft_username,
                minecraft_uuid=minecraft_uuid,
                commands=commands,
                status="PENDING",
                attempts=0,
                created_at=now_utc,
                updated_at=now_utc,
            )
            .on_conflict_do_nothing(index_elements=[ShopDelivery.order_id])
            .returning(ShopDelivery.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def claim_next(
        session: AsyncSession,
        *,
        locked_by: str,
        now_utc: datetime,
        lease_expired_before: datetime,
        max_attempts: int,
    ) -> ShopDelivery | None:
        claimable = or_(
            ShopDelivery.status == "PENDING",
            and_(
                ShopDelivery.status == "PROCESSING",
                or_(
                    ShopDelivery.locked_at.is_(None),
                    ShopDelivery.locked_at < lease_expired_before,
                ),
                ShopDelivery.attempts < max_attempts,
            ),
        )
        candidate_id = (
            select(ShopDelivery.id)
            .where(claimable)
            .order_by(ShopDelivery.created_at.asc(), ShopDelivery.id.asc())
            .limit(1)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )
        stmt = (
            update(ShopDelivery)
            .where(ShopDelivery.id == candidate_id)
            .values(
                status="PROCESSING",
                locked_at=now_utc,
                locked_by=locked_by,
                attempts=ShopDelivery.attempts + 1,
                updated_at=now_utc,
            )
            .returning(ShopDelivery.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        claimed_id = result.scalar_one_or_none()
        if claimed_id is None:
            return None
        return await session.get(ShopDelivery, claimed_id, populate_existing=True)

    @staticmethod
    async def list_expired_leases_for_update(
        session: AsyncSession,
        *,
        lease_expired_before: datetime,
        max_attempts: int,
        limit: int = 100,
    ) -> list[ShopDelivery]:
        stmt = (
            select(ShopDelivery)
            .where(
                ShopDelivery.status == "PROCESSING",
                ShopDelivery.locked_at < lease_expired_before,
                ShopDelivery.attempts >= max_attempts,
            )
            .order_by(ShopDelivery.locked_at.asc())
            .limit(max(1, int(limit)))
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_by_status(session: AsyncSession) -> dict[str, int]:
        stmt = select(ShopDelivery.status, func.count(ShopDelivery.id)).group_by(ShopDelivery.status)
        result = await session.execute(stmt)
        return {str(status): int(count) for status, count in result.all()}

    @staticmethod
    async def get_oldest_pending_age_seconds(session: AsyncSession, *, now_utc: datetime) -> int:
        stmt = select(func.min(ShopDelivery.created_at)).where(ShopDelivery.status == "PENDING")
        result = await session.execute(stmt)
        oldest = result.scalar_one_or_none()
        if oldest is None:
            return 0
        return max(0, int((now_utc - oldest).total_seconds()))
