from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.partner_ads import PartnerAd


class PartnerAdsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, ad_id: UUID) -> PartnerAd | None:
        return await session.get(PartnerAd, ad_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, ad_id: UUID) -> PartnerAd | None:
        stmt = select(PartnerAd).where(PartnerAd.id == ad_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_user_id(session: AsyncSession, user_id: str) -> PartnerAd | None:
        stmt = select(PartnerAd).where(PartnerAd.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_user_id_for_update(session: AsyncSession, user_id: str) -> PartnerAd | None:
        stmt = select(PartnerAd).where(PartnerAd.user_id == user_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_ids(session: AsyncSession, ad_ids: Iterable[UUID]) -> dict[UUID, PartnerAd]:
        resolved_ids = list(set(ad_ids))
        if not resolved_ids:
            return {}
        stmt = select(PartnerAd).where(PartnerAd.id.in_(resolved_ids))
        result = await session.execute(stmt)
        return {ad.id: ad for ad in result.scalars().all()}

    @staticmethod
    async def list_by_status(
        session: AsyncSession,
        *,
        status: str | None,
        limit: int = 100,
    ) -> list[PartnerAd]:
        stmt = select(PartnerAd)
        if status is not None:
            stmt = stmt.where(PartnerAd.status == status)
        stmt = stmt.order_by(PartnerAd.created_at.desc()).limit(max(1, int(limit)))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        ad: PartnerAd,
        created_at: datetime,
    ) -> PartnerAd:
        ad.created_at = created_at
        ad.updated_at = created_at
        session.add(ad)
        await session.flush()
        return ad
