from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.shop_products import ShopProduct


class ShopProductsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, product_id: UUID) -> ShopProduct | None:
        return await session.get(ShopProduct, product_id)

    @staticmethod
    async def get_by_ids(
        session: AsyncSession,
        product_ids: Iterable[UUID],
    ) -> dict[UUID, ShopProduct]:
        resolved_ids = list(set(product_ids))
        if not resolved_ids:
            return {}
        stmt = select(ShopProduct).where(ShopProduct.id.in_(resolved_ids))
        result = await session.execute(stmt)
        return {product.id: product for product in result.scalars().all()}

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        product: ShopProduct,
        created_at: datetime,
    ) -> ShopProduct:
        product.created_at = created_at
        product.updated_at = created_at
        session.add(product)
        await session.flush()
        return product
