from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.shop_orders_repo import ShopOrdersRepo
from app.economy.deliveries.service import DeliveryService
from app.economy.shop.errors import ShopOrderNotFoundError
from app.economy.shop.types import ShopCancelResult, ShopCaptureResult

from .capture import assert_order_owner

logger = structlog.get_logger(__name__)


async def cancel_order(
    session: AsyncSession,
    *,
    user_id: str | None,
    order_id: UUID,
    provider: str,
    now_utc: datetime,
) -> ShopCancelResult:
    """Cancel an unsettled order started with the given provider.

    Unknown orders and orders of another provider are a silent no-op.
    """
    order = await ShopOrdersRepo.get_by_id(session, order_id)
    if order is None or order.provider != provider:
        return ShopCancelResult(order_id=order_id, canceled=False)
    assert_order_owner(order, user_id=user_id)

    canceled = await ShopOrdersRepo.cancel_unsettled(session, order_id=order.id, now_utc=now_utc)
    if canceled:
        if provider == "PAYPAL":
            order.paypal_status = "CANCELED"
        logger.info("shop_order_canceled", order_id=str(order.id), provider=provider)
    return ShopCancelResult(order_id=order.id, canceled=canceled)


async def admin_mark_paid(session: AsyncSession, *, order_id: UUID, now_utc: datetime) -> ShopCaptureResult:
    order = await ShopOrdersRepo.get_by_id(session, order_id)
    if order is None:
        raise ShopOrderNotFoundError
    if order.status == "DELIVERED":
        return ShopCaptureResult(
            order_id=order.id,
            status=order.status,
            delivery_created=False,
            idempotent_replay=True,
        )

    marked = await ShopOrdersRepo.force_mark_paid(session, order_id=order.id, now_utc=now_utc)
    ensured = await DeliveryService.ensure_delivery_for_order(session, order_id=order.id, now_utc=now_utc)
    current = await ShopOrdersRepo.refresh(session, order.id)
    logger.info(
        "shop_order_marked_paid_manually",
        order_id=str(order.id),
        transitioned=marked,
        delivery_created=ensured.created,
    )
    return ShopCaptureResult(
        order_id=order.id,
        status=current.status if current is not None else "PAID",
        delivery_created=ensured.created,
        idempotent_replay=not marked,
    )
