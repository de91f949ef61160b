from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.shop_orders import ShopOrder
from app.db.repo.shop_orders_repo import SETTLED_ORDER_STATUSES, ShopOrdersRepo
from app.economy.deliveries.service import DeliveryService
from app.economy.shop.errors import (
    ShopOrderForbiddenError,
    ShopOrderNotFoundError,
    ShopOrderProviderMismatchError,
    ShopOrderStateError,
    ShopPaymentReferenceMismatchError,
)
from app.economy.shop.types import ShopCaptureResult
from app.services.paypal_checkout import PayPalCheckoutGateway
from app.services.stripe_checkout import StripeCheckoutGateway, StripeCheckoutSession

logger = structlog.get_logger(__name__)


def assert_order_owner(order: ShopOrder, *, user_id: str | None) -> None:
    # guest orders and anonymous callers are not owner-bound
    if order.user_id and user_id and order.user_id != user_id:
        raise ShopOrderForbiddenError


async def _replay(session: AsyncSession, *, order: ShopOrder, now_utc: datetime) -> ShopCaptureResult:
    ensured = await DeliveryService.ensure_delivery_for_order(session, order_id=order.id, now_utc=now_utc)
    return ShopCaptureResult(
        order_id=order.id,
        status=order.status,
        delivery_created=ensured.created,
        idempotent_replay=True,
    )


def _checked_order(
    *,
    order: ShopOrder | None,
    user_id: str | None,
    provider: str,
) -> ShopOrder:
    if order is None:
        raise ShopOrderNotFoundError
    if order.provider != provider:
        raise ShopOrderProviderMismatchError
    assert_order_owner(order, user_id=user_id)
    return order


async def _finalize_paid(
    session: AsyncSession,
    *,
    order: ShopOrder,
    provider_values: dict[str, object],
    now_utc: datetime,
) -> ShopCaptureResult:
    updated = await ShopOrdersRepo.try_mark_paid(
        session,
        order_id=order.id,
        now_utc=now_utc,
        provider_values=provider_values,
    )
    if updated is None:
        current = await ShopOrdersRepo.refresh(session, order.id)
        if current is None:
            raise ShopOrderNotFoundError
        if current.status not in SETTLED_ORDER_STATUSES:
            raise ShopOrderStateError(current.status)
        return await _replay(session, order=current, now_utc=now_utc)

    ensured = await DeliveryService.ensure_delivery_for_order(session, order_id=updated.id, now_utc=now_utc)
    logger.info(
        "shop_order_paid",
        order_id=str(updated.id),
        provider=updated.provider,
        total=str(updated.total_price),
        delivery_created=ensured.created,
    )
    return ShopCaptureResult(
        order_id=updated.id,
        status=updated.status,
        delivery_created=ensured.created,
        idempotent_replay=False,
    )


async def _record_not_completed(
    session: AsyncSession,
    *,
    order: ShopOrder,
    provider_values: dict[str, object],
    provider_status: str,
    now_utc: datetime,
) -> ShopCaptureResult:
    await ShopOrdersRepo.record_provider_status(
        session,
        order_id=order.id,
        now_utc=now_utc,
        provider_values=provider_values,
    )
    return ShopCaptureResult(
        order_id=order.id,
        status=order.status,
        delivery_created=False,
        idempotent_replay=False,
        payment_completed=False,
        provider_status=provider_status,
    )


def _stripe_values(checkout: StripeCheckoutSession) -> dict[str, object]:
    return {
        "stripe_status": checkout.status,
        "stripe_payment_status": checkout.payment_status,
        "stripe_payment_intent_id": checkout.payment_intent_id,
    }


async def confirm_stripe_order(
    session: AsyncSession,
    *,
    gateway: StripeCheckoutGateway,
    user_id: str | None,
    session_id: str,
    order_id: UUID | None,
    now_utc: datetime,
) -> ShopCaptureResult:
    found = (
        await ShopOrdersRepo.get_by_id(session, order_id)
        if order_id is not None
        else await ShopOrdersRepo.get_by_stripe_session_id(session, session_id)
    )
    order = _checked_order(order=found, user_id=user_id, provider="STRIPE")
    if order.status in SETTLED_ORDER_STATUSES:
        return await _replay(session, order=order, now_utc=now_utc)
    if order.status != "PENDING":
        raise ShopOrderStateError(order.status)
    if order.stripe_checkout_session_id != session_id:
        raise ShopPaymentReferenceMismatchError

    checkout = await gateway.retrieve_session(session_id)
    if not checkout.is_paid:
        logger.info(
            "shop_stripe_payment_not_completed",
            order_id=str(order.id),
            payment_status=checkout.payment_status,
        )
        return await _record_not_completed(
            session,
            order=order,
            provider_values=_stripe_values(checkout),
            provider_status=checkout.payment_status,
            now_utc=now_utc,
        )

    return await _finalize_paid(session, order=order, provider_values=_stripe_values(checkout), now_utc=now_utc)


async def apply_stripe_checkout_session(
    session: AsyncSession,
    *,
    checkout: StripeCheckoutSession,
    now_utc: datetime,
) -> ShopCaptureResult:
    try:
        order_id = UUID(checkout.metadata.get("order_id", ""))
    except ValueError as exc:
        raise ShopOrderNotFoundError from exc

    order = _checked_order(
        order=await ShopOrdersRepo.get_by_id(session, order_id),
        user_id=None,
        provider="STRIPE",
    )
    if order.status in SETTLED_ORDER_STATUSES:
        return await _replay(session, order=order, now_utc=now_utc)
    if order.status != "PENDING":
        raise ShopOrderStateError(order.status)
    if order.stripe_checkout_session_id and order.stripe_checkout_session_id != checkout.session_id:
        raise ShopPaymentReferenceMismatchError

    values = _stripe_values(checkout)
    values["stripe_checkout_session_id"] = checkout.session_id
    if not checkout.is_paid:
        return await _record_not_completed(
            session,
            order=order,
            provider_values=values,
            provider_status=checkout.payment_status,
            now_utc=now_utc,
        )

    return await _finalize_paid(session, order=order, provider_values=values, now_utc=now_utc)


async def capture_paypal_order(
    session: AsyncSession,
    *,
    gateway: PayPalCheckoutGateway,
    user_id: str | None,
    order_id: UUID,
    paypal_order_id: str,
    now_utc: datetime,
) -> ShopCaptureResult:
    order = _checked_order(
        order=await ShopOrdersRepo.get_by_id(session, order_id),
        user_id=user_id,
        provider="PAYPAL",
    )
    if order.status in SETTLED_ORDER_STATUSES:
        return await _replay(session, order=order, now_utc=now_utc)
    if order.status != "PENDING":
        raise ShopOrderStateError(order.status)
    if order.paypal_order_id != paypal_order_id:
        raise ShopPaymentReferenceMismatchError

    capture = await gateway.capture_order(paypal_order_id)
    if not capture.is_completed:
        logger.info(
            "shop_paypal_payment_not_completed",
            order_id=str(order.id),
            paypal_status=capture.status,
        )
        return await _record_not_completed(
            session,
            order=order,
            provider_values={"paypal_status": capture.status},
            provider_status=capture.status,
            now_utc=now_utc,
        )

    return await _finalize_paid(
        session,
        order=order,
        provider_values={
            "paypal_status": capture.status,
            "paypal_capture_id": capture.capture_id,
            "paypal_payer_id": capture.payer_id,
            "paypal_payer_email": capture.payer_email,
        },
        now_utc=now_utc,
    )
