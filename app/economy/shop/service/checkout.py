from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from urllib.parse import quote

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.shop_orders import ShopOrder
from app.db.repo.shop_orders_repo import ShopOrdersRepo
from app.db.repo.shop_products_repo import ShopProductsRepo
from app.economy.deliveries.service import DeliveryService
from app.economy.shop.cart import cart_description, cart_total, normalize_cart, price_cart
from app.economy.shop.errors import ShopMinecraftAccountInvalidError, ShopOrderTotalInvalidError
from app.economy.shop.types import PricedLine, ShopBuyer, ShopCheckoutStart
from app.services.minecraft_accounts import resolve_minecraft_account
from app.services.paypal_checkout import PayPalCheckoutGateway
from app.services.stripe_checkout import StripeCheckoutGateway

logger = structlog.get_logger(__name__)


async def resolve_buyer(
    *,
    user_id: str | None,
    email: str | None,
    minecraft_username: str,
    online_mode: bool,
    timeout_seconds: float,
    ip: str = "",
    user_agent: str = "",
) -> ShopBuyer:
    account = await resolve_minecraft_account(
        minecraft_username,
        online_mode=online_mode,
        timeout_seconds=timeout_seconds,
    )
    if account is None:
        raise ShopMinecraftAccountInvalidError
    return ShopBuyer(
        user_id=user_id or None,
        email=email or None,
        minecraft_username=account.username,
        minecraft_uuid=account.uuid,
        ip=ip[:64],
        user_agent=user_agent[:300],
    )


async def _price_items(
    session: AsyncSession,
    *,
    items: Iterable[Mapping[str, object]] | None,
    product_id: object,
) -> list[PricedLine]:
    lines = normalize_cart(items=items, product_id=product_id)
    products = await ShopProductsRepo.get_by_ids(session, [line.product_id for line in lines])
    return price_cart(lines, products)


async def _create_order(
    session: AsyncSession,
    *,
    buyer: ShopBuyer,
    lines: list[PricedLine],
    currency: str,
    provider: str,
    now_utc: datetime,
    paid: bool = False,
) -> ShopOrder:
    return await ShopOrdersRepo.create(
        session,
        order=ShopOrder(
            user_id=buyer.user_id,
            minecraft_username=buyer.minecraft_username,
            minecraft_uuid=buyer.minecraft_uuid,
            items=[line.as_json() for line in lines],
            total_price=cart_total(lines),
            currency=currency.upper(),
            status="PAID" if paid else "PENDING",
            provider=provider,
            paid_at=now_utc if paid else None,
            ip=buyer.ip,
            user_agent=buyer.user_agent,
        ),
        created_at=now_utc,
    )


async def start_stripe_order(
    session: AsyncSession,
    *,
    gateway: StripeCheckoutGateway,
    buyer: ShopBuyer,
    items: Iterable[Mapping[str, object]] | None,
    product_id: object = None,
    currency: str,
    site_url: str,
    now_utc: datetime,
) -> ShopCheckoutStart:
    lines = await _price_items(session, items=items, product_id=product_id)
    if cart_total(lines) <= 0:
        raise ShopOrderTotalInvalidError

    order = await _create_order(
        session,
        buyer=buyer,
        lines=lines,
        currency=currency,
        provider="STRIPE",
        now_utc=now_utc,
    )
    order_ref = quote(str(order.id))
    base_url = site_url.rstrip("/")
    checkout = await gateway.create_session(
        amount=order.total_price,
        currency=order.currency,
        product_name=lines[0].product_name if len(lines) == 1 else f"Shop order ({len(lines)} items)",
        description=cart_description(lines),
        metadata={"order_id": str(order.id)},
        success_url=f"{base_url}/cart/stripe/success?orderId={order_ref}&session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{base_url}/cart/stripe/cancel?orderId={order_ref}",
        idempotency_key=f"shop-order:{order.id}",
        customer_email=buyer.email,
    )
    order.stripe_checkout_session_id = checkout.session_id
    order.stripe_status = checkout.status
    order.stripe_payment_status = checkout.payment_status
    order.updated_at = now_utc

    logger.info(
        "shop_stripe_checkout_started",
        order_id=str(order.id),
        session_id=checkout.session_id,
        total=str(order.total_price),
    )
    return ShopCheckoutStart(
        order_id=order.id,
        provider="STRIPE",
        provider_reference=checkout.session_id,
        checkout_url=checkout.url,
        total=order.total_price,
        currency=order.currency,
    )


async def start_paypal_order(
    session: AsyncSession,
    *,
    gateway: PayPalCheckoutGateway,
    buyer: ShopBuyer,
    items: Iterable[Mapping[str, object]] | None,
    product_id: object = None,
    currency: str,
    site_url: str,
    now_utc: datetime,
) -> ShopCheckoutStart:
    lines = await _price_items(session, items=items, product_id=product_id)
    total = cart_total(lines)

    if total == 0:
        order = await _create_order(
            session,
            buyer=buyer,
            lines=lines,
            currency=currency,
            provider="MANUAL",
            now_utc=now_utc,
            paid=True,
        )
        await DeliveryService.ensure_delivery_for_order(session, order_id=order.id, now_utc=now_utc)
        logger.info("shop_free_order_paid", order_id=str(order.id))
        return ShopCheckoutStart(
            order_id=order.id,
            provider="MANUAL",
            provider_reference=None,
            checkout_url=None,
            total=total,
            currency=order.currency,
            free=True,
        )

    order = await _create_order(
        session,
        buyer=buyer,
        lines=lines,
        currency=currency,
        provider="PAYPAL",
        now_utc=now_utc,
    )
    order_ref = quote(str(order.id))
    base_url = site_url.rstrip("/")
    paypal_order = await gateway.create_order(
        amount=order.total_price,
        currency=order.currency,
        description=cart_description(lines),
        custom_id=str(order.id),
        return_url=f"{base_url}/cart/paypal/return?orderId={order_ref}",
        cancel_url=f"{base_url}/cart/paypal/cancel?orderId={order_ref}",
    )
    order.paypal_order_id = paypal_order.order_id
    order.paypal_status = paypal_order.status
    order.updated_at = now_utc

    logger.info(
        "shop_paypal_checkout_started",
        order_id=str(order.id),
        paypal_order_id=paypal_order.order_id,
        total=str(order.total_price),
    )
    return ShopCheckoutStart(
        order_id=order.id,
        provider="PAYPAL",
        provider_reference=paypal_order.order_id,
        checkout_url=paypal_order.approval_url,
        total=order.total_price,
        currency=order.currency,
    )
