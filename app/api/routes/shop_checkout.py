from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from app.api.deps import optional_user, request_meta
from app.core.config import get_settings
from app.db.session import SessionLocal
from app.economy.shop.errors import (
    ShopError,
    ShopMinecraftAccountInvalidError,
    ShopOrderForbiddenError,
    ShopOrderNotFoundError,
    ShopOrderProviderMismatchError,
    ShopOrderStateError,
    ShopPaymentNotCompletedError,
    ShopPaymentReferenceMismatchError,
    ShopProductNotFoundError,
    ShopValidationError,
)
from app.economy.shop.service import ShopService
from app.economy.shop.types import ShopBuyer, ShopCaptureResult, ShopCheckoutStart
from app.services.payment_errors import (
    PaymentAmountInvalidError,
    PaymentProviderError,
    PaymentProviderNotConfiguredError,
)
from app.services.paypal_checkout import get_paypal_gateway
from app.services.stripe_checkout import get_stripe_gateway

router = APIRouter(tags=["shop", "checkout"])
logger = structlog.get_logger(__name__)


class ShopCartItemPayload(BaseModel):
    product_id: UUID
    quantity: int = Field(default=1, ge=1, le=99)


class ShopCheckoutCreateRequest(BaseModel):
    minecraft_username: str = Field(min_length=1, max_length=32)
    product_id: UUID | None = None
    items: list[ShopCartItemPayload] | None = Field(default=None, max_length=50)


class ShopCheckoutStartResponse(BaseModel):
    order_id: UUID
    provider: str
    provider_reference: str | None
    checkout_url: str | None
    total: float
    currency: str
    free: bool


class ShopStripeConfirmRequest(BaseModel):
    session_id: str = Field(min_length=1, max_length=255)
    order_id: UUID | None = None


class ShopPayPalCaptureRequest(BaseModel):
    order_id: UUID
    paypal_order_id: str = Field(min_length=1, max_length=64)


class ShopCancelRequest(BaseModel):
    order_id: UUID


class ShopCaptureResponse(BaseModel):
    ok: bool = True
    order_id: UUID
    status: str
    delivery_created: bool
    idempotent_replay: bool


class ShopCancelResponse(BaseModel):
    ok: bool = True
    order_id: UUID
    canceled: bool


def shop_http_error(exc: ShopError | PaymentProviderError) -> HTTPException:
    if isinstance(exc, ShopMinecraftAccountInvalidError):
        return HTTPException(status_code=400, detail={"code": "E_MINECRAFT_ACCOUNT_INVALID"})
    if isinstance(exc, (ShopProductNotFoundError, ShopOrderNotFoundError)):
        return HTTPException(status_code=404, detail={"code": "E_SHOP_NOT_FOUND"})
    if isinstance(exc, ShopValidationError):
        return HTTPException(status_code=400, detail={"code": "E_SHOP_VALIDATION"})
    if isinstance(exc, ShopOrderForbiddenError):
        return HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})
    if isinstance(exc, ShopOrderProviderMismatchError):
        return HTTPException(status_code=400, detail={"code": "E_PAYMENT_PROVIDER_MISMATCH"})
    if isinstance(exc, ShopPaymentReferenceMismatchError):
        return HTTPException(status_code=400, detail={"code": "E_PAYMENT_REFERENCE_MISMATCH"})
    if isinstance(exc, ShopOrderStateError):
        return HTTPException(status_code=409, detail={"code": "E_SHOP_ORDER_STATE"})
    if isinstance(exc, ShopPaymentNotCompletedError):
        return HTTPException(status_code=400, detail={"code": "E_PAYMENT_NOT_COMPLETED"})
    if isinstance(exc, PaymentAmountInvalidError):
        return HTTPException(status_code=400, detail={"code": "E_PAYMENT_AMOUNT_INVALID"})
    if isinstance(exc, PaymentProviderNotConfiguredError):
        return HTTPException(status_code=503, detail={"code": "E_PAYMENT_PROVIDER_NOT_CONFIGURED"})
    if isinstance(exc, PaymentProviderError):
        return HTTPException(status_code=502, detail={"code": "E_PAYMENT_PROVIDER_FAILED"})
    return HTTPException(status_code=400, detail={"code": "E_SHOP_VALIDATION"})


def _start_as_response(result: ShopCheckoutStart) -> ShopCheckoutStartResponse:
    return ShopCheckoutStartResponse(
        order_id=result.order_id,
        provider=result.provider,
        provider_reference=result.provider_reference,
        checkout_url=result.checkout_url,
        total=float(result.total),
        currency=result.currency,
        free=result.free,
    )


def _ensure_payment_completed(result: ShopCaptureResult) -> None:
    if not result.payment_completed:
        raise shop_http_error(ShopPaymentNotCompletedError(result.provider_status))


def _capture_as_response(result: ShopCaptureResult) -> ShopCaptureResponse:
    return ShopCaptureResponse(
        order_id=result.order_id,
        status=result.status,
        delivery_created=result.delivery_created,
        idempotent_replay=result.idempotent_replay,
    )


async def _resolve_buyer(payload: ShopCheckoutCreateRequest, request: Request) -> ShopBuyer:
    settings = get_settings()
    user = optional_user(request)
    meta = request_meta(request)
    return await ShopService.resolve_buyer(
        user_id=user.user_id if user is not None else None,
        email=user.email if user is not None else None,
        minecraft_username=payload.minecraft_username,
        online_mode=settings.mc_online_mode,
        timeout_seconds=settings.mojang_api_timeout_seconds,
        ip=meta.ip,
        user_agent=meta.user_agent,
    )


def _cart_items(payload: ShopCheckoutCreateRequest) -> list[dict[str, object]]:
    return [item.model_dump() for item in payload.items or []]


@router.post("/shop/stripe/create", response_model=ShopCheckoutStartResponse)
async def create_shop_stripe_checkout(
    payload: ShopCheckoutCreateRequest,
    request: Request,
) -> ShopCheckoutStartResponse:
    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    try:
        buyer = await _resolve_buyer(payload, request)
        async with SessionLocal.begin() as session:
            result = await ShopService.start_stripe_order(
                session,
                gateway=get_stripe_gateway(),
                buyer=buyer,
                items=_cart_items(payload),
                product_id=payload.product_id,
                currency=settings.shop_currency,
                site_url=settings.site_url,
                now_utc=now_utc,
            )
    except (ShopError, PaymentProviderError) as exc:
        logger.info("shop_checkout_create_rejected", provider="STRIPE", error_type=type(exc).__name__)
        raise shop_http_error(exc) from exc

    return _start_as_response(result)


@router.post("/shop/stripe/confirm", response_model=ShopCaptureResponse)
async def confirm_shop_stripe_checkout(payload: ShopStripeConfirmRequest, request: Request) -> ShopCaptureResponse:
    user = optional_user(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await ShopService.confirm_stripe_order(
                session,
                gateway=get_stripe_gateway(),
                user_id=user.user_id if user is not None else None,
                session_id=payload.session_id,
                order_id=payload.order_id,
                now_utc=now_utc,
            )
    except (ShopError, PaymentProviderError) as exc:
        raise shop_http_error(exc) from exc

    _ensure_payment_completed(result)
    return _capture_as_response(result)


@router.post("/shop/stripe/cancel", response_model=ShopCancelResponse)
async def cancel_shop_stripe_checkout(payload: ShopCancelRequest, request: Request) -> ShopCancelResponse:
    return await _cancel(payload=payload, request=request, provider="STRIPE")


@router.post("/shop/paypal/create", response_model=ShopCheckoutStartResponse)
async def create_shop_paypal_checkout(
    payload: ShopCheckoutCreateRequest,
    request: Request,
) -> ShopCheckoutStartResponse:
    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    try:
        buyer = await _resolve_buyer(payload, request)
        async with SessionLocal.begin() as session:
            result = await ShopService.start_paypal_order(
                session,
                gateway=get_paypal_gateway(),
                buyer=buyer,
                items=_cart_items(payload),
                product_id=payload.product_id,
                currency=settings.shop_currency,
                site_url=settings.site_url,
                now_utc=now_utc,
            )
    except (ShopError, PaymentProviderError) as exc:
        logger.info("shop_checkout_create_rejected", provider="PAYPAL", error_type=type(exc).__name__)
        raise shop_http_error(exc) from exc

    return _start_as_response(result)


@router.post("/shop/paypal/capture", response_model=ShopCaptureResponse)
async def capture_shop_paypal_checkout(payload: ShopPayPalCaptureRequest, request: Request) -> ShopCaptureResponse:
    user = optional_user(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await ShopService.capture_paypal_order(
                session,
                gateway=get_paypal_gateway(),
                user_id=user.user_id if user is not None else None,
                order_id=payload.order_id,
                paypal_order_id=payload.paypal_order_id,
                now_utc=now_utc,
            )
    except (ShopError, PaymentProviderError) as exc:
        raise shop_http_error(exc) from exc

    _ensure_payment_completed(result)
    return _capture_as_response(result)


@router.post("/shop/paypal/cancel", response_model=ShopCancelResponse)
async def cancel_shop_paypal_checkout(payload: ShopCancelRequest, request: Request) -> ShopCancelResponse:
    return await _cancel(payload=payload, request=request, provider="PAYPAL")


async def _cancel(*, payload: ShopCancelRequest, request: Request, provider: str) -> ShopCancelResponse:
    user = optional_user(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await ShopService.cancel_order(
                session,
                user_id=user.user_id if user is not None else None,
                order_id=payload.order_id,
                provider=provider,
                now_utc=now_utc,
            )
    except ShopError as exc:
        raise shop_http_error(exc) from exc

    return ShopCancelResponse(order_id=result.order_id, canceled=result.canceled)
