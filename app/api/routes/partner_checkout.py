from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Request

from app.api.deps import request_meta, require_user
from app.core.config import get_settings
from app.db.session import SessionLocal
from app.economy.partners.errors import PartnerError, PartnerPaidAfterReleaseError
from app.economy.partners.service import PartnerService
from app.economy.partners.types import PartnerAdDraft, PartnerCheckoutStart
from app.services.payment_errors import PaymentProviderError
from app.services.paypal_checkout import get_paypal_gateway
from app.services.stripe_checkout import get_stripe_gateway

from .partner_helpers import (
    capture_as_response,
    ensure_payment_completed,
    notify_paid_after_release,
    notify_pending_review,
    partner_http_error,
)
from .partner_models import (
    PartnerCancelRequest,
    PartnerCancelResponse,
    PartnerCaptureResponse,
    PartnerCheckoutCreateRequest,
    PartnerCheckoutStartResponse,
    PartnerPayPalCaptureRequest,
    PartnerStripeConfirmRequest,
)

router = APIRouter(tags=["partner", "checkout"])
logger = structlog.get_logger(__name__)


def _start_as_response(result: PartnerCheckoutStart) -> PartnerCheckoutStartResponse:
    return PartnerCheckoutStartResponse(
        booking_id=result.booking_id,
        provider=result.provider,
        provider_reference=result.provider_reference,
        checkout_url=result.checkout_url,
        total=float(result.total),
        currency=result.currency,
    )


@router.post("/partner/checkout/stripe/create", response_model=PartnerCheckoutStartResponse)
async def create_partner_stripe_checkout(
    payload: PartnerCheckoutCreateRequest,
    request: Request,
) -> PartnerCheckoutStartResponse:
    user = require_user(request)
    meta = request_meta(request)
    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await PartnerService.start_stripe_checkout(
                session,
                gateway=get_stripe_gateway(),
                user_id=user.user_id,
                owner_username=user.username,
                customer_email=user.email,
                slot=payload.slot,
                kind=payload.kind,
                days=payload.days,
                draft=PartnerAdDraft(**payload.ad.model_dump()),
                currency=settings.partner_currency,
                site_url=settings.site_url,
                now_utc=now_utc,
                settings=settings,
                ip=meta.ip,
                user_agent=meta.user_agent,
            )
    except (PartnerError, PaymentProviderError) as exc:
        logger.info("partner_checkout_create_rejected", provider="STRIPE", error_type=type(exc).__name__)
        raise partner_http_error(exc) from exc

    return _start_as_response(result)


@router.post("/partner/checkout/stripe/confirm", response_model=PartnerCaptureResponse)
async def confirm_partner_stripe_checkout(
    payload: PartnerStripeConfirmRequest,
    request: Request,
) -> PartnerCaptureResponse:
    user = require_user(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await PartnerService.confirm_stripe_payment(
                session,
                gateway=get_stripe_gateway(),
                user_id=user.user_id,
                booking_id=payload.booking_id,
                session_id=payload.session_id,
                now_utc=now_utc,
            )
    except PartnerPaidAfterReleaseError as exc:
        await notify_paid_after_release(exc)
        raise partner_http_error(exc) from exc
    except (PartnerError, PaymentProviderError) as exc:
        raise partner_http_error(exc) from exc

    ensure_payment_completed(result)
    await notify_pending_review(result, provider="STRIPE")
    return capture_as_response(result)


@router.post("/partner/checkout/paypal/create", response_model=PartnerCheckoutStartResponse)
async def create_partner_paypal_checkout(
    payload: PartnerCheckoutCreateRequest,
    request: Request,
) -> PartnerCheckoutStartResponse:
    user = require_user(request)
    meta = request_meta(request)
    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await PartnerService.start_paypal_checkout(
                session,
                gateway=get_paypal_gateway(),
                user_id=user.user_id,
                owner_username=user.username,
                slot=payload.slot,
                kind=payload.kind,
                days=payload.days,
                draft=PartnerAdDraft(**payload.ad.model_dump()),
                currency=settings.partner_currency,
                site_url=settings.site_url,
                now_utc=now_utc,
                settings=settings,
                ip=meta.ip,
                user_agent=meta.user_agent,
            )
    except (PartnerError, PaymentProviderError) as exc:
        logger.info("partner_checkout_create_rejected", provider="PAYPAL", error_type=type(exc).__name__)
        raise partner_http_error(exc) from exc

    return _start_as_response(result)


@router.post("/partner/checkout/paypal/capture", response_model=PartnerCaptureResponse)
async def capture_partner_paypal_checkout(
    payload: PartnerPayPalCaptureRequest,
    request: Request,
) -> PartnerCaptureResponse:
    user = require_user(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await PartnerService.capture_paypal_payment(
                session,
                gateway=get_paypal_gateway(),
                user_id=user.user_id,
                booking_id=payload.booking_id,
                paypal_order_id=payload.order_id,
                now_utc=now_utc,
            )
    except (PartnerError, PaymentProviderError) as exc:
        raise partner_http_error(exc) from exc

    ensure_payment_completed(result)
    await notify_pending_review(result, provider="PAYPAL")
    return capture_as_response(result)


@router.post("/partner/checkout/cancel", response_model=PartnerCancelResponse)
async def cancel_partner_checkout(payload: PartnerCancelRequest, request: Request) -> PartnerCancelResponse:
    user = require_user(request)
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        result = await PartnerService.cancel_booking(
            session,
            user_id=user.user_id,
            booking_id=payload.booking_id,
            now_utc=now_utc,
        )
    return PartnerCancelResponse(booking_id=result.booking_id, canceled=result.canceled)
