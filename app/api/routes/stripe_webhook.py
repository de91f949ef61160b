from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.db.session import SessionLocal
from app.economy.partners.errors import PartnerError, PartnerPaidAfterReleaseError
from app.economy.partners.service import PartnerService
from app.economy.shop.errors import ShopError
from app.economy.shop.service import ShopService
from app.services.payment_errors import PaymentProviderNotConfiguredError, PaymentWebhookSignatureError
from app.services.stripe_checkout import StripeCheckoutSession, get_stripe_gateway

from .partner_helpers import notify_paid_after_release, notify_pending_review

router = APIRouter(tags=["stripe", "webhook"])
logger = structlog.get_logger(__name__)


def _ack(status_value: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"received": True, "status": status_value},
    )


async def _apply_checkout(checkout: StripeCheckoutSession, *, event_id: str) -> str:
    now_utc = datetime.now(timezone.utc)
    if checkout.metadata.get("booking_id"):
        async with SessionLocal.begin() as session:
            booking_result = await PartnerService.apply_stripe_checkout_session(
                session,
                checkout=checkout,
                now_utc=now_utc,
            )
        if not booking_result.payment_completed:
            logger.info(
                "stripe_webhook_payment_pending",
                event_id=event_id,
                booking_id=str(booking_result.booking_id),
                payment_status=booking_result.provider_status,
            )
            return "pending"
        logger.info(
            "stripe_webhook_booking_applied",
            event_id=event_id,
            booking_id=str(booking_result.booking_id),
            idempotent_replay=booking_result.idempotent_replay,
        )
        await notify_pending_review(booking_result, provider="STRIPE")
        return "applied"

    if checkout.metadata.get("order_id"):
        async with SessionLocal.begin() as session:
            order_result = await ShopService.apply_stripe_checkout_session(
                session,
                checkout=checkout,
                now_utc=now_utc,
            )
        if not order_result.payment_completed:
            logger.info(
                "stripe_webhook_payment_pending",
                event_id=event_id,
                order_id=str(order_result.order_id),
                payment_status=order_result.provider_status,
            )
            return "pending"
        logger.info(
            "stripe_webhook_order_applied",
            event_id=event_id,
            order_id=str(order_result.order_id),
            idempotent_replay=order_result.idempotent_replay,
        )
        return "applied"

    logger.info("stripe_webhook_unknown_target", event_id=event_id, session_id=checkout.session_id)
    return "ignored"


@router.post("/webhooks/stripe")
async def stripe_webhook(request: Request) -> JSONResponse:
    payload = await request.body()
    try:
        event = get_stripe_gateway().construct_event(
            payload=payload,
            signature=request.headers.get("Stripe-Signature"),
        )
    except PaymentProviderNotConfiguredError as exc:
        logger.warning("stripe_webhook_not_configured")
        raise HTTPException(status_code=503, detail={"code": "E_PAYMENT_PROVIDER_NOT_CONFIGURED"}) from exc
    except PaymentWebhookSignatureError as exc:
        logger.warning("stripe_webhook_invalid_signature")
        raise HTTPException(status_code=400, detail={"code": "E_WEBHOOK_SIGNATURE_INVALID"}) from exc

    if event.session is None:
        return _ack("ignored")

    # business rejections are acknowledged so the provider stops redelivering
    try:
        outcome = await _apply_checkout(event.session, event_id=event.event_id)
    except PartnerPaidAfterReleaseError as exc:
        logger.warning(
            "stripe_webhook_paid_after_release",
            event_id=event.event_id,
            booking_id=str(exc.booking_id),
        )
        await notify_paid_after_release(exc)
        return _ack("review_required")
    except (PartnerError, ShopError) as exc:
        logger.warning(
            "stripe_webhook_rejected",
            event_id=event.event_id,
            event_type=event.event_type,
            error_type=type(exc).__name__,
        )
        return _ack("rejected")

    return _ack(outcome)
