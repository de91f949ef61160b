from __future__ import annotations

from fastapi import HTTPException

from app.economy.partners.errors import (
    PartnerAdNotFoundError,
    PartnerAdValidationError,
    PartnerBookingNotFoundError,
    PartnerBookingProviderMismatchError,
    PartnerBookingStateError,
    PartnerError,
    PartnerPaidAfterReleaseError,
    PartnerPaymentNotCompletedError,
    PartnerPaymentReferenceMismatchError,
    PartnerSlotUnavailableError,
    PartnerValidationError,
)
from app.economy.partners.types import (
    PartnerAdView,
    PartnerBookingView,
    PartnerCaptureResult,
    PartnerPlacement,
    PartnerPricingConfig,
    PartnerSlotAvailability,
)
from app.services.alerts import send_ops_alert
from app.services.payment_errors import (
    PaymentAmountInvalidError,
    PaymentProviderError,
    PaymentProviderNotConfiguredError,
)

from .partner_models import (
    PartnerAdResponse,
    PartnerBookingResponse,
    PartnerCaptureResponse,
    PartnerPlacementResponse,
    PartnerPricingResponse,
    PartnerQuoteResponse,
    PartnerSlotResponse,
)


def _http_error(status_code: int, code: str, **extra: object) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"code": code, **extra})


def partner_http_error(exc: PartnerError | PaymentProviderError) -> HTTPException:
    if isinstance(exc, PartnerSlotUnavailableError):
        return _http_error(409, "E_PARTNER_SLOT_UNAVAILABLE")
    if isinstance(exc, PartnerAdValidationError):
        field = str(exc.args[0]) if exc.args else ""
        return _http_error(400, "E_PARTNER_AD_INVALID", field=field)
    if isinstance(exc, PartnerValidationError):
        return _http_error(400, "E_PARTNER_VALIDATION")
    if isinstance(exc, (PartnerAdNotFoundError, PartnerBookingNotFoundError)):
        return _http_error(404, "E_PARTNER_NOT_FOUND")
    if isinstance(exc, PartnerBookingProviderMismatchError):
        return _http_error(400, "E_PAYMENT_PROVIDER_MISMATCH")
    if isinstance(exc, PartnerPaymentReferenceMismatchError):
        return _http_error(400, "E_PAYMENT_REFERENCE_MISMATCH")
    if isinstance(exc, PartnerBookingStateError):
        return _http_error(409, "E_PARTNER_BOOKING_STATE")
    if isinstance(exc, PartnerPaymentNotCompletedError):
        return _http_error(400, "E_PAYMENT_NOT_COMPLETED")
    if isinstance(exc, PaymentAmountInvalidError):
        return _http_error(400, "E_PAYMENT_AMOUNT_INVALID")
    if isinstance(exc, PaymentProviderNotConfiguredError):
        return _http_error(503, "E_PAYMENT_PROVIDER_NOT_CONFIGURED")
    if isinstance(exc, PaymentProviderError):
        return _http_error(502, "E_PAYMENT_PROVIDER_FAILED")
    return _http_error(400, "E_PARTNER_VALIDATION")


def capture_as_response(result: PartnerCaptureResult) -> PartnerCaptureResponse:
    return PartnerCaptureResponse(
        booking_id=result.booking_id,
        status="PENDING_REVIEW" if result.pending_review else result.status,
        pending_review=result.pending_review,
        starts_at=result.starts_at,
        ends_at=result.ends_at,
        idempotent_replay=result.idempotent_replay,
    )


def ensure_payment_completed(result: PartnerCaptureResult) -> None:
    # provider statuses are already committed at this point
    if not result.payment_completed:
        raise partner_http_error(PartnerPaymentNotCompletedError(result.provider_status))


async def notify_pending_review(result: PartnerCaptureResult, *, provider: str) -> None:
    if not result.pending_review or result.idempotent_replay:
        return
    await send_ops_alert(
        event="partner_booking_paid_pending_review",
        payload={"booking_id": str(result.booking_id), "provider": provider},
    )


async def notify_paid_after_release(exc: PartnerPaidAfterReleaseError) -> None:
    await send_ops_alert(
        event="partner_booking_paid_after_release",
        payload={
            "booking_id": str(exc.booking_id),
            "session_id": exc.session_id,
            "payment_intent_id": exc.payment_intent_id or "",
        },
    )


def slot_as_response(item: PartnerSlotAvailability) -> PartnerSlotResponse:
    quote = None
    if item.quote is not None:
        quote = PartnerQuoteResponse(
            days=item.quote.days,
            daily_price=float(item.quote.daily_price),
            discount_pct=item.quote.discount_pct,
            total=float(item.quote.total),
        )
    return PartnerSlotResponse(
        slot=item.slot,
        is_vip=item.is_vip,
        is_paid=item.is_paid,
        available=item.available,
        overridden=item.overridden,
        quote=quote,
        held_until=item.held_until,
    )


def placement_as_response(item: PartnerPlacement) -> PartnerPlacementResponse:
    return PartnerPlacementResponse(
        slot=item.slot,
        ad_id=item.ad_id,
        server_name=item.server_name,
        address=item.address,
        version=item.version,
        description=item.description,
        website=item.website,
        discord=item.discord,
        banner=item.banner,
        source=item.source,
        ends_at=item.ends_at,
    )


def ad_as_response(ad: PartnerAdView) -> PartnerAdResponse:
    return PartnerAdResponse(
        ad_id=ad.ad_id,
        server_name=ad.server_name,
        address=ad.address,
        version=ad.version,
        description=ad.description,
        website=ad.website,
        discord=ad.discord,
        banner=ad.banner,
        status=ad.status,
        rejection_reason=ad.rejection_reason,
    )


def booking_as_response(booking: PartnerBookingView) -> PartnerBookingResponse:
    return PartnerBookingResponse(
        booking_id=booking.booking_id,
        slot=booking.slot,
        kind=booking.kind,
        days=booking.days,
        status=booking.status,
        provider=booking.provider,
        total=float(booking.total),
        currency=booking.currency,
        paid=booking.paid,
        starts_at=booking.starts_at,
        ends_at=booking.ends_at,
        created_at=booking.created_at,
    )


def pricing_as_response(config: PartnerPricingConfig) -> PartnerPricingResponse:
    return PartnerPricingResponse(
        slot_totals=[[float(value) for value in row] for row in config.slot_totals],
        vip_totals=[float(value) for value in config.vip_totals],
    )
