from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.partner_bookings import PartnerBooking
from app.db.repo.partner_ads_repo import PartnerAdsRepo
from app.db.repo.partner_bookings_repo import PartnerBookingsRepo
from app.economy.partners.constants import slot_active_key
from app.economy.partners.errors import (
    PartnerBookingNotFoundError,
    PartnerBookingProviderMismatchError,
    PartnerBookingStateError,
    PartnerPaidAfterReleaseError,
    PartnerPaymentNotCompletedError,
    PartnerPaymentReferenceMismatchError,
    PartnerSlotUnavailableError,
)
from app.economy.partners.types import PartnerCaptureResult
from app.services.paypal_checkout import PayPalCheckoutGateway
from app.services.stripe_checkout import StripeCheckoutGateway, StripeCheckoutSession

from .reservations import assert_slot_free

logger = structlog.get_logger(__name__)


def _as_result(booking: PartnerBooking, *, idempotent_replay: bool) -> PartnerCaptureResult:
    return PartnerCaptureResult(
        booking_id=booking.id,
        status=booking.status,
        pending_review=booking.status == "PENDING" and booking.paid_at is not None,
        starts_at=booking.starts_at,
        ends_at=booking.ends_at,
        idempotent_replay=idempotent_replay,
    )


def _is_released_unpaid(booking: PartnerBooking) -> bool:
    return booking.status == "CANCELED" and booking.paid_at is None


def _settled_replay(booking: PartnerBooking) -> PartnerCaptureResult | None:
    if booking.status == "ACTIVE":
        return _as_result(booking, idempotent_replay=True)
    if booking.status == "PENDING" and booking.paid_at is not None:
        return _as_result(booking, idempotent_replay=True)
    if booking.status != "PENDING":
        raise PartnerBookingStateError(booking.status)
    return None


async def _load_for_capture(
    session: AsyncSession,
    *,
    booking_id: UUID,
    user_id: str | None,
    provider: str,
) -> PartnerBooking:
    # the row lock keeps the stale sweep from releasing the slot mid-capture
    booking = await PartnerBookingsRepo.get_by_id_for_update(session, booking_id)
    if booking is None or (user_id is not None and booking.user_id != user_id):
        raise PartnerBookingNotFoundError
    if booking.provider != provider:
        raise PartnerBookingProviderMismatchError
    return booking


async def _record_not_completed(
    session: AsyncSession,
    *,
    booking: PartnerBooking,
    provider_values: dict[str, object],
    provider_status: str,
    now_utc: datetime,
) -> PartnerCaptureResult:
    """Keeps the provider's view on the booking; the caller commits and reports 400."""
    await PartnerBookingsRepo.record_provider_status(
        session,
        booking_id=booking.id,
        now_utc=now_utc,
        provider_values=provider_values,
    )
    return PartnerCaptureResult(
        booking_id=booking.id,
        status=booking.status,
        pending_review=False,
        starts_at=None,
        ends_at=None,
        idempotent_replay=False,
        payment_completed=False,
        provider_status=provider_status,
    )


async def _rehold_released(
    session: AsyncSession,
    *,
    booking: PartnerBooking,
    now_utc: datetime,
) -> PartnerBooking | None:
    """Puts a swept booking back on its slot if nobody took the slot meanwhile."""
    ad = await PartnerAdsRepo.get_by_id(session, booking.ad_id)
    if ad is None or ad.status == "REJECTED":
        return None
    try:
        await assert_slot_free(session, slot=booking.slot, now_utc=now_utc)
        async with session.begin_nested():
            reheld = await PartnerBookingsRepo.try_rehold_canceled(
                session,
                booking_id=booking.id,
                slot_active_key=slot_active_key(booking.slot),
                now_utc=now_utc,
            )
    except (PartnerSlotUnavailableError, IntegrityError):
        return None

    if reheld is not None:
        logger.info("partner_booking_reheld_after_release", booking_id=str(reheld.id), slot=reheld.slot)
    return reheld


async def _finalize_paid(
    session: AsyncSession,
    *,
    booking: PartnerBooking,
    provider_values: dict[str, object],
    now_utc: datetime,
) -> PartnerCaptureResult:
    """Single conditional transition out of unpaid PENDING.

    Bookings of approved ads go live immediately; otherwise they stay PENDING
    with paid_at set until an operator approves the ad.
    """
    ad = await PartnerAdsRepo.get_by_id(session, booking.ad_id)
    active_until = now_utc + timedelta(days=booking.days) if ad is not None and ad.status == "APPROVED" else None

    updated = await PartnerBookingsRepo.try_mark_paid(
        session,
        booking_id=booking.id,
        now_utc=now_utc,
        active_until=active_until,
        provider_values=provider_values,
    )
    if updated is None:
        current = await PartnerBookingsRepo.refresh(session, booking.id)
        if current is None:
            raise PartnerBookingNotFoundError
        replay = _settled_replay(current)
        if replay is None:
            raise PartnerBookingStateError(current.status)
        return replay

    logger.info(
        "partner_booking_paid",
        booking_id=str(updated.id),
        provider=updated.provider,
        status=updated.status,
        pending_review=active_until is None,
    )
    return _as_result(updated, idempotent_replay=False)


def _stripe_values(checkout: StripeCheckoutSession) -> dict[str, object]:
    return {
        "stripe_checkout_session_id": checkout.session_id,
        "stripe_status": checkout.status,
        "stripe_payment_status": checkout.payment_status,
        "stripe_payment_intent_id": checkout.payment_intent_id,
    }


async def _settle_stripe(
    session: AsyncSession,
    *,
    booking: PartnerBooking,
    checkout: StripeCheckoutSession,
    now_utc: datetime,
) -> PartnerCaptureResult:
    released = _is_released_unpaid(booking)
    if not checkout.is_paid:
        if released:
            raise PartnerBookingStateError(booking.status)
        logger.info(
            "partner_stripe_payment_not_completed",
            booking_id=str(booking.id),
            payment_status=checkout.payment_status,
        )
        return await _record_not_completed(
            session,
            booking=booking,
            provider_values=_stripe_values(checkout),
            provider_status=checkout.payment_status,
            now_utc=now_utc,
        )

    if released:
        reheld = await _rehold_released(session, booking=booking, now_utc=now_utc)
        if reheld is None:
            logger.warning(
                "partner_booking_paid_after_release",
                booking_id=str(booking.id),
                session_id=checkout.session_id,
                payment_intent_id=checkout.payment_intent_id,
            )
            raise PartnerPaidAfterReleaseError(
                booking_id=booking.id,
                session_id=checkout.session_id,
                payment_intent_id=checkout.payment_intent_id,
            )
        booking = reheld

    return await _finalize_paid(session, booking=booking, provider_values=_stripe_values(checkout), now_utc=now_utc)


async def confirm_stripe_payment(
    session: AsyncSession,
    *,
    gateway: StripeCheckoutGateway,
    user_id: str,
    booking_id: UUID,
    session_id: str,
    now_utc: datetime,
) -> PartnerCaptureResult:
    booking = await _load_for_capture(session, booking_id=booking_id, user_id=user_id, provider="STRIPE")
    if not _is_released_unpaid(booking):
        replay = _settled_replay(booking)
        if replay is not None:
            return replay
    if booking.stripe_checkout_session_id and booking.stripe_checkout_session_id != session_id:
        raise PartnerPaymentReferenceMismatchError

    checkout = await gateway.retrieve_session(session_id)
    if checkout.metadata.get("booking_id") != str(booking.id):
        raise PartnerPaymentReferenceMismatchError
    return await _settle_stripe(session, booking=booking, checkout=checkout, now_utc=now_utc)


async def apply_stripe_checkout_session(
    session: AsyncSession,
    *,
    checkout: StripeCheckoutSession,
    now_utc: datetime,
) -> PartnerCaptureResult:
    """Webhook path: the signed event already proves who paid, so no owner check."""
    try:
        booking_id = UUID(checkout.metadata.get("booking_id", ""))
    except ValueError as exc:
        raise PartnerBookingNotFoundError from exc

    booking = await _load_for_capture(session, booking_id=booking_id, user_id=None, provider="STRIPE")
    if not _is_released_unpaid(booking):
        replay = _settled_replay(booking)
        if replay is not None:
            return replay
    if booking.stripe_checkout_session_id and booking.stripe_checkout_session_id != checkout.session_id:
        raise PartnerPaymentReferenceMismatchError
    return await _settle_stripe(session, booking=booking, checkout=checkout, now_utc=now_utc)


async def capture_paypal_payment(
    session: AsyncSession,
    *,
    gateway: PayPalCheckoutGateway,
    user_id: str,
    booking_id: UUID,
    paypal_order_id: str,
    now_utc: datetime,
) -> PartnerCaptureResult:
    booking = await _load_for_capture(session, booking_id=booking_id, user_id=user_id, provider="PAYPAL")
    released = _is_released_unpaid(booking)
    if not released:
        replay = _settled_replay(booking)
        if replay is not None:
            return replay
    if booking.paypal_order_id != paypal_order_id:
        raise PartnerPaymentReferenceMismatchError

    # PayPal only moves money on capture, so a released slot is re-held first
    if released:
        reheld = await _rehold_released(session, booking=booking, now_utc=now_utc)
        if reheld is None:
            raise PartnerBookingStateError(booking.status)
        booking = reheld

    capture = await gateway.capture_order(paypal_order_id)
    if not capture.is_completed:
        logger.info(
            "partner_paypal_payment_not_completed",
            booking_id=str(booking.id),
            paypal_status=capture.status,
        )
        if released:
            raise PartnerPaymentNotCompletedError(capture.status)
        return await _record_not_completed(
            session,
            booking=booking,
            provider_values={"paypal_status": capture.status},
            provider_status=capture.status,
            now_utc=now_utc,
        )

    return await _finalize_paid(
        session,
        booking=booking,
        provider_values={
            "paypal_status": capture.status,
            "paypal_capture_id": capture.capture_id,
            "paypal_payer_id": capture.payer_id,
            "paypal_payer_email": capture.payer_email,
        },
        now_utc=now_utc,
    )
