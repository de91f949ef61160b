from __future__ import annotations

from datetime import datetime, timedelta
from urllib.parse import quote

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.partner_bookings_repo import PartnerBookingsRepo
from app.core.config import Settings
from app.economy.partners.constants import CHECKOUT_SESSION_TTL_MINUTES, slot_label
from app.economy.partners.errors import PartnerBookingNotFoundError
from app.economy.partners.types import PartnerAdDraft, PartnerCheckoutStart, PartnerReservation
from app.services.paypal_checkout import PayPalCheckoutGateway
from app.services.stripe_checkout import StripeCheckoutGateway

from .reservations import reserve_paid_slot

logger = structlog.get_logger(__name__)


def _checkout_label(reservation: PartnerReservation) -> str:
    return f"Partner Slot {slot_label(reservation.quote.slot)} - {reservation.quote.days} days"


async def start_stripe_checkout(
    session: AsyncSession,
    *,
    gateway: StripeCheckoutGateway,
    user_id: str,
    owner_username: str,
    customer_email: str | None,
    slot: int,
    kind: str,
    days: int | None,
    draft: PartnerAdDraft,
    currency: str,
    site_url: str,
    now_utc: datetime,
    settings: Settings | None = None,
    ip: str = "",
    user_agent: str = "",
) -> PartnerCheckoutStart:
    reservation = await reserve_paid_slot(
        session,
        user_id=user_id,
        owner_username=owner_username,
        slot=slot,
        kind=kind,
        days=days,
        draft=draft,
        provider="STRIPE",
        currency=currency,
        now_utc=now_utc,
        settings=settings,
        ip=ip,
        user_agent=user_agent,
    )
    booking_ref = quote(str(reservation.booking_id))
    base_url = site_url.rstrip("/")
    checkout = await gateway.create_session(
        amount=reservation.quote.total,
        currency=reservation.currency,
        product_name=_checkout_label(reservation),
        description=f"{reservation.quote.days} days",
        metadata={"booking_id": str(reservation.booking_id)},
        success_url=(
            f"{base_url}/partner/stripe/success?bookingId={booking_ref}&session_id={{CHECKOUT_SESSION_ID}}"
        ),
        cancel_url=f"{base_url}/partner/stripe/cancel?bookingId={booking_ref}",
        idempotency_key=f"partner-booking:{reservation.booking_id}",
        customer_email=customer_email,
        expires_at=now_utc + timedelta(minutes=CHECKOUT_SESSION_TTL_MINUTES),
    )

    booking = await PartnerBookingsRepo.get_by_id(session, reservation.booking_id)
    if booking is None:
        raise PartnerBookingNotFoundError
    booking.stripe_checkout_session_id = checkout.session_id
    booking.stripe_status = checkout.status
    booking.stripe_payment_status = checkout.payment_status
    booking.updated_at = now_utc

    logger.info(
        "partner_stripe_checkout_started",
        booking_id=str(booking.id),
        session_id=checkout.session_id,
    )
    return PartnerCheckoutStart(
        booking_id=booking.id,
        provider="STRIPE",
        provider_reference=checkout.session_id,
        checkout_url=checkout.url or "",
        total=reservation.quote.total,
        currency=reservation.currency,
    )


async def start_paypal_checkout(
    session: AsyncSession,
    *,
    gateway: PayPalCheckoutGateway,
    user_id: str,
    owner_username: str,
    slot: int,
    kind: str,
    days: int | None,
    draft: PartnerAdDraft,
    currency: str,
    site_url: str,
    now_utc: datetime,
    settings: Settings | None = None,
    ip: str = "",
    user_agent: str = "",
) -> PartnerCheckoutStart:
    reservation = await reserve_paid_slot(
        session,
        user_id=user_id,
        owner_username=owner_username,
        slot=slot,
        kind=kind,
        days=days,
        draft=draft,
        provider="PAYPAL",
        currency=currency,
        now_utc=now_utc,
        settings=settings,
        ip=ip,
        user_agent=user_agent,
    )
    booking_ref = quote(str(reservation.booking_id))
    base_url = site_url.rstrip("/")
    order = await gateway.create_order(
        amount=reservation.quote.total,
        currency=reservation.currency,
        description=_checkout_label(reservation),
        custom_id=str(reservation.booking_id),
        return_url=f"{base_url}/partner/paypal/return?bookingId={booking_ref}",
        cancel_url=f"{base_url}/partner/paypal/cancel?bookingId={booking_ref}",
    )

    booking = await PartnerBookingsRepo.get_by_id(session, reservation.booking_id)
    if booking is None:
        raise PartnerBookingNotFoundError
    booking.paypal_order_id = order.order_id
    booking.paypal_status = order.status
    booking.updated_at = now_utc

    logger.info(
        "partner_paypal_checkout_started",
        booking_id=str(booking.id),
        paypal_order_id=order.order_id,
    )
    return PartnerCheckoutStart(
        booking_id=booking.id,
        provider="PAYPAL",
        provider_reference=order.order_id,
        checkout_url=order.approval_url,
        total=reservation.quote.total,
        currency=reservation.currency,
    )
