from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.db.models.partner_bookings import PartnerBooking
from app.db.repo.partner_bookings_repo import PartnerBookingsRepo
from app.economy.partners.constants import (
    FREE_REQUEST_NOTE_MAX_LENGTH,
    FREE_REQUEST_NOTE_MIN_LENGTH,
    PARTNER_DURATION_KINDS,
    PARTNER_PAYMENT_PROVIDERS,
    is_free_slot,
    is_paid_slot,
    slot_active_key,
)
from app.economy.partners.errors import (
    PartnerPriceInvalidError,
    PartnerRequestNoteInvalidError,
    PartnerSlotInvalidError,
    PartnerSlotUnavailableError,
)
from app.economy.partners.overrides import get_slot_overrides
from app.economy.partners.pricing import compute_quote, get_pricing_config, normalize_days
from app.economy.partners.types import PartnerAdDraft, PartnerQuote, PartnerReservation

from .ads import upsert_ad_for_user
from .sweep import sweep_bookings

logger = structlog.get_logger(__name__)


async def assert_slot_free(session: AsyncSession, *, slot: int, now_utc: datetime) -> None:
    overrides = await get_slot_overrides(session)
    if overrides.ad_id_for_slot(slot) is not None:
        raise PartnerSlotUnavailableError

    await sweep_bookings(session, now_utc=now_utc)
    holding = await PartnerBookingsRepo.get_holding_for_slot(session, slot=slot)
    if holding is not None:
        raise PartnerSlotUnavailableError


async def _insert_booking(session: AsyncSession, *, booking: PartnerBooking, now_utc: datetime) -> PartnerBooking:
    # a concurrent reservation for the same slot trips the partial unique index
    try:
        async with session.begin_nested():
            return await PartnerBookingsRepo.create(session, booking=booking, created_at=now_utc)
    except IntegrityError as exc:
        raise PartnerSlotUnavailableError from exc


def _resolve_kind(kind: str) -> str:
    if kind not in PARTNER_DURATION_KINDS:
        raise PartnerSlotInvalidError(kind)
    return kind


async def reserve_paid_slot(
    session: AsyncSession,
    *,
    user_id: str,
    owner_username: str,
    slot: int,
    kind: str,
    days: int | None,
    draft: PartnerAdDraft,
    provider: str,
    currency: str,
    now_utc: datetime,
    settings: Settings | None = None,
    ip: str = "",
    user_agent: str = "",
) -> PartnerReservation:
    if not is_paid_slot(slot) or provider not in PARTNER_PAYMENT_PROVIDERS:
        raise PartnerSlotInvalidError(slot)
    resolved_kind = _resolve_kind(kind)

    await assert_slot_free(session, slot=slot, now_utc=now_utc)
    ad = await upsert_ad_for_user(
        session,
        user_id=user_id,
        owner_username=owner_username,
        draft=draft,
        now_utc=now_utc,
    )

    config = await get_pricing_config(session, settings=settings)
    quote = compute_quote(slot=slot, kind=resolved_kind, days=days, config=config)
    if quote.total <= 0:
        raise PartnerPriceInvalidError

    booking = await _insert_booking(
        session,
        booking=PartnerBooking(
            ad_id=ad.id,
            user_id=user_id,
            slot=slot,
            kind=resolved_kind,
            days=quote.days,
            currency=currency.upper(),
            daily_price=quote.daily_price,
            discount_pct=quote.discount_pct,
            total_price=quote.total,
            status="PENDING",
            provider=provider,
            slot_active_key=slot_active_key(slot),
            ip=ip[:64],
            user_agent=user_agent[:300],
        ),
        now_utc=now_utc,
    )
    logger.info(
        "partner_booking_reserved",
        booking_id=str(booking.id),
        slot=slot,
        days=quote.days,
        provider=provider,
    )
    return PartnerReservation(
        booking_id=booking.id,
        ad_id=ad.id,
        ad_status=ad.status,
        quote=quote,
        currency=booking.currency,
    )


async def request_free_slot(
    session: AsyncSession,
    *,
    user_id: str,
    owner_username: str,
    slot: int,
    kind: str,
    days: int | None,
    note: str,
    draft: PartnerAdDraft,
    currency: str,
    now_utc: datetime,
    ip: str = "",
    user_agent: str = "",
) -> PartnerReservation:
    if not is_free_slot(slot):
        raise PartnerSlotInvalidError(slot)
    resolved_kind = _resolve_kind(kind)
    cleaned_note = (note or "").strip()
    if not FREE_REQUEST_NOTE_MIN_LENGTH <= len(cleaned_note) <= FREE_REQUEST_NOTE_MAX_LENGTH:
        raise PartnerRequestNoteInvalidError

    await assert_slot_free(session, slot=slot, now_utc=now_utc)
    ad = await upsert_ad_for_user(
        session,
        user_id=user_id,
        owner_username=owner_username,
        draft=draft,
        now_utc=now_utc,
    )

    resolved_days = normalize_days(resolved_kind, days)
    quote = PartnerQuote(
        slot=slot,
        kind=resolved_kind,
        days=resolved_days,
        daily_price=Decimal("0.00"),
        discount_pct=0,
        total=Decimal("0.00"),
    )
    booking = await _insert_booking(
        session,
        booking=PartnerBooking(
            ad_id=ad.id,
            user_id=user_id,
            slot=slot,
            kind=resolved_kind,
            days=resolved_days,
            currency=currency.upper(),
            daily_price=quote.daily_price,
            discount_pct=0,
            total_price=quote.total,
            status="PENDING",
            provider="FREE",
            request_note=cleaned_note,
            slot_active_key=slot_active_key(slot),
            ip=ip[:64],
            user_agent=user_agent[:300],
        ),
        now_utc=now_utc,
    )
    logger.info("partner_free_slot_requested", booking_id=str(booking.id), slot=slot, days=resolved_days)
    return PartnerReservation(
        booking_id=booking.id,
        ad_id=ad.id,
        ad_status=ad.status,
        quote=quote,
        currency=booking.currency,
    )
