from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.db.models.partner_ads import PartnerAd
from app.db.models.partner_bookings import PartnerBooking
from app.db.repo.partner_ads_repo import PartnerAdsRepo
from app.db.repo.partner_bookings_repo import HOLDING_STATUSES, PartnerBookingsRepo
from app.economy.partners.constants import (
    PARTNER_DURATION_KINDS,
    PARTNER_SLOTS,
    PARTNER_VIP_SLOT,
    USER_BOOKINGS_LIMIT,
    is_paid_slot,
    is_vip_slot,
)
from app.economy.partners.errors import PartnerSlotInvalidError
from app.economy.partners.overrides import get_slot_overrides
from app.economy.partners.pricing import compute_quote, get_pricing_config
from app.economy.partners.types import (
    PartnerAdView,
    PartnerBookingView,
    PartnerPlacement,
    PartnerSlotAvailability,
    PartnerUserOverview,
)

from .sweep import sweep_bookings

ALL_SLOTS = tuple(range(PARTNER_VIP_SLOT, PARTNER_SLOTS + 1))


def ad_view(ad: PartnerAd) -> PartnerAdView:
    return PartnerAdView(
        ad_id=ad.id,
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


def booking_view(booking: PartnerBooking) -> PartnerBookingView:
    return PartnerBookingView(
        booking_id=booking.id,
        slot=booking.slot,
        kind=booking.kind,
        days=booking.days,
        status=booking.status,
        provider=booking.provider,
        total=booking.total_price,
        currency=booking.currency,
        paid=booking.paid_at is not None,
        starts_at=booking.starts_at,
        ends_at=booking.ends_at,
        created_at=booking.created_at,
    )


def _placement(*, slot: int, ad: PartnerAd, source: str, ends_at: datetime | None) -> PartnerPlacement:
    return PartnerPlacement(
        slot=slot,
        ad_id=ad.id,
        server_name=ad.server_name,
        address=ad.address,
        version=ad.version,
        description=ad.description,
        website=ad.website,
        discord=ad.discord,
        banner=ad.banner,
        source=source,
        ends_at=ends_at,
    )


async def list_slot_availability(
    session: AsyncSession,
    *,
    kind: str,
    days: int | None,
    now_utc: datetime,
    settings: Settings | None = None,
) -> list[PartnerSlotAvailability]:
    if kind not in PARTNER_DURATION_KINDS:
        raise PartnerSlotInvalidError(kind)

    await sweep_bookings(session, now_utc=now_utc)
    overrides = await get_slot_overrides(session)
    config = await get_pricing_config(session, settings=settings)
    holding_by_slot = {booking.slot: booking for booking in await PartnerBookingsRepo.list_holding(session)}

    availability: list[PartnerSlotAvailability] = []
    for slot in ALL_SLOTS:
        overridden = overrides.ad_id_for_slot(slot) is not None
        holding = holding_by_slot.get(slot)
        availability.append(
            PartnerSlotAvailability(
                slot=slot,
                is_vip=is_vip_slot(slot),
                is_paid=is_paid_slot(slot),
                available=not overridden and holding is None,
                overridden=overridden,
                quote=compute_quote(slot=slot, kind=kind, days=days, config=config) if is_paid_slot(slot) else None,
                held_until=holding.ends_at if holding is not None else None,
            )
        )
    return availability


async def list_active_placements(session: AsyncSession, *, now_utc: datetime) -> list[PartnerPlacement]:
    """Manual overrides win over bookings; the result is ordered by slot."""
    overrides = await get_slot_overrides(session)
    override_ids = {slot: overrides.ad_id_for_slot(slot) for slot in ALL_SLOTS}
    override_ads = await PartnerAdsRepo.get_by_ids(session, [ad_id for ad_id in override_ids.values() if ad_id])

    placements: dict[int, PartnerPlacement] = {}
    for slot, ad_id in override_ids.items():
        ad = override_ads.get(ad_id) if ad_id is not None else None
        if ad is None or ad.status != "APPROVED":
            continue
        placements[slot] = _placement(slot=slot, ad=ad, source="OVERRIDE", ends_at=None)

    for booking, ad in await PartnerBookingsRepo.list_live_placements(session, now_utc=now_utc):
        if booking.slot in placements:
            continue
        placements[booking.slot] = _placement(slot=booking.slot, ad=ad, source="BOOKING", ends_at=booking.ends_at)

    return [placements[slot] for slot in sorted(placements)]


async def get_user_overview(session: AsyncSession, *, user_id: str) -> PartnerUserOverview:
    ad = await PartnerAdsRepo.get_by_user_id(session, user_id)
    bookings = await PartnerBookingsRepo.list_for_user(session, user_id=user_id, limit=USER_BOOKINGS_LIMIT)
    return PartnerUserOverview(
        ad=ad_view(ad) if ad is not None else None,
        bookings=tuple(booking_view(booking) for booking in bookings),
    )


async def list_ads(session: AsyncSession, *, status: str | None, limit: int = 100) -> list[PartnerAdView]:
    ads = await PartnerAdsRepo.list_by_status(session, status=status, limit=limit)
    return [ad_view(ad) for ad in ads]


async def list_bookings(
    session: AsyncSession,
    *,
    statuses: Iterable[str] | None = None,
    limit: int = 200,
) -> list[PartnerBookingView]:
    resolved = tuple(statuses) if statuses else HOLDING_STATUSES
    bookings = await PartnerBookingsRepo.list_by_statuses(session, statuses=resolved, limit=limit)
    return [booking_view(booking) for booking in bookings]
