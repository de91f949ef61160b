from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Query, Request

from app.api.deps import request_meta, require_user
from app.core.config import get_settings
from app.db.session import SessionLocal
from app.economy.partners.errors import PartnerError
from app.economy.partners.service import PartnerService
from app.economy.partners.types import PartnerAdDraft

from .partner_helpers import (
    ad_as_response,
    booking_as_response,
    partner_http_error,
    placement_as_response,
    slot_as_response,
)
from .partner_models import (
    DurationKind,
    PartnerActiveResponse,
    PartnerFreeSlotRequest,
    PartnerFreeSlotResponse,
    PartnerMyAdResponse,
    PartnerSlotsResponse,
)

router = APIRouter(tags=["partner"])


@router.get("/partner/slots", response_model=PartnerSlotsResponse)
async def get_partner_slots(
    kind: DurationKind = Query(default="CUSTOM"),
    days: int | None = Query(default=None, ge=1, le=30),
) -> PartnerSlotsResponse:
    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            slots = await PartnerService.list_slot_availability(
                session,
                kind=kind,
                days=days,
                now_utc=now_utc,
                settings=settings,
            )
    except PartnerError as exc:
        raise partner_http_error(exc) from exc

    return PartnerSlotsResponse(
        currency=settings.partner_currency.upper(),
        kind=kind,
        slots=[slot_as_response(item) for item in slots],
    )


@router.get("/partner/active", response_model=PartnerActiveResponse)
async def get_partner_active() -> PartnerActiveResponse:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        placements = await PartnerService.list_active_placements(session, now_utc=now_utc)
    return PartnerActiveResponse(placements=[placement_as_response(item) for item in placements])


@router.get("/partner/my-ad", response_model=PartnerMyAdResponse)
async def get_partner_my_ad(request: Request) -> PartnerMyAdResponse:
    user = require_user(request)
    async with SessionLocal.begin() as session:
        overview = await PartnerService.get_user_overview(session, user_id=user.user_id)
    return PartnerMyAdResponse(
        ad=ad_as_response(overview.ad) if overview.ad is not None else None,
        bookings=[booking_as_response(booking) for booking in overview.bookings],
    )


@router.post("/partner/request", response_model=PartnerFreeSlotResponse)
async def request_partner_free_slot(payload: PartnerFreeSlotRequest, request: Request) -> PartnerFreeSlotResponse:
    user = require_user(request)
    meta = request_meta(request)
    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            reservation = await PartnerService.request_free_slot(
                session,
                user_id=user.user_id,
                owner_username=user.username,
                slot=payload.slot,
                kind=payload.kind,
                days=payload.days,
                note=payload.note,
                draft=PartnerAdDraft(**payload.ad.model_dump()),
                currency=settings.partner_currency,
                now_utc=now_utc,
                ip=meta.ip,
                user_agent=meta.user_agent,
            )
    except PartnerError as exc:
        raise partner_http_error(exc) from exc

    return PartnerFreeSlotResponse(
        booking_id=reservation.booking_id,
        status="PENDING",
        ad_status=reservation.ad_status,
        days=reservation.quote.days,
    )
