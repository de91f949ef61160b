from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Query, Request

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.economy.partners.errors import PartnerError
from app.economy.partners.overrides import get_slot_overrides, set_slot_overrides
from app.economy.partners.pricing import get_pricing_config, set_pricing_config
from app.economy.partners.service import PartnerService
from app.economy.partners.types import PartnerSlotOverrides
from app.services.internal_auth import (
    extract_client_ip,
    is_client_ip_allowed,
    is_valid_internal_token,
)

from .partner_helpers import ad_as_response, booking_as_response, partner_http_error, pricing_as_response
from .partner_models import (
    PartnerAdsListResponse,
    PartnerBookingsListResponse,
    PartnerPricingResponse,
    PartnerPricingUpdateRequest,
    PartnerReviewRequest,
    PartnerReviewResponse,
    PartnerSlotOverridesPayload,
)

router = APIRouter(tags=["internal", "partner"])
logger = structlog.get_logger(__name__)

AdStatusFilter = Literal["PENDING_REVIEW", "APPROVED", "REJECTED", "ALL"]
BookingStatusFilter = Literal["PENDING", "ACTIVE", "EXPIRED", "CANCELED"]


def _assert_internal_access(request: Request) -> None:
    settings = get_settings()
    client_ip = extract_client_ip(
        request,
        trusted_proxies=getattr(settings, "internal_api_trusted_proxies", ""),
    )
    token = request.headers.get("X-Internal-Token")

    if not is_valid_internal_token(
        expected_token=settings.internal_api_token,
        received_token=token,
    ):
        logger.warning("internal_partner_auth_failed", reason="invalid_token", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning("internal_partner_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


def _overrides_as_payload(overrides: PartnerSlotOverrides) -> PartnerSlotOverridesPayload:
    return PartnerSlotOverridesPayload(slots=list(overrides.slots), vip_ad_id=overrides.vip_ad_id)


@router.get("/internal/partner/ads", response_model=PartnerAdsListResponse)
async def list_partner_ads(
    request: Request,
    status: AdStatusFilter = Query(default="PENDING_REVIEW"),
    limit: int = Query(default=100, ge=1, le=500),
) -> PartnerAdsListResponse:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        ads = await PartnerService.list_ads(
            session,
            status=None if status == "ALL" else status,
            limit=limit,
        )
    return PartnerAdsListResponse(items=[ad_as_response(ad) for ad in ads])


@router.post("/internal/partner/ads/{ad_id}/review", response_model=PartnerReviewResponse)
async def review_partner_ad(
    ad_id: UUID,
    payload: PartnerReviewRequest,
    request: Request,
) -> PartnerReviewResponse:
    _assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await PartnerService.review_ad(
                session,
                ad_id=ad_id,
                decision=payload.decision,
                reason=payload.reason,
                now_utc=now_utc,
            )
    except PartnerError as exc:
        raise partner_http_error(exc) from exc

    logger.info(
        "internal_partner_ad_reviewed",
        ad_id=str(result.ad_id),
        decision=payload.decision,
        activated_booking_id=str(result.activated_booking_id) if result.activated_booking_id else None,
        canceled_bookings=result.canceled_bookings,
    )
    return PartnerReviewResponse(
        ad_id=result.ad_id,
        status=result.status,
        activated_booking_id=result.activated_booking_id,
        canceled_bookings=result.canceled_bookings,
    )


@router.get("/internal/partner/bookings", response_model=PartnerBookingsListResponse)
async def list_partner_bookings(
    request: Request,
    status: list[BookingStatusFilter] | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
) -> PartnerBookingsListResponse:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        bookings = await PartnerService.list_bookings(session, statuses=status, limit=limit)

    pending_review = [item for item in bookings if item.status == "PENDING" and item.paid]
    if pending_review:
        logger.info("internal_partner_bookings_pending_review", pending_review_total=len(pending_review))
    return PartnerBookingsListResponse(items=[booking_as_response(item) for item in bookings])


@router.get("/internal/partner/pricing", response_model=PartnerPricingResponse)
async def get_partner_pricing(request: Request) -> PartnerPricingResponse:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        config = await get_pricing_config(session, settings=get_settings())
    return pricing_as_response(config)


@router.put("/internal/partner/pricing", response_model=PartnerPricingResponse)
async def update_partner_pricing(payload: PartnerPricingUpdateRequest, request: Request) -> PartnerPricingResponse:
    _assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        config = await set_pricing_config(
            session,
            raw=payload.model_dump(exclude_none=True),
            now_utc=now_utc,
            settings=get_settings(),
        )
    logger.info("internal_partner_pricing_updated")
    return pricing_as_response(config)


@router.get("/internal/partner/slot-overrides", response_model=PartnerSlotOverridesPayload)
async def get_partner_slot_overrides(request: Request) -> PartnerSlotOverridesPayload:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        overrides = await get_slot_overrides(session)
    return _overrides_as_payload(overrides)


@router.put("/internal/partner/slot-overrides", response_model=PartnerSlotOverridesPayload)
async def update_partner_slot_overrides(
    payload: PartnerSlotOverridesPayload,
    request: Request,
) -> PartnerSlotOverridesPayload:
    _assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            overrides = await set_slot_overrides(
                session,
                slots=payload.slots,
                vip_ad_id=payload.vip_ad_id,
                now_utc=now_utc,
            )
    except PartnerError as exc:
        raise partner_http_error(exc) from exc

    logger.info(
        "internal_partner_slot_overrides_updated",
        overridden_slots=sum(1 for ad_id in overrides.slots if ad_id is not None),
        vip_overridden=overrides.vip_ad_id is not None,
    )
    return _overrides_as_payload(overrides)
