from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.economy.deliveries.service import DeliveryService
from app.economy.shop.errors import ShopError
from app.economy.shop.service import ShopService
from app.services.internal_auth import (
    extract_client_ip,
    is_client_ip_allowed,
    is_valid_internal_token,
)
from app.services.payments_reliability import delivery_backlog_status

from .shop_checkout import ShopCaptureResponse, shop_http_error

router = APIRouter(tags=["internal", "shop"])
logger = structlog.get_logger(__name__)


class DeliveryQueueSummaryResponse(BaseModel):
    generated_at: datetime
    status: str
    pending: int = Field(ge=0)
    processing: int = Field(ge=0)
    completed: int = Field(ge=0)
    failed: int = Field(ge=0)
    oldest_pending_age_seconds: int = Field(ge=0)


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
        logger.warning("internal_shop_auth_failed", reason="invalid_token", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning("internal_shop_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


@router.post("/internal/shop/orders/{order_id}/mark-paid", response_model=ShopCaptureResponse)
async def mark_shop_order_paid(order_id: UUID, request: Request) -> ShopCaptureResponse:
    _assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await ShopService.admin_mark_paid(session, order_id=order_id, now_utc=now_utc)
    except ShopError as exc:
        raise shop_http_error(exc) from exc

    logger.info(
        "internal_shop_order_marked_paid",
        order_id=str(result.order_id),
        status=result.status,
        idempotent_replay=result.idempotent_replay,
    )
    return ShopCaptureResponse(
        order_id=result.order_id,
        status=result.status,
        delivery_created=result.delivery_created,
        idempotent_replay=result.idempotent_replay,
    )


@router.get("/internal/deliveries/summary", response_model=DeliveryQueueSummaryResponse)
async def get_delivery_queue_summary(request: Request) -> DeliveryQueueSummaryResponse:
    _assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        summary = await DeliveryService.get_summary(session, now_utc=now_utc)

    failed = summary.by_status.get("FAILED", 0)
    return DeliveryQueueSummaryResponse(
        generated_at=now_utc,
        status=delivery_backlog_status(
            failed_count=failed,
            oldest_pending_age_seconds=summary.oldest_pending_age_seconds,
        ),
        pending=summary.by_status.get("PENDING", 0),
        processing=summary.by_status.get("PROCESSING", 0),
        completed=summary.by_status.get("COMPLETED", 0),
        failed=failed,
        oldest_pending_age_seconds=summary.oldest_pending_age_seconds,
    )
