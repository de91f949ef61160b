from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.economy.deliveries.errors import DeliveryError, DeliveryNotFoundError
from app.economy.deliveries.service import DeliveryService
from app.services.alerts import send_ops_alert
from app.services.internal_auth import extract_client_ip, is_delivery_request_authenticated

router = APIRouter(tags=["deliveries"])
logger = structlog.get_logger(__name__)


class DeliveryItemResponse(BaseModel):
    delivery_id: UUID
    order_id: UUID
    minecraft_username: str
    minecraft_uuid: str
    commands: list[str]
    attempts: int = Field(ge=0)
    locked_at: datetime


class DeliveryNextResponse(BaseModel):
    delivery: DeliveryItemResponse | None


class DeliveryCompleteRequest(BaseModel):
    delivery_id: UUID


class DeliveryCompleteResponse(BaseModel):
    ok: bool = True
    delivery_id: UUID
    status: str
    order_delivered: bool
    idempotent_replay: bool


class DeliveryFailRequest(BaseModel):
    delivery_id: UUID
    error: str | None = Field(default=None, max_length=2000)


class DeliveryFailResponse(BaseModel):
    ok: bool = True
    delivery_id: UUID
    status: str
    attempts: int = Field(ge=0)
    terminal: bool
    idempotent_replay: bool


def _assert_delivery_access(request: Request) -> None:
    settings = get_settings()
    if not is_delivery_request_authenticated(request, expected_key=settings.delivery_api_key):
        client_ip = extract_client_ip(
            request,
            trusted_proxies=getattr(settings, "internal_api_trusted_proxies", ""),
        )
        logger.warning("deliveries_auth_failed", client_ip=client_ip)
        raise HTTPException(status_code=401, detail={"code": "E_UNAUTHORIZED"})


def _executor_header(request: Request) -> str:
    return request.headers.get("X-Delivery-Client") or ""


def _delivery_http_error(exc: DeliveryError) -> HTTPException:
    if isinstance(exc, DeliveryNotFoundError):
        return HTTPException(status_code=404, detail={"code": "E_DELIVERY_NOT_FOUND"})
    return HTTPException(status_code=409, detail={"code": "E_DELIVERY_STATE"})


@router.get("/deliveries/next", response_model=DeliveryNextResponse)
async def claim_next_delivery(request: Request) -> DeliveryNextResponse:
    _assert_delivery_access(request)
    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        claimed = await DeliveryService.claim_next(
            session,
            locked_by=_executor_header(request),
            now_utc=now_utc,
            lease_seconds=settings.resolved_delivery_lease_seconds,
            max_attempts=settings.resolved_delivery_max_attempts,
        )

    if claimed is None:
        return DeliveryNextResponse(delivery=None)
    return DeliveryNextResponse(
        delivery=DeliveryItemResponse(
            delivery_id=claimed.delivery_id,
            order_id=claimed.order_id,
            minecraft_username=claimed.minecraft_username,
            minecraft_uuid=claimed.minecraft_uuid,
            commands=list(claimed.commands),
            attempts=claimed.attempts,
            locked_at=claimed.locked_at,
        )
    )


@router.post("/deliveries/complete", response_model=DeliveryCompleteResponse)
async def complete_delivery(payload: DeliveryCompleteRequest, request: Request) -> DeliveryCompleteResponse:
    _assert_delivery_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await DeliveryService.complete(
                session,
                delivery_id=payload.delivery_id,
                locked_by=_executor_header(request),
                now_utc=now_utc,
            )
    except DeliveryError as exc:
        raise _delivery_http_error(exc) from exc

    return DeliveryCompleteResponse(
        delivery_id=result.delivery_id,
        status=result.status,
        order_delivered=result.order_delivered,
        idempotent_replay=result.idempotent_replay,
    )


@router.post("/deliveries/fail", response_model=DeliveryFailResponse)
async def fail_delivery(payload: DeliveryFailRequest, request: Request) -> DeliveryFailResponse:
    _assert_delivery_access(request)
    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await DeliveryService.fail(
                session,
                delivery_id=payload.delivery_id,
                locked_by=_executor_header(request),
                error=payload.error,
                max_attempts=settings.resolved_delivery_max_attempts,
                now_utc=now_utc,
            )
    except DeliveryError as exc:
        raise _delivery_http_error(exc) from exc

    if result.terminal:
        await send_ops_alert(
            event="delivery_failed_terminal",
            payload={
                "delivery_id": str(result.delivery_id),
                "attempts": result.attempts,
                "error": (payload.error or "")[:200],
            },
        )

    return DeliveryFailResponse(
        delivery_id=result.delivery_id,
        status=result.status,
        attempts=result.attempts,
        terminal=result.terminal,
        idempotent_replay=result.idempotent_replay,
    )
