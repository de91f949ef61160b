from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.economy.deliveries.service import DeliveryService
from app.services.payments_reliability import delivery_backlog_status
from app.workers.celery_app import celery_app

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)


def _ok_check(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"status": "ok"}
    if extra:
        payload.update(extra)
    return payload


def _failed_check(error: str) -> dict[str, str]:
    return {"status": "failed", "error": error}


async def _check_database() -> dict[str, Any]:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
        return _ok_check()
    except Exception as exc:
        # connection errors may carry credentials; only the class name is logged
        logger.warning("health_database_check_failed", error_type=type(exc).__name__)
        return _failed_check("database_unavailable")


async def _check_delivery_backlog() -> dict[str, Any]:
    # a stuck queue is reported but never fails the health check; executors are external
    try:
        async with SessionLocal() as session:
            summary = await DeliveryService.get_summary(session, now_utc=datetime.now(timezone.utc))
    except Exception as exc:
        logger.warning("health_delivery_backlog_check_failed", error_type=type(exc).__name__)
        return _failed_check("delivery_backlog_unavailable")

    return _ok_check(
        {
            "backlog": delivery_backlog_status(
                failed_count=summary.by_status.get("FAILED", 0),
                oldest_pending_age_seconds=summary.oldest_pending_age_seconds,
            ),
            "pending": summary.by_status.get("PENDING", 0),
        }
    )


async def _check_redis() -> dict[str, Any]:
    redis_client: Redis | None = None
    try:
        redis_client = Redis.from_url(get_settings().redis_url)
        pong = await redis_client.ping()
        if pong is not True:
            return _failed_check("redis_unexpected_ping_response")
        return _ok_check()
    except Exception as exc:
        logger.warning("health_redis_check_failed", error_type=type(exc).__name__)
        return _failed_check("redis_unavailable")
    finally:
        if redis_client is not None:
            await redis_client.aclose()


def _check_celery_worker_sync() -> dict[str, Any]:
    try:
        inspector = celery_app.control.inspect(timeout=1.0)
        if inspector is None:
            return _failed_check("celery_inspector_unavailable")

        replies = inspector.ping() or {}
        if not replies:
            return _failed_check("celery_no_workers")

        return _ok_check({"workers": len(replies)})
    except Exception as exc:
        logger.warning("health_celery_check_failed", error_type=type(exc).__name__)
        return _failed_check("celery_unavailable")


async def _check_celery_worker() -> dict[str, Any]:
    return await asyncio.to_thread(_check_celery_worker_sync)


async def _collect_checks() -> dict[str, dict[str, Any]]:
    checks = await asyncio.gather(
        _check_database(),
        _check_redis(),
        _check_celery_worker(),
        _check_delivery_backlog(),
    )
    return {
        "database": checks[0],
        "redis": checks[1],
        "celery": checks[2],
        "deliveries": checks[3],
    }


async def _collect_readiness_checks() -> dict[str, dict[str, Any]]:
    checks = await asyncio.gather(_check_database(), _check_redis())
    return {
        "database": checks[0],
        "redis": checks[1],
    }


def _all_checks_ok(checks: dict[str, dict[str, Any]]) -> bool:
    return all(check.get("status") == "ok" for check in checks.values())


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health")
async def health() -> JSONResponse:
    checks = await _collect_checks()
    is_healthy = _all_checks_ok(checks)
    return JSONResponse(
        status_code=status.HTTP_200_OK if is_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ok" if is_healthy else "degraded",
            "checks": checks,
        },
    )


@router.get("/ready")
async def ready() -> JSONResponse:
    checks = await _collect_readiness_checks()
    is_ready = _all_checks_ok(checks)
    return JSONResponse(
        status_code=status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if is_ready else "not_ready",
            "checks": checks,
        },
    )
