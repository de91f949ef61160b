from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

import structlog

from app.db.repo.shop_orders_repo import ShopOrdersRepo
from app.db.session import SessionLocal
from app.economy.deliveries.service import DeliveryService
from app.services.alerts import send_ops_alert
from app.services.payments_reliability import recovery_needs_review
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def _recover_single_order(order_id: UUID, *, now_utc: datetime) -> str:
    async with SessionLocal.begin() as session:
        ensured = await DeliveryService.ensure_delivery_for_order(session, order_id=order_id, now_utc=now_utc)
    if ensured.created:
        return "recovered"
    if ensured.reason in {"no_commands", "exists", "race"}:
        return "skipped"
    return "not_recovered"


async def recover_paid_orders_without_delivery_async(
    *,
    batch_size: int = 100,
    stale_minutes: int = 2,
) -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        candidates = await ShopOrdersRepo.list_paid_without_delivery(
            session,
            paid_before_utc=now_utc - timedelta(minutes=stale_minutes),
            limit=batch_size,
        )

    summary: dict[str, int] = {
        "examined": len(candidates),
        "recovered": 0,
        "skipped": 0,
        "not_recovered": 0,
        "errors": 0,
    }
    for order_id in candidates:
        try:
            outcome = await _recover_single_order(order_id, now_utc=now_utc)
        except Exception:
            summary["errors"] += 1
            logger.exception("paid_order_delivery_recovery_error", order_id=str(order_id))
            continue
        summary[outcome] += 1

    if recovery_needs_review(summary):
        await send_ops_alert(event="payments_recovery_review_required", payload=summary)

    logger.info("paid_order_delivery_recovery_finished", **summary)
    return summary


async def expire_stale_pending_orders_async(*, stale_hours: int = 24) -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        canceled = await ShopOrdersRepo.cancel_stale_pending(
            session,
            older_than_utc=now_utc - timedelta(hours=stale_hours),
            now_utc=now_utc,
        )

    result = {"canceled_orders": canceled}
    logger.info("stale_pending_orders_expiry_finished", **result)
    return result


@celery_app.task(name="app.workers.tasks.payments_reliability.recover_paid_orders_without_delivery")
def recover_paid_orders_without_delivery(batch_size: int = 100, stale_minutes: int = 2) -> dict[str, int]:
    return run_async_job(
        recover_paid_orders_without_delivery_async(
            batch_size=batch_size,
            stale_minutes=stale_minutes,
        )
    )


@celery_app.task(name="app.workers.tasks.payments_reliability.expire_stale_pending_orders")
def expire_stale_pending_orders(stale_hours: int = 24) -> dict[str, int]:
    return run_async_job(expire_stale_pending_orders_async(stale_hours=stale_hours))


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "recover-paid-orders-without-delivery-every-5-minutes": {
            "task": "app.workers.tasks.payments_reliability.recover_paid_orders_without_delivery",
            "schedule": 300.0,
            "options": {"queue": "q_high"},
        },
        "expire-stale-pending-orders-hourly": {
            "task": "app.workers.tasks.payments_reliability.expire_stale_pending_orders",
            "schedule": 3600.0,
            "options": {"queue": "q_normal"},
        },
    }
)
