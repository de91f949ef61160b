from __future__ import annotations

from datetime import datetime, timezone

import structlog

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.economy.deliveries.service import DeliveryService
from app.services.alerts import send_ops_alert
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def fail_expired_delivery_leases_async(*, batch_size: int = 100) -> dict[str, int]:
    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        failed_ids = await DeliveryService.fail_expired_leases(
            session,
            now_utc=now_utc,
            lease_seconds=settings.resolved_delivery_lease_seconds,
            max_attempts=settings.resolved_delivery_max_attempts,
            batch_size=batch_size,
        )

    result = {"failed_deliveries": len(failed_ids)}
    if failed_ids:
        await send_ops_alert(
            event="delivery_failed_terminal",
            payload={**result, "delivery_ids": [str(delivery_id) for delivery_id in failed_ids[:20]]},
        )
    logger.info("delivery_lease_housekeeping_finished", **result)
    return result


@celery_app.task(name="app.workers.tasks.deliveries_maintenance.fail_expired_delivery_leases")
def fail_expired_delivery_leases(batch_size: int = 100) -> dict[str, int]:
    return run_async_job(fail_expired_delivery_leases_async(batch_size=batch_size))


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "fail-expired-delivery-leases-every-minute": {
            "task": "app.workers.tasks.deliveries_maintenance.fail_expired_delivery_leases",
            "schedule": 60.0,
            "options": {"queue": "q_high"},
        },
    }
)
