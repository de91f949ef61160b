from __future__ import annotations

from datetime import datetime, timezone

import structlog

from app.db.session import SessionLocal
from app.economy.partners.service import PartnerService
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def sweep_partner_bookings_async() -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        swept = await PartnerService.sweep_bookings(session, now_utc=now_utc)

    result = {"expired_bookings": swept.expired, "canceled_bookings": swept.canceled}
    logger.info("partner_bookings_sweep_finished", **result)
    return result


@celery_app.task(name="app.workers.tasks.partner_bookings.sweep_partner_bookings")
def sweep_partner_bookings() -> dict[str, int]:
    return run_async_job(sweep_partner_bookings_async())


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "sweep-partner-bookings-every-5-minutes": {
            "task": "app.workers.tasks.partner_bookings.sweep_partner_bookings",
            "schedule": 300.0,
            "options": {"queue": "q_normal"},
        },
    }
)
