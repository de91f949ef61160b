from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.partner_bookings_repo import PartnerBookingsRepo
from app.economy.partners.constants import STALE_UNPAID_BOOKING_MINUTES
from app.economy.partners.types import PartnerSweepResult

logger = structlog.get_logger(__name__)


async def sweep_bookings(
    session: AsyncSession,
    *,
    now_utc: datetime,
    stale_minutes: int = STALE_UNPAID_BOOKING_MINUTES,
) -> PartnerSweepResult:
    expired = await PartnerBookingsRepo.expire_finished(session, now_utc=now_utc)
    # paid bookings awaiting review and free requests are never reclaimed here
    canceled = await PartnerBookingsRepo.cancel_stale_unpaid(
        session,
        older_than_utc=now_utc - timedelta(minutes=stale_minutes),
        now_utc=now_utc,
    )
    if expired or canceled:
        logger.info("partner_bookings_swept", expired=expired, canceled=canceled)
    return PartnerSweepResult(expired=expired, canceled=canceled)
