from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.partner_bookings_repo import PartnerBookingsRepo
from app.economy.partners.types import PartnerCancelResult

logger = structlog.get_logger(__name__)


async def cancel_booking(
    session: AsyncSession,
    *,
    user_id: str,
    booking_id: UUID,
    now_utc: datetime,
) -> PartnerCancelResult:
    # paid, free and foreign bookings are left untouched
    canceled = await PartnerBookingsRepo.cancel_unpaid_pending(
        session,
        booking_id=booking_id,
        user_id=user_id,
        now_utc=now_utc,
    )
    if canceled:
        logger.info("partner_booking_canceled", booking_id=str(booking_id), user_id=user_id)
    return PartnerCancelResult(booking_id=booking_id, canceled=canceled)
