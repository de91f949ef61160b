from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.partner_ads_repo import PartnerAdsRepo
from app.db.repo.partner_bookings_repo import PartnerBookingsRepo
from app.economy.partners.constants import REJECTION_REASON_MAX_LENGTH
from app.economy.partners.errors import (
    PartnerAdNotFoundError,
    PartnerRejectionReasonRequiredError,
    PartnerValidationError,
)
from app.economy.partners.types import PartnerReviewResult

logger = structlog.get_logger(__name__)

REVIEW_DECISIONS = frozenset({"APPROVE", "REJECT"})


async def review_ad(
    session: AsyncSession,
    *,
    ad_id: UUID,
    decision: str,
    reason: str | None,
    now_utc: datetime,
) -> PartnerReviewResult:
    """Approve or reject a partner ad.

    Approval activates the newest booking that is paid or free and has not
    started yet. Rejection cancels every booking still holding a slot for the ad.
    """
    normalized_decision = (decision or "").strip().upper()
    if normalized_decision not in REVIEW_DECISIONS:
        raise PartnerValidationError(decision)

    cleaned_reason = (reason or "").strip()
    if normalized_decision == "REJECT" and not cleaned_reason:
        raise PartnerRejectionReasonRequiredError
    if len(cleaned_reason) > REJECTION_REASON_MAX_LENGTH:
        raise PartnerRejectionReasonRequiredError

    ad = await PartnerAdsRepo.get_by_id_for_update(session, ad_id)
    if ad is None:
        raise PartnerAdNotFoundError

    if normalized_decision == "REJECT":
        ad.status = "REJECTED"
        ad.rejection_reason = cleaned_reason
        ad.updated_at = now_utc
        canceled = await PartnerBookingsRepo.cancel_holding_for_ad(session, ad_id=ad.id, now_utc=now_utc)
        logger.info("partner_ad_rejected", ad_id=str(ad.id), canceled_bookings=canceled)
        return PartnerReviewResult(
            ad_id=ad.id,
            status=ad.status,
            activated_booking_id=None,
            canceled_bookings=canceled,
        )

    ad.status = "APPROVED"
    ad.rejection_reason = ""
    ad.updated_at = now_utc

    booking = await PartnerBookingsRepo.get_latest_activatable_for_ad_for_update(session, ad_id=ad.id)
    activated_booking_id: UUID | None = None
    if booking is not None:
        booking.status = "ACTIVE"
        booking.starts_at = now_utc
        booking.ends_at = now_utc + timedelta(days=booking.days)
        booking.updated_at = now_utc
        activated_booking_id = booking.id

    logger.info(
        "partner_ad_approved",
        ad_id=str(ad.id),
        activated_booking_id=str(activated_booking_id) if activated_booking_id else None,
    )
    return PartnerReviewResult(
        ad_id=ad.id,
        status=ad.status,
        activated_booking_id=activated_booking_id,
        canceled_bookings=0,
    )
