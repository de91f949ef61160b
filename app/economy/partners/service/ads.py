from __future__ import annotations

from dataclasses import fields, replace
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.partner_ads import PartnerAd
from app.db.repo.partner_ads_repo import PartnerAdsRepo
from app.economy.partners.errors import PartnerAdValidationError
from app.economy.partners.types import PartnerAdDraft

logger = structlog.get_logger(__name__)

AD_FIELD_LIMITS: dict[str, tuple[int, int]] = {
    "server_name": (3, 60),
    "address": (3, 80),
    "version": (0, 30),
    "description": (20, 500),
    "website": (0, 200),
    "discord": (0, 200),
    "banner": (0, 500),
}
AD_CONTENT_FIELDS = tuple(AD_FIELD_LIMITS)


def normalize_ad_draft(draft: PartnerAdDraft) -> PartnerAdDraft:
    cleaned = replace(
        draft,
        **{field.name: (getattr(draft, field.name) or "").strip() for field in fields(draft)},
    )
    for field_name, (min_length, max_length) in AD_FIELD_LIMITS.items():
        length = len(getattr(cleaned, field_name))
        if length < min_length or length > max_length:
            raise PartnerAdValidationError(field_name)
    return cleaned


def _content_changed(ad: PartnerAd, draft: PartnerAdDraft) -> bool:
    return any(getattr(ad, name) != getattr(draft, name) for name in AD_CONTENT_FIELDS)


async def upsert_ad_for_user(
    session: AsyncSession,
    *,
    user_id: str,
    owner_username: str,
    draft: PartnerAdDraft,
    now_utc: datetime,
) -> PartnerAd:
    """Create or update the caller's single ad.

    An approved ad keeps its approval only while its content is unchanged; any
    edit sends it back to review and clears the previous rejection reason.
    """
    cleaned = normalize_ad_draft(draft)
    ad = await PartnerAdsRepo.get_by_user_id_for_update(session, user_id)
    if ad is None:
        ad = await PartnerAdsRepo.create(
            session,
            ad=PartnerAd(
                user_id=user_id,
                owner_username=owner_username[:64],
                status="PENDING_REVIEW",
                rejection_reason="",
                **{name: getattr(cleaned, name) for name in AD_CONTENT_FIELDS},
            ),
            created_at=now_utc,
        )
        logger.info("partner_ad_created", ad_id=str(ad.id), user_id=user_id)
        return ad

    changed = _content_changed(ad, cleaned)
    next_status = "APPROVED" if ad.status == "APPROVED" and not changed else "PENDING_REVIEW"
    for name in AD_CONTENT_FIELDS:
        setattr(ad, name, getattr(cleaned, name))
    ad.owner_username = owner_username[:64]
    if next_status == "PENDING_REVIEW":
        ad.rejection_reason = ""
    if ad.status != next_status:
        logger.info(
            "partner_ad_sent_to_review",
            ad_id=str(ad.id),
            previous_status=ad.status,
        )
    ad.status = next_status
    ad.updated_at = now_utc
    return ad
