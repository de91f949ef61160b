from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.app_settings_repo import AppSettingsRepo
from app.db.repo.partner_ads_repo import PartnerAdsRepo
from app.economy.partners.constants import PARTNER_SLOTS, SLOT_OVERRIDES_SETTINGS_KEY
from app.economy.partners.errors import PartnerSlotOverridesInvalidError
from app.economy.partners.types import PartnerSlotOverrides

EMPTY_OVERRIDES = PartnerSlotOverrides(slots=(None,) * PARTNER_SLOTS, vip_ad_id=None)


def _parse_ad_id(raw: object) -> UUID | None:
    if isinstance(raw, UUID):
        return raw
    candidate = str(raw or "").strip()
    if not candidate:
        return None
    try:
        return UUID(candidate)
    except ValueError:
        return None


def normalize_slot_overrides(raw: object) -> PartnerSlotOverrides:
    if not isinstance(raw, dict):
        return EMPTY_OVERRIDES
    raw_slots = raw.get("slots")
    values = raw_slots if isinstance(raw_slots, list) else []
    slots = tuple(
        _parse_ad_id(values[index]) if index < len(values) else None for index in range(PARTNER_SLOTS)
    )
    return PartnerSlotOverrides(slots=slots, vip_ad_id=_parse_ad_id(raw.get("vip_ad_id")))


def slot_overrides_as_json(overrides: PartnerSlotOverrides) -> dict[str, object]:
    return {
        "slots": [str(ad_id) if ad_id is not None else "" for ad_id in overrides.slots],
        "vip_ad_id": str(overrides.vip_ad_id) if overrides.vip_ad_id is not None else "",
    }


async def get_slot_overrides(session: AsyncSession) -> PartnerSlotOverrides:
    stored = await AppSettingsRepo.get_value(session, key=SLOT_OVERRIDES_SETTINGS_KEY)
    return normalize_slot_overrides(stored)


async def set_slot_overrides(
    session: AsyncSession,
    *,
    slots: list[UUID | None],
    vip_ad_id: UUID | None,
    now_utc: datetime,
) -> PartnerSlotOverrides:
    if len(slots) > PARTNER_SLOTS:
        raise PartnerSlotOverridesInvalidError

    overrides = PartnerSlotOverrides(
        slots=tuple(slots) + (None,) * (PARTNER_SLOTS - len(slots)),
        vip_ad_id=vip_ad_id,
    )
    referenced = [ad_id for ad_id in (*overrides.slots, overrides.vip_ad_id) if ad_id is not None]
    ads = await PartnerAdsRepo.get_by_ids(session, referenced)
    for ad_id in referenced:
        ad = ads.get(ad_id)
        if ad is None or ad.status != "APPROVED":
            raise PartnerSlotOverridesInvalidError(str(ad_id))

    await AppSettingsRepo.upsert_value(
        session,
        key=SLOT_OVERRIDES_SETTINGS_KEY,
        value=slot_overrides_as_json(overrides),
        now_utc=now_utc,
    )
    return overrides
