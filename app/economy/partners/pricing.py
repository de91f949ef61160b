from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.db.repo.app_settings_repo import AppSettingsRepo
from app.economy.partners.constants import (
    DEFAULT_SLOT_DAILY_PRICES,
    MONTHLY_DAYS,
    PARTNER_MAX_DAYS,
    PARTNER_SLOTS,
    PRICING_SETTINGS_KEY,
    is_vip_slot,
)
from app.economy.partners.types import PartnerPricingConfig, PartnerQuote

CENT = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _as_money(raw: object) -> Decimal | None:
    if isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value < 0:
        return None
    return round_money(value)


def normalize_days(kind: str, days: int | None) -> int:
    if kind == "MONTHLY":
        return MONTHLY_DAYS
    try:
        resolved = int(days or 0)
    except (TypeError, ValueError):
        return 1
    if resolved <= 0:
        return 1
    return min(PARTNER_MAX_DAYS, resolved)


def _totals_row(daily_price: Decimal) -> tuple[Decimal, ...]:
    return tuple(round_money(daily_price * day) for day in range(1, PARTNER_MAX_DAYS + 1))


def default_pricing_config(
    *,
    slot_daily_prices: tuple[Decimal, ...] = DEFAULT_SLOT_DAILY_PRICES,
    vip_daily_price: Decimal | None = None,
) -> PartnerPricingConfig:
    resolved_vip_daily = vip_daily_price if vip_daily_price is not None else slot_daily_prices[0] * 2
    return PartnerPricingConfig(
        slot_totals=tuple(_totals_row(price) for price in slot_daily_prices),
        vip_totals=_totals_row(resolved_vip_daily),
    )


def _normalize_totals_row(raw_row: object, fallback: tuple[Decimal, ...]) -> tuple[Decimal, ...]:
    values = raw_row if isinstance(raw_row, list) else []
    row: list[Decimal] = []
    for day_index in range(PARTNER_MAX_DAYS):
        value = _as_money(values[day_index]) if day_index < len(values) else None
        row.append(value if value is not None else fallback[day_index])
    return tuple(row)


def normalize_pricing_config(
    raw: object,
    *,
    fallback: PartnerPricingConfig | None = None,
) -> PartnerPricingConfig:
    """Accepts the per-day totals table or the older per-slot daily prices list.

    Missing or invalid cells fall back to the default table rather than to 0.
    """
    resolved_fallback = fallback or default_pricing_config()
    if not isinstance(raw, dict):
        return resolved_fallback

    raw_vip = raw.get("vip_totals")
    vip_totals = (
        _normalize_totals_row(raw_vip, resolved_fallback.vip_totals)
        if isinstance(raw_vip, list)
        else resolved_fallback.vip_totals
    )

    raw_totals = raw.get("slot_totals")
    if isinstance(raw_totals, list) and len(raw_totals) == PARTNER_SLOTS:
        return PartnerPricingConfig(
            slot_totals=tuple(
                _normalize_totals_row(row, resolved_fallback.slot_totals[slot_index])
                for slot_index, row in enumerate(raw_totals)
            ),
            vip_totals=vip_totals,
        )

    raw_daily = raw.get("slot_daily_prices")
    if isinstance(raw_daily, list):
        daily_prices = [price for price in (_as_money(value) for value in raw_daily) if price is not None]
        if len(daily_prices) == PARTNER_SLOTS:
            return PartnerPricingConfig(
                slot_totals=tuple(_totals_row(price) for price in daily_prices),
                vip_totals=vip_totals,
            )

    return resolved_fallback


def pricing_config_as_json(config: PartnerPricingConfig) -> dict[str, object]:
    return {
        "slot_totals": [[float(value) for value in row] for row in config.slot_totals],
        "vip_totals": [float(value) for value in config.vip_totals],
    }


def compute_quote(*, slot: int, kind: str, days: int | None, config: PartnerPricingConfig) -> PartnerQuote:
    resolved_days = normalize_days(kind, days)
    if is_vip_slot(slot):
        row = config.vip_totals
    else:
        row = config.slot_totals[min(max(slot, 1), PARTNER_SLOTS) - 1]

    total = round_money(row[resolved_days - 1])
    return PartnerQuote(
        slot=slot,
        kind=kind,
        days=resolved_days,
        daily_price=round_money(total / resolved_days),
        discount_pct=0,
        total=total,
    )


def _fallback_from_settings(settings: Settings | None) -> PartnerPricingConfig:
    vip_daily = _as_money(getattr(settings, "partner_vip_daily_price", None))
    return default_pricing_config(vip_daily_price=vip_daily)


async def get_pricing_config(session: AsyncSession, *, settings: Settings | None = None) -> PartnerPricingConfig:
    fallback = _fallback_from_settings(settings)
    stored = await AppSettingsRepo.get_value(session, key=PRICING_SETTINGS_KEY)
    if stored is None:
        return fallback
    return normalize_pricing_config(stored, fallback=fallback)


async def set_pricing_config(
    session: AsyncSession,
    *,
    raw: object,
    now_utc: datetime,
    settings: Settings | None = None,
) -> PartnerPricingConfig:
    config = normalize_pricing_config(raw, fallback=_fallback_from_settings(settings))
    await AppSettingsRepo.upsert_value(
        session,
        key=PRICING_SETTINGS_KEY,
        value=pricing_config_as_json(config),
        now_utc=now_utc,
    )
    return config
