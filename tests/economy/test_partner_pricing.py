from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.economy.partners.constants import is_free_slot, is_paid_slot, slot_active_key
from app.economy.partners.pricing import (
    _fallback_from_settings,
    compute_quote,
    default_pricing_config,
    normalize_days,
    normalize_pricing_config,
    pricing_config_as_json,
)


@pytest.mark.parametrize(
    ("kind", "days", "expected"),
    [
        ("MONTHLY", None, 30),
        ("MONTHLY", 3, 30),
        ("CUSTOM", 7, 7),
        ("CUSTOM", 45, 30),
        ("CUSTOM", 0, 1),
        ("CUSTOM", None, 1),
    ],
)
def test_normalize_days(kind: str, days: int | None, expected: int) -> None:
    assert normalize_days(kind, days) == expected


def test_slot_classification() -> None:
    assert [slot for slot in range(11) if is_paid_slot(slot)] == [0, 1, 2, 3, 4, 5]
    assert [slot for slot in range(11) if is_free_slot(slot)] == [6, 7, 8, 9, 10]
    assert slot_active_key(3) == "SLOT#3"


def test_default_table_is_linear_in_days() -> None:
    config = default_pricing_config()

    assert len(config.slot_totals) == 10
    assert all(len(row) == 30 for row in config.slot_totals)
    assert config.slot_totals[0][0] == Decimal("5.00")
    assert config.slot_totals[0][6] == Decimal("35.00")
    assert config.vip_totals[0] == Decimal("10.00")


def test_compute_quote_reads_vip_row_for_slot_zero() -> None:
    config = default_pricing_config(vip_daily_price=Decimal("12.50"))

    quote = compute_quote(slot=0, kind="CUSTOM", days=4, config=config)

    assert quote.total == Decimal("50.00")
    assert quote.daily_price == Decimal("12.50")
    assert quote.days == 4


def test_compute_quote_monthly_uses_thirty_days() -> None:
    quote = compute_quote(slot=2, kind="MONTHLY", days=None, config=default_pricing_config())

    assert quote.days == 30
    assert quote.total == Decimal("120.00")


def test_normalize_accepts_full_totals_table_and_fills_bad_cells() -> None:
    fallback = default_pricing_config()
    raw = {
        "slot_totals": [[9.99, "bad", -1] for _ in range(10)],
        "vip_totals": [100],
    }

    config = normalize_pricing_config(raw, fallback=fallback)

    assert config.slot_totals[3][0] == Decimal("9.99")
    assert config.slot_totals[3][1] == fallback.slot_totals[3][1]
    assert config.slot_totals[3][2] == fallback.slot_totals[3][2]
    assert config.slot_totals[3][29] == fallback.slot_totals[3][29]
    assert config.vip_totals[0] == Decimal("100.00")
    assert config.vip_totals[1] == fallback.vip_totals[1]


def test_normalize_accepts_legacy_daily_price_list() -> None:
    config = normalize_pricing_config({"slot_daily_prices": [2] * 10})

    assert config.slot_totals[9][9] == Decimal("20.00")


def test_normalize_falls_back_on_garbage() -> None:
    fallback = default_pricing_config()

    assert normalize_pricing_config("nope", fallback=fallback) == fallback
    assert normalize_pricing_config({"slot_totals": [[1]]}, fallback=fallback) == fallback
    assert normalize_pricing_config({"slot_daily_prices": [1, 2]}, fallback=fallback) == fallback


def test_pricing_json_roundtrip_keeps_values() -> None:
    config = default_pricing_config()

    assert normalize_pricing_config(pricing_config_as_json(config)) == config


def test_settings_fallback_uses_vip_daily_price() -> None:
    config = _fallback_from_settings(SimpleNamespace(partner_vip_daily_price=7.5))

    assert config.vip_totals[1] == Decimal("15.00")
