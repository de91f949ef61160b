from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.api.routes import internal_partner
from app.economy.partners.errors import PartnerRejectionReasonRequiredError, PartnerSlotOverridesInvalidError
from app.economy.partners.pricing import default_pricing_config
from app.economy.partners.types import PartnerReviewResult, PartnerSlotOverrides
from app.main import app
from tests.api.route_fakes import FakeSessionLocal, internal_settings

HEADERS = {"X-Internal-Token": "internal-secret"}


@pytest.fixture(autouse=True)
def _allow_internal(monkeypatch) -> None:
    monkeypatch.setattr(internal_partner, "get_settings", lambda: internal_settings())
    monkeypatch.setattr(internal_partner, "extract_client_ip", lambda request, trusted_proxies="": "127.0.0.1")
    monkeypatch.setattr(internal_partner, "SessionLocal", FakeSessionLocal())


def test_review_approve_reports_activated_booking(monkeypatch) -> None:
    ad_id = uuid4()
    booking_id = uuid4()

    async def _fake_review(session, *, ad_id, decision, reason, now_utc):
        assert decision == "APPROVE"
        return PartnerReviewResult(
            ad_id=ad_id,
            status="APPROVED",
            activated_booking_id=booking_id,
            canceled_bookings=0,
        )

    monkeypatch.setattr(internal_partner.PartnerService, "review_ad", staticmethod(_fake_review))

    client = TestClient(app)
    response = client.post(f"/internal/partner/ads/{ad_id}/review", json={"decision": "APPROVE"}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {
        "ad_id": str(ad_id),
        "status": "APPROVED",
        "activated_booking_id": str(booking_id),
        "canceled_bookings": 0,
    }


def test_review_reject_without_reason_returns_400(monkeypatch) -> None:
    async def _fake_review(session, **kwargs):
        raise PartnerRejectionReasonRequiredError

    monkeypatch.setattr(internal_partner.PartnerService, "review_ad", staticmethod(_fake_review))

    client = TestClient(app)
    response = client.post(
        f"/internal/partner/ads/{uuid4()}/review",
        json={"decision": "REJECT"},
        headers=HEADERS,
    )

    assert response.status_code == 400
    assert response.json() == {"detail": {"code": "E_PARTNER_VALIDATION"}}


def test_review_rejects_unknown_decision() -> None:
    client = TestClient(app)
    response = client.post(
        f"/internal/partner/ads/{uuid4()}/review",
        json={"decision": "MAYBE"},
        headers=HEADERS,
    )

    assert response.status_code == 422


def test_ads_list_all_drops_status_filter(monkeypatch) -> None:
    seen: dict[str, object] = {}

    async def _fake_list(session, *, status, limit):
        seen.update(status=status, limit=limit)
        return []

    monkeypatch.setattr(internal_partner.PartnerService, "list_ads", staticmethod(_fake_list))

    client = TestClient(app)
    response = client.get("/internal/partner/ads", params={"status": "ALL", "limit": 5}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {"items": []}
    assert seen == {"status": None, "limit": 5}


def test_pricing_update_returns_normalized_table(monkeypatch) -> None:
    seen: dict[str, object] = {}

    async def _fake_set(session, *, raw, now_utc, settings):
        seen["raw"] = raw
        return default_pricing_config(slot_daily_prices=(Decimal("1.00"),) * 10)

    monkeypatch.setattr(internal_partner, "set_pricing_config", _fake_set)

    client = TestClient(app)
    response = client.put(
        "/internal/partner/pricing",
        json={"slot_daily_prices": [1, 1, 1, 1, 1, 1, 1, 1, 1, 1]},
        headers=HEADERS,
    )

    assert response.status_code == 200
    payload = response.json()
    assert len(payload["slot_totals"]) == 10
    assert payload["slot_totals"][0][6] == 7.0
    assert seen["raw"] == {"slot_daily_prices": [1.0] * 10}


def test_slot_overrides_roundtrip_pads_missing_slots(monkeypatch) -> None:
    ad_id = uuid4()

    async def _fake_set(session, *, slots, vip_ad_id, now_utc):
        return PartnerSlotOverrides(slots=tuple(slots) + (None,) * (10 - len(slots)), vip_ad_id=vip_ad_id)

    monkeypatch.setattr(internal_partner, "set_slot_overrides", _fake_set)

    client = TestClient(app)
    response = client.put(
        "/internal/partner/slot-overrides",
        json={"slots": [str(ad_id)], "vip_ad_id": None},
        headers=HEADERS,
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["slots"][0] == str(ad_id)
    assert payload["slots"][1:] == [None] * 9
    assert payload["vip_ad_id"] is None


def test_slot_overrides_reject_unapproved_ad(monkeypatch) -> None:
    async def _fake_set(session, **kwargs):
        raise PartnerSlotOverridesInvalidError("not approved")

    monkeypatch.setattr(internal_partner, "set_slot_overrides", _fake_set)

    client = TestClient(app)
    response = client.put(
        "/internal/partner/slot-overrides",
        json={"slots": [str(uuid4())]},
        headers=HEADERS,
    )

    assert response.status_code == 400
