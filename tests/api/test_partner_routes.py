from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.api.routes import partner
from app.economy.partners.errors import PartnerRequestNoteInvalidError
from app.economy.partners.types import (
    PartnerAdView,
    PartnerPlacement,
    PartnerQuote,
    PartnerReservation,
    PartnerSlotAvailability,
    PartnerUserOverview,
)
from app.main import app
from tests.api.route_fakes import FakeSessionLocal

USER_HEADERS = {"X-User-Id": "user-7", "X-User-Name": "Alex"}


@pytest.fixture(autouse=True)
def _route_env(monkeypatch) -> None:
    monkeypatch.setattr(
        partner,
        "get_settings",
        lambda: SimpleNamespace(partner_currency="eur", partner_vip_daily_price=10.0),
    )
    monkeypatch.setattr(partner, "SessionLocal", FakeSessionLocal())


def test_slots_lists_availability_with_quotes(monkeypatch) -> None:
    held_until = datetime(2026, 10, 20, 12, 0, tzinfo=timezone.utc)

    async def _fake_slots(session, *, kind, days, now_utc, settings):
        assert (kind, days) == ("CUSTOM", 7)
        return [
            PartnerSlotAvailability(
                slot=0,
                is_vip=True,
                is_paid=True,
                available=False,
                overridden=False,
                quote=PartnerQuote(
                    slot=0,
                    kind="CUSTOM",
                    days=7,
                    daily_price=Decimal("10.00"),
                    discount_pct=0,
                    total=Decimal("70.00"),
                ),
                held_until=held_until,
            ),
            PartnerSlotAvailability(
                slot=6,
                is_vip=False,
                is_paid=False,
                available=True,
                overridden=False,
                quote=None,
                held_until=None,
            ),
        ]

    monkeypatch.setattr(partner.PartnerService, "list_slot_availability", staticmethod(_fake_slots))

    client = TestClient(app)
    response = client.get("/partner/slots", params={"kind": "CUSTOM", "days": 7})

    assert response.status_code == 200
    payload = response.json()
    assert payload["currency"] == "EUR"
    assert payload["slots"][0]["available"] is False
    assert payload["slots"][0]["quote"]["total"] == 70.0
    assert payload["slots"][1]["quote"] is None


def test_slots_rejects_days_above_limit() -> None:
    client = TestClient(app)
    response = client.get("/partner/slots", params={"kind": "CUSTOM", "days": 31})

    assert response.status_code == 422


def test_active_returns_placements_in_service_order(monkeypatch) -> None:
    ad_id = uuid4()

    async def _fake_active(session, *, now_utc):
        return [
            PartnerPlacement(
                slot=1,
                ad_id=ad_id,
                server_name="Blocky Realms",
                address="play.blocky.example",
                version="1.21",
                description="Survival server with custom quests and weekly events.",
                website="",
                discord="",
                banner="",
                source="OVERRIDE",
                ends_at=None,
            )
        ]

    monkeypatch.setattr(partner.PartnerService, "list_active_placements", staticmethod(_fake_active))

    client = TestClient(app)
    response = client.get("/partner/active")

    assert response.status_code == 200
    placements = response.json()["placements"]
    assert len(placements) == 1
    assert placements[0]["ad_id"] == str(ad_id)
    assert placements[0]["source"] == "OVERRIDE"


def test_my_ad_requires_user() -> None:
    client = TestClient(app)
    response = client.get("/partner/my-ad")

    assert response.status_code == 401


def test_my_ad_without_ad_returns_empty_overview(monkeypatch) -> None:
    async def _fake_overview(session, *, user_id):
        assert user_id == "user-7"
        return PartnerUserOverview(ad=None, bookings=())

    monkeypatch.setattr(partner.PartnerService, "get_user_overview", staticmethod(_fake_overview))

    client = TestClient(app)
    response = client.get("/partner/my-ad", headers=USER_HEADERS)

    assert response.status_code == 200
    assert response.json() == {"ad": None, "bookings": []}


def test_my_ad_includes_rejection_reason(monkeypatch) -> None:
    ad = PartnerAdView(
        ad_id=uuid4(),
        server_name="Blocky Realms",
        address="play.blocky.example",
        version="",
        description="Survival server with custom quests and weekly events.",
        website="",
        discord="",
        banner="",
        status="REJECTED",
        rejection_reason="Banner is not allowed",
    )

    async def _fake_overview(session, *, user_id):
        return PartnerUserOverview(ad=ad, bookings=())

    monkeypatch.setattr(partner.PartnerService, "get_user_overview", staticmethod(_fake_overview))

    client = TestClient(app)
    response = client.get("/partner/my-ad", headers=USER_HEADERS)

    assert response.json()["ad"]["status"] == "REJECTED"
    assert response.json()["ad"]["rejection_reason"] == "Banner is not allowed"


def test_free_slot_request_rejects_paid_slot_number() -> None:
    client = TestClient(app)
    response = client.post(
        "/partner/request",
        json={
            "slot": 3,
            "note": "Small community server looking for visibility.",
            "ad": {
                "server_name": "Blocky Realms",
                "address": "play.blocky.example",
                "description": "Survival server with custom quests and weekly events.",
            },
        },
        headers=USER_HEADERS,
    )

    assert response.status_code == 422


def test_free_slot_request_maps_short_note(monkeypatch) -> None:
    async def _fake_request(session, **kwargs):
        raise PartnerRequestNoteInvalidError

    monkeypatch.setattr(partner.PartnerService, "request_free_slot", staticmethod(_fake_request))

    client = TestClient(app)
    response = client.post(
        "/partner/request",
        json={
            "slot": 7,
            "note": "too short",
            "ad": {
                "server_name": "Blocky Realms",
                "address": "play.blocky.example",
                "description": "Survival server with custom quests and weekly events.",
            },
        },
        headers=USER_HEADERS,
    )

    assert response.status_code == 400
    assert response.json() == {"detail": {"code": "E_PARTNER_VALIDATION"}}


def test_free_slot_request_returns_pending_booking(monkeypatch) -> None:
    booking_id = uuid4()

    async def _fake_request(session, **kwargs):
        return PartnerReservation(
            booking_id=booking_id,
            ad_id=uuid4(),
            ad_status="PENDING_REVIEW",
            quote=PartnerQuote(
                slot=kwargs["slot"],
                kind="MONTHLY",
                days=30,
                daily_price=Decimal("0.00"),
                discount_pct=0,
                total=Decimal("0.00"),
            ),
            currency="EUR",
        )

    monkeypatch.setattr(partner.PartnerService, "request_free_slot", staticmethod(_fake_request))

    client = TestClient(app)
    response = client.post(
        "/partner/request",
        json={
            "slot": 8,
            "kind": "MONTHLY",
            "note": "Small community server looking for visibility.",
            "ad": {
                "server_name": "Blocky Realms",
                "address": "play.blocky.example",
                "description": "Survival server with custom quests and weekly events.",
            },
        },
        headers=USER_HEADERS,
    )

    assert response.status_code == 200
    assert response.json() == {
        "booking_id": str(booking_id),
        "status": "PENDING",
        "ad_status": "PENDING_REVIEW",
        "days": 30,
    }
