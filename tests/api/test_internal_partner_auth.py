from __future__ import annotations

from fastapi.testclient import TestClient

from app.api.routes import internal_partner
from app.main import app
from tests.api.route_fakes import internal_settings


def test_internal_partner_ads_rejects_missing_token(monkeypatch) -> None:
    monkeypatch.setattr(internal_partner, "get_settings", lambda: internal_settings())

    client = TestClient(app)
    response = client.get("/internal/partner/ads")

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


def test_internal_partner_review_rejects_wrong_token(monkeypatch) -> None:
    monkeypatch.setattr(internal_partner, "get_settings", lambda: internal_settings())

    client = TestClient(app)
    response = client.post(
        "/internal/partner/ads/6c1e7f58-8f3d-4d8e-9d56-7a0b2a4a9a11/review",
        json={"decision": "APPROVE"},
        headers={"X-Internal-Token": "wrong-secret"},
    )

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


def test_internal_partner_pricing_rejects_disallowed_ip(monkeypatch) -> None:
    monkeypatch.setattr(
        internal_partner,
        "get_settings",
        lambda: internal_settings(internal_api_allowlist="192.168.0.0/16"),
    )

    client = TestClient(app)
    response = client.put(
        "/internal/partner/pricing",
        json={"slot_daily_prices": [1, 1, 1, 1, 1, 1, 1, 1, 1, 1]},
        headers={
            "X-Internal-Token": "internal-secret",
            "X-Forwarded-For": "10.0.0.25",
        },
    )

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


def test_internal_partner_slot_overrides_rejects_missing_token(monkeypatch) -> None:
    monkeypatch.setattr(internal_partner, "get_settings", lambda: internal_settings())

    client = TestClient(app)
    response = client.get("/internal/partner/slot-overrides")

    assert response.status_code == 403
