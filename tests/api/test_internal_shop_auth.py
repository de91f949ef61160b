from __future__ import annotations

from fastapi.testclient import TestClient

from app.api.routes import internal_shop
from app.main import app
from tests.api.route_fakes import internal_settings


def test_internal_mark_paid_rejects_missing_token(monkeypatch) -> None:
    monkeypatch.setattr(internal_shop, "get_settings", lambda: internal_settings())

    client = TestClient(app)
    response = client.post("/internal/shop/orders/6c1e7f58-8f3d-4d8e-9d56-7a0b2a4a9a11/mark-paid")

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


def test_internal_delivery_summary_rejects_disallowed_ip(monkeypatch) -> None:
    monkeypatch.setattr(
        internal_shop,
        "get_settings",
        lambda: internal_settings(internal_api_allowlist="192.168.0.0/16"),
    )

    client = TestClient(app)
    response = client.get(
        "/internal/deliveries/summary",
        headers={"X-Internal-Token": "internal-secret"},
    )

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}
