from __future__ import annotations

from types import SimpleNamespace

from fastapi.testclient import TestClient

from app import main as app_main


def _settings(*, enable_openapi_docs: bool) -> SimpleNamespace:
    return SimpleNamespace(
        log_level="INFO",
        enable_openapi_docs=enable_openapi_docs,
    )


def test_openapi_lists_public_and_executor_routes(monkeypatch) -> None:
    monkeypatch.setattr(app_main, "get_settings", lambda: _settings(enable_openapi_docs=True))
    client = TestClient(app_main.create_app())

    assert client.get("/docs").status_code == 200
    paths = client.get("/openapi.json").json()["paths"]

    for path in (
        "/partner/slots",
        "/partner/checkout/paypal/capture",
        "/shop/stripe/create",
        "/webhooks/stripe",
        "/deliveries/next",
        "/internal/partner/pricing",
        "/internal/deliveries/summary",
    ):
        assert path in paths


def test_openapi_docs_disabled(monkeypatch) -> None:
    monkeypatch.setattr(app_main, "get_settings", lambda: _settings(enable_openapi_docs=False))
    client = TestClient(app_main.create_app())

    assert client.get("/docs").status_code == 404
    assert client.get("/redoc").status_code == 404
    assert client.get("/openapi.json").status_code == 404
