from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from app.services import paypal_checkout
from app.services.payment_errors import PaymentProviderError, PaymentProviderNotConfiguredError
from app.services.paypal_checkout import PayPalCheckoutGateway, paypal_base_url, to_paypal_amount

_REAL_ASYNC_CLIENT = httpx.AsyncClient


@pytest.fixture(autouse=True)
def _clear_token_cache() -> None:
    paypal_checkout._TOKEN_CACHE.clear()


def _patch_transport(monkeypatch: pytest.MonkeyPatch, handler) -> None:
    def factory(timeout: float) -> httpx.AsyncClient:
        return _REAL_ASYNC_CLIENT(timeout=timeout, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(paypal_checkout.httpx, "AsyncClient", factory)


def _gateway() -> PayPalCheckoutGateway:
    return PayPalCheckoutGateway(client_id="client", client_secret="secret", env="sandbox")


def test_paypal_base_url_selects_environment() -> None:
    assert paypal_base_url("live") == "https://api-m.paypal.com"
    assert paypal_base_url("sandbox") == "https://api-m.sandbox.paypal.com"
    assert paypal_base_url("anything-else") == "https://api-m.sandbox.paypal.com"


def test_to_paypal_amount_formats_two_decimals() -> None:
    assert to_paypal_amount(Decimal("5")) == "5.00"
    assert to_paypal_amount(Decimal("2.345")) == "2.35"
    assert to_paypal_amount(Decimal("0")) == "0.00"


@pytest.mark.asyncio
async def test_missing_credentials_raise_not_configured(monkeypatch) -> None:
    _patch_transport(monkeypatch, lambda request: httpx.Response(500))
    gateway = PayPalCheckoutGateway(client_id="", client_secret="", env="sandbox")

    with pytest.raises(PaymentProviderNotConfiguredError):
        await gateway.capture_order("ORDER-1")


@pytest.mark.asyncio
async def test_create_order_returns_approval_link_and_caches_token(monkeypatch) -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path == "/v1/oauth2/token":
            return httpx.Response(200, json={"access_token": "token-1", "expires_in": 3600})
        body = json.loads(request.content)
        assert request.headers["Authorization"] == "Bearer token-1"
        assert body["purchase_units"][0]["amount"] == {"currency_code": "EUR", "value": "35.00"}
        assert body["purchase_units"][0]["custom_id"] == "booking-1"
        return httpx.Response(
            201,
            json={
                "id": "ORDER-1",
                "status": "CREATED",
                "links": [
                    {"rel": "self", "href": "https://api.paypal.example/self"},
                    {"rel": "approve", "href": "https://paypal.example/approve/ORDER-1"},
                ],
            },
        )

    _patch_transport(monkeypatch, handler)
    gateway = _gateway()

    for _ in range(2):
        order = await gateway.create_order(
            amount=Decimal("35.00"),
            currency="eur",
            description="Partner Slot #1 - 7 days",
            custom_id="booking-1",
            return_url="https://example.test/return",
            cancel_url="https://example.test/cancel",
        )

    assert order.order_id == "ORDER-1"
    assert order.approval_url == "https://paypal.example/approve/ORDER-1"
    assert seen.count("/v1/oauth2/token") == 1


@pytest.mark.asyncio
async def test_create_order_without_approval_link_fails(monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/oauth2/token":
            return httpx.Response(200, json={"access_token": "token-1", "expires_in": 3600})
        return httpx.Response(201, json={"id": "ORDER-2", "status": "CREATED", "links": []})

    _patch_transport(monkeypatch, handler)

    with pytest.raises(PaymentProviderError):
        await _gateway().create_order(
            amount=Decimal("5.00"),
            currency="EUR",
            description="Shop order",
            custom_id="order-2",
            return_url="https://example.test/return",
            cancel_url="https://example.test/cancel",
        )


@pytest.mark.asyncio
async def test_capture_order_extracts_capture_and_payer(monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/oauth2/token":
            return httpx.Response(200, json={"access_token": "token-1", "expires_in": 3600})
        assert request.url.path == "/v2/checkout/orders/ORDER-1/capture"
        return httpx.Response(
            201,
            json={
                "id": "ORDER-1",
                "status": "COMPLETED",
                "purchase_units": [{"payments": {"captures": [{"id": "CAPTURE-1", "status": "COMPLETED"}]}}],
                "payer": {"payer_id": "PAYER-1", "email_address": "steve@example.com"},
            },
        )

    _patch_transport(monkeypatch, handler)

    capture = await _gateway().capture_order("ORDER-1")

    assert capture.is_completed is True
    assert capture.capture_id == "CAPTURE-1"
    assert capture.payer_id == "PAYER-1"
    assert capture.payer_email == "steve@example.com"


@pytest.mark.asyncio
async def test_capture_order_http_error_is_provider_error(monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/oauth2/token":
            return httpx.Response(200, json={"access_token": "token-1", "expires_in": 3600})
        return httpx.Response(422, json={"name": "UNPROCESSABLE_ENTITY"})

    _patch_transport(monkeypatch, handler)

    with pytest.raises(PaymentProviderError):
        await _gateway().capture_order("ORDER-1")
