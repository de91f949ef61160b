from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import httpx
import structlog

from app.core.config import get_settings
from app.services.payment_errors import PaymentProviderError, PaymentProviderNotConfiguredError

logger = structlog.get_logger(__name__)

PAYPAL_LIVE_BASE_URL = "https://api-m.paypal.com"
PAYPAL_SANDBOX_BASE_URL = "https://api-m.sandbox.paypal.com"
TOKEN_REFRESH_MARGIN_SECONDS = 30
HTTP_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class PayPalOrder:
    order_id: str
    approval_url: str
    status: str


@dataclass(frozen=True, slots=True)
class PayPalCapture:
    order_id: str
    status: str
    capture_id: str
    payer_id: str
    payer_email: str

    @property
    def is_completed(self) -> bool:
        return self.status == "COMPLETED"


@dataclass(slots=True)
class _CachedToken:
    token: str
    expires_at_monotonic: float


_TOKEN_CACHE: dict[str, _CachedToken] = {}


def paypal_base_url(env: str) -> str:
    return PAYPAL_LIVE_BASE_URL if env.strip().lower() == "live" else PAYPAL_SANDBOX_BASE_URL


def to_paypal_amount(amount: Decimal | float | int) -> str:
    value = Decimal(str(amount))
    if not value.is_finite() or value <= 0:
        return "0.00"
    return str(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


class PayPalCheckoutGateway:
    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        env: str,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._client_id = client_id.strip()
        self._client_secret = client_secret.strip()
        self._base_url = paypal_base_url(env)
        self._timeout = timeout

    @property
    def _cache_key(self) -> str:
        return f"{self._base_url}:{self._client_id}"

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        if not self._client_id or not self._client_secret:
            raise PaymentProviderNotConfiguredError("PAYPAL_CLIENT_ID / PAYPAL_CLIENT_SECRET are not configured")

        now = time.monotonic()
        cached = _TOKEN_CACHE.get(self._cache_key)
        if cached is not None and cached.expires_at_monotonic - TOKEN_REFRESH_MARGIN_SECONDS > now:
            return cached.token

        try:
            response = await client.post(
                f"{self._base_url}/v1/oauth2/token",
                data={"grant_type": "client_credentials"},
                auth=(self._client_id, self._client_secret),
            )
        except httpx.HTTPError as exc:
            raise PaymentProviderError("paypal_auth_failed") from exc

        payload = _json_or_empty(response)
        token = payload.get("access_token")
        expires_in = payload.get("expires_in")
        if response.is_error or not token or not expires_in:
            logger.warning("paypal_auth_failed", status_code=response.status_code)
            raise PaymentProviderError("paypal_auth_failed")

        _TOKEN_CACHE[self._cache_key] = _CachedToken(
            token=str(token),
            expires_at_monotonic=now + float(expires_in),
        )
        return str(token)

    async def create_order(
        self,
        *,
        amount: Decimal,
        currency: str,
        description: str,
        custom_id: str,
        return_url: str,
        cancel_url: str,
    ) -> PayPalOrder:
        body = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "amount": {
                        "currency_code": currency.upper(),
                        "value": to_paypal_amount(amount),
                    },
                    "description": description[:127],
                    "custom_id": custom_id,
                }
            ],
            "application_context": {
                "return_url": return_url,
                "cancel_url": cancel_url,
                "user_action": "PAY_NOW",
                "shipping_preference": "NO_SHIPPING",
            },
        }
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            token = await self._access_token(client)
            try:
                response = await client.post(
                    f"{self._base_url}/v2/checkout/orders",
                    json=body,
                    headers={"Authorization": f"Bearer {token}"},
                )
            except httpx.HTTPError as exc:
                raise PaymentProviderError("paypal_order_create_failed") from exc

        payload = _json_or_empty(response)
        order_id = payload.get("id")
        if response.is_error or not order_id:
            logger.warning(
                "paypal_order_create_failed",
                status_code=response.status_code,
                custom_id=custom_id,
            )
            raise PaymentProviderError("paypal_order_create_failed")

        approval_url = next(
            (
                str(link.get("href"))
                for link in payload.get("links") or []
                if isinstance(link, dict) and link.get("rel") == "approve" and link.get("href")
            ),
            "",
        )
        if not approval_url:
            raise PaymentProviderError("paypal_order_missing_approval_url")

        logger.info("paypal_order_created", paypal_order_id=order_id, custom_id=custom_id)
        return PayPalOrder(
            order_id=str(order_id),
            approval_url=approval_url,
            status=str(payload.get("status") or ""),
        )

    async def capture_order(self, order_id: str) -> PayPalCapture:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            token = await self._access_token(client)
            try:
                response = await client.post(
                    f"{self._base_url}/v2/checkout/orders/{order_id}/capture",
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Content-Type": "application/json",
                    },
                )
            except httpx.HTTPError as exc:
                raise PaymentProviderError("paypal_capture_failed") from exc

        payload = _json_or_empty(response)
        if response.is_error or not payload.get("id"):
            logger.warning(
                "paypal_capture_failed",
                status_code=response.status_code,
                paypal_order_id=order_id,
            )
            raise PaymentProviderError("paypal_capture_failed")

        capture: dict[str, Any] = {}
        purchase_units = payload.get("purchase_units") or []
        if purchase_units and isinstance(purchase_units[0], dict):
            captures = (purchase_units[0].get("payments") or {}).get("captures") or []
            if captures and isinstance(captures[0], dict):
                capture = captures[0]
        payer = payload.get("payer") or {}

        return PayPalCapture(
            order_id=str(payload["id"]),
            status=str(payload.get("status") or ""),
            capture_id=str(capture.get("id") or ""),
            payer_id=str(payer.get("payer_id") or ""),
            payer_email=str(payer.get("email_address") or ""),
        )


def get_paypal_gateway() -> PayPalCheckoutGateway:
    settings = get_settings()
    return PayPalCheckoutGateway(
        client_id=settings.paypal_client_id,
        client_secret=settings.paypal_client_secret,
        env=settings.paypal_env,
    )
