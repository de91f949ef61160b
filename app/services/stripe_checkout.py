from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import stripe
import structlog

from app.core.config import get_settings
from app.services.payment_errors import (
    PaymentAmountInvalidError,
    PaymentProviderError,
    PaymentProviderNotConfiguredError,
    PaymentWebhookSignatureError,
)

logger = structlog.get_logger(__name__)

CHECKOUT_COMPLETED_EVENTS = frozenset(
    {
        "checkout.session.completed",
        "checkout.session.async_payment_succeeded",
    }
)


@dataclass(frozen=True, slots=True)
class StripeCheckoutSession:
    session_id: str
    url: str | None
    status: str
    payment_status: str
    payment_intent_id: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"


@dataclass(frozen=True, slots=True)
class StripeWebhookEvent:
    event_id: str
    event_type: str
    session: StripeCheckoutSession | None


def to_stripe_amount(amount: Decimal | float | int) -> int:
    value = Decimal(str(amount))
    if not value.is_finite() or value <= 0:
        raise PaymentAmountInvalidError
    cents = (value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(1, int(cents))


def _payment_intent_id(raw: object) -> str | None:
    if isinstance(raw, str):
        return raw or None
    if raw is None:
        return None
    candidate = getattr(raw, "id", None)
    return str(candidate) if candidate else None


def _session_from_payload(payload: Any) -> StripeCheckoutSession:
    raw_metadata = payload.get("metadata") or {}
    metadata = {str(key): str(value) for key, value in dict(raw_metadata).items()}
    return StripeCheckoutSession(
        session_id=str(payload.get("id") or ""),
        url=payload.get("url") or None,
        status=str(payload.get("status") or ""),
        payment_status=str(payload.get("payment_status") or ""),
        payment_intent_id=_payment_intent_id(payload.get("payment_intent")),
        metadata=metadata,
    )


class StripeCheckoutGateway:
    """Checkout Sessions on top of the official SDK.

    The SDK is synchronous, so every network call is pushed to a worker thread.
    """

    def __init__(self, *, secret_key: str, webhook_secret: str, api_version: str) -> None:
        self._secret_key = secret_key.strip()
        self._webhook_secret = webhook_secret.strip()
        self._api_version = api_version

    def _require_secret_key(self) -> str:
        if not self._secret_key:
            raise PaymentProviderNotConfiguredError("STRIPE_SECRET_KEY is not configured")
        return self._secret_key

    async def create_session(
        self,
        *,
        amount: Decimal,
        currency: str,
        product_name: str,
        description: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        idempotency_key: str,
        customer_email: str | None = None,
        expires_at: datetime | None = None,
    ) -> StripeCheckoutSession:
        api_key = self._require_secret_key()
        params: dict[str, Any] = {
            "mode": "payment",
            "line_items": [
                {
                    "quantity": 1,
                    "price_data": {
                        "currency": currency.lower(),
                        "unit_amount": to_stripe_amount(amount),
                        "product_data": {"name": product_name, "description": description},
                    },
                }
            ],
            "metadata": metadata,
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        if customer_email:
            params["customer_email"] = customer_email
        if expires_at is not None:
            params["expires_at"] = int(expires_at.timestamp())

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                api_key=api_key,
                stripe_version=self._api_version,
                idempotency_key=idempotency_key,
                **params,
            )
        except stripe.StripeError as exc:
            logger.warning(
                "stripe_checkout_create_failed",
                error_code=getattr(exc, "code", None),
                idempotency_key=idempotency_key,
            )
            raise PaymentProviderError("stripe_checkout_create_failed") from exc

        result = _session_from_payload(session)
        logger.info(
            "stripe_checkout_session_created",
            session_id=result.session_id,
            status=result.status,
        )
        return result

    async def retrieve_session(self, session_id: str) -> StripeCheckoutSession:
        api_key = self._require_secret_key()
        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.retrieve,
                session_id,
                api_key=api_key,
                stripe_version=self._api_version,
            )
        except stripe.StripeError as exc:
            logger.warning(
                "stripe_checkout_retrieve_failed",
                session_id=session_id,
                error_code=getattr(exc, "code", None),
            )
            raise PaymentProviderError("stripe_checkout_retrieve_failed") from exc
        return _session_from_payload(session)

    def construct_event(self, *, payload: bytes, signature: str | None) -> StripeWebhookEvent:
        if not self._webhook_secret:
            raise PaymentProviderNotConfiguredError("STRIPE_WEBHOOK_SECRET is not configured")
        if not signature:
            raise PaymentWebhookSignatureError("missing stripe-signature header")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except ValueError as exc:
            raise PaymentWebhookSignatureError("invalid webhook payload") from exc
        except stripe.SignatureVerificationError as exc:
            raise PaymentWebhookSignatureError("invalid webhook signature") from exc

        event_type = str(event["type"])
        session = None
        if event_type in CHECKOUT_COMPLETED_EVENTS:
            session = _session_from_payload(event["data"]["object"])
        return StripeWebhookEvent(
            event_id=str(event.get("id") or ""),
            event_type=event_type,
            session=session,
        )


def get_stripe_gateway() -> StripeCheckoutGateway:
    settings = get_settings()
    return StripeCheckoutGateway(
        secret_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        api_version=settings.stripe_api_version,
    )
