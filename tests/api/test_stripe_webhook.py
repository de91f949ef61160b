from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from app.api.routes import partner_helpers, stripe_webhook
from app.economy.partners.errors import PartnerPaidAfterReleaseError
from app.economy.partners.types import PartnerCaptureResult
from app.economy.shop.errors import ShopOrderStateError
from app.economy.shop.types import ShopCaptureResult
from app.main import app
from app.services.payment_errors import PaymentWebhookSignatureError
from app.services.stripe_checkout import StripeCheckoutSession, StripeWebhookEvent
from tests.api.route_fakes import FakeSessionLocal


class StubGateway:
    def __init__(self, *, event: StripeWebhookEvent | None = None, error: Exception | None = None) -> None:
        self._event = event
        self._error = error
        self.signatures: list[str | None] = []

    def construct_event(self, *, payload: bytes, signature: str | None) -> StripeWebhookEvent:
        self.signatures.append(signature)
        if self._error is not None:
            raise self._error
        assert self._event is not None
        return self._event


def _checkout_event(metadata: dict[str, str]) -> StripeWebhookEvent:
    return StripeWebhookEvent(
        event_id="evt_1",
        event_type="checkout.session.completed",
        session=StripeCheckoutSession(
            session_id="cs_test_1",
            url=None,
            status="complete",
            payment_status="paid",
            metadata=metadata,
        ),
    )


def _setup(monkeypatch, gateway: StubGateway) -> None:
    monkeypatch.setattr(stripe_webhook, "get_stripe_gateway", lambda: gateway)
    monkeypatch.setattr(stripe_webhook, "SessionLocal", FakeSessionLocal())


def test_invalid_signature_returns_400(monkeypatch) -> None:
    gateway = StubGateway(error=PaymentWebhookSignatureError("invalid webhook signature"))
    _setup(monkeypatch, gateway)

    client = TestClient(app)
    response = client.post("/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "t=1,v1=bad"})

    assert response.status_code == 400
    assert response.json() == {"detail": {"code": "E_WEBHOOK_SIGNATURE_INVALID"}}
    assert gateway.signatures == ["t=1,v1=bad"]


def test_unrelated_event_type_is_acknowledged(monkeypatch) -> None:
    gateway = StubGateway(event=StripeWebhookEvent(event_id="evt_2", event_type="charge.refunded", session=None))
    _setup(monkeypatch, gateway)

    client = TestClient(app)
    response = client.post("/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "sig"})

    assert response.status_code == 200
    assert response.json() == {"received": True, "status": "ignored"}


def test_session_without_known_target_is_acknowledged(monkeypatch) -> None:
    _setup(monkeypatch, StubGateway(event=_checkout_event({})))

    client = TestClient(app)
    response = client.post("/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "sig"})

    assert response.status_code == 200
    assert response.json()["status"] == "ignored"


def test_booking_session_is_applied_and_alerts_on_pending_review(monkeypatch) -> None:
    booking_id = uuid4()
    alerts: list[str] = []
    _setup(monkeypatch, StubGateway(event=_checkout_event({"booking_id": str(booking_id)})))

    async def _fake_apply(session, *, checkout, now_utc):
        assert checkout.session_id == "cs_test_1"
        return PartnerCaptureResult(
            booking_id=booking_id,
            status="PENDING",
            pending_review=True,
            starts_at=None,
            ends_at=None,
            idempotent_replay=False,
        )

    async def _fake_alert(*, event: str, payload: dict[str, object]) -> bool:
        alerts.append(event)
        return True

    monkeypatch.setattr(stripe_webhook.PartnerService, "apply_stripe_checkout_session", staticmethod(_fake_apply))
    monkeypatch.setattr(partner_helpers, "send_ops_alert", _fake_alert)

    client = TestClient(app)
    response = client.post("/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "sig"})

    assert response.status_code == 200
    assert response.json() == {"received": True, "status": "applied"}
    assert alerts == ["partner_booking_paid_pending_review"]


def test_order_session_is_applied(monkeypatch) -> None:
    order_id = uuid4()
    _setup(monkeypatch, StubGateway(event=_checkout_event({"order_id": str(order_id)})))

    async def _fake_apply(session, *, checkout, now_utc):
        return ShopCaptureResult(order_id=order_id, status="PAID", delivery_created=True, idempotent_replay=False)

    monkeypatch.setattr(stripe_webhook.ShopService, "apply_stripe_checkout_session", staticmethod(_fake_apply))

    client = TestClient(app)
    response = client.post("/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "sig"})

    assert response.json() == {"received": True, "status": "applied"}


def test_business_rejection_is_acknowledged(monkeypatch) -> None:
    _setup(monkeypatch, StubGateway(event=_checkout_event({"order_id": str(uuid4())})))

    async def _fake_apply(session, *, checkout, now_utc):
        raise ShopOrderStateError("CANCELED")

    monkeypatch.setattr(stripe_webhook.ShopService, "apply_stripe_checkout_session", staticmethod(_fake_apply))

    client = TestClient(app)
    response = client.post("/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "sig"})

    assert response.status_code == 200
    assert response.json() == {"received": True, "status": "rejected"}


def test_paid_session_for_released_booking_alerts_ops(monkeypatch) -> None:
    booking_id = uuid4()
    alerts: list[dict[str, object]] = []
    _setup(monkeypatch, StubGateway(event=_checkout_event({"booking_id": str(booking_id)})))

    async def _fake_apply(session, *, checkout, now_utc):
        raise PartnerPaidAfterReleaseError(
            booking_id=booking_id,
            session_id=checkout.session_id,
            payment_intent_id="pi_test_1",
        )

    async def _fake_alert(*, event: str, payload: dict[str, object]) -> bool:
        alerts.append({"event": event, "payload": payload})
        return True

    monkeypatch.setattr(stripe_webhook.PartnerService, "apply_stripe_checkout_session", staticmethod(_fake_apply))
    monkeypatch.setattr(partner_helpers, "send_ops_alert", _fake_alert)

    client = TestClient(app)
    response = client.post("/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "sig"})

    assert response.status_code == 200
    assert response.json() == {"received": True, "status": "review_required"}
    assert alerts == [
        {
            "event": "partner_booking_paid_after_release",
            "payload": {
                "booking_id": str(booking_id),
                "session_id": "cs_test_1",
                "payment_intent_id": "pi_test_1",
            },
        }
    ]


def test_unpaid_order_session_is_kept_pending(monkeypatch) -> None:
    order_id = uuid4()
    session_local = FakeSessionLocal()
    gateway = StubGateway(event=_checkout_event({"order_id": str(order_id)}))
    monkeypatch.setattr(stripe_webhook, "get_stripe_gateway", lambda: gateway)
    monkeypatch.setattr(stripe_webhook, "SessionLocal", session_local)

    async def _fake_apply(session, *, checkout, now_utc):
        return ShopCaptureResult(
            order_id=order_id,
            status="PENDING",
            delivery_created=False,
            idempotent_replay=False,
            payment_completed=False,
            provider_status="unpaid",
        )

    monkeypatch.setattr(stripe_webhook.ShopService, "apply_stripe_checkout_session", staticmethod(_fake_apply))

    client = TestClient(app)
    response = client.post("/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "sig"})

    assert response.json() == {"received": True, "status": "pending"}
    assert session_local.commits == 1
