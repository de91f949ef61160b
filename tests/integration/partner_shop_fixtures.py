from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from app.db.models.shop_products import ShopProduct
from app.db.repo.shop_products_repo import ShopProductsRepo
from app.db.session import SessionLocal
from app.economy.partners.service import PartnerService
from app.economy.partners.types import PartnerAdDraft
from app.economy.shop.types import ShopBuyer
from app.services.paypal_checkout import PayPalCapture, PayPalOrder
from app.services.stripe_checkout import StripeCheckoutSession

UTC = timezone.utc
NOW_UTC = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)
PLAYER_UUID = "8667ba71-b85a-4004-af54-457a9734eed7"


def ad_draft(seed: str) -> PartnerAdDraft:
    return PartnerAdDraft(
        server_name=f"Realm {seed}",
        address=f"play.{seed}.example",
        description="Survival server with custom quests and weekly events.",
    )


def buyer(*, user_id: str | None = "user-1", username: str = "Steve") -> ShopBuyer:
    return ShopBuyer(
        user_id=user_id,
        email=None,
        minecraft_username=username,
        minecraft_uuid=PLAYER_UUID,
    )


@dataclass
class StubPayPalGateway:
    capture_status: str = "COMPLETED"
    created: list[str] = field(default_factory=list)
    captured: list[str] = field(default_factory=list)

    async def create_order(self, *, amount, currency, description, custom_id, return_url, cancel_url) -> PayPalOrder:
        order_id = f"PP-{len(self.created) + 1}-{custom_id[:8]}"
        self.created.append(order_id)
        return PayPalOrder(order_id=order_id, approval_url=f"https://paypal.test/{order_id}", status="CREATED")

    async def capture_order(self, order_id: str) -> PayPalCapture:
        self.captured.append(order_id)
        return PayPalCapture(
            order_id=order_id,
            status=self.capture_status,
            capture_id=f"CAP-{order_id}",
            payer_id="PAYER",
            payer_email="payer@example.com",
        )


@dataclass
class StubStripeGateway:
    payment_status: str = "paid"
    sessions: dict[str, dict[str, str]] = field(default_factory=dict)
    expirations: dict[str, datetime | None] = field(default_factory=dict)

    async def create_session(self, *, metadata: dict[str, str], **kwargs) -> StripeCheckoutSession:
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.sessions[session_id] = dict(metadata)
        self.expirations[session_id] = kwargs.get("expires_at")
        return StripeCheckoutSession(
            session_id=session_id,
            url=f"https://stripe.test/{session_id}",
            status="open",
            payment_status="unpaid",
            metadata=dict(metadata),
        )

    async def retrieve_session(self, session_id: str) -> StripeCheckoutSession:
        return StripeCheckoutSession(
            session_id=session_id,
            url=None,
            status="complete",
            payment_status=self.payment_status,
            payment_intent_id=f"pi_{session_id}",
            metadata=self.sessions.get(session_id, {}),
        )


async def create_product(
    *,
    name: str = "Vote Keys",
    price: str = "4.99",
    commands: list[str] | None = None,
    category: str = "KEYS",
) -> UUID:
    async with SessionLocal.begin() as session:
        product = await ShopProductsRepo.create(
            session,
            product=ShopProduct(
                name=name,
                price=Decimal(price),
                category=category,
                is_active=True,
                delivery_commands=commands if commands is not None else ["crate give {player} vote {qty}"],
            ),
            created_at=NOW_UTC,
        )
        return product.id


async def start_paypal_booking(
    gateway: StubPayPalGateway,
    *,
    user_id: str,
    slot: int = 2,
    days: int = 7,
    now_utc: datetime = NOW_UTC,
):
    async with SessionLocal.begin() as session:
        return await PartnerService.start_paypal_checkout(
            session,
            gateway=gateway,
            user_id=user_id,
            owner_username=user_id,
            slot=slot,
            kind="CUSTOM",
            days=days,
            draft=ad_draft(user_id),
            currency="eur",
            site_url="https://blockcraft.test",
            now_utc=now_utc,
        )


async def start_stripe_booking(
    gateway: StubStripeGateway,
    *,
    user_id: str,
    slot: int = 1,
    days: int = 7,
    now_utc: datetime = NOW_UTC,
):
    async with SessionLocal.begin() as session:
        return await PartnerService.start_stripe_checkout(
            session,
            gateway=gateway,
            user_id=user_id,
            owner_username=user_id,
            customer_email=None,
            slot=slot,
            kind="CUSTOM",
            days=days,
            draft=ad_draft(user_id),
            currency="eur",
            site_url="https://blockcraft.test",
            now_utc=now_utc,
        )
