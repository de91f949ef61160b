from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True, slots=True)
class CartLine:
    product_id: UUID
    quantity: int


@dataclass(frozen=True, slots=True)
class PricedLine:
    product_id: UUID
    product_name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal

    def as_json(self) -> dict[str, object]:
        return {
            "product_id": str(self.product_id),
            "product_name": self.product_name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "line_total": str(self.line_total),
        }


@dataclass(frozen=True, slots=True)
class ShopBuyer:
    user_id: str | None
    email: str | None
    minecraft_username: str
    minecraft_uuid: str
    ip: str = ""
    user_agent: str = ""


@dataclass(slots=True)
class ShopCheckoutStart:
    order_id: UUID
    provider: str
    provider_reference: str | None
    checkout_url: str | None
    total: Decimal
    currency: str
    free: bool = False


@dataclass(slots=True)
class ShopCaptureResult:
    order_id: UUID
    status: str
    delivery_created: bool
    idempotent_replay: bool
    payment_completed: bool = True
    provider_status: str = ""


@dataclass(slots=True)
class ShopCancelResult:
    order_id: UUID
    canceled: bool
