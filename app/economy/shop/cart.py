from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from uuid import UUID

from app.db.models.shop_products import ShopProduct
from app.economy.shop.errors import (
    ShopCartEmptyError,
    ShopCartInvalidError,
    ShopOrderTotalInvalidError,
    ShopProductNotFoundError,
    ShopProductUnavailableError,
)
from app.economy.shop.types import CartLine, PricedLine

MAX_LINE_QUANTITY = 99
CENT = Decimal("0.01")


def _parse_product_id(raw: object) -> UUID:
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw or "").strip())
    except ValueError as exc:
        raise ShopCartInvalidError("product_id") from exc


def normalize_cart(
    *,
    items: Iterable[Mapping[str, object]] | None,
    product_id: object = None,
) -> list[CartLine]:
    """Merge duplicate products and cap quantities.

    A bare product_id without items means a single unit of that product.
    """
    raw_items = list(items or [])
    if not raw_items and product_id:
        raw_items = [{"product_id": product_id, "quantity": 1}]
    if not raw_items:
        raise ShopCartEmptyError

    merged: dict[UUID, int] = {}
    for item in raw_items:
        resolved_id = _parse_product_id(item.get("product_id"))
        quantity = item.get("quantity", 1)
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ShopCartInvalidError("quantity")
        if quantity < 1 or quantity > MAX_LINE_QUANTITY:
            raise ShopCartInvalidError("quantity")
        merged[resolved_id] = min(MAX_LINE_QUANTITY, merged.get(resolved_id, 0) + quantity)

    return [CartLine(product_id=pid, quantity=quantity) for pid, quantity in merged.items()]


def price_cart(lines: list[CartLine], products: Mapping[UUID, ShopProduct]) -> list[PricedLine]:
    priced: list[PricedLine] = []
    for line in lines:
        product = products.get(line.product_id)
        if product is None:
            raise ShopProductNotFoundError(str(line.product_id))
        if not product.is_active:
            raise ShopProductUnavailableError(str(line.product_id))
        unit_price = Decimal(product.price).quantize(CENT)
        priced.append(
            PricedLine(
                product_id=product.id,
                product_name=product.name,
                unit_price=unit_price,
                quantity=line.quantity,
                line_total=(unit_price * line.quantity).quantize(CENT),
            )
        )
    return priced


def cart_total(lines: list[PricedLine]) -> Decimal:
    total = sum((line.line_total for line in lines), Decimal("0.00"))
    if total < 0:
        raise ShopOrderTotalInvalidError
    return total.quantize(CENT)


def cart_description(lines: list[PricedLine]) -> str:
    return ", ".join(f"{line.quantity}x {line.product_name}" for line in lines)[:500]
