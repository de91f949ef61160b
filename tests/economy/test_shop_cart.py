from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from app.db.models.shop_products import ShopProduct
from app.economy.shop.cart import cart_description, cart_total, normalize_cart, price_cart
from app.economy.shop.errors import (
    ShopCartEmptyError,
    ShopCartInvalidError,
    ShopProductNotFoundError,
    ShopProductUnavailableError,
)
from app.economy.shop.types import CartLine


def _product(*, price: str, name: str = "Diamond Key", is_active: bool = True) -> ShopProduct:
    return ShopProduct(id=uuid4(), name=name, price=Decimal(price), category="KEYS", is_active=is_active)


def test_normalize_cart_merges_duplicates() -> None:
    product_id = uuid4()

    lines = normalize_cart(
        items=[
            {"product_id": str(product_id), "quantity": 2},
            {"product_id": product_id, "quantity": 3},
        ]
    )

    assert lines == [CartLine(product_id=product_id, quantity=5)]


def test_normalize_cart_caps_merged_quantity() -> None:
    product_id = uuid4()

    lines = normalize_cart(
        items=[{"product_id": product_id, "quantity": 60}, {"product_id": product_id, "quantity": 60}]
    )

    assert lines[0].quantity == 99


def test_single_product_id_means_one_unit() -> None:
    product_id = uuid4()

    assert normalize_cart(items=None, product_id=product_id) == [CartLine(product_id=product_id, quantity=1)]


def test_empty_cart_is_rejected() -> None:
    with pytest.raises(ShopCartEmptyError):
        normalize_cart(items=[])


@pytest.mark.parametrize("quantity", [0, -1, 100, "2", True, 1.5])
def test_invalid_quantities_are_rejected(quantity: object) -> None:
    with pytest.raises(ShopCartInvalidError):
        normalize_cart(items=[{"product_id": uuid4(), "quantity": quantity}])


def test_invalid_product_id_is_rejected() -> None:
    with pytest.raises(ShopCartInvalidError):
        normalize_cart(items=[{"product_id": "not-a-uuid", "quantity": 1}])


def test_price_cart_uses_server_prices() -> None:
    key = _product(price="4.99")
    rank = _product(price="15", name="VIP Rank")
    lines = [CartLine(product_id=key.id, quantity=3), CartLine(product_id=rank.id, quantity=1)]

    priced = price_cart(lines, {key.id: key, rank.id: rank})

    assert priced[0].line_total == Decimal("14.97")
    assert priced[1].unit_price == Decimal("15.00")
    assert cart_total(priced) == Decimal("29.97")
    assert cart_description(priced) == "3x Diamond Key, 1x VIP Rank"


def test_price_cart_rejects_unknown_and_inactive_products() -> None:
    inactive = _product(price="1.00", is_active=False)

    with pytest.raises(ShopProductNotFoundError):
        price_cart([CartLine(product_id=uuid4(), quantity=1)], {})
    with pytest.raises(ShopProductUnavailableError):
        price_cart([CartLine(product_id=inactive.id, quantity=1)], {inactive.id: inactive})


def test_cart_total_of_free_products_is_zero() -> None:
    gift = _product(price="0", name="Starter Kit")

    priced = price_cart([CartLine(product_id=gift.id, quantity=2)], {gift.id: gift})

    assert cart_total(priced) == Decimal("0.00")
