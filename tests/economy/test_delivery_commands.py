from __future__ import annotations

from app.economy.deliveries.commands import build_order_commands, render_command


def test_render_command_substitutes_every_placeholder() -> None:
    command = render_command(
        "give {player} diamond {qty} # {product} {uuid} {orderId}",
        player="Steve",
        uuid="8667ba71-b85a-4004-af54-457a9734eed7",
        quantity=3,
        product="Diamond Pack",
        order_id="order-1",
    )

    assert command == "give Steve diamond 3 # Diamond Pack 8667ba71-b85a-4004-af54-457a9734eed7 order-1"


def test_render_command_leaves_other_braces_alone() -> None:
    command = render_command(
        'tellraw {player} {"text":"thanks"}',
        player="Alex",
        uuid="u",
        quantity=1,
        product="p",
        order_id="o",
    )

    assert command == 'tellraw Alex {"text":"thanks"}'


def test_build_order_commands_expands_items_in_order() -> None:
    commands = build_order_commands(
        items=[
            {"product_id": "rank", "quantity": 1, "product_name": "VIP Rank"},
            {"product_id": "keys", "quantity": 5},
            {"product_id": "no-commands", "quantity": 1},
        ],
        templates_by_product={
            "rank": ["lp user {player} parent add vip", "  "],
            "keys": ["crate give {player} vote {qty}", "say {player} bought {product}"],
        },
        names_by_product={"keys": "Vote Keys"},
        player="Steve",
        uuid="u-1",
        order_id="o-1",
    )

    assert commands == [
        "lp user Steve parent add vip",
        "crate give Steve vote 5",
        "say Steve bought Vote Keys",
    ]


def test_build_order_commands_defaults_bad_quantity_to_one() -> None:
    commands = build_order_commands(
        items=[{"product_id": "keys", "quantity": "many"}],
        templates_by_product={"keys": ["crate give {player} vote {qty}"]},
        player="Steve",
        uuid="u-1",
        order_id="o-1",
    )

    assert commands == ["crate give Steve vote 1"]


def test_build_order_commands_without_templates_is_empty() -> None:
    assert (
        build_order_commands(
            items=[{"product_id": "x", "quantity": 1}],
            templates_by_product={},
            player="Steve",
            uuid="u-1",
            order_id="o-1",
        )
        == []
    )
