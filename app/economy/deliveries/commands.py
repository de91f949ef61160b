from __future__ import annotations

from collections.abc import Iterable, Mapping

COMMAND_PLACEHOLDERS = ("{player}", "{uuid}", "{qty}", "{product}", "{orderId}")


def render_command(
    template: str,
    *,
    player: str,
    uuid: str,
    quantity: int,
    product: str,
    order_id: str,
) -> str:
    # plain substitution; templates come from admins and may contain other braces
    replacements = {
        "{player}": player,
        "{uuid}": uuid,
        "{qty}": str(quantity),
        "{product}": product,
        "{orderId}": order_id,
    }
    rendered = template
    for placeholder, value in replacements.items():
        rendered = rendered.replace(placeholder, value)
    return rendered.strip()


def build_order_commands(
    *,
    items: Iterable[Mapping[str, object]],
    templates_by_product: Mapping[str, Iterable[str]],
    names_by_product: Mapping[str, str] | None = None,
    player: str,
    uuid: str,
    order_id: str,
) -> list[str]:
    commands: list[str] = []
    for item in items:
        product_id = str(item.get("product_id") or "")
        templates = templates_by_product.get(product_id) or ()
        product_name = str(item.get("product_name") or (names_by_product or {}).get(product_id) or "")
        raw_quantity = item.get("quantity")
        quantity = raw_quantity if isinstance(raw_quantity, int) and raw_quantity > 0 else 1
        for template in templates:
            if not isinstance(template, str) or not template.strip():
                continue
            command = render_command(
                template,
                player=player,
                uuid=uuid,
                quantity=quantity,
                product=product_name,
                order_id=order_id,
            )
            if command:
                commands.append(command)
    return commands
