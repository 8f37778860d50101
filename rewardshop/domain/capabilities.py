"""Per-variant behaviour for products, dispatched on :class:`ProductType`."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Sequence, TypeVar
from urllib.parse import urlparse

from .exceptions import InvalidField
from .products import (
    CommandPayload,
    ItemCategory,
    ItemPayload,
    KitPayload,
    Product,
    ProductType,
)
from .providers import Fulfillment, ItemDirectory, KitProvider, PlayerInfo

P = TypeVar("P")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True, slots=True)
class FieldContext:
    """Lookups used while editing a draft."""

    kits: KitProvider
    items: ItemDirectory
    permission_prefix: str = ""


@dataclass(frozen=True, slots=True)
class ProductCapability:
    new_draft: Callable[[], Product]
    missing_fields: Callable[[Product], list[str]]
    set_field: Callable[[Product, str, str, FieldContext], Product]
    fulfill: Callable[[Product, PlayerInfo, Fulfillment], Awaitable[bool]]
    search_text: Callable[[Product], str]


def substitute_player_tokens(template: str, player: PlayerInfo) -> str:
    x, y, z = player.position
    return (
        template.replace("$player.id", str(player.user_id))
        .replace("$player.name", player.name)
        .replace("$player.x", f"{x:g}")
        .replace("$player.y", f"{y:g}")
        .replace("$player.z", f"{z:g}")
    )


def set_product_field(product: Product, field: str, value: str, ctx: FieldContext) -> Product:
    """Return a copy of ``product`` with ``field`` set, applying the edit rules."""
    return capability_for(product.product_type).set_field(product, field, value, ctx)


def edit_command(product: Product, action: str, index: int, value: str = "") -> Product:
    """Add, edit or remove one command template of a command product."""
    payload = product.payload
    if not isinstance(payload, CommandPayload):
        raise InvalidField("commands", value, "only command products hold commands")
    commands = list(payload.commands)
    if action == "add":
        if not value.strip():
            raise InvalidField("commands", value, "command must not be empty")
        commands.append(value.strip())
    elif action in {"edit", "remove"}:
        if not 0 <= index < len(commands):
            raise InvalidField("commands", index, "no command at that index")
        if action == "edit":
            if not value.strip():
                raise InvalidField("commands", value, "command must not be empty")
            commands[index] = value.strip()
        else:
            commands.pop(index)
    else:
        raise InvalidField("commands", action, "expected add, edit or remove")
    return replace(product, payload=replace(payload, commands=tuple(commands)))


def _parse_int(field: str, value: str) -> int:
    try:
        return int(value.strip())
    except (AttributeError, ValueError) as exc:
        raise InvalidField(field, value, "expected an integer") from exc


def _parse_bool(field: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise InvalidField(field, value, "expected true or false")


def _is_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _set_common_field(product: Product, field: str, value: str, ctx: FieldContext) -> Product | None:
    if field == "display_name":
        return replace(product, display_name=value.strip())
    if field == "cost":
        return replace(product, cost=max(0, _parse_int(field, value)))
    if field == "cooldown_seconds":
        return replace(product, cooldown_seconds=max(0, _parse_int(field, value)))
    if field == "icon_url":
        value = value.strip()
        return replace(product, icon_url=value if _is_url(value) else "")
    if field == "permission":
        value = value.strip()
        if value and ctx.permission_prefix and not value.startswith(ctx.permission_prefix):
            value = f"{ctx.permission_prefix}{value}"
        return replace(product, permission=value)
    return None


def _unknown(field: str, value: str) -> InvalidField:
    return InvalidField(field, value, "unknown field")


def _payload(product: Product, kind: type[P]) -> P:
    payload = product.payload
    if not isinstance(payload, kind):
        raise TypeError(f"Expected {kind.__name__}, got {type(payload).__name__}")
    return payload


# Items


def _item_missing(product: Product) -> list[str]:
    payload = _payload(product, ItemPayload)
    missing = []
    if not payload.item_ref:
        missing.append("item_ref")
    if not product.display_name:
        missing.append("display_name")
    if payload.amount < 1:
        missing.append("amount")
    return missing


def _item_set_field(product: Product, field: str, value: str, ctx: FieldContext) -> Product:
    common = _set_common_field(product, field, value, ctx)
    if common is not None:
        return common
    payload = _payload(product, ItemPayload)
    if field == "item_ref":
        definition = ctx.items.get(value.strip())
        if definition is None:
            raise InvalidField(field, value, "unknown item")
        return replace(
            product,
            display_name=product.display_name or definition.display_name,
            payload=replace(payload, item_ref=definition.item_ref, category=definition.category),
        )
    if field == "amount":
        return replace(product, payload=replace(payload, amount=max(1, _parse_int(field, value))))
    if field == "skin_id":
        return replace(product, payload=replace(payload, skin_id=_parse_int(field, value)))
    if field == "is_blueprint":
        return replace(product, payload=replace(payload, is_blueprint=_parse_bool(field, value)))
    if field == "ignore_ownership_check":
        return replace(
            product, payload=replace(payload, ignore_ownership_check=_parse_bool(field, value))
        )
    if field == "category":
        try:
            category = ItemCategory(value.strip().lower())
        except ValueError as exc:
            raise InvalidField(field, value, "unknown category") from exc
        return replace(product, payload=replace(payload, category=category))
    raise _unknown(field, value)


async def _item_fulfill(product: Product, player: PlayerInfo, fulfillment: Fulfillment) -> bool:
    payload = _payload(product, ItemPayload)
    return await fulfillment.give_item(
        player.user_id, payload.item_ref, payload.amount, payload.skin_id, payload.is_blueprint
    )


def _item_search_text(product: Product) -> str:
    payload = _payload(product, ItemPayload)
    return f"{product.display_name} {payload.item_ref}"


# Kits


def _kit_missing(product: Product) -> list[str]:
    payload = _payload(product, KitPayload)
    missing = []
    if not payload.kit_name:
        missing.append("kit_name")
    if not product.display_name:
        missing.append("display_name")
    return missing


def _kit_set_field(product: Product, field: str, value: str, ctx: FieldContext) -> Product:
    common = _set_common_field(product, field, value, ctx)
    if common is not None:
        return common
    payload = _payload(product, KitPayload)
    if field == "kit_name":
        kit = ctx.kits.get_kit(value.strip()) if ctx.kits.available else None
        if kit is None:
            raise InvalidField(field, value, "unknown kit")
        return replace(
            product,
            display_name=kit.display_name or kit.name,
            icon_url=kit.icon_url if _is_url(kit.icon_url) else product.icon_url,
            payload=replace(payload, kit_name=kit.name, description=kit.description),
        )
    if field == "description":
        return replace(product, payload=replace(payload, description=value.strip()))
    raise _unknown(field, value)


async def _kit_fulfill(product: Product, player: PlayerInfo, fulfillment: Fulfillment) -> bool:
    payload = _payload(product, KitPayload)
    return await fulfillment.give_kit(player.user_id, payload.kit_name)


def _kit_search_text(product: Product) -> str:
    payload = _payload(product, KitPayload)
    return f"{product.display_name} {payload.kit_name} {payload.description}"


# Commands


def _command_missing(product: Product) -> list[str]:
    payload = _payload(product, CommandPayload)
    missing = []
    if not product.display_name:
        missing.append("display_name")
    if not payload.commands:
        missing.append("commands")
    return missing


def _command_set_field(product: Product, field: str, value: str, ctx: FieldContext) -> Product:
    common = _set_common_field(product, field, value, ctx)
    if common is not None:
        return common
    payload = _payload(product, CommandPayload)
    if field == "description":
        return replace(product, payload=replace(payload, description=value.strip()))
    raise _unknown(field, value)


async def _command_fulfill(product: Product, player: PlayerInfo, fulfillment: Fulfillment) -> bool:
    payload = _payload(product, CommandPayload)
    commands: Sequence[str] = [substitute_player_tokens(cmd, player) for cmd in payload.commands]
    return await fulfillment.run_commands(player.user_id, commands)


def _command_search_text(product: Product) -> str:
    payload = _payload(product, CommandPayload)
    return f"{product.display_name} {payload.description}"


CAPABILITIES: dict[ProductType, ProductCapability] = {
    ProductType.ITEM: ProductCapability(
        new_draft=lambda: Product(payload=ItemPayload()),
        missing_fields=_item_missing,
        set_field=_item_set_field,
        fulfill=_item_fulfill,
        search_text=_item_search_text,
    ),
    ProductType.KIT: ProductCapability(
        new_draft=lambda: Product(payload=KitPayload()),
        missing_fields=_kit_missing,
        set_field=_kit_set_field,
        fulfill=_kit_fulfill,
        search_text=_kit_search_text,
    ),
    ProductType.COMMAND: ProductCapability(
        new_draft=lambda: Product(payload=CommandPayload()),
        missing_fields=_command_missing,
        set_field=_command_set_field,
        fulfill=_command_fulfill,
        search_text=_command_search_text,
    ),
}


def capability_for(product_type: ProductType) -> ProductCapability:
    return CAPABILITIES[product_type]


def matches_search(product: Product, text: str) -> bool:
    if not text:
        return True
    haystack = capability_for(product.product_type).search_text(product).lower()
    return text.lower() in haystack
