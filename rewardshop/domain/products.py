"""Product models: one shared header plus a per-variant payload."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class ProductType(str, Enum):
    ITEM = "item"
    KIT = "kit"
    COMMAND = "command"

    @classmethod
    def parse(cls, raw: str) -> "ProductType":
        value = raw.strip().lower()
        if value.endswith("s"):
            value = value[:-1]
        return cls(value)


class ItemCategory(str, Enum):
    NONE = "none"
    WEAPON = "weapon"
    CONSTRUCTION = "construction"
    ITEMS = "items"
    RESOURCES = "resources"
    ATTIRE = "attire"
    TOOL = "tool"
    MEDICAL = "medical"
    FOOD = "food"
    AMMUNITION = "ammunition"
    TRAPS = "traps"
    MISC = "misc"
    COMPONENT = "component"
    ELECTRICAL = "electrical"
    FUN = "fun"

    @classmethod
    def from_legacy(cls, value: Any) -> "ItemCategory":
        """Map the integer or name stored by the first data version."""
        members = list(cls)
        if isinstance(value, int) and not isinstance(value, bool):
            return members[value] if 0 <= value < len(members) else cls.NONE
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return cls.NONE
        return cls.NONE


@dataclass(frozen=True, slots=True)
class ItemPayload:
    item_ref: str = ""
    amount: int = 1
    skin_id: int = 0
    is_blueprint: bool = False
    ignore_ownership_check: bool = False
    category: ItemCategory = ItemCategory.NONE


@dataclass(frozen=True, slots=True)
class KitPayload:
    kit_name: str = ""
    description: str = ""


@dataclass(frozen=True, slots=True)
class CommandPayload:
    description: str = ""
    commands: tuple[str, ...] = ()


Payload = ItemPayload | KitPayload | CommandPayload

_PAYLOAD_TYPES: dict[type, ProductType] = {
    ItemPayload: ProductType.ITEM,
    KitPayload: ProductType.KIT,
    CommandPayload: ProductType.COMMAND,
}


@dataclass(frozen=True, slots=True)
class Product:
    """Immutable catalog entry; edits produce new values via ``dataclasses.replace``.

    ``product_id`` is ``-1`` while the product is an unsaved draft.
    """

    payload: Payload
    product_id: int = -1
    display_name: str = ""
    cost: int = 0
    cooldown_seconds: int = 0
    icon_url: str = ""
    permission: str = ""

    @property
    def product_type(self) -> ProductType:
        return _PAYLOAD_TYPES[type(self.payload)]

    @property
    def is_draft(self) -> bool:
        return self.product_id < 0

    @property
    def purchase_name(self) -> str:
        payload = self.payload
        if isinstance(payload, ItemPayload) and payload.amount > 1:
            return f"{payload.amount}x {self.display_name}"
        return self.display_name


def dump_product(product: Product) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": product.product_id,
        "displayName": product.display_name,
        "cost": product.cost,
        "cooldown": product.cooldown_seconds,
        "iconUrl": product.icon_url,
        "permission": product.permission,
    }
    payload = product.payload
    if isinstance(payload, ItemPayload):
        data.update(
            shortname=payload.item_ref,
            amount=payload.amount,
            skinId=payload.skin_id,
            isBlueprint=payload.is_blueprint,
            ignoreOwnershipCheck=payload.ignore_ownership_check,
            category=payload.category.value,
        )
    elif isinstance(payload, KitPayload):
        data.update(kitName=payload.kit_name, description=payload.description)
    else:
        data.update(description=payload.description, commands=list(payload.commands))
    return data


def parse_product(product_type: ProductType, data: Mapping[str, Any]) -> Product:
    payload: Payload
    if product_type is ProductType.ITEM:
        payload = ItemPayload(
            item_ref=str(data.get("shortname", "")),
            amount=max(1, int(data.get("amount", 1))),
            skin_id=int(data.get("skinId", 0)),
            is_blueprint=bool(data.get("isBlueprint", False)),
            ignore_ownership_check=bool(data.get("ignoreOwnershipCheck", False)),
            category=ItemCategory.from_legacy(data.get("category", ItemCategory.NONE.value)),
        )
    elif product_type is ProductType.KIT:
        payload = KitPayload(
            kit_name=str(data.get("kitName", "")),
            description=str(data.get("description", "")),
        )
    else:
        payload = CommandPayload(
            description=str(data.get("description", "")),
            commands=tuple(str(cmd) for cmd in data.get("commands", ())),
        )
    return Product(
        payload=payload,
        product_id=int(data.get("id", -1)),
        display_name=str(data.get("displayName", "")),
        cost=max(0, int(data.get("cost", 0))),
        cooldown_seconds=max(0, int(data.get("cooldown", 0))),
        icon_url=str(data.get("iconUrl", "")),
        permission=str(data.get("permission", "")),
    )
