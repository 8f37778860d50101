"""Pure converters from the first on-disk data version.

Each converter reads a decoded legacy document and builds a brand new
collection. Inputs are never mutated.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from ..config import StoreNavigation
from ..domain.catalog import ProductCatalog
from ..domain.ledger import Ledger
from ..domain.npc import NpcStore, NpcStoreRegistry
from ..domain.pricing import SellPriceInfo, SellPricing
from ..domain.products import (
    CommandPayload,
    ItemCategory,
    ItemPayload,
    KitPayload,
    Product,
)


class LegacyFormatError(ValueError):
    """Raised when a legacy document does not have the expected shape."""


def _section(data: Any, key: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise LegacyFormatError("Legacy document must be an object")
    section = data.get(key, {})
    if not isinstance(section, Mapping):
        raise LegacyFormatError(f"'{key}' must be an object")
    return section


def _entry(kind: str, key: str, raw: Any) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise LegacyFormatError(f"{kind} '{key}' must be an object")
    return raw


def legacy_item(raw: Mapping[str, Any]) -> Product:
    try:
        return Product(
            payload=ItemPayload(
                item_ref=str(raw.get("shortname", "")),
                amount=max(1, int(raw.get("amount", 1))),
                skin_id=int(raw.get("skinId", 0)),
                is_blueprint=bool(raw.get("isBp", False)),
                category=ItemCategory.from_legacy(raw.get("category", 0)),
            ),
            display_name=str(raw.get("displayName", "")),
            cost=max(0, int(raw.get("cost", 0))),
            cooldown_seconds=max(0, int(raw.get("cooldown", 0))),
            icon_url=str(raw.get("customIcon") or ""),
        )
    except (TypeError, ValueError) as exc:
        raise LegacyFormatError(f"Invalid legacy item: {exc}") from exc


def legacy_kit(raw: Mapping[str, Any]) -> Product:
    # The first version stored a display name but always showed the kit name.
    try:
        kit_name = str(raw.get("kitName", ""))
        return Product(
            payload=KitPayload(kit_name=kit_name, description=str(raw.get("description") or "")),
            display_name=kit_name,
            cost=max(0, int(raw.get("cost", 0))),
            cooldown_seconds=max(0, int(raw.get("cooldown", 0))),
            icon_url=str(raw.get("iconName") or ""),
        )
    except (TypeError, ValueError) as exc:
        raise LegacyFormatError(f"Invalid legacy kit: {exc}") from exc


def legacy_command(raw: Mapping[str, Any]) -> Product:
    commands = raw.get("commands", [])
    if not isinstance(commands, list):
        raise LegacyFormatError("Legacy command 'commands' must be a list")
    try:
        return Product(
            payload=CommandPayload(
                description=str(raw.get("description") or ""),
                commands=tuple(str(cmd) for cmd in commands),
            ),
            display_name=str(raw.get("displayName", "")),
            cost=max(0, int(raw.get("cost", 0))),
            cooldown_seconds=max(0, int(raw.get("cooldown", 0))),
            icon_url=str(raw.get("iconName") or ""),
        )
    except (TypeError, ValueError) as exc:
        raise LegacyFormatError(f"Invalid legacy command: {exc}") from exc


_SECTIONS: tuple[tuple[str, Callable[[Mapping[str, Any]], Product], bool], ...] = (
    ("items", legacy_item, False),
    ("kits", legacy_kit, True),
    ("commands", legacy_command, True),
)


def convert_balances(player_data: Any) -> Ledger:
    balances = {}
    for user_id, amount in _section(player_data, "playerRP").items():
        try:
            balances[int(user_id)] = max(0, int(amount))
        except (TypeError, ValueError) as exc:
            raise LegacyFormatError(f"Invalid balance entry {user_id!r}: {amount!r}") from exc
    return Ledger(balances)


def convert_rewards(reward_data: Any) -> ProductCatalog:
    catalog = ProductCatalog()
    for key, parse, ordered in _SECTIONS:
        section = _section(reward_data, key)
        names = sorted(section) if ordered else list(section)
        for name in names:
            catalog.add(parse(_entry(key, name, section[name])))
    return catalog


def convert_sale_data(sale_data: Any) -> SellPricing:
    entries: dict[str, SellPriceInfo] = {}
    for item_ref, skins in _section(sale_data, "items").items():
        if not isinstance(skins, Mapping):
            raise LegacyFormatError(f"Sale entry '{item_ref}' must be an object")
        info = SellPriceInfo()
        for skin_key, raw in skins.items():
            entry = _entry("sale skin", f"{item_ref}/{skin_key}", raw)
            try:
                skin_id = int(skin_key)
                price = max(0.0, float(entry.get("price", 0.0)))
            except (TypeError, ValueError) as exc:
                raise LegacyFormatError(f"Invalid sale entry {item_ref}/{skin_key}") from exc
            if skin_id == 0:
                info.base_price = price
            else:
                info.skin_overrides[skin_id] = price
        entries[item_ref] = info
    return SellPricing(entries)


def convert_npc_data(npc_data: Any, reward_data: Any) -> NpcStoreRegistry:
    """Rebuild NPC stores; custom stores get their own catalog from the referenced rewards."""
    registry = NpcStoreRegistry()
    for npc_id, raw in _section(npc_data, "npcInfo").items():
        if not str(npc_id).isdigit():
            continue
        info = _entry("npc", npc_id, raw)
        use_custom = bool(info.get("useCustom", False))

        def enabled(flag: str) -> bool:
            return not use_custom or bool(info.get(flag, False))

        store = NpcStore(
            npc_id=str(npc_id),
            name=str(info.get("name") or npc_id),
            custom_store=use_custom,
            navigation=StoreNavigation(
                items=enabled("sellItems"),
                kits=enabled("sellKits"),
                commands=enabled("sellCommands"),
                exchange=enabled("canExchange"),
                transfer=enabled("canTransfer"),
                sell=enabled("canSell"),
            ),
        )
        if use_custom:
            for key, parse, _ in _SECTIONS:
                section = _section(reward_data, key)
                references = info.get(key, [])
                if not isinstance(references, list):
                    raise LegacyFormatError(f"npc '{npc_id}' {key} must be a list")
                for reference in references:
                    if reference in section:
                        store.catalog.add(parse(_entry(key, reference, section[reference])))
        registry.register(store)
    return registry
