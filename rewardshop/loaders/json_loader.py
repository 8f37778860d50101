"""Load store products from JSON definitions."""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Iterable, Sequence, TYPE_CHECKING

from ..domain.capabilities import capability_for
from ..domain.catalog import ProductCatalog
from ..domain.products import ItemCategory, Product, ProductType, parse_product

if TYPE_CHECKING:
    from ..app import RewardShopApp

_JSON_NAMES = {
    "item_ref": "shortname",
    "kit_name": "kitName",
    "display_name": "displayName",
}

_SECTIONS = {
    "items": ProductType.ITEM,
    "kits": ProductType.KIT,
    "commands": ProductType.COMMAND,
}


@dataclass(slots=True)
class CatalogDefinition:
    products: Sequence[Product]

    def count(self, product_type: ProductType) -> int:
        return sum(1 for product in self.products if product.product_type is product_type)


def load_catalog_from_json(
    app: "RewardShopApp", path: str | Path, *, npc_id: str | None = None
) -> CatalogDefinition:
    """Add products from a JSON file to the global catalog or an NPC store's catalog.

    Every product gets a freshly allocated id; ids in the file are ignored.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    definition = parse_catalog_dict(data)
    catalog: ProductCatalog = app.npc_stores.get(npc_id).catalog if npc_id else app.catalog
    for product in definition.products:
        catalog.add(product)
    return definition


def parse_catalog_dict(data: dict[str, Any]) -> CatalogDefinition:
    """Parse a JSON dict (already decoded) into unsaved products."""
    errors = validate_catalog_dict(data)
    if errors:
        raise ValueError(_format_errors("Catalog validation failed", errors))
    products = []
    for key, product_type in _SECTIONS.items():
        for entry in data.get(key, []):
            products.append(replace(parse_product(product_type, entry), product_id=-1))
    return CatalogDefinition(products=tuple(products))


def validate_catalog_file(path: str | Path) -> list[str]:
    """Validate catalog JSON file and return a list of errors."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return validate_catalog_dict(data)


def validate_catalog_dict(data: Any) -> list[str]:
    errors: list[str] = []
    if not isinstance(data, dict):
        return ["Catalog must be a JSON object."]

    unknown = set(data) - set(_SECTIONS) - {"nextId"}
    for key in sorted(unknown):
        errors.append(f"Unknown catalog section '{key}'.")
    if not any(data.get(key) for key in _SECTIONS):
        errors.append("Catalog must define at least one of 'items', 'kits' or 'commands'.")

    for key, product_type in _SECTIONS.items():
        entries = data.get(key, [])
        if not isinstance(entries, list):
            errors.append(f"Catalog '{key}' must be an array.")
            continue
        label = product_type.value.title()
        for idx, entry in enumerate(entries, start=1):
            if not isinstance(entry, dict):
                errors.append(f"{label} #{idx} must be an object.")
                continue
            name = entry.get("displayName") or f"#{idx}"

            for field_name in ("cost", "cooldown"):
                value = entry.get(field_name, 0)
                if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                    errors.append(f"{label} '{name}' has invalid '{field_name}' value '{value}'.")

            icon = entry.get("iconUrl")
            if icon is not None and not isinstance(icon, str):
                errors.append(f"{label} '{name}' iconUrl must be a string.")

            if product_type is ProductType.ITEM:
                amount = entry.get("amount", 1)
                if not isinstance(amount, int) or isinstance(amount, bool) or amount < 1:
                    errors.append(f"{label} '{name}' has invalid 'amount' value '{amount}'.")
                category = entry.get("category")
                if category is not None and category not in {c.value for c in ItemCategory}:
                    errors.append(f"{label} '{name}' has invalid category '{category}'.")
                if not isinstance(entry.get("skinId", 0), int):
                    errors.append(f"{label} '{name}' skinId must be an integer.")
            if product_type is ProductType.COMMAND:
                commands = entry.get("commands")
                if not isinstance(commands, list) or not all(isinstance(c, str) for c in commands):
                    errors.append(f"{label} '{name}' must define 'commands' as an array of strings.")
                    continue

            try:
                product = parse_product(product_type, entry)
            except (TypeError, ValueError):
                continue
            for missing in capability_for(product_type).missing_fields(product):
                errors.append(f"{label} '{name}' must define '{_JSON_NAMES.get(missing, missing)}'.")

    return errors


def _format_errors(prefix: str, errors: Iterable[str]) -> str:
    formatted = "\n".join(f"- {err}" for err in errors)
    return f"{prefix}:\n{formatted}"
