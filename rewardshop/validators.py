"""Validation utilities for RewardShop applications."""

from __future__ import annotations

from .app import RewardShopApp
from .domain.capabilities import capability_for
from .domain.catalog import ProductCatalog
from .domain.products import ItemPayload, KitPayload


def _validate_catalog(app: RewardShopApp, catalog: ProductCatalog, scope: str) -> list[str]:
    errors: list[str] = []
    providers = app.providers
    known_items = {item.item_ref for item in providers.items.all()}
    seen: set[int] = set()
    for product in catalog.iter_products():
        label = f"{scope} {product.product_type.value} {product.product_id}"
        if product.product_id in seen:
            errors.append(f"{label} reuses an id already taken by another product.")
        seen.add(product.product_id)
        if product.product_id >= catalog.next_id:
            errors.append(f"{label} has an id not below the next id {catalog.next_id}.")
        for missing in capability_for(product.product_type).missing_fields(product):
            errors.append(f"{label} is missing required field '{missing}'.")
        payload = product.payload
        if isinstance(payload, ItemPayload) and known_items and payload.item_ref not in known_items:
            errors.append(f"{label} references unknown item '{payload.item_ref}'.")
        if (
            isinstance(payload, KitPayload)
            and providers.kits.available
            and providers.kits.get_kit(payload.kit_name) is None
        ):
            errors.append(f"{label} references unknown kit '{payload.kit_name}'.")
    return errors


def validate_app(app: RewardShopApp) -> list[str]:
    """Return list of validation errors discovered in configured app."""
    errors: list[str] = []

    options = app.config.options
    if options.exchange_rate <= 0:
        errors.append("Store option 'exchange_rate' must be positive.")
    if app.config.storage.autosave_seconds < 0:
        errors.append("Storage option 'autosave_seconds' cannot be negative.")
    if not app.config.admin.admin_permission.strip():
        errors.append("Admin permission must not be empty.")

    errors.extend(_validate_catalog(app, app.catalog, "Global"))

    for store in app.npc_stores.all():
        if store.custom_store:
            if not len(store.catalog):
                errors.append(f"NPC store '{store.npc_id}' uses a custom store without products.")
            errors.extend(_validate_catalog(app, store.catalog, f"NPC '{store.npc_id}'"))

    if options.npc_only and not len(app.npc_stores):
        errors.append("Store is NPC-only but no NPC stores are registered.")

    for item_ref in app.pricing.item_refs():
        info = app.pricing.get_info(item_ref)
        if info.base_price < 0:
            errors.append(f"Sell price for '{item_ref}' is negative.")
        if info.skin_multiplier < 0:
            errors.append(f"Skin multiplier for '{item_ref}' is negative.")

    return errors


__all__ = ["validate_app"]
