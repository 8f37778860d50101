"""Product catalog with stable id allocation."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable, Mapping

from .capabilities import capability_for
from .exceptions import InvalidField, NotFound
from .products import ItemCategory, ItemPayload, Product, ProductType, dump_product, parse_product

_DOCUMENT_KEYS = {
    ProductType.ITEM: "items",
    ProductType.KIT: "kits",
    ProductType.COMMAND: "commands",
}


class ProductCatalog:
    """Products of one store scope, keyed by type and id.

    Ids come from a single counter shared by all product types and are never
    handed out twice, even after the product holding one is deleted.
    """

    def __init__(self, *, next_id: int = 0) -> None:
        self._products: dict[ProductType, list[Product]] = {kind: [] for kind in ProductType}
        self._next_id = next_id
        self._item_categories: tuple[ItemCategory, ...] | None = None

    @property
    def next_id(self) -> int:
        return self._next_id

    def __len__(self) -> int:
        return sum(len(products) for products in self._products.values())

    def add(self, draft: Product) -> int:
        if not draft.is_draft:
            raise ValueError(f"Product already has id {draft.product_id}")
        product_id = self._next_id
        self._next_id += 1
        self._products[draft.product_type].append(replace(draft, product_id=product_id))
        self._invalidate()
        return product_id

    def update(self, product: Product) -> None:
        entries = self._products[product.product_type]
        for index, existing in enumerate(entries):
            if existing.product_id == product.product_id:
                entries[index] = product
                self._invalidate()
                return
        raise NotFound(f"{product.product_type.value} {product.product_id} not found")

    def save_draft(self, draft: Product) -> int:
        """Validate a draft and merge it back: new drafts are added, edits replace."""
        missing = capability_for(draft.product_type).missing_fields(draft)
        if missing:
            raise InvalidField(missing[0], "", f"required fields missing: {', '.join(missing)}")
        if draft.is_draft:
            return self.add(draft)
        self.update(draft)
        return draft.product_id

    def delete(self, product_type: ProductType, product_id: int) -> bool:
        entries = self._products[product_type]
        for index, existing in enumerate(entries):
            if existing.product_id == product_id:
                del entries[index]
                self._invalidate()
                return True
        return False

    def find(self, product_type: ProductType, product_id: int) -> Product | None:
        for product in self._products[product_type]:
            if product.product_id == product_id:
                return product
        return None

    def get(self, product_type: ProductType, product_id: int) -> Product:
        product = self.find(product_type, product_id)
        if product is None:
            raise NotFound(f"{product_type.value} {product_id} not found")
        return product

    def iter_products(self, product_type: ProductType | None = None) -> Iterable[Product]:
        if product_type is not None:
            return tuple(self._products[product_type])
        return tuple(product for entries in self._products.values() for product in entries)

    def has_products(self, product_type: ProductType) -> bool:
        return bool(self._products[product_type])

    def item_categories(self) -> tuple[ItemCategory, ...]:
        """Categories used by item products, in enum order. Cached until the next mutation."""
        if self._item_categories is None:
            used = {
                product.payload.category
                for product in self._products[ProductType.ITEM]
                if isinstance(product.payload, ItemPayload)
            }
            self._item_categories = tuple(category for category in ItemCategory if category in used)
        return self._item_categories

    def _invalidate(self) -> None:
        self._item_categories = None

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {"nextId": self._next_id}
        for product_type, key in _DOCUMENT_KEYS.items():
            document[key] = [dump_product(product) for product in self._products[product_type]]
        return document

    @classmethod
    def from_document(cls, data: Mapping[str, Any] | None) -> "ProductCatalog":
        catalog = cls()
        if not data:
            return catalog
        highest = -1
        for product_type, key in _DOCUMENT_KEYS.items():
            for entry in data.get(key, ()):
                product = parse_product(product_type, entry)
                if product.is_draft:
                    raise ValueError(f"Stored {product_type.value} without an id: {entry!r}")
                catalog._products[product_type].append(product)
                highest = max(highest, product.product_id)
        catalog._next_id = max(int(data.get("nextId", 0)), highest + 1)
        return catalog
