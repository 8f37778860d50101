"""NPC-bound store scopes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from ..config import StoreCategory, StoreNavigation
from .catalog import ProductCatalog
from .exceptions import InvalidField, NotFound

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class NpcStore:
    npc_id: str
    name: str
    custom_store: bool = False
    navigation: StoreNavigation = field(default_factory=StoreNavigation)
    catalog: ProductCatalog = field(default_factory=ProductCatalog)


@dataclass(frozen=True, slots=True)
class StoreScope:
    """The catalog and navigation a session browses."""

    catalog: ProductCatalog
    navigation: StoreNavigation
    npc: NpcStore | None = None

    @property
    def is_global(self) -> bool:
        return self.npc is None or not self.npc.custom_store


class NpcStoreRegistry:
    def __init__(self) -> None:
        self._stores: dict[str, NpcStore] = {}

    def __contains__(self, npc_id: str) -> bool:
        return npc_id in self._stores

    def __len__(self) -> int:
        return len(self._stores)

    def all(self) -> Iterable[NpcStore]:
        return tuple(self._stores.values())

    def find(self, npc_id: str) -> NpcStore | None:
        return self._stores.get(npc_id)

    def get(self, npc_id: str) -> NpcStore:
        store = self._stores.get(npc_id)
        if store is None:
            raise NotFound(f"NPC store {npc_id} not found")
        return store

    def register(self, store: NpcStore) -> None:
        if store.npc_id in self._stores:
            raise InvalidField("npc_id", store.npc_id, "already registered as a store")
        self._stores[store.npc_id] = store

    def add(self, npc_id: str, name: str) -> NpcStore:
        store = NpcStore(npc_id=npc_id, name=name or npc_id)
        self.register(store)
        logger.info("Registered NPC store %s (%s)", npc_id, store.name)
        return store

    def remove(self, npc_id: str) -> NpcStore:
        store = self.get(npc_id)
        del self._stores[npc_id]
        logger.info("Removed NPC store %s", npc_id)
        return store

    def set_name(self, npc_id: str, name: str) -> None:
        if not name.strip():
            raise InvalidField("name", name, "must not be empty")
        self.get(npc_id).name = name.strip()

    def toggle_navigation(self, npc_id: str, category: StoreCategory) -> bool:
        return self.get(npc_id).navigation.toggle(category)

    def toggle_custom_store(self, npc_id: str) -> bool:
        store = self.get(npc_id)
        store.custom_store = not store.custom_store
        return store.custom_store

    def resolve_scope(
        self,
        npc_id: str | None,
        global_catalog: ProductCatalog,
        default_navigation: StoreNavigation,
    ) -> StoreScope:
        if npc_id is None:
            return StoreScope(catalog=global_catalog, navigation=default_navigation)
        store = self.get(npc_id)
        catalog = store.catalog if store.custom_store else global_catalog
        return StoreScope(catalog=catalog, navigation=store.navigation, npc=store)

    def to_document(self) -> dict[str, Any]:
        return {
            npc_id: {
                "name": store.name,
                "customStore": store.custom_store,
                "navigation": store.navigation.to_dict(),
                "products": store.catalog.to_document(),
            }
            for npc_id, store in self._stores.items()
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any] | None) -> "NpcStoreRegistry":
        registry = cls()
        for npc_id, raw in (data or {}).items():
            registry._stores[npc_id] = NpcStore(
                npc_id=npc_id,
                name=str(raw.get("name", npc_id)),
                custom_store=bool(raw.get("customStore", False)),
                navigation=StoreNavigation.from_dict(raw.get("navigation")),
                catalog=ProductCatalog.from_document(raw.get("products")),
            )
        return registry
