"""Storage abstractions used by the RewardShop services."""

from __future__ import annotations

from typing import Any, Protocol

PLAYER_BALANCES = "player_balances"
PRODUCTS = "products"
SELL_PRICES = "sell_prices"
NPC_STORES = "npc_stores"
PURCHASE_COOLDOWNS = "purchase_cooldowns"

DOCUMENT_NAMES = (PLAYER_BALANCES, PRODUCTS, SELL_PRICES, NPC_STORES, PURCHASE_COOLDOWNS)


class DocumentStore(Protocol):
    """Named JSON-compatible documents, one per persisted singleton."""

    async def exists(self, name: str) -> bool:
        ...

    async def read(self, name: str) -> dict[str, Any] | None:
        ...

    async def write(self, name: str, data: dict[str, Any]) -> None:
        ...


class AuditStore(Protocol):
    async def add_entry(self, action: str, payload: dict) -> None:
        ...
