"""Administrative operations for RewardShop."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..config import StoreCategory
from ..domain.events import EventBus
from ..domain.exceptions import NotFound, ZeroOrInvalidAmount
from ..domain.npc import NpcStore, NpcStoreRegistry
from ..domain.pricing import SellPriceInfo
from ..domain.store import Store
from ..storage.base import AuditStore

logger = logging.getLogger(__name__)

WILDCARD = "*"


class AdminService:
    """Points, sell price and NPC store management.

    Points commands accept ``*`` to address every user holding a balance.
    """

    def __init__(
        self,
        store: Store,
        npc_stores: NpcStoreRegistry,
        audit_store: AuditStore,
        event_bus: EventBus,
        *,
        enable_audit_logs: bool = True,
    ) -> None:
        self._store = store
        self._npc_stores = npc_stores
        self._audit_store = audit_store
        self._events = event_bus
        self._enable_audit_logs = enable_audit_logs

    def _resolve_users(self, target: str) -> list[int]:
        if target.strip() == WILDCARD:
            return list(self._store.ledger.users())
        player = self._store.providers.players.find(target.strip())
        if player is None:
            raise NotFound(f"No player found matching {target}")
        return [player.user_id]

    async def add_points(self, target: str, amount: int) -> dict[int, int]:
        if amount <= 0:
            raise ZeroOrInvalidAmount("Amount must be positive")
        async with self._store.lock:
            users = self._resolve_users(target)
            balances = {user_id: self._store.ledger.credit(user_id, amount) for user_id in users}
        await self._store.notify_balance(users, amount, "admin.add")
        await self._audit("points_add", {"target": target, "users": users, "amount": amount})
        await self._events.publish("admin.points.changed", {"target": target, "balances": balances})
        return balances

    async def take_points(self, target: str, amount: int) -> dict[int, int]:
        """Remove up to ``amount`` from each user; balances stop at zero."""
        if amount <= 0:
            raise ZeroOrInvalidAmount("Amount must be positive")
        async with self._store.lock:
            users = self._resolve_users(target)
            balances: dict[int, int] = {}
            removed: dict[int, int] = {}
            for user_id in users:
                before = self._store.ledger.balance(user_id)
                balances[user_id] = self._store.ledger.take(user_id, amount)
                removed[user_id] = before - balances[user_id]
        for user_id, taken in removed.items():
            await self._store.notify_balance([user_id], -taken, "admin.take")
        await self._audit("points_take", {"target": target, "users": users, "amount": amount})
        await self._events.publish("admin.points.changed", {"target": target, "balances": balances})
        return balances

    async def clear_points(self, target: str) -> dict[int, int]:
        """Zero balances and return what was removed per user."""
        async with self._store.lock:
            users = self._resolve_users(target)
            removed = {user_id: self._store.ledger.clear(user_id) for user_id in users}
        for user_id, amount in removed.items():
            await self._store.notify_balance([user_id], -amount, "admin.clear")
        await self._audit("points_clear", {"target": target, "removed": removed})
        await self._events.publish(
            "admin.points.changed", {"target": target, "balances": dict.fromkeys(users, 0)}
        )
        return removed

    def check_points(self, target: str) -> dict[int, int]:
        return {user_id: self._store.ledger.balance(user_id) for user_id in self._resolve_users(target)}

    async def set_sell_price(self, item_ref: str, price: float, *, skin_id: int = 0) -> SellPriceInfo:
        async with self._store.lock:
            self._store.pricing.set_skin_override(item_ref, skin_id, price)
            info = self._store.pricing.get_info(item_ref)
        await self._audit("sellable_price", {"item_ref": item_ref, "skin_id": skin_id, "price": price})
        await self._events.publish("admin.sellable.updated", {"item_ref": item_ref})
        return info

    async def set_skin_multiplier(self, item_ref: str, multiplier: float) -> SellPriceInfo:
        async with self._store.lock:
            self._store.pricing.set_skin_multiplier(item_ref, multiplier)
            info = self._store.pricing.get_info(item_ref)
        await self._audit("sellable_multiplier", {"item_ref": item_ref, "multiplier": multiplier})
        await self._events.publish("admin.sellable.updated", {"item_ref": item_ref})
        return info

    async def remove_skin_price(self, item_ref: str, skin_id: int) -> SellPriceInfo:
        """Drop a per-skin price so the skin falls back to the multiplier."""
        async with self._store.lock:
            if not self._store.pricing.remove_skin_override(item_ref, skin_id):
                raise NotFound(f"No price for skin {skin_id} of {item_ref}")
            info = self._store.pricing.get_info(item_ref)
        await self._audit("sellable_skin_removed", {"item_ref": item_ref, "skin_id": skin_id})
        await self._events.publish("admin.sellable.updated", {"item_ref": item_ref})
        return info

    def show_sell_price(self, item_ref: str) -> SellPriceInfo:
        return self._store.pricing.get_info(item_ref)

    async def add_npc_store(self, npc_id: str, name: str) -> NpcStore:
        async with self._store.lock:
            store = self._npc_stores.add(npc_id, name)
        await self._npc_changed("npc_add", npc_id, name=store.name)
        return store

    async def remove_npc_store(self, npc_id: str) -> None:
        async with self._store.lock:
            self._npc_stores.remove(npc_id)
        await self._npc_changed("npc_remove", npc_id)

    async def rename_npc_store(self, npc_id: str, name: str) -> None:
        async with self._store.lock:
            self._npc_stores.set_name(npc_id, name)
        await self._npc_changed("npc_rename", npc_id, name=name)

    async def toggle_npc_navigation(self, npc_id: str, category: StoreCategory) -> bool:
        async with self._store.lock:
            enabled = self._npc_stores.toggle_navigation(npc_id, category)
        await self._npc_changed("npc_navigation", npc_id, category=category.value, enabled=enabled)
        return enabled

    async def toggle_npc_custom_store(self, npc_id: str) -> bool:
        async with self._store.lock:
            enabled = self._npc_stores.toggle_custom_store(npc_id)
        await self._npc_changed("npc_custom_store", npc_id, enabled=enabled)
        return enabled

    async def _npc_changed(self, action: str, npc_id: str, **details: object) -> None:
        logger.info("NPC store %s: %s %s", npc_id, action, details or "")
        await self._audit(action, {"npc_id": npc_id, **details})
        await self._events.publish("admin.npc.updated", {"npc_id": npc_id, "action": action})

    async def _audit(self, action: str, payload: dict) -> None:
        if not self._enable_audit_logs:
            return
        await self._audit_store.add_entry(
            action,
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                **payload,
            },
        )
