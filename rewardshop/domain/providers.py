"""Capabilities supplied by the host game.

The store never looks collaborators up by name. Each capability is injected
through :class:`Providers`; optional ones expose ``available`` and fall back
to null implementations that degrade gracefully.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Protocol, Sequence

from .products import ItemCategory


@dataclass(frozen=True, slots=True)
class PlayerInfo:
    user_id: int
    name: str
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass(frozen=True, slots=True)
class KitInfo:
    name: str
    display_name: str = ""
    description: str = ""
    icon_url: str = ""


@dataclass(frozen=True, slots=True)
class ItemDefinition:
    item_ref: str
    display_name: str
    category: ItemCategory = ItemCategory.NONE
    ownership_gated: bool = False


@dataclass(slots=True)
class HeldItem:
    """A stack in a player's inventory."""

    uid: str
    item_ref: str
    amount: int
    skin_id: int = 0
    condition_normalized: float | None = None
    max_condition_normalized: float | None = None
    is_broken: bool = False

    @property
    def condition(self) -> float:
        if self.condition_normalized is None:
            return 1.0
        maximum = (
            self.max_condition_normalized
            if self.max_condition_normalized is not None
            else self.condition_normalized
        )
        return min(1.0, max(0.0, (self.condition_normalized + maximum) / 2))


class Fulfillment(Protocol):
    async def give_item(
        self, user_id: int, item_ref: str, amount: int, skin_id: int, is_blueprint: bool
    ) -> bool:
        ...

    async def give_kit(self, user_id: int, kit_name: str) -> bool:
        ...

    async def run_commands(self, user_id: int, commands: Sequence[str]) -> bool:
        ...


class ExternalCurrency(Protocol):
    @property
    def available(self) -> bool:
        ...

    async def balance(self, user_id: int) -> Decimal:
        ...

    async def deposit(self, user_id: int, amount: Decimal) -> bool:
        ...

    async def withdraw(self, user_id: int, amount: Decimal) -> bool:
        ...


class Ownership(Protocol):
    @property
    def available(self) -> bool:
        ...

    def is_owned_or_free(self, user_id: int, item_ref: str, skin_id: int) -> bool:
        ...


class KitProvider(Protocol):
    @property
    def available(self) -> bool:
        ...

    def get_kit(self, name: str) -> KitInfo | None:
        ...

    def kit_names(self) -> Iterable[str]:
        ...


class ItemDirectory(Protocol):
    def get(self, item_ref: str) -> ItemDefinition | None:
        ...

    def all(self) -> Iterable[ItemDefinition]:
        ...


class Inventory(Protocol):
    async def list_items(self, user_id: int) -> Sequence[HeldItem]:
        ...

    async def find_item(self, user_id: int, uid: str) -> HeldItem | None:
        ...

    async def remove_item(self, user_id: int, uid: str) -> None:
        ...

    async def set_amount(self, user_id: int, uid: str, amount: int) -> None:
        ...


class PlayerDirectory(Protocol):
    def get(self, user_id: int) -> PlayerInfo | None:
        ...

    def find(self, name_or_id: str) -> PlayerInfo | None:
        ...


class PermissionProvider(Protocol):
    def has_permission(self, user_id: int, permission: str) -> bool:
        ...


class NullFulfillment:
    """Refuses every delivery, so nothing is ever charged."""

    async def give_item(
        self, user_id: int, item_ref: str, amount: int, skin_id: int, is_blueprint: bool
    ) -> bool:
        return False

    async def give_kit(self, user_id: int, kit_name: str) -> bool:
        return False

    async def run_commands(self, user_id: int, commands: Sequence[str]) -> bool:
        return False


class NullExternalCurrency:
    available = False

    async def balance(self, user_id: int) -> Decimal:
        return Decimal(0)

    async def deposit(self, user_id: int, amount: Decimal) -> bool:
        return False

    async def withdraw(self, user_id: int, amount: Decimal) -> bool:
        return False


class NullOwnership:
    available = False

    def is_owned_or_free(self, user_id: int, item_ref: str, skin_id: int) -> bool:
        return True


class NullKitProvider:
    available = False

    def get_kit(self, name: str) -> KitInfo | None:
        return None

    def kit_names(self) -> Iterable[str]:
        return ()


class EmptyItemDirectory:
    def get(self, item_ref: str) -> ItemDefinition | None:
        return None

    def all(self) -> Iterable[ItemDefinition]:
        return ()


class EmptyInventory:
    async def list_items(self, user_id: int) -> Sequence[HeldItem]:
        return ()

    async def find_item(self, user_id: int, uid: str) -> HeldItem | None:
        return None

    async def remove_item(self, user_id: int, uid: str) -> None:
        return None

    async def set_amount(self, user_id: int, uid: str, amount: int) -> None:
        return None


class AnonymousPlayerDirectory:
    """Resolves any numeric id to a player named after it."""

    def get(self, user_id: int) -> PlayerInfo | None:
        return PlayerInfo(user_id=user_id, name=str(user_id))

    def find(self, name_or_id: str) -> PlayerInfo | None:
        try:
            return self.get(int(name_or_id))
        except ValueError:
            return None


class NoPermissions:
    def has_permission(self, user_id: int, permission: str) -> bool:
        return False


@dataclass(slots=True)
class Providers:
    fulfillment: Fulfillment = field(default_factory=NullFulfillment)
    currency: ExternalCurrency = field(default_factory=NullExternalCurrency)
    ownership: Ownership = field(default_factory=NullOwnership)
    kits: KitProvider = field(default_factory=NullKitProvider)
    items: ItemDirectory = field(default_factory=EmptyItemDirectory)
    inventory: Inventory = field(default_factory=EmptyInventory)
    players: PlayerDirectory = field(default_factory=AnonymousPlayerDirectory)
    permissions: PermissionProvider = field(default_factory=NoPermissions)
