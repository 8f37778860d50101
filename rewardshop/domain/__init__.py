"""Domain models and services."""

from .catalog import ProductCatalog
from .cooldowns import CooldownTracker
from .exceptions import (
    ExternalProviderRejected,
    ExternalProviderUnavailable,
    FulfillmentFailed,
    InsufficientFunds,
    InvalidField,
    NoTarget,
    NotFound,
    NotSellable,
    OnCooldown,
    PermissionDenied,
    RewardShopError,
    ZeroOrInvalidAmount,
)
from .ledger import Ledger
from .npc import NpcStore, NpcStoreRegistry
from .pricing import SellPriceInfo, SellPricing
from .products import (
    CommandPayload,
    ItemCategory,
    ItemPayload,
    KitPayload,
    Product,
    ProductType,
)
from .store import ExchangeDirection, Store

__all__ = [
    "ProductCatalog",
    "CooldownTracker",
    "ExternalProviderRejected",
    "ExternalProviderUnavailable",
    "FulfillmentFailed",
    "InsufficientFunds",
    "InvalidField",
    "NoTarget",
    "NotFound",
    "NotSellable",
    "OnCooldown",
    "PermissionDenied",
    "RewardShopError",
    "ZeroOrInvalidAmount",
    "Ledger",
    "NpcStore",
    "NpcStoreRegistry",
    "SellPriceInfo",
    "SellPricing",
    "CommandPayload",
    "ItemCategory",
    "ItemPayload",
    "KitPayload",
    "Product",
    "ProductType",
    "ExchangeDirection",
    "Store",
]
