"""RewardShop: point economy and store engine."""

from .app import RewardShopApp
from .config import RewardShopConfig, StoreCategory, StoreNavigation, StoreOptions
from .domain.providers import Providers

__all__ = [
    "RewardShopApp",
    "RewardShopConfig",
    "StoreCategory",
    "StoreNavigation",
    "StoreOptions",
    "Providers",
]
