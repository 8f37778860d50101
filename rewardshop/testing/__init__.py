"""Testing utilities for RewardShop."""

from .factory import PlayerFactory, ProductFactory
from .fixtures import app_fixture, memory_app, stub_providers
from .stubs import (
    FakeClock,
    InMemoryCurrency,
    InMemoryInventory,
    InMemoryPlayerDirectory,
    RecordingFulfillment,
    StaticItemDirectory,
    StaticKitProvider,
    StaticOwnership,
    StaticPermissions,
)
from .test_client import TestClient

__all__ = [
    "PlayerFactory",
    "ProductFactory",
    "app_fixture",
    "memory_app",
    "stub_providers",
    "FakeClock",
    "InMemoryCurrency",
    "InMemoryInventory",
    "InMemoryPlayerDirectory",
    "RecordingFulfillment",
    "StaticItemDirectory",
    "StaticKitProvider",
    "StaticOwnership",
    "StaticPermissions",
    "TestClient",
]
