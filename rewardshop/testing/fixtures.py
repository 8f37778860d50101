"""Pytest fixtures for RewardShop."""

from __future__ import annotations

import pytest

from ..app import RewardShopApp
from ..config import RewardShopConfig
from ..domain.providers import Providers
from .stubs import (
    FakeClock,
    InMemoryCurrency,
    InMemoryInventory,
    InMemoryPlayerDirectory,
    RecordingFulfillment,
    StaticItemDirectory,
    StaticKitProvider,
    StaticPermissions,
)


def stub_providers(**overrides) -> Providers:
    """Providers backed entirely by in-memory stubs."""
    values = dict(
        fulfillment=RecordingFulfillment(),
        currency=InMemoryCurrency(),
        kits=StaticKitProvider(),
        items=StaticItemDirectory(),
        inventory=InMemoryInventory(),
        players=InMemoryPlayerDirectory(),
        permissions=StaticPermissions(),
    )
    values.update(overrides)
    return Providers(**values)


@pytest.fixture()
def memory_app() -> RewardShopApp:
    return app_fixture()


def app_fixture(
    config: RewardShopConfig | None = None,
    *,
    clock: FakeClock | None = None,
    **provider_overrides,
) -> RewardShopApp:
    """Helper for ad-hoc tests where pytest is not available."""
    return RewardShopApp(
        config or RewardShopConfig(),
        providers=stub_providers(**provider_overrides),
        clock=clock or FakeClock(),
    )
