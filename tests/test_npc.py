import pytest

from rewardshop.config import (
    AdminConfig,
    RewardShopConfig,
    StoreCategory,
    StoreNavigation,
    StoreOptions,
)
from rewardshop.domain.catalog import ProductCatalog
from rewardshop.domain.exceptions import NotFound
from rewardshop.domain.npc import NpcStoreRegistry
from rewardshop.domain.products import CommandPayload, ItemPayload, Product, ProductType
from rewardshop.session import Screen
from rewardshop.testing import RecordingFulfillment, TestClient, app_fixture


def test_scope_uses_global_catalog_unless_custom():
    registry = NpcStoreRegistry()
    global_catalog = ProductCatalog()
    navigation = StoreNavigation()
    store = registry.add("1001", "Trader")
    scope = registry.resolve_scope("1001", global_catalog, navigation)
    assert scope.catalog is global_catalog
    assert scope.navigation is store.navigation
    assert scope.is_global
    registry.toggle_custom_store("1001")
    scope = registry.resolve_scope("1001", global_catalog, navigation)
    assert scope.catalog is store.catalog
    assert not scope.is_global
    with pytest.raises(NotFound):
        registry.resolve_scope("2002", global_catalog, navigation)


def test_registry_document_round_trip():
    registry = NpcStoreRegistry()
    store = registry.add("1001", "Trader")
    store.custom_store = True
    store.catalog.add(Product(payload=CommandPayload(commands=("heal",)), display_name="Heal"))
    registry.toggle_navigation("1001", StoreCategory.SELL)
    restored = NpcStoreRegistry.from_document(registry.to_document())
    restored_store = restored.get("1001")
    assert restored_store.custom_store is True
    assert restored_store.navigation.sell is False
    assert restored_store.catalog.get(ProductType.COMMAND, 0).display_name == "Heal"


@pytest.fixture()
def npc_app():
    app = app_fixture(
        RewardShopConfig(
            admin=AdminConfig(admin_ids={99}),
            options=StoreOptions(npc_only=True),
        ),
        fulfillment=RecordingFulfillment(),
    )
    app.catalog.add(Product(payload=ItemPayload(item_ref="wood"), display_name="Wood", cost=1))
    store = app.npc_stores.add("1001", "Trader")
    store.custom_store = True
    return app


@pytest.mark.asyncio()
async def test_npc_only_store_requires_npc(npc_app):
    model = await npc_app.sessions.handle(1, "open")
    assert model.closed
    assert model.toast.message == "The store can only be opened through an NPC"
    model = await npc_app.sessions.handle(1, "open 1001")
    assert model.npc_name == "Trader"


@pytest.mark.asyncio()
async def test_custom_npc_store_edits_its_own_catalog(npc_app):
    admin = TestClient(npc_app.sessions, 99)
    await admin.send("open 1001")
    await admin.send("admin_toggle")
    await admin.send("add_product command")
    await admin.send("set_field display_name Heal")
    await admin.send("set_command add -1 heal")
    model = await admin.send("save_product")
    assert model.screen is Screen.STORE
    trader = npc_app.npc_stores.get("1001")
    assert len(trader.catalog) == 1
    assert len(npc_app.catalog) == 1
    stored = await npc_app.document_store.read("npc_stores")
    assert stored["1001"]["products"]["commands"][0]["displayName"] == "Heal"
    assert await npc_app.document_store.read("products") is None
