import pytest

from rewardshop.domain.catalog import ProductCatalog
from rewardshop.domain.npc import NpcStoreRegistry
from rewardshop.domain.pricing import SellPricing
from rewardshop.domain.products import ProductType
from rewardshop.migration import LegacyMigrator
from rewardshop.storage.json_files import JsonDocumentStore
from rewardshop.storage.memory import InMemoryDocumentStore

REWARD_DATA = {
    "items": {
        "rifle": {"shortname": "rifle.ak", "amount": 1, "cost": 300, "category": 1},
        "wood": {"shortname": "wood", "amount": 1000, "cost": 20, "displayName": "Wood"},
    },
    "kits": {
        "zeta": {"kitName": "zeta", "displayName": "Ignored", "cost": 10},
        "alpha": {"kitName": "alpha", "cost": 5, "description": "Starter"},
    },
    "commands": {
        "heal": {"displayName": "Heal", "cost": 1, "commands": ["heal $player.id"]},
    },
}


def _legacy_documents():
    return InMemoryDocumentStore(
        {
            "v1/player_data": {"playerRP": {"76561198000000001": 120, "76561198000000002": 5}},
            "v1/reward_data": REWARD_DATA,
            "v1/sale_data": {
                "items": {"wood": {"0": {"price": 0.5, "enabled": False}, "123": {"price": 2}}}
            },
            "v1/npc_data": {
                "npcInfo": {
                    "1001": {"name": "Trader", "useCustom": True, "sellItems": True, "items": ["wood"]},
                    "1002": {"name": "Banker", "useCustom": False},
                    "bogus": {"name": "Not an npc id"},
                }
            },
        }
    )


@pytest.mark.asyncio()
async def test_migrates_every_domain():
    documents = _legacy_documents()
    report = await LegacyMigrator(documents).run()
    assert report.migrated == {
        "player_balances": 2,
        "products": 5,
        "sell_prices": 1,
        "npc_stores": 2,
    }
    catalog = ProductCatalog.from_document(await documents.read("products"))
    assert [p.payload.item_ref for p in catalog.iter_products(ProductType.ITEM)] == ["rifle.ak", "wood"]
    assert [p.display_name for p in catalog.iter_products(ProductType.KIT)] == ["alpha", "zeta"]
    assert catalog.next_id == 5

    pricing = SellPricing.from_document(await documents.read("sell_prices"))
    assert pricing.try_get_sell_price("wood") == 0.5
    assert pricing.try_get_sell_price("wood", 123) == 2

    registry = NpcStoreRegistry.from_document(await documents.read("npc_stores"))
    trader = registry.get("1001")
    assert trader.custom_store is True
    assert trader.navigation.items is True
    assert trader.navigation.kits is False
    assert [p.display_name for p in trader.catalog.iter_products()] == ["Wood"]
    assert registry.get("1002").navigation.sell is True
    assert "bogus" not in registry


@pytest.mark.asyncio()
async def test_existing_targets_are_kept_unless_forced():
    documents = _legacy_documents()
    await documents.write("player_balances", {"1": 7})
    report = await LegacyMigrator(documents).run()
    assert report.skipped["player_balances"] == "target already exists"
    assert await documents.read("player_balances") == {"1": 7}

    first = await LegacyMigrator(documents).run(force=True)
    second = await LegacyMigrator(documents).run(force=True)
    assert first.migrated == second.migrated
    assert await documents.read("player_balances") == {
        "76561198000000001": 120,
        "76561198000000002": 5,
    }


@pytest.mark.asyncio()
async def test_malformed_domain_is_skipped_alone():
    documents = _legacy_documents()
    await documents.write("v1/sale_data", {"items": {"wood": "cheap"}})
    report = await LegacyMigrator(documents).run()
    assert report.skipped["sell_prices"].startswith("malformed")
    assert "products" in report.migrated
    assert not await documents.exists("sell_prices")


@pytest.mark.asyncio()
async def test_unprefixed_legacy_documents_are_read():
    documents = InMemoryDocumentStore({"player_data": {"playerRP": {"3": 9}}})
    report = await LegacyMigrator(documents).run()
    assert report.migrated == {"player_balances": 1}
    assert report.skipped["npc_stores"] == "no legacy source"
    assert report.changed


@pytest.mark.asyncio()
async def test_unparsable_legacy_file_only_skips_its_domain(tmp_path):
    (tmp_path / "v1").mkdir()
    (tmp_path / "v1" / "player_data.json").write_text('{"playerRP": {"1": 5}}', encoding="utf-8")
    (tmp_path / "v1" / "sale_data.json").write_text("{not json", encoding="utf-8")
    documents = JsonDocumentStore(tmp_path)
    report = await LegacyMigrator(documents).run()
    assert report.migrated == {"player_balances": 1}
    assert report.skipped["sell_prices"].startswith("malformed")
    assert await documents.read("player_balances") == {"1": 5}
    assert not await documents.exists("sell_prices")
