import pytest

from rewardshop.config import StoreCategory
from rewardshop.domain.exceptions import InvalidField, NotFound, ZeroOrInvalidAmount
from rewardshop.domain.providers import PlayerInfo
from rewardshop.testing import InMemoryPlayerDirectory, app_fixture


@pytest.fixture()
def admin_app():
    app = app_fixture(
        players=InMemoryPlayerDirectory(
            [PlayerInfo(user_id=1, name="alice"), PlayerInfo(user_id=2, name="bob")]
        )
    )
    app.ledger.credit(1, 50)
    app.ledger.credit(2, 10)
    return app


@pytest.mark.asyncio()
async def test_add_and_take_points(admin_app):
    assert await admin_app.admin.add_points("alice", 25) == {1: 75}
    assert await admin_app.admin.take_points("bob", 30) == {2: 0}
    assert admin_app.admin.check_points("alice") == {1: 75}
    assert admin_app.audit_store.actions() == ["points_add", "points_take"]


@pytest.mark.asyncio()
async def test_wildcard_addresses_every_balance(admin_app):
    assert await admin_app.admin.add_points("*", 5) == {1: 55, 2: 15}
    assert await admin_app.admin.clear_points("*") == {1: 55, 2: 15}
    assert admin_app.ledger.total() == 0


@pytest.mark.asyncio()
async def test_points_reject_unknown_players_and_bad_amounts(admin_app):
    with pytest.raises(NotFound):
        await admin_app.admin.add_points("carol", 5)
    with pytest.raises(ZeroOrInvalidAmount):
        await admin_app.admin.add_points("alice", 0)
    assert admin_app.ledger.balance(1) == 50


@pytest.mark.asyncio()
async def test_balance_changes_are_published(admin_app):
    seen = []

    async def listener(payload):
        seen.append((payload["user_id"], payload["delta"], payload["reason"]))

    admin_app.event_bus.subscribe("ledger.balance.changed", listener)
    await admin_app.admin.add_points("bob", 3)
    await admin_app.admin.take_points("*", 30)
    await admin_app.admin.take_points("bob", 5)
    assert seen == [(2, 3, "admin.add"), (1, -30, "admin.take"), (2, -13, "admin.take")]


@pytest.mark.asyncio()
async def test_sell_price_updates_are_saved(admin_app):
    admin_app.pricing.reconcile(["wood"])
    info = await admin_app.admin.set_sell_price("wood", 1.5)
    assert info.base_price == 1.5
    info = await admin_app.admin.set_sell_price("wood", 9, skin_id=42)
    assert info.skin_overrides == {42: 9.0}
    await admin_app.admin.set_skin_multiplier("wood", 3)
    stored = await admin_app.document_store.read("sell_prices")
    assert stored["wood"] == {"basePrice": 1.5, "skinMultiplier": 3.0, "skins": {"42": 9.0}}
    info = await admin_app.admin.remove_skin_price("wood", 42)
    assert info.skin_overrides == {}
    stored = await admin_app.document_store.read("sell_prices")
    assert stored["wood"]["skins"] == {}
    with pytest.raises(NotFound):
        await admin_app.admin.remove_skin_price("wood", 42)
    assert admin_app.audit_store.actions()[-1] == "sellable_skin_removed"
    with pytest.raises(NotFound):
        admin_app.admin.show_sell_price("stone")


@pytest.mark.asyncio()
async def test_npc_store_management(admin_app):
    store = await admin_app.admin.add_npc_store("1001", "Trader")
    assert store.name == "Trader"
    with pytest.raises(InvalidField):
        await admin_app.admin.add_npc_store("1001", "Again")
    await admin_app.admin.rename_npc_store("1001", "Outpost Trader")
    assert await admin_app.admin.toggle_npc_navigation("1001", StoreCategory.KITS) is False
    assert await admin_app.admin.toggle_npc_custom_store("1001") is True
    stored = await admin_app.document_store.read("npc_stores")
    assert stored["1001"]["name"] == "Outpost Trader"
    assert stored["1001"]["navigation"]["kits"] is False
    assert stored["1001"]["customStore"] is True
    await admin_app.admin.remove_npc_store("1001")
    assert "1001" not in admin_app.npc_stores
    with pytest.raises(NotFound):
        await admin_app.admin.remove_npc_store("1001")
