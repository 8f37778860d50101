import json

import pytest

from rewardshop.domain.products import ItemCategory, ProductType
from rewardshop.loaders import (
    load_catalog_from_json,
    parse_catalog_dict,
    validate_catalog_dict,
)
from rewardshop.testing import app_fixture


def _catalog():
    return {
        "items": [
            {
                "id": 12,
                "shortname": "rifle.ak",
                "displayName": "Assault Rifle",
                "cost": 300,
                "cooldown": 60,
                "category": "weapon",
                "skinId": 0,
            }
        ],
        "kits": [{"kitName": "starter", "displayName": "Starter", "cost": 10}],
        "commands": [{"displayName": "Heal", "commands": ["heal $player.id"]}],
    }


def test_parse_catalog_dict_builds_drafts():
    definition = parse_catalog_dict(_catalog())
    assert definition.count(ProductType.ITEM) == 1
    rifle = definition.products[0]
    assert rifle.is_draft
    assert rifle.payload.category is ItemCategory.WEAPON
    assert rifle.cooldown_seconds == 60


def test_parse_catalog_dict_missing_command_list_raises():
    data = _catalog()
    del data["commands"][0]["commands"]
    with pytest.raises(ValueError) as exc_info:
        parse_catalog_dict(data)
    assert "must define 'commands' as an array of strings" in str(exc_info.value)


def test_validate_catalog_dict_reports_each_problem():
    data = {
        "items": [{"displayName": "Nothing", "cost": -1, "amount": 0}],
        "extras": [],
    }
    errors = validate_catalog_dict(data)
    assert "Unknown catalog section 'extras'." in errors
    assert "Item 'Nothing' has invalid 'cost' value '-1'." in errors
    assert "Item 'Nothing' has invalid 'amount' value '0'." in errors
    assert "Item 'Nothing' must define 'shortname'." in errors


def test_validate_catalog_dict_requires_products():
    assert validate_catalog_dict({}) == [
        "Catalog must define at least one of 'items', 'kits' or 'commands'."
    ]
    assert validate_catalog_dict([]) == ["Catalog must be a JSON object."]


def test_load_catalog_from_json_allocates_fresh_ids(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(_catalog()), encoding="utf-8")
    app = app_fixture()
    definition = load_catalog_from_json(app, path)
    assert len(definition.products) == 3
    assert app.catalog.find(ProductType.ITEM, 12) is None
    assert app.catalog.get(ProductType.ITEM, 0).display_name == "Assault Rifle"
    assert app.catalog.next_id == 3


def test_load_catalog_into_npc_store(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(_catalog()), encoding="utf-8")
    app = app_fixture()
    store = app.npc_stores.add("1001", "Trader")
    load_catalog_from_json(app, path, npc_id="1001")
    assert len(store.catalog) == 3
    assert len(app.catalog) == 0
