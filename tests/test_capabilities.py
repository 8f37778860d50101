import pytest

from rewardshop.domain.capabilities import (
    FieldContext,
    capability_for,
    edit_command,
    matches_search,
    set_product_field,
)
from rewardshop.domain.exceptions import InvalidField
from rewardshop.domain.products import ItemCategory, ProductType
from rewardshop.domain.providers import ItemDefinition, KitInfo
from rewardshop.session.commands import parse_command
from rewardshop.testing import ProductFactory, StaticItemDirectory, StaticKitProvider


@pytest.fixture()
def ctx():
    return FieldContext(
        kits=StaticKitProvider(
            [KitInfo(name="starter", display_name="Starter Kit", icon_url="https://img/kit.png")]
        ),
        items=StaticItemDirectory(
            [ItemDefinition(item_ref="rifle.ak", display_name="Assault Rifle", category=ItemCategory.WEAPON)]
        ),
        permission_prefix="rewardshop.",
    )


def test_item_ref_fills_name_and_category(ctx):
    draft = capability_for(ProductType.ITEM).new_draft()
    draft = set_product_field(draft, "item_ref", "rifle.ak", ctx)
    assert draft.display_name == "Assault Rifle"
    assert draft.payload.category is ItemCategory.WEAPON
    with pytest.raises(InvalidField):
        set_product_field(draft, "item_ref", "unknown.item", ctx)


def test_numeric_fields_are_clamped(ctx):
    draft = capability_for(ProductType.ITEM).new_draft()
    assert set_product_field(draft, "cost", "-5", ctx).cost == 0
    assert set_product_field(draft, "amount", "0", ctx).payload.amount == 1
    with pytest.raises(InvalidField):
        set_product_field(draft, "cooldown_seconds", "soon", ctx)


def test_icon_and_permission_rules(ctx):
    draft = capability_for(ProductType.COMMAND).new_draft()
    assert set_product_field(draft, "icon_url", "not a url", ctx).icon_url == ""
    assert set_product_field(draft, "icon_url", "https://x.io/a.png", ctx).icon_url == "https://x.io/a.png"
    assert set_product_field(draft, "permission", "vip", ctx).permission == "rewardshop.vip"
    assert set_product_field(draft, "permission", "rewardshop.vip", ctx).permission == "rewardshop.vip"


def test_kit_name_copies_kit_details(ctx):
    draft = capability_for(ProductType.KIT).new_draft()
    draft = set_product_field(draft, "kit_name", "starter", ctx)
    assert draft.display_name == "Starter Kit"
    assert draft.icon_url == "https://img/kit.png"
    with pytest.raises(InvalidField):
        set_product_field(draft, "shortname", "x", ctx)


def test_edit_command_list():
    draft = capability_for(ProductType.COMMAND).new_draft()
    draft = edit_command(draft, "add", -1, "say one")
    draft = edit_command(draft, "add", -1, "say two")
    draft = edit_command(draft, "edit", 0, "say first")
    draft = edit_command(draft, "remove", 1)
    assert draft.payload.commands == ("say first",)
    with pytest.raises(InvalidField):
        edit_command(draft, "remove", 3)


def test_factory_products_are_complete():
    factory = ProductFactory()
    for product in factory.batch(6):
        assert capability_for(product.product_type).missing_fields(product) == []
        assert matches_search(product, product.display_name.upper())


def test_parse_command_keeps_quoted_arguments():
    command = parse_command('SET_FIELD display_name "Big Box"')
    assert command.verb == "set_field"
    assert command.rest(1) == "Big Box"
    assert ProductType.parse("Kits") is ProductType.KIT


def test_capability_rejects_mismatched_payload(ctx):
    rifle = ProductFactory().item()
    with pytest.raises(TypeError, match="Expected KitPayload, got ItemPayload"):
        capability_for(ProductType.KIT).missing_fields(rifle)
    with pytest.raises(TypeError):
        capability_for(ProductType.COMMAND).set_field(rifle, "commands", "say hi", ctx)
