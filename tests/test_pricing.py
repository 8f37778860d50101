import pytest

from rewardshop.domain.exceptions import InvalidField, NotFound
from rewardshop.domain.pricing import SellPriceInfo, SellPricing


def test_skin_prices_use_override_then_multiplier():
    pricing = SellPricing({"wood": SellPriceInfo(base_price=10, skin_multiplier=2)})
    assert pricing.try_get_sell_price("wood", 0) == 10
    assert pricing.try_get_sell_price("wood", 5) == 20
    pricing.set_skin_override("wood", 5, 7)
    assert pricing.try_get_sell_price("wood", 5) == 7
    assert pricing.remove_skin_override("wood", 5) is True
    assert pricing.try_get_sell_price("wood", 5) == 20
    assert pricing.try_get_sell_price("stone") is None


def test_skin_zero_override_sets_base_price():
    pricing = SellPricing({"wood": SellPriceInfo(base_price=1)})
    pricing.set_skin_override("wood", 0, 4)
    assert pricing.get_info("wood").base_price == 4
    assert pricing.get_info("wood").skin_overrides == {}


def test_effective_price_scales_with_clamped_condition():
    pricing = SellPricing({"rifle": SellPriceInfo(base_price=8)})
    assert pricing.effective_unit_price("rifle", 0, 0.5) == 4.0
    assert pricing.effective_unit_price("rifle", 0, 1.7) == 8.0
    assert pricing.effective_unit_price("rifle", 0, -1) == 0.0
    assert pricing.effective_unit_price("missing") is None


def test_negative_values_are_rejected():
    pricing = SellPricing({"wood": SellPriceInfo()})
    with pytest.raises(InvalidField):
        pricing.set_base_price("wood", -1)
    with pytest.raises(InvalidField):
        pricing.set_skin_multiplier("wood", -0.5)
    with pytest.raises(NotFound):
        pricing.set_base_price("stone", 1)


def test_reconcile_adds_missing_without_overwriting():
    pricing = SellPricing({"wood": SellPriceInfo(base_price=3)})
    assert pricing.reconcile(["wood", "stone", "metal"]) == 2
    assert pricing.get_info("wood").base_price == 3
    assert pricing.get_info("stone").base_price == 0
    assert pricing.reconcile(["wood", "stone"]) == 0


def test_document_round_trip():
    pricing = SellPricing({"wood": SellPriceInfo(base_price=2, skin_multiplier=3, skin_overrides={9: 1.5})})
    document = pricing.to_document()
    assert document == {"wood": {"basePrice": 2, "skinMultiplier": 3, "skins": {"9": 1.5}}}
    restored = SellPricing.from_document(document)
    assert restored.try_get_sell_price("wood", 9) == 1.5
    assert restored.try_get_sell_price("wood", 4) == 6
