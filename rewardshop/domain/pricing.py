"""Sell-back prices per item type."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .exceptions import InvalidField, NotFound

DEFAULT_SKIN_MULTIPLIER = 1.5
PRICE_PRECISION = 2


@dataclass(slots=True)
class SellPriceInfo:
    base_price: float = 0.0
    skin_multiplier: float = DEFAULT_SKIN_MULTIPLIER
    skin_overrides: dict[int, float] = field(default_factory=dict)

    def price_for(self, skin_id: int) -> float:
        if skin_id == 0:
            return self.base_price
        override = self.skin_overrides.get(skin_id)
        if override is not None:
            return override
        return self.base_price * self.skin_multiplier


class SellPricing:
    """Base price, skin multiplier and per-skin overrides for each item type."""

    def __init__(self, entries: Mapping[str, SellPriceInfo] | None = None) -> None:
        self._entries: dict[str, SellPriceInfo] = dict(entries or {})

    def __contains__(self, item_ref: str) -> bool:
        return item_ref in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def try_get_sell_price(self, item_ref: str, skin_id: int = 0) -> float | None:
        info = self._entries.get(item_ref)
        if info is None:
            return None
        return info.price_for(skin_id)

    def effective_unit_price(
        self, item_ref: str, skin_id: int = 0, condition: float = 1.0
    ) -> float | None:
        """Price of one unit scaled by condition in [0, 1], rounded to cents."""
        price = self.try_get_sell_price(item_ref, skin_id)
        if price is None:
            return None
        condition = min(1.0, max(0.0, condition))
        return round(price * condition, PRICE_PRECISION)

    def get_info(self, item_ref: str) -> SellPriceInfo:
        try:
            return self._entries[item_ref]
        except KeyError as exc:
            raise NotFound(f"No sell price entry for {item_ref}") from exc

    def set_base_price(self, item_ref: str, price: float) -> None:
        self.get_info(item_ref).base_price = _non_negative("price", price)

    def set_skin_override(self, item_ref: str, skin_id: int, price: float) -> None:
        """Set the price for one skin; skin 0 is the base price."""
        info = self.get_info(item_ref)
        price = _non_negative("price", price)
        if skin_id == 0:
            info.base_price = price
        else:
            info.skin_overrides[skin_id] = price

    def remove_skin_override(self, item_ref: str, skin_id: int) -> bool:
        return self.get_info(item_ref).skin_overrides.pop(skin_id, None) is not None

    def set_skin_multiplier(self, item_ref: str, multiplier: float) -> None:
        self.get_info(item_ref).skin_multiplier = _non_negative("skin_multiplier", multiplier)

    def reconcile(self, known_item_refs: Iterable[str]) -> int:
        """Add missing item types at price 0 and return how many were added.

        Existing entries are never touched.
        """
        added = 0
        for item_ref in known_item_refs:
            if item_ref not in self._entries:
                self._entries[item_ref] = SellPriceInfo()
                added += 1
        return added

    def item_refs(self) -> Iterable[str]:
        return tuple(self._entries)

    def to_document(self) -> dict[str, Any]:
        return {
            item_ref: {
                "basePrice": info.base_price,
                "skinMultiplier": info.skin_multiplier,
                "skins": {str(skin): price for skin, price in info.skin_overrides.items()},
            }
            for item_ref, info in self._entries.items()
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any] | None) -> "SellPricing":
        entries = {}
        for item_ref, raw in (data or {}).items():
            entries[item_ref] = SellPriceInfo(
                base_price=float(raw.get("basePrice", 0.0)),
                skin_multiplier=float(raw.get("skinMultiplier", DEFAULT_SKIN_MULTIPLIER)),
                skin_overrides={
                    int(skin): float(price) for skin, price in raw.get("skins", {}).items()
                },
            )
        return cls(entries)


def _non_negative(name: str, value: float) -> float:
    value = float(value)
    if value < 0:
        raise InvalidField(name, value, "must not be negative")
    return value
