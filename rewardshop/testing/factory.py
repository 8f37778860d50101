"""Factories for tests and prototyping."""

from __future__ import annotations

from dataclasses import dataclass, field
from random import Random
from typing import Iterable

from faker import Faker

from ..domain.products import (
    CommandPayload,
    ItemCategory,
    ItemPayload,
    KitPayload,
    Product,
    ProductType,
)
from ..domain.providers import ItemDefinition, PlayerInfo


@dataclass(slots=True)
class ProductFactory:
    """Builds unsaved products with plausible random fields."""

    faker: Faker = field(default_factory=Faker)
    rng: Random = field(default_factory=Random)

    def item(self, *, cost: int | None = None, **payload) -> Product:
        defaults = dict(
            item_ref=self.faker.unique.lexify(text="item.????").lower(),
            amount=self.rng.randint(1, 10),
            category=self.rng.choice(list(ItemCategory)),
        )
        defaults.update(payload)
        return Product(
            payload=ItemPayload(**defaults),
            display_name=self.faker.word().title(),
            cost=self.rng.randint(1, 500) if cost is None else cost,
        )

    def kit(self, *, cost: int | None = None, kit_name: str | None = None) -> Product:
        name = kit_name or self.faker.unique.lexify(text="kit_????")
        return Product(
            payload=KitPayload(kit_name=name, description=self.faker.sentence()),
            display_name=name.title(),
            cost=self.rng.randint(1, 500) if cost is None else cost,
        )

    def command(self, *, cost: int | None = None, commands: Iterable[str] = ()) -> Product:
        return Product(
            payload=CommandPayload(
                description=self.faker.sentence(),
                commands=tuple(commands) or ("say $player.name bought a reward",),
            ),
            display_name=self.faker.word().title(),
            cost=self.rng.randint(1, 500) if cost is None else cost,
        )

    def build(self, product_type: ProductType | None = None) -> Product:
        product_type = product_type or self.rng.choice(list(ProductType))
        if product_type is ProductType.ITEM:
            return self.item()
        if product_type is ProductType.KIT:
            return self.kit()
        return self.command()

    def batch(self, count: int, product_type: ProductType | None = None) -> Iterable[Product]:
        for _ in range(count):
            yield self.build(product_type)

    def item_definition(self, item_ref: str | None = None) -> ItemDefinition:
        item_ref = item_ref or self.faker.unique.lexify(text="item.????").lower()
        return ItemDefinition(item_ref=item_ref, display_name=item_ref.split(".")[-1].title())


@dataclass(slots=True)
class PlayerFactory:
    faker: Faker = field(default_factory=Faker)

    def build(self, user_id: int | None = None) -> PlayerInfo:
        user_id = user_id or self.faker.unique.random_int(min=76561197960265728, max=76561199999999999)
        return PlayerInfo(
            user_id=user_id,
            name=self.faker.unique.user_name(),
            position=(
                float(self.faker.random_int(-2000, 2000)),
                float(self.faker.random_int(0, 200)),
                float(self.faker.random_int(-2000, 2000)),
            ),
        )
