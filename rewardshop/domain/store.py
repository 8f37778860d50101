"""Purchase, sell, transfer and exchange orchestration."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_FLOOR, Decimal
from enum import Enum
from typing import Any, Iterable, Sequence

from ..config import AdminConfig, StoreOptions
from ..storage.base import AuditStore
from .capabilities import capability_for, matches_search
from .catalog import ProductCatalog
from .cooldowns import CooldownTracker
from .events import EventBus
from .exceptions import (
    ExternalProviderRejected,
    ExternalProviderUnavailable,
    FulfillmentFailed,
    InsufficientFunds,
    NoTarget,
    NotFound,
    NotSellable,
    OnCooldown,
    PermissionDenied,
    ZeroOrInvalidAmount,
)
from .ledger import Ledger
from .pricing import SellPricing
from .products import ItemCategory, ItemPayload, Product, ProductType
from .providers import HeldItem, PlayerInfo, Providers

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class ExchangeDirection(str, Enum):
    TO_EXTERNAL = "to_external"
    TO_POINTS = "to_points"

    @classmethod
    def parse(cls, raw: str) -> "ExchangeDirection":
        value = raw.strip().lower()
        aliases = {
            "1": cls.TO_EXTERNAL,
            "rp": cls.TO_EXTERNAL,
            "points": cls.TO_EXTERNAL,
            "2": cls.TO_POINTS,
            "eco": cls.TO_POINTS,
            "external": cls.TO_POINTS,
        }
        if value in aliases:
            return aliases[value]
        return cls(value)


@dataclass(slots=True)
class PurchaseReceipt:
    user_id: int
    product: Product
    cost: int
    balance: int
    cooldown_expires_at: datetime | None = None


@dataclass(slots=True)
class SaleQuote:
    item_uid: str
    item_ref: str
    amount: int
    unit_price: float
    total: int


@dataclass(slots=True)
class SaleReceipt:
    quote: SaleQuote
    balance: int


@dataclass(slots=True)
class TransferReceipt:
    sender_id: int
    recipient: PlayerInfo
    amount: int
    sender_balance: int
    recipient_balance: int


@dataclass(slots=True)
class ExchangeQuote:
    direction: ExchangeDirection
    points: int
    external: Decimal


@dataclass(slots=True)
class ExchangeReceipt:
    quote: ExchangeQuote
    balance: int


@dataclass(slots=True)
class ProductListing:
    """A product as one user sees it in a listing."""

    product: Product
    cooldown_remaining: int = 0
    affordable: bool = True
    ownership_locked: bool = False


class Store:
    """Executes economy transactions against the shared singletons.

    Every mutation runs inside ``lock``. Fulfillment and external currency
    calls are awaited while the lock is held so nothing proceeds past a
    pending delivery. Events and audit entries are emitted after release.
    """

    def __init__(
        self,
        ledger: Ledger,
        catalog: ProductCatalog,
        cooldowns: CooldownTracker,
        pricing: SellPricing,
        providers: Providers,
        options: StoreOptions,
        admin: AdminConfig,
        event_bus: EventBus,
        audit_store: AuditStore,
        *,
        lock: asyncio.Lock | None = None,
    ) -> None:
        self.ledger = ledger
        self.catalog = catalog
        self.cooldowns = cooldowns
        self.pricing = pricing
        self.providers = providers
        self.options = options
        self._admin = admin
        self._events = event_bus
        self._audit_store = audit_store
        self.lock = lock or asyncio.Lock()

    def is_admin(self, user_id: int) -> bool:
        if user_id in self._admin.admin_ids:
            return True
        return self.providers.permissions.has_permission(user_id, self._admin.admin_permission)

    def can_access(self, user_id: int, product: Product) -> bool:
        if not product.permission or self.is_admin(user_id):
            return True
        return self.providers.permissions.has_permission(user_id, product.permission)

    def is_ownership_locked(self, user_id: int, product: Product) -> bool:
        payload = product.payload
        if not isinstance(payload, ItemPayload) or payload.ignore_ownership_check:
            return False
        if not self.options.owned_skins_only:
            return False
        return not self._owns(user_id, payload.item_ref, payload.skin_id)

    def _owns(self, user_id: int, item_ref: str, skin_id: int) -> bool:
        ownership = self.providers.ownership
        if not ownership.available:
            return True
        definition = self.providers.items.get(item_ref)
        gated = skin_id != 0 or (definition is not None and definition.ownership_gated)
        if not gated:
            return True
        return ownership.is_owned_or_free(user_id, item_ref, skin_id)

    def resolve_player(self, user_id: int) -> PlayerInfo:
        return self.providers.players.get(user_id) or PlayerInfo(user_id=user_id, name=str(user_id))

    def list_products(
        self,
        user_id: int,
        product_type: ProductType,
        *,
        catalog: ProductCatalog | None = None,
        admin_mode: bool = False,
        search: str = "",
        item_category: ItemCategory | None = None,
    ) -> list[ProductListing]:
        catalog = catalog if catalog is not None else self.catalog
        balance = self.ledger.balance(user_id)
        listings = []
        for product in catalog.iter_products(product_type):
            if not admin_mode and not self.can_access(user_id, product):
                continue
            if not matches_search(product, search):
                continue
            payload = product.payload
            if (
                item_category is not None
                and isinstance(payload, ItemPayload)
                and payload.category is not item_category
            ):
                continue
            locked = self.is_ownership_locked(user_id, product)
            if locked and self.options.hide_ownership_gated and not admin_mode:
                continue
            _, remaining = self.cooldowns.has_cooldown(user_id, product.product_id)
            listings.append(
                ProductListing(
                    product=product,
                    cooldown_remaining=remaining,
                    affordable=balance >= product.cost,
                    ownership_locked=locked,
                )
            )
        return listings

    async def purchase(
        self,
        user_id: int,
        product_type: ProductType,
        product_id: int,
        *,
        catalog: ProductCatalog | None = None,
    ) -> PurchaseReceipt:
        catalog = catalog if catalog is not None else self.catalog
        async with self.lock:
            product = catalog.find(product_type, product_id)
            if product is None:
                raise NotFound(f"{product_type.value} {product_id} not found")
            if not self.can_access(user_id, product):
                raise PermissionDenied(f"You do not have permission to buy {product.display_name}")
            if self.is_ownership_locked(user_id, product):
                raise PermissionDenied(f"You do not own {product.display_name}")
            blocked, remaining = self.cooldowns.has_cooldown(user_id, product.product_id)
            if blocked:
                raise OnCooldown(remaining)
            balance = self.ledger.balance(user_id)
            if balance < product.cost:
                raise InsufficientFunds(required=product.cost, available=balance)

            player = self.resolve_player(user_id)
            delivered = await capability_for(product_type).fulfill(
                product, player, self.providers.fulfillment
            )
            if not delivered:
                logger.warning(
                    "Fulfillment failed for user %s buying %s %s",
                    user_id,
                    product_type.value,
                    product_id,
                )
                raise FulfillmentFailed(f"Could not deliver {product.purchase_name}")

            balance = self.ledger.debit(user_id, product.cost)
            expires_at = None
            if product.cooldown_seconds > 0:
                expires_at = self.cooldowns.add_cooldown(
                    user_id, product.product_id, product.cooldown_seconds
                )

        receipt = PurchaseReceipt(
            user_id=user_id,
            product=product,
            cost=product.cost,
            balance=balance,
            cooldown_expires_at=expires_at,
        )
        await self._balance_changed(user_id, balance, -product.cost, "purchase")
        await self._events.publish(
            "store.purchase.completed",
            {
                "user_id": user_id,
                "product_type": product_type.value,
                "product_id": product_id,
                "cost": product.cost,
            },
        )
        await self._log_transaction(
            "purchase",
            {
                "user_id": user_id,
                "product_type": product_type.value,
                "product_id": product_id,
                "name": product.purchase_name,
                "cost": product.cost,
            },
        )
        return receipt

    async def sellable_items(self, user_id: int) -> Sequence[HeldItem]:
        items = await self.providers.inventory.list_items(user_id)
        return [
            item
            for item in items
            if not item.is_broken and (self.pricing.try_get_sell_price(item.item_ref, item.skin_id) or 0) > 0
        ]

    async def quote_sale(self, user_id: int, item_uid: str, amount: int) -> SaleQuote:
        if amount <= 0:
            raise ZeroOrInvalidAmount("Amount must be positive")
        item = await self.providers.inventory.find_item(user_id, item_uid)
        if item is None:
            raise NotFound(f"Item {item_uid} not found")
        if item.is_broken:
            raise NotSellable(f"{item.item_ref} is broken")
        if not self._owns(user_id, item.item_ref, item.skin_id):
            raise PermissionDenied(f"You do not own {item.item_ref}")
        unit_price = self.pricing.effective_unit_price(item.item_ref, item.skin_id, item.condition)
        if unit_price is None or unit_price <= 0:
            raise NotSellable(f"{item.item_ref} can not be sold")
        amount = min(amount, item.amount)
        total = round(unit_price * amount)
        if total <= 0:
            raise NotSellable(f"{item.item_ref} is worth nothing")
        return SaleQuote(
            item_uid=item.uid,
            item_ref=item.item_ref,
            amount=amount,
            unit_price=unit_price,
            total=total,
        )

    async def sell(self, user_id: int, item_uid: str, amount: int) -> SaleReceipt:
        async with self.lock:
            quote = await self.quote_sale(user_id, item_uid, amount)
            inventory = self.providers.inventory
            item = await inventory.find_item(user_id, item_uid)
            if item is None:
                raise NotFound(f"Item {item_uid} not found")
            if quote.amount >= item.amount:
                await inventory.remove_item(user_id, item_uid)
            else:
                await inventory.set_amount(user_id, item_uid, item.amount - quote.amount)
            balance = self.ledger.credit(user_id, quote.total)

        await self._balance_changed(user_id, balance, quote.total, "sell")
        await self._events.publish(
            "store.item.sold",
            {
                "user_id": user_id,
                "item_ref": quote.item_ref,
                "amount": quote.amount,
                "total": quote.total,
            },
        )
        await self._log_transaction(
            "sell",
            {
                "user_id": user_id,
                "item_ref": quote.item_ref,
                "amount": quote.amount,
                "total": quote.total,
            },
        )
        return SaleReceipt(quote=quote, balance=balance)

    def resolve_recipient(self, sender_id: int, target: str | int) -> PlayerInfo:
        recipient = self.providers.players.find(str(target))
        if recipient is None or recipient.user_id == sender_id:
            raise NoTarget(f"No player found matching {target}")
        return recipient

    async def transfer(self, sender_id: int, target: str | int, amount: int) -> TransferReceipt:
        async with self.lock:
            if amount <= 0:
                raise ZeroOrInvalidAmount("Amount must be positive")
            recipient = self.resolve_recipient(sender_id, target)
            available = self.ledger.balance(sender_id)
            if available < amount:
                raise InsufficientFunds(required=amount, available=available)
            sender_balance = self.ledger.debit(sender_id, amount)
            recipient_balance = self.ledger.credit(recipient.user_id, amount)

        await self._balance_changed(sender_id, sender_balance, -amount, "transfer")
        await self._balance_changed(recipient.user_id, recipient_balance, amount, "transfer")
        sender = self.resolve_player(sender_id)
        await self._events.publish(
            "store.transfer.completed",
            {
                "sender_id": sender_id,
                "sender_name": sender.name,
                "recipient_id": recipient.user_id,
                "recipient_name": recipient.name,
                "amount": amount,
            },
        )
        await self._log_transaction(
            "transfer",
            {"sender_id": sender_id, "recipient_id": recipient.user_id, "amount": amount},
        )
        return TransferReceipt(
            sender_id=sender_id,
            recipient=recipient,
            amount=amount,
            sender_balance=sender_balance,
            recipient_balance=recipient_balance,
        )

    def quote_exchange(self, direction: ExchangeDirection, amount: Decimal | int) -> ExchangeQuote:
        rate = self.options.exchange_rate
        amount = Decimal(amount)
        if not amount.is_finite() or amount <= 0:
            raise ZeroOrInvalidAmount("Amount must be positive")
        if direction is ExchangeDirection.TO_EXTERNAL:
            points = int(amount.to_integral_value(rounding=ROUND_FLOOR))
            external = (points * rate).quantize(CENT, rounding=ROUND_FLOOR)
        else:
            points = int((amount / rate).to_integral_value(rounding=ROUND_FLOOR))
            external = points * rate
        if points <= 0 or external <= 0:
            raise ZeroOrInvalidAmount("Amount is too small to exchange")
        return ExchangeQuote(direction=direction, points=points, external=external)

    async def exchange(
        self, user_id: int, direction: ExchangeDirection, amount: Decimal | int
    ) -> ExchangeReceipt:
        currency = self.providers.currency
        if not currency.available:
            raise ExternalProviderUnavailable("External currency is not available")
        async with self.lock:
            quote = self.quote_exchange(direction, amount)
            if direction is ExchangeDirection.TO_EXTERNAL:
                available = self.ledger.balance(user_id)
                if available < quote.points:
                    raise InsufficientFunds(required=quote.points, available=available)
                if not await currency.deposit(user_id, quote.external):
                    logger.warning("External deposit of %s rejected for %s", quote.external, user_id)
                    raise ExternalProviderRejected("External currency refused the deposit")
                balance = self.ledger.debit(user_id, quote.points)
                delta = -quote.points
            else:
                external_balance = await currency.balance(user_id)
                if external_balance < quote.external:
                    raise InsufficientFunds(
                        required=int(quote.external), available=int(external_balance)
                    )
                if not await currency.withdraw(user_id, quote.external):
                    logger.warning("External withdraw of %s rejected for %s", quote.external, user_id)
                    raise ExternalProviderRejected("External currency refused the withdrawal")
                balance = self.ledger.credit(user_id, quote.points)
                delta = quote.points

        await self._balance_changed(user_id, balance, delta, "exchange")
        payload = {
            "user_id": user_id,
            "direction": direction.value,
            "points": quote.points,
            "external": str(quote.external),
        }
        await self._events.publish("store.exchange.completed", payload)
        await self._log_transaction("exchange", payload)
        return ExchangeReceipt(quote=quote, balance=balance)

    async def notify_balance(self, user_ids: Iterable[int], delta: int, reason: str) -> None:
        for user_id in user_ids:
            await self._balance_changed(user_id, self.ledger.balance(user_id), delta, reason)

    async def _balance_changed(self, user_id: int, balance: int, delta: int, reason: str) -> None:
        if delta == 0:
            return
        await self._events.publish(
            "ledger.balance.changed",
            {"user_id": user_id, "balance": balance, "delta": delta, "reason": reason},
        )

    async def _log_transaction(self, action: str, payload: dict[str, Any]) -> None:
        if not self.options.log_transactions:
            return
        await self._audit_store.add_entry(
            action,
            {"timestamp": datetime.now(timezone.utc).isoformat(), **payload},
        )
