"""Per-user session state machine.

Each command mutates :class:`SessionState` and returns a fresh
:class:`RenderModel`. Domain errors never escape: they become an error toast
on the returned model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from enum import Enum
from typing import Awaitable, Callable, TypeVar

from ..config import StoreCategory, StoreNavigation
from ..domain.capabilities import FieldContext, capability_for, edit_command, set_product_field
from ..domain.events import EventBus
from ..domain.exceptions import (
    ExternalProviderUnavailable,
    InvalidField,
    NotFound,
    PermissionDenied,
    RewardShopError,
    ZeroOrInvalidAmount,
)
from ..domain.npc import NpcStoreRegistry, StoreScope
from ..domain.products import ItemCategory, Product, ProductType
from ..domain.store import CENT, ExchangeDirection, Store
from .commands import Command
from .state import (
    DraftView,
    ExchangeView,
    RenderModel,
    Screen,
    SelectorKind,
    SelectorOption,
    SelectorView,
    SellableView,
    SessionState,
    Toast,
    ToastLevel,
    TransferView,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Command], Awaitable[None]]
E = TypeVar("E", bound=Enum)

PRODUCT_CATEGORIES: dict[StoreCategory, ProductType] = {
    StoreCategory.ITEMS: ProductType.ITEM,
    StoreCategory.KITS: ProductType.KIT,
    StoreCategory.COMMANDS: ProductType.COMMAND,
}
_CATEGORY_FOR_TYPE = {product_type: category for category, product_type in PRODUCT_CATEGORIES.items()}

ADMIN_VERBS = frozenset(
    {
        "admin_toggle",
        "add_product",
        "edit_product",
        "open_selector",
        "close_selector",
        "set_field",
        "set_command",
        "save_product",
        "cancel_product",
        "delete_product",
        "confirm_delete",
        "cancel_delete",
    }
)
_ALWAYS_ALLOWED = frozenset({"open", "close", "close_toast"})


@dataclass(slots=True)
class SessionContext:
    """Shared collaborators handed to every session."""

    store: Store
    npc_stores: NpcStoreRegistry
    navigation: StoreNavigation
    event_bus: EventBus


class SessionStateMachine:
    def __init__(self, user_id: int, context: SessionContext) -> None:
        self.state = SessionState(user_id=user_id)
        self._ctx = context
        self._store = context.store
        self._handlers: dict[str, Handler] = {
            "open": self._open,
            "close": self._close,
            "close_toast": self._close_toast,
            "admin_toggle": self._admin_toggle,
            "navigate": self._navigate,
            "item_category": self._item_category,
            "search": self._search,
            "return_to_store": self._return_to_store,
            "purchase": self._purchase,
            "sell": self._sell,
            "confirm_sell": self._confirm_sell,
            "cancel_sell": self._cancel_sell,
            "transfer": self._transfer,
            "confirm_transfer": self._confirm_transfer,
            "exchange": self._exchange,
            "convert_to_external": self._convert_to_external,
            "convert_to_rp": self._convert_to_points,
            "add_product": self._add_product,
            "edit_product": self._edit_product,
            "open_selector": self._open_selector,
            "close_selector": self._close_selector,
            "set_field": self._set_field,
            "set_command": self._set_command,
            "save_product": self._save_product,
            "cancel_product": self._cancel_product,
            "delete_product": self._delete_product,
            "confirm_delete": self._confirm_delete,
            "cancel_delete": self._cancel_delete,
        }

    @property
    def user_id(self) -> int:
        return self.state.user_id

    @property
    def is_admin(self) -> bool:
        return self._store.is_admin(self.user_id)

    async def handle(self, command: Command) -> RenderModel:
        if command.verb != "close_toast":
            self.state.toast = None
        logger.debug("User %s: %s %s", self.user_id, command.verb, command.args)
        try:
            handler = self._handlers.get(command.verb)
            if handler is None:
                raise InvalidField("command", command.verb, "unknown command")
            if self.state.screen is Screen.CLOSED and command.verb not in _ALWAYS_ALLOWED:
                raise NotFound("The store is not open")
            if command.verb in ADMIN_VERBS:
                self._require_admin(command.verb)
            await handler(command)
        except RewardShopError as exc:
            self.push_toast(str(exc), ToastLevel.ERROR)
        return await self.render()

    def push_toast(self, message: str, level: ToastLevel = ToastLevel.INFO) -> Toast:
        self.state.toast_sequence += 1
        self.state.toast = Toast(sequence=self.state.toast_sequence, message=message, level=level)
        return self.state.toast

    def _require_admin(self, verb: str) -> None:
        if not self.is_admin:
            raise PermissionDenied("You do not have permission to do that")
        if verb != "admin_toggle" and not self.state.admin_mode:
            raise PermissionDenied("Enable admin mode first")

    def _scope(self) -> StoreScope:
        return self._ctx.npc_stores.resolve_scope(
            self.state.npc_id, self._store.catalog, self._ctx.navigation
        )

    def _field_context(self) -> FieldContext:
        providers = self._store.providers
        return FieldContext(
            kits=providers.kits,
            items=providers.items,
            permission_prefix=self._store.options.permission_prefix,
        )

    def available_categories(self) -> tuple[StoreCategory, ...]:
        scope = self._scope()
        navigation = scope.navigation
        admin_mode = self.state.admin_mode
        categories = [
            category
            for category, product_type in PRODUCT_CATEGORIES.items()
            if admin_mode
            or (navigation.enabled(category) and scope.catalog.has_products(product_type))
        ]
        if navigation.sell:
            categories.append(StoreCategory.SELL)
        if navigation.transfer:
            categories.append(StoreCategory.TRANSFER)
        if navigation.exchange and self._store.providers.currency.available:
            categories.append(StoreCategory.EXCHANGE)
        return tuple(categories)

    def _require_category(self, category: StoreCategory) -> None:
        if category not in self.available_categories():
            raise NotFound(f"{category.value.title()} is not available here")

    def _enter_category(self, category: StoreCategory) -> None:
        state = self.state
        if category is not state.category:
            state.reset_filters()
        state.category = category
        state.sell_quote = None
        if category is StoreCategory.TRANSFER:
            state.screen = Screen.TRANSFER
        elif category is StoreCategory.EXCHANGE:
            state.screen = Screen.EXCHANGE
        else:
            state.screen = Screen.STORE

    def _back_to_store(self) -> None:
        state = self.state
        state.clear_drafts()
        state.reset_filters()
        state.screen = Screen.STORE
        categories = self.available_categories()
        if state.category not in categories:
            browsable = [c for c in categories if c not in (StoreCategory.TRANSFER, StoreCategory.EXCHANGE)]
            state.category = browsable[0] if browsable else None
        if state.category in (StoreCategory.TRANSFER, StoreCategory.EXCHANGE):
            self._enter_category(state.category)

    # Navigation

    async def _open(self, command: Command) -> None:
        npc_id = command.arg(0, "") or None
        if npc_id is None and self._store.options.npc_only and not self.is_admin:
            raise PermissionDenied("The store can only be opened through an NPC")
        if npc_id is not None:
            self._ctx.npc_stores.get(npc_id)
        sequence = self.state.toast_sequence
        self.state = SessionState(user_id=self.user_id, npc_id=npc_id, toast_sequence=sequence)
        categories = self.available_categories()
        if not categories:
            self.state.screen = Screen.CLOSED
            self.push_toast("Nothing is available in this store", ToastLevel.ERROR)
            return
        if categories in ((StoreCategory.TRANSFER,), (StoreCategory.EXCHANGE,)):
            self.state.exit_to_game = True
        self._enter_category(categories[0])

    async def _close(self, command: Command) -> None:
        self.state.clear_drafts()
        self.state.exit_to_game = False
        self.state.screen = Screen.CLOSED

    async def _close_toast(self, command: Command) -> None:
        toast = self.state.toast
        if toast is None:
            return
        if command.has(0) and command.int_arg(0) != toast.sequence:
            return
        self.state.toast = None

    async def _navigate(self, command: Command) -> None:
        category = _parse_enum(StoreCategory, "category", command.arg(0))
        self._require_category(category)
        self.state.exit_to_game = False
        self._enter_category(category)

    async def _item_category(self, command: Command) -> None:
        if self.state.category is not StoreCategory.ITEMS:
            raise NotFound("Item categories only apply to items")
        raw = command.arg(0)
        self.state.item_category = (
            None if raw.lower() == "all" else _parse_enum(ItemCategory, "item_category", raw)
        )

    async def _search(self, command: Command) -> None:
        target = command.arg(0).lower()
        text = command.rest(1).strip()
        if target == "store":
            self.state.search_text = text
        elif target == "selector":
            if self.state.screen is not Screen.SELECTOR:
                raise NotFound("No selector is open")
            self.state.selector_search = text
        else:
            raise InvalidField("search", target, "expected store or selector")

    async def _return_to_store(self, command: Command) -> None:
        if self.state.exit_to_game:
            await self._close(command)
            return
        self._back_to_store()

    # Economy

    async def _purchase(self, command: Command) -> None:
        product_type = _parse_product_type(command.arg(0))
        product_id = command.int_arg(1)
        receipt = await self._store.purchase(
            self.user_id, product_type, product_id, catalog=self._scope().catalog
        )
        self.push_toast(f"You purchased {receipt.product.purchase_name}")

    async def _sell(self, command: Command) -> None:
        self._require_category(StoreCategory.SELL)
        quote = await self._store.quote_sale(self.user_id, command.arg(0), command.int_arg(1))
        self.state.category = StoreCategory.SELL
        self.state.sell_quote = quote
        self.state.screen = Screen.SELL_CONFIRM

    async def _confirm_sell(self, command: Command) -> None:
        quote = self.state.sell_quote
        if self.state.screen is not Screen.SELL_CONFIRM or quote is None:
            return
        try:
            receipt = await self._store.sell(self.user_id, quote.item_uid, quote.amount)
        finally:
            self.state.sell_quote = None
            self.state.screen = Screen.STORE
        self.push_toast(
            f"You sold {receipt.quote.amount}x {receipt.quote.item_ref} for {receipt.quote.total} points"
        )

    async def _cancel_sell(self, command: Command) -> None:
        if self.state.screen is not Screen.SELL_CONFIRM:
            return
        self.state.sell_quote = None
        self.state.screen = Screen.STORE

    async def _transfer(self, command: Command) -> None:
        self._require_category(StoreCategory.TRANSFER)
        recipient = self._store.resolve_recipient(self.user_id, command.arg(0))
        amount = command.int_arg(1, 0)
        if amount < 0:
            raise ZeroOrInvalidAmount("Amount must not be negative")
        self.state.transfer_target = recipient
        self.state.transfer_amount = amount
        self.state.category = StoreCategory.TRANSFER
        self.state.screen = Screen.TRANSFER

    async def _confirm_transfer(self, command: Command) -> None:
        target = self.state.transfer_target
        if target is None:
            raise NotFound("Select a player to transfer to")
        receipt = await self._store.transfer(
            self.user_id, str(target.user_id), self.state.transfer_amount
        )
        self.state.transfer_target = None
        self.state.transfer_amount = 0
        self.push_toast(f"You sent {receipt.amount} points to {receipt.recipient.name}")

    def _require_exchange(self) -> None:
        if not self._store.providers.currency.available:
            raise ExternalProviderUnavailable("External currency is not available")
        self._require_category(StoreCategory.EXCHANGE)

    async def _exchange(self, command: Command) -> None:
        self._require_exchange()
        points = max(0, command.int_arg(0))
        external = max(Decimal(0), command.decimal_arg(1))
        direction = _parse_enum(ExchangeDirection, "direction", command.arg(2))
        value = command.decimal_arg(3)
        if direction is ExchangeDirection.TO_EXTERNAL:
            balance = self._store.ledger.balance(self.user_id)
            points = min(max(0, int(value.to_integral_value(rounding=ROUND_FLOOR))), balance)
        else:
            available = await self._store.providers.currency.balance(self.user_id)
            external = min(max(Decimal(0), value), available)
            rate = self._store.options.exchange_rate
            external = (external / rate).to_integral_value(rounding=ROUND_FLOOR) * rate
        self.state.exchange_points = points
        self.state.exchange_external = external
        self.state.category = StoreCategory.EXCHANGE
        self.state.screen = Screen.EXCHANGE

    async def _convert_to_external(self, command: Command) -> None:
        self._require_exchange()
        receipt = await self._store.exchange(
            self.user_id, ExchangeDirection.TO_EXTERNAL, command.int_arg(0)
        )
        self._reset_exchange()
        self.push_toast(f"Exchanged {receipt.quote.points} points for {receipt.quote.external}")

    async def _convert_to_points(self, command: Command) -> None:
        self._require_exchange()
        receipt = await self._store.exchange(
            self.user_id, ExchangeDirection.TO_POINTS, command.decimal_arg(0)
        )
        self._reset_exchange()
        self.push_toast(f"Exchanged {receipt.quote.external} for {receipt.quote.points} points")

    def _reset_exchange(self) -> None:
        self.state.exchange_points = 0
        self.state.exchange_external = Decimal(0)

    # Admin

    async def _admin_toggle(self, command: Command) -> None:
        state = self.state
        state.admin_mode = not state.admin_mode
        state.clear_drafts()
        state.reset_filters()
        if state.screen in (Screen.ADD_EDIT, Screen.SELECTOR, Screen.CONFIRM_DELETE, Screen.SELL_CONFIRM):
            state.screen = Screen.STORE
        categories = self.available_categories()
        if state.category not in categories and categories:
            self._enter_category(categories[0])

    async def _add_product(self, command: Command) -> None:
        product_type = _parse_product_type(command.arg(0))
        self.state.clear_drafts()
        self.state.reset_filters()
        self.state.draft = capability_for(product_type).new_draft()
        self.state.screen = Screen.ADD_EDIT

    async def _edit_product(self, command: Command) -> None:
        product_type = _parse_product_type(command.arg(0))
        product = self._scope().catalog.get(product_type, command.int_arg(1))
        self.state.clear_drafts()
        self.state.reset_filters()
        self.state.draft = product
        self.state.screen = Screen.ADD_EDIT

    def _require_draft(self) -> Product:
        if self.state.draft is None:
            raise NotFound("No product is being edited")
        return self.state.draft

    async def _open_selector(self, command: Command) -> None:
        draft = self._require_draft()
        kind = _parse_enum(SelectorKind, "selector", command.arg(0))
        expected = ProductType.ITEM if kind is SelectorKind.ITEM else ProductType.KIT
        if draft.product_type is not expected:
            raise InvalidField("selector", kind.value, f"not used by {draft.product_type.value} products")
        if kind is SelectorKind.KIT and not self._store.providers.kits.available:
            raise ExternalProviderUnavailable("No kit provider is installed")
        self.state.selector = kind
        self.state.selector_search = ""
        self.state.screen = Screen.SELECTOR

    async def _close_selector(self, command: Command) -> None:
        if self.state.screen is not Screen.SELECTOR:
            return
        self.state.selector = None
        self.state.selector_search = ""
        self.state.screen = Screen.ADD_EDIT

    async def _set_field(self, command: Command) -> None:
        draft = self._require_draft()
        self.state.draft = set_product_field(
            draft, command.arg(0), command.rest(1), self._field_context()
        )
        if self.state.screen is Screen.SELECTOR:
            await self._close_selector(command)

    async def _set_command(self, command: Command) -> None:
        draft = self._require_draft()
        action = command.arg(0).lower()
        index = command.int_arg(1, -1)
        self.state.draft = edit_command(draft, action, index, command.rest(2))

    async def _save_product(self, command: Command) -> None:
        draft = self._require_draft()
        scope = self._scope()
        async with self._store.lock:
            product_id = scope.catalog.save_draft(draft)
        await self._ctx.event_bus.publish(
            "catalog.product.saved",
            {
                "user_id": self.user_id,
                "npc_id": None if scope.is_global else self.state.npc_id,
                "product_type": draft.product_type.value,
                "product_id": product_id,
            },
        )
        self._back_to_store()
        self._enter_category(_CATEGORY_FOR_TYPE[draft.product_type])
        self.push_toast(f"Saved {draft.display_name}")

    async def _cancel_product(self, command: Command) -> None:
        if self.state.draft is None and self.state.screen not in (Screen.ADD_EDIT, Screen.SELECTOR):
            return
        self._back_to_store()

    async def _delete_product(self, command: Command) -> None:
        product_type = _parse_product_type(command.arg(0))
        product = self._scope().catalog.get(product_type, command.int_arg(1))
        self.state.delete_target = (product_type, product.product_id)
        self.state.screen = Screen.CONFIRM_DELETE

    async def _confirm_delete(self, command: Command) -> None:
        target = self.state.delete_target
        if self.state.screen is not Screen.CONFIRM_DELETE or target is None:
            return
        if command.has(1) and (_parse_product_type(command.arg(0)), command.int_arg(1)) != target:
            raise NotFound("That product is not pending deletion")
        product_type, product_id = target
        scope = self._scope()
        async with self._store.lock:
            deleted = scope.catalog.delete(product_type, product_id)
        self.state.delete_target = None
        self.state.screen = Screen.STORE
        if not deleted:
            raise NotFound(f"{product_type.value} {product_id} not found")
        await self._ctx.event_bus.publish(
            "catalog.product.deleted",
            {
                "user_id": self.user_id,
                "npc_id": None if scope.is_global else self.state.npc_id,
                "product_type": product_type.value,
                "product_id": product_id,
            },
        )
        self.push_toast(f"Deleted {product_type.value} {product_id}")

    async def _cancel_delete(self, command: Command) -> None:
        if self.state.screen is not Screen.CONFIRM_DELETE:
            return
        self.state.delete_target = None
        self.state.screen = Screen.STORE

    # Rendering

    async def render(self) -> RenderModel:
        state = self.state
        balance = self._store.ledger.balance(self.user_id)
        if state.screen is Screen.CLOSED:
            return RenderModel(user_id=self.user_id, screen=Screen.CLOSED, balance=balance, toast=state.toast)
        try:
            scope = self._scope()
        except NotFound:
            state.screen = Screen.CLOSED
            return RenderModel(user_id=self.user_id, screen=Screen.CLOSED, balance=balance, toast=state.toast)

        model = dict(
            user_id=self.user_id,
            screen=state.screen,
            balance=balance,
            is_admin=self.is_admin,
            admin_mode=state.admin_mode,
            npc_name=scope.npc.name if scope.npc else None,
            exit_to_game=state.exit_to_game,
            categories=self.available_categories(),
            category=state.category,
            item_category=state.item_category,
            search_text=state.search_text,
            toast=state.toast,
        )
        if state.screen is Screen.STORE and state.category in PRODUCT_CATEGORIES:
            model["products"] = tuple(
                self._store.list_products(
                    self.user_id,
                    PRODUCT_CATEGORIES[state.category],
                    catalog=scope.catalog,
                    admin_mode=state.admin_mode,
                    search=state.search_text,
                    item_category=state.item_category,
                )
            )
            if state.category is StoreCategory.ITEMS:
                model["item_categories"] = scope.catalog.item_categories()
        if state.screen is Screen.STORE and state.category is StoreCategory.SELL:
            model["sellable"] = await self._sellable_views()
        if state.draft is not None and state.screen in (Screen.ADD_EDIT, Screen.SELECTOR):
            model["draft"] = DraftView(
                product=state.draft,
                missing_fields=tuple(capability_for(state.draft.product_type).missing_fields(state.draft)),
                is_new=state.draft.is_draft,
            )
        if state.screen is Screen.SELECTOR and state.selector is not None:
            model["selector"] = SelectorView(
                kind=state.selector,
                search=state.selector_search,
                options=self._selector_options(state.selector, state.selector_search),
            )
        if state.screen is Screen.CONFIRM_DELETE and state.delete_target is not None:
            model["delete_target"] = scope.catalog.find(*state.delete_target)
        if state.screen is Screen.TRANSFER:
            model["transfer"] = TransferView(target=state.transfer_target, amount=state.transfer_amount)
        if state.screen is Screen.EXCHANGE:
            model["exchange"] = await self._exchange_view()
        if state.screen is Screen.SELL_CONFIRM:
            model["sell_quote"] = state.sell_quote
        return RenderModel(**model)

    async def _sellable_views(self) -> tuple[SellableView, ...]:
        pricing = self._store.pricing
        search = self.state.search_text.lower()
        views = []
        for item in await self._store.sellable_items(self.user_id):
            if search and search not in item.item_ref.lower():
                continue
            unit_price = pricing.effective_unit_price(item.item_ref, item.skin_id, item.condition)
            views.append(SellableView(item=item, unit_price=unit_price or 0.0))
        return tuple(views)

    def _selector_options(self, kind: SelectorKind, search: str) -> tuple[SelectorOption, ...]:
        search = search.lower()
        providers = self._store.providers
        if kind is SelectorKind.ITEM:
            hidden = self._store.options.hidden_item_refs
            options = [
                SelectorOption(key=item.item_ref, label=item.display_name)
                for item in providers.items.all()
                if item.item_ref not in hidden
            ]
        else:
            options = []
            for name in providers.kits.kit_names():
                kit = providers.kits.get_kit(name)
                options.append(SelectorOption(key=name, label=(kit.display_name if kit else "") or name))
        return tuple(
            option
            for option in options
            if not search or search in option.key.lower() or search in option.label.lower()
        )

    async def _exchange_view(self) -> ExchangeView:
        currency = self._store.providers.currency
        rate = self._store.options.exchange_rate
        points = self.state.exchange_points
        external = self.state.exchange_external
        return ExchangeView(
            rate=rate,
            points=points,
            external=external,
            points_as_external=(points * rate).quantize(CENT, rounding=ROUND_FLOOR),
            external_as_points=int((external / rate).to_integral_value(rounding=ROUND_FLOOR)),
            external_balance=await currency.balance(self.user_id) if currency.available else Decimal(0),
        )


def _parse_enum(enum_type: type[E], field: str, raw: str) -> E:
    try:
        if hasattr(enum_type, "parse"):
            return enum_type.parse(raw)
        return enum_type(raw.strip().lower())
    except ValueError as exc:
        raise InvalidField(field, raw) from exc


def _parse_product_type(raw: str) -> ProductType:
    return _parse_enum(ProductType, "product_type", raw)
