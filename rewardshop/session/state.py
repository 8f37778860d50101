"""Session state and the render model emitted after every command."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ..config import StoreCategory
from ..domain.products import ItemCategory, Product, ProductType
from ..domain.providers import HeldItem, PlayerInfo
from ..domain.store import ProductListing, SaleQuote


class Screen(str, Enum):
    STORE = "store"
    SELECTOR = "selector"
    ADD_EDIT = "add_edit"
    CONFIRM_DELETE = "confirm_delete"
    TRANSFER = "transfer"
    EXCHANGE = "exchange"
    SELL_CONFIRM = "sell_confirm"
    CLOSED = "closed"


class SelectorKind(str, Enum):
    ITEM = "item"
    KIT = "kit"


class ToastLevel(str, Enum):
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Toast:
    sequence: int
    message: str
    level: ToastLevel = ToastLevel.INFO


@dataclass(slots=True)
class SessionState:
    """Mutable per-user state. Lives in memory only."""

    user_id: int
    screen: Screen = Screen.CLOSED
    category: StoreCategory | None = None
    item_category: ItemCategory | None = None
    search_text: str = ""
    selector_search: str = ""
    admin_mode: bool = False
    npc_id: str | None = None
    exit_to_game: bool = False
    draft: Product | None = None
    selector: SelectorKind | None = None
    delete_target: tuple[ProductType, int] | None = None
    transfer_target: PlayerInfo | None = None
    transfer_amount: int = 0
    sell_quote: SaleQuote | None = None
    exchange_points: int = 0
    exchange_external: Decimal = Decimal(0)
    toast_sequence: int = 0
    toast: Toast | None = None

    def reset_filters(self) -> None:
        self.item_category = None
        self.search_text = ""

    def clear_drafts(self) -> None:
        self.draft = None
        self.selector = None
        self.selector_search = ""
        self.delete_target = None
        self.sell_quote = None


@dataclass(frozen=True, slots=True)
class SellableView:
    item: HeldItem
    unit_price: float


@dataclass(frozen=True, slots=True)
class DraftView:
    product: Product
    missing_fields: tuple[str, ...]
    is_new: bool


@dataclass(frozen=True, slots=True)
class SelectorOption:
    key: str
    label: str


@dataclass(frozen=True, slots=True)
class SelectorView:
    kind: SelectorKind
    search: str
    options: tuple[SelectorOption, ...]


@dataclass(frozen=True, slots=True)
class TransferView:
    target: PlayerInfo | None
    amount: int


@dataclass(frozen=True, slots=True)
class ExchangeView:
    rate: Decimal
    points: int
    external: Decimal
    points_as_external: Decimal
    external_as_points: int
    external_balance: Decimal


@dataclass(frozen=True, slots=True)
class RenderModel:
    """Everything a presentation layer needs to draw the current screen."""

    user_id: int
    screen: Screen
    balance: int = 0
    is_admin: bool = False
    admin_mode: bool = False
    npc_name: str | None = None
    exit_to_game: bool = False
    categories: tuple[StoreCategory, ...] = ()
    category: StoreCategory | None = None
    item_categories: tuple[ItemCategory, ...] = ()
    item_category: ItemCategory | None = None
    search_text: str = ""
    products: tuple[ProductListing, ...] = ()
    sellable: tuple[SellableView, ...] = ()
    draft: DraftView | None = None
    selector: SelectorView | None = None
    delete_target: Product | None = None
    transfer: TransferView | None = None
    exchange: ExchangeView | None = None
    sell_quote: SaleQuote | None = None
    toast: Toast | None = None

    @property
    def closed(self) -> bool:
        return self.screen is Screen.CLOSED
