"""Top level application object for RewardShop."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Any

from .admin.service import AdminService
from .config import RewardShopConfig
from .domain.catalog import ProductCatalog
from .domain.cooldowns import Clock, CooldownTracker
from .domain.events import EventBus, EventPayload
from .domain.ledger import Ledger
from .domain.npc import NpcStoreRegistry
from .domain.pricing import SellPricing
from .domain.products import ProductType
from .domain.providers import Providers
from .domain.store import Store
from .migration.migrator import LegacyMigrator, MigrationReport
from .session.machine import SessionContext
from .session.manager import SessionManager
from .storage.base import (
    DOCUMENT_NAMES,
    NPC_STORES,
    PLAYER_BALANCES,
    PRODUCTS,
    PURCHASE_COOLDOWNS,
    SELL_PRICES,
    AuditStore,
    DocumentStore,
)
from .storage.json_files import JsonDocumentStore, JsonLinesAuditStore
from .storage.memory import InMemoryAuditStore, InMemoryDocumentStore
from .storage.sqlalchemy import AsyncSQLAlchemyStorage

logger = logging.getLogger(__name__)


class RewardShopApp:
    """Central dependency container owning the economy singletons.

    Call :meth:`init_backend` once before serving commands and
    :meth:`shutdown` on exit so the final state is flushed.
    """

    def __init__(
        self,
        config: RewardShopConfig,
        *,
        providers: Providers | None = None,
        document_store: DocumentStore | None = None,
        audit_store: AuditStore | None = None,
        event_bus: EventBus | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self.event_bus = event_bus or EventBus()
        self.providers = providers or Providers()
        self.lock = asyncio.Lock()
        self._clock = clock
        self._autosave_task: asyncio.Task[None] | None = None

        self._sqlalchemy_storage: AsyncSQLAlchemyStorage | None = None
        self.document_store, self.audit_store = self._wire_storage(document_store, audit_store)

        self.ledger = Ledger()
        self.catalog = ProductCatalog()
        self.cooldowns = CooldownTracker(clock=clock)
        self.pricing = SellPricing()
        self.npc_stores = NpcStoreRegistry()
        self._build_services()

        self.event_bus.subscribe("store.transfer.completed", self._on_transfer)
        self.event_bus.subscribe("catalog.product.saved", self._on_catalog_changed)
        self.event_bus.subscribe("catalog.product.deleted", self._on_catalog_changed)
        self.event_bus.subscribe("admin.npc.updated", self._on_npc_changed)
        self.event_bus.subscribe("admin.sellable.updated", self._on_sellable_changed)

    def _wire_storage(
        self,
        document_store: DocumentStore | None,
        audit_store: AuditStore | None,
    ) -> tuple[DocumentStore, AuditStore]:
        if document_store and audit_store:
            return document_store, audit_store

        storage = self.config.storage
        if storage.backend == "memory":
            return document_store or InMemoryDocumentStore(), audit_store or InMemoryAuditStore()
        if storage.backend == "json":
            root = Path(storage.data_dir)
            return (
                document_store or JsonDocumentStore(root),
                audit_store or JsonLinesAuditStore(root / "audit_log.jsonl"),
            )
        if storage.backend == "sqlalchemy":
            dsn = storage.resolve_dsn()
            if not dsn:
                raise ValueError("SQLAlchemy backend requires a DSN")
            backend = AsyncSQLAlchemyStorage(dsn, echo=storage.echo_sql)
            self._sqlalchemy_storage = backend
            return (
                document_store or backend.document_store(),
                audit_store or backend.audit_store(),
            )
        raise ValueError(f"Unsupported storage backend {storage.backend}")

    def _build_services(self) -> None:
        self.store = Store(
            self.ledger,
            self.catalog,
            self.cooldowns,
            self.pricing,
            self.providers,
            self.config.options,
            self.config.admin,
            self.event_bus,
            self.audit_store,
            lock=self.lock,
        )
        self.admin = AdminService(
            self.store,
            self.npc_stores,
            self.audit_store,
            self.event_bus,
            enable_audit_logs=self.config.admin.enable_audit_logs,
        )
        self.sessions = SessionManager(
            SessionContext(
                store=self.store,
                npc_stores=self.npc_stores,
                navigation=self.config.navigation,
                event_bus=self.event_bus,
            )
        )

    async def init_backend(self) -> MigrationReport:
        """Create tables, migrate legacy data and load every document."""
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.init_models()
        report = await LegacyMigrator(self.document_store).run(force=self.config.force_migration)
        await self.load()
        added = self.pricing.reconcile(item.item_ref for item in self.providers.items.all())
        if added:
            logger.info("Added %d item type(s) to sell prices", added)
        return report

    async def load(self) -> None:
        raw = {name: await self.document_store.read(name) for name in DOCUMENT_NAMES}
        async with self.lock:
            self.ledger = Ledger.from_document(raw[PLAYER_BALANCES])
            self.catalog = ProductCatalog.from_document(raw[PRODUCTS])
            self.pricing = SellPricing.from_document(raw[SELL_PRICES])
            self.npc_stores = NpcStoreRegistry.from_document(raw[NPC_STORES])
            self.cooldowns = CooldownTracker.from_document(raw[PURCHASE_COOLDOWNS], clock=self._clock)
            self._build_services()
        logger.info(
            "Loaded %d balance(s), %d product(s), %d NPC store(s)",
            len(self.ledger),
            len(self.catalog),
            len(self.npc_stores),
        )

    async def flush(self) -> None:
        """Snapshot every singleton under the lock, then write outside it."""
        async with self.lock:
            self.cooldowns.prune()
            snapshot = {
                PLAYER_BALANCES: self.ledger.to_document(),
                PRODUCTS: self.catalog.to_document(),
                SELL_PRICES: self.pricing.to_document(),
                NPC_STORES: self.npc_stores.to_document(),
                PURCHASE_COOLDOWNS: self.cooldowns.to_document(),
            }
        for name, data in snapshot.items():
            await self.document_store.write(name, data)
        logger.debug("Flushed %d document(s)", len(snapshot))

    def start_autosave(self) -> None:
        interval = self.config.storage.autosave_seconds
        if interval <= 0 or self._autosave_task is not None:
            return
        self._autosave_task = asyncio.create_task(self._autosave_loop(interval))

    async def _autosave_loop(self, interval: int) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.flush()

    async def shutdown(self) -> None:
        if self._autosave_task is not None:
            self._autosave_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._autosave_task
            self._autosave_task = None
        await self.flush()
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.dispose()

    async def _save(self, name: str, source: Any) -> None:
        async with self.lock:
            data = source.to_document()
        await self.document_store.write(name, data)

    async def _on_transfer(self, payload: EventPayload) -> None:
        await self.sessions.on_transfer(payload)

    async def _on_catalog_changed(self, payload: EventPayload) -> None:
        if payload.get("npc_id") is None:
            await self._save(PRODUCTS, self.catalog)
        else:
            await self._save(NPC_STORES, self.npc_stores)

    async def _on_npc_changed(self, payload: EventPayload) -> None:
        await self._save(NPC_STORES, self.npc_stores)

    async def _on_sellable_changed(self, payload: EventPayload) -> None:
        await self._save(SELL_PRICES, self.pricing)

    def snapshot(self) -> dict[str, Any]:
        """Export current state sizes for debugging."""
        return {
            "storage": self.config.storage.backend,
            "balances": len(self.ledger),
            "points_in_circulation": self.ledger.total(),
            "products": {
                product_type.value: len(self.catalog.iter_products(product_type))
                for product_type in ProductType
            },
            "next_product_id": self.catalog.next_id,
            "npc_stores": [store.npc_id for store in self.npc_stores.all()],
            "sell_prices": len(self.pricing),
            "sessions": len(self.sessions),
        }
