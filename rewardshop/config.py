"""Configuration models for RewardShop."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Literal, Mapping


StorageBackend = Literal["memory", "json", "sqlalchemy"]

_TRUTHY = {"1", "true", "yes"}


class StoreCategory(str, Enum):
    """Top level store tabs."""

    ITEMS = "items"
    KITS = "kits"
    COMMANDS = "commands"
    EXCHANGE = "exchange"
    TRANSFER = "transfer"
    SELL = "sell"


@dataclass(slots=True)
class StoreNavigation:
    """Which store tabs are enabled."""

    items: bool = True
    kits: bool = True
    commands: bool = True
    exchange: bool = True
    transfer: bool = True
    sell: bool = True

    def enabled(self, category: StoreCategory) -> bool:
        return getattr(self, category.value)

    def toggle(self, category: StoreCategory) -> bool:
        value = not self.enabled(category)
        setattr(self, category.value, value)
        return value

    def to_dict(self) -> dict[str, bool]:
        return {item.name: getattr(self, item.name) for item in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "StoreNavigation":
        data = data or {}
        return cls(**{item.name: bool(data.get(item.name, True)) for item in fields(cls)})


@dataclass(slots=True)
class StorageConfig:
    """Configure where balances, catalogs and prices are persisted."""

    backend: StorageBackend = "memory"
    data_dir: str = "./rewardshop_data"
    dsn: str | None = None
    echo_sql: bool = False
    autosave_seconds: int = 300

    def resolve_dsn(self) -> str | None:
        if self.dsn:
            return self.dsn
        if self.backend == "sqlalchemy":
            return "sqlite+aiosqlite:///./rewardshop.db"
        return None


@dataclass(slots=True)
class AdminConfig:
    admin_ids: set[int] = field(default_factory=set)
    admin_permission: str = "rewardshop.admin"
    enable_audit_logs: bool = True


@dataclass(slots=True)
class StoreOptions:
    """Behaviour switches for the store."""

    owned_skins_only: bool = True
    hide_ownership_gated: bool = False
    log_transactions: bool = True
    npc_only: bool = False
    exchange_rate: Decimal = Decimal(1)
    hidden_item_refs: frozenset[str] = frozenset()
    permission_prefix: str = "rewardshop."


@dataclass(slots=True)
class RewardShopConfig:
    """Top-level configuration container."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    admin: AdminConfig = field(default_factory=AdminConfig)
    options: StoreOptions = field(default_factory=StoreOptions)
    navigation: StoreNavigation = field(default_factory=StoreNavigation)
    force_migration: bool = False

    @classmethod
    def from_env(cls) -> "RewardShopConfig":
        """Create config from environment variables prefixed with REWARDSHOP_."""
        prefix = "REWARDSHOP_"

        def flag(name: str, default: bool) -> bool:
            return os.getenv(f"{prefix}{name}", str(default)).lower() in _TRUTHY

        storage = StorageConfig(
            backend=os.getenv(f"{prefix}STORAGE_BACKEND", "memory"),  # type: ignore[arg-type]
            data_dir=os.getenv(f"{prefix}DATA_DIR", "./rewardshop_data"),
            dsn=os.getenv(f"{prefix}STORAGE_DSN"),
            echo_sql=flag("STORAGE_ECHO_SQL", False),
            autosave_seconds=_parse_int(prefix, "AUTOSAVE_SECONDS", "300"),
        )

        admin_ids = {
            int(_id.strip())
            for _id in os.getenv(f"{prefix}ADMIN_IDS", "").split(",")
            if _id.strip()
        }
        admin = AdminConfig(
            admin_ids=admin_ids,
            admin_permission=os.getenv(f"{prefix}ADMIN_PERMISSION", "rewardshop.admin"),
            enable_audit_logs=flag("ADMIN_ENABLE_AUDIT_LOGS", True),
        )

        options = StoreOptions(
            owned_skins_only=flag("OWNED_SKINS_ONLY", True),
            hide_ownership_gated=flag("HIDE_OWNERSHIP_GATED", False),
            log_transactions=flag("LOG_TRANSACTIONS", True),
            npc_only=flag("NPC_ONLY", False),
            exchange_rate=_parse_rate(prefix, os.getenv(f"{prefix}EXCHANGE_RATE", "1")),
            hidden_item_refs=frozenset(
                ref.strip()
                for ref in os.getenv(f"{prefix}HIDDEN_ITEMS", "").split(",")
                if ref.strip()
            ),
            permission_prefix=os.getenv(f"{prefix}PERMISSION_PREFIX", "rewardshop."),
        )

        navigation = StoreNavigation(
            **{
                category.value: flag(f"NAV_{category.name}", True)
                for category in StoreCategory
            }
        )

        return cls(
            storage=storage,
            admin=admin,
            options=options,
            navigation=navigation,
            force_migration=flag("FORCE_MIGRATION", False),
        )


def _parse_int(prefix: str, name: str, default: str) -> int:
    raw = os.getenv(f"{prefix}{name}", default)
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid integer for {prefix}{name}: {raw!r}") from exc


def _parse_rate(prefix: str, raw: str) -> Decimal:
    try:
        rate = Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid decimal for {prefix}EXCHANGE_RATE: {raw!r}") from exc
    if rate <= 0:
        raise ValueError(f"{prefix}EXCHANGE_RATE must be positive")
    return rate
