"""One-shot conversion of legacy documents at startup."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from ..storage.base import NPC_STORES, PLAYER_BALANCES, PRODUCTS, SELL_PRICES, DocumentStore
from .legacy import (
    LegacyFormatError,
    convert_balances,
    convert_npc_data,
    convert_rewards,
    convert_sale_data,
)

logger = logging.getLogger(__name__)

LEGACY_PREFIX = "v1"


class _Converted(Protocol):
    def __len__(self) -> int:
        ...

    def to_document(self) -> dict[str, Any]:
        ...


@dataclass(slots=True)
class MigrationReport:
    migrated: dict[str, int] = field(default_factory=dict)
    skipped: dict[str, str] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.migrated)


class LegacyMigrator:
    """Convert each domain whose target document is missing, or all of them when forced.

    A malformed source only skips its own domain.
    """

    def __init__(self, documents: DocumentStore) -> None:
        self._documents = documents

    async def read_legacy(self, name: str) -> dict[str, Any] | None:
        data = await self._documents.read(f"{LEGACY_PREFIX}/{name}")
        if data is None:
            data = await self._documents.read(name)
        return data

    async def run(self, *, force: bool = False) -> MigrationReport:
        report = MigrationReport()
        await self._migrate(report, PLAYER_BALANCES, force, ("player_data",), convert_balances)
        await self._migrate(report, PRODUCTS, force, ("reward_data",), convert_rewards)
        await self._migrate(report, SELL_PRICES, force, ("sale_data",), convert_sale_data)
        await self._migrate(
            report, NPC_STORES, force, ("npc_data", "reward_data"), convert_npc_data
        )
        return report

    async def _migrate(
        self,
        report: MigrationReport,
        target: str,
        force: bool,
        sources: tuple[str, ...],
        convert: Callable[..., _Converted],
    ) -> None:
        # JSONDecodeError and LegacyFormatError are both ValueErrors.
        try:
            data = [await self.read_legacy(name) for name in sources]
        except ValueError as exc:
            self._skip_malformed(report, target, exc)
            return
        if any(item is None for item in data):
            report.skipped[target] = "no legacy source"
            return
        if not force and await self._documents.exists(target):
            report.skipped[target] = "target already exists"
            return
        try:
            converted = convert(*data)
        except LegacyFormatError as exc:
            self._skip_malformed(report, target, exc)
            return
        await self._documents.write(target, converted.to_document())
        count = len(converted)
        report.migrated[target] = count
        logger.info("Migrated %d %s record(s) from legacy data", count, target)

    @staticmethod
    def _skip_malformed(report: MigrationReport, target: str, exc: Exception) -> None:
        logger.warning("Skipping %s migration, legacy data is malformed: %s", target, exc)
        report.skipped[target] = f"malformed: {exc}"
