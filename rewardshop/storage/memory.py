"""In-memory storage backend for RewardShop."""

from __future__ import annotations

import copy
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque

from .base import AuditStore, DocumentStore


class InMemoryDocumentStore(DocumentStore):
    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        self._documents: dict[str, dict[str, Any]] = {
            name: copy.deepcopy(data) for name, data in (documents or {}).items()
        }

    async def exists(self, name: str) -> bool:
        return name in self._documents

    async def read(self, name: str) -> dict[str, Any] | None:
        data = self._documents.get(name)
        return copy.deepcopy(data) if data is not None else None

    async def write(self, name: str, data: dict[str, Any]) -> None:
        self._documents[name] = copy.deepcopy(data)

    def names(self) -> list[str]:
        return sorted(self._documents)


class InMemoryAuditStore(AuditStore):
    def __init__(self, *, maxlen: int = 1000) -> None:
        self._entries: Deque[tuple[datetime, str, dict]] = deque(maxlen=maxlen)

    async def add_entry(self, action: str, payload: dict) -> None:
        self._entries.append((datetime.now(timezone.utc), action, payload))

    def dump(self) -> list[tuple[datetime, str, dict]]:
        return list(self._entries)

    def actions(self) -> list[str]:
        return [action for _, action, _ in self._entries]
