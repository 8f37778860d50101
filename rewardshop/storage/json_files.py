"""JSON file storage backend for RewardShop."""

from __future__ import annotations

import asyncio
import json
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .base import AuditStore, DocumentStore

_SEGMENT = re.compile(r"^[A-Za-z0-9_\-]+$")


class JsonDocumentStore(DocumentStore):
    """One ``<name>.json`` file per document under ``root``.

    Names may contain ``/`` to address sub-directories (``v1/player_data``).
    Writes go to a temporary file that replaces the target atomically.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def path_for(self, name: str) -> Path:
        segments = name.split("/")
        if not all(_SEGMENT.match(segment) for segment in segments):
            raise ValueError(f"Invalid document name {name!r}")
        return self._root.joinpath(*segments).with_suffix(".json")

    async def exists(self, name: str) -> bool:
        return await asyncio.to_thread(self.path_for(name).is_file)

    async def read(self, name: str) -> dict[str, Any] | None:
        path = self.path_for(name)
        return await asyncio.to_thread(_read_json, path)

    async def write(self, name: str, data: dict[str, Any]) -> None:
        path = self.path_for(name)
        payload = json.dumps(data, indent=2, sort_keys=True)
        await asyncio.to_thread(_write_atomic, path, payload)


class JsonLinesAuditStore(AuditStore):
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    async def add_entry(self, action: str, payload: dict) -> None:
        line = json.dumps(
            {
                "created_at": datetime.now(timezone.utc).isoformat(),
                "action": action,
                "payload": payload,
            },
            default=str,
        )
        await asyncio.to_thread(_append_line, self._path, line)


def _read_json(path: Path) -> dict[str, Any] | None:
    if not path.is_file():
        return None
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return data


def _write_atomic(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".json.tmp")
    tmp.write_text(payload, encoding="utf-8")
    os.replace(tmp, path)


def _append_line(path: Path, line: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(line + "\n")
