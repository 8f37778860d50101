"""Async test client that drives sessions by command strings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from ..session.manager import SessionManager
from ..session.state import RenderModel


@dataclass(slots=True)
class TestMessage:
    __test__ = False

    command: str
    toast: str | None
    metadata: Dict[str, Any]


class TestClient:
    """Facilitate scenario testing without a presentation layer."""

    __test__ = False

    def __init__(self, sessions: SessionManager, user_id: int) -> None:
        self._sessions = sessions
        self.user_id = user_id
        self._log: List[TestMessage] = []
        self.last: RenderModel | None = None

    async def send(self, command: str) -> RenderModel:
        model = await self._sessions.handle(self.user_id, command)
        self.last = model
        self._log.append(
            TestMessage(
                command=command,
                toast=model.toast.message if model.toast else None,
                metadata={"screen": model.screen.value, "balance": model.balance},
            )
        )
        return model

    def history(self) -> List[TestMessage]:
        return list(self._log)
