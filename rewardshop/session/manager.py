"""Registry of live sessions, one per connected user."""

from __future__ import annotations

import logging
from typing import Iterable

from ..domain.events import EventPayload
from ..domain.exceptions import InvalidField
from .commands import Command, parse_command
from .machine import SessionContext, SessionStateMachine
from .state import RenderModel, Screen, ToastLevel

logger = logging.getLogger(__name__)


class SessionManager:
    """Get-or-create access to sessions with an explicit eviction hook.

    Sessions are never persisted. Messages for users without an open session
    are queued and handed out on their next connect.
    """

    def __init__(self, context: SessionContext) -> None:
        self._context = context
        self._sessions: dict[int, SessionStateMachine] = {}
        self._pending: dict[int, list[str]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, user_id: int) -> SessionStateMachine | None:
        return self._sessions.get(user_id)

    def get_or_create(self, user_id: int) -> SessionStateMachine:
        session = self._sessions.get(user_id)
        if session is None:
            session = SessionStateMachine(user_id, self._context)
            self._sessions[user_id] = session
        return session

    def evict(self, user_id: int) -> bool:
        return self._sessions.pop(user_id, None) is not None

    def active_users(self) -> Iterable[int]:
        return tuple(self._sessions)

    async def handle(self, user_id: int, command: Command | str) -> RenderModel:
        if isinstance(command, str):
            try:
                command = parse_command(command)
            except InvalidField as exc:
                return await self._reject(user_id, str(exc))
        if command.verb == "close" and user_id not in self._sessions:
            return RenderModel(user_id=user_id, screen=Screen.CLOSED)
        session = self.get_or_create(user_id)
        model = await session.handle(command)
        if model.closed:
            self.evict(user_id)
        return model

    async def _reject(self, user_id: int, message: str) -> RenderModel:
        session = self.get_or_create(user_id)
        session.push_toast(message, ToastLevel.ERROR)
        model = await session.render()
        if model.closed:
            self.evict(user_id)
        return model

    def on_connect(self, user_id: int) -> list[str]:
        """Return notices for a user who just connected."""
        notices = self._pending.pop(user_id, [])
        balance = self._context.store.ledger.balance(user_id)
        if balance > 0:
            notices.append(f"You have {balance} unspent points")
        return notices

    def on_disconnect(self, user_id: int) -> None:
        self.evict(user_id)

    def notify(self, user_id: int, message: str) -> None:
        session = self._sessions.get(user_id)
        if session is not None and session.state.screen is not Screen.CLOSED:
            session.push_toast(message)
            return
        self._pending.setdefault(user_id, []).append(message)

    async def on_transfer(self, payload: EventPayload) -> None:
        logger.debug("Notifying %s of incoming transfer", payload["recipient_id"])
        self.notify(
            payload["recipient_id"],
            f"{payload['sender_name']} sent you {payload['amount']} points",
        )
