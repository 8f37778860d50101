"""Per-user interactive sessions."""

from .commands import Command, parse_command
from .machine import SessionContext, SessionStateMachine
from .manager import SessionManager
from .state import RenderModel, Screen, SelectorKind, SessionState, Toast, ToastLevel

__all__ = [
    "Command",
    "parse_command",
    "SessionContext",
    "SessionStateMachine",
    "SessionManager",
    "RenderModel",
    "Screen",
    "SelectorKind",
    "SessionState",
    "Toast",
    "ToastLevel",
]
