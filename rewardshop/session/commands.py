"""Named session commands with positional arguments."""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from ..domain.exceptions import InvalidField, ZeroOrInvalidAmount


@dataclass(frozen=True, slots=True)
class Command:
    verb: str
    args: tuple[str, ...] = ()

    def arg(self, index: int, default: str | None = None) -> str:
        if index < len(self.args):
            return self.args[index]
        if default is None:
            raise InvalidField(f"arg{index}", None, f"'{self.verb}' expects more arguments")
        return default

    def has(self, index: int) -> bool:
        return index < len(self.args)

    def rest(self, index: int) -> str:
        return " ".join(self.args[index:])

    def int_arg(self, index: int, default: int | None = None) -> int:
        if not self.has(index) and default is not None:
            return default
        raw = self.arg(index)
        try:
            return int(raw)
        except ValueError as exc:
            raise ZeroOrInvalidAmount(f"Expected a whole number, got {raw!r}") from exc

    def decimal_arg(self, index: int) -> Decimal:
        raw = self.arg(index)
        try:
            value = Decimal(raw)
        except InvalidOperation as exc:
            raise ZeroOrInvalidAmount(f"Expected a number, got {raw!r}") from exc
        if not value.is_finite():
            raise ZeroOrInvalidAmount(f"Expected a finite number, got {raw!r}")
        return value


def parse_command(raw: str) -> Command:
    """Split ``raw`` shell-style into a lower-cased verb and its arguments."""
    try:
        parts = shlex.split(raw)
    except ValueError as exc:
        raise InvalidField("command", raw, str(exc)) from exc
    if not parts:
        raise InvalidField("command", raw, "empty command")
    return Command(verb=parts[0].lower(), args=tuple(parts[1:]))
