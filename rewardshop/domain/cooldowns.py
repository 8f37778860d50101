"""Per-user purchase cooldowns."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CooldownTracker:
    """Absolute expiry per (user, product id).

    Expired entries stay until :meth:`prune` runs; lookups compare lazily.
    """

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._clock = clock or utc_now
        self._expiries: dict[int, dict[int, datetime]] = {}

    def now(self) -> datetime:
        return _as_utc(self._clock())

    def has_cooldown(self, user_id: int, product_id: int) -> tuple[bool, int]:
        """Return whether the product is blocked and the whole seconds remaining."""
        expiry = self._expiries.get(user_id, {}).get(product_id)
        if expiry is None:
            return False, 0
        remaining = (expiry - self.now()).total_seconds()
        if remaining <= 0:
            return False, 0
        return True, math.ceil(remaining)

    def add_cooldown(self, user_id: int, product_id: int, seconds: int) -> datetime:
        expiry = self.now() + timedelta(seconds=seconds)
        self._expiries.setdefault(user_id, {})[product_id] = expiry
        return expiry

    def clear(self, user_id: int, product_id: int | None = None) -> None:
        if product_id is None:
            self._expiries.pop(user_id, None)
            return
        self._expiries.get(user_id, {}).pop(product_id, None)

    def prune(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self.now()
        removed = 0
        for user_id in list(self._expiries):
            entries = self._expiries[user_id]
            for product_id in [pid for pid, expiry in entries.items() if expiry <= now]:
                del entries[product_id]
                removed += 1
            if not entries:
                del self._expiries[user_id]
        return removed

    def to_document(self) -> dict[str, Any]:
        return {
            str(user_id): {str(pid): expiry.isoformat() for pid, expiry in entries.items()}
            for user_id, entries in self._expiries.items()
        }

    @classmethod
    def from_document(
        cls, data: Mapping[str, Any] | None, *, clock: Clock | None = None
    ) -> "CooldownTracker":
        tracker = cls(clock=clock)
        for user_id, entries in (data or {}).items():
            tracker._expiries[int(user_id)] = {
                int(pid): _as_utc(datetime.fromisoformat(expiry)) for pid, expiry in entries.items()
            }
        return tracker
