"""Point balances per user."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from .exceptions import InsufficientFunds, ZeroOrInvalidAmount


class Ledger:
    """Integer balance per user.

    Balances never go negative. A failed debit leaves the ledger untouched.
    Callers serialize mutations through the application lock.
    """

    def __init__(self, balances: Mapping[int, int] | None = None) -> None:
        self._balances: dict[int, int] = {}
        for user_id, amount in (balances or {}).items():
            if amount < 0:
                raise ValueError(f"Negative balance {amount} for user {user_id}")
            self._balances[int(user_id)] = int(amount)

    def balance(self, user_id: int) -> int:
        return self._balances.get(user_id, 0)

    def credit(self, user_id: int, amount: int) -> int:
        _check_amount(amount)
        if amount == 0:
            return self.balance(user_id)
        new_balance = self.balance(user_id) + amount
        self._balances[user_id] = new_balance
        return new_balance

    def debit(self, user_id: int, amount: int) -> int:
        _check_amount(amount)
        current = self.balance(user_id)
        if current < amount:
            raise InsufficientFunds(required=amount, available=current)
        if amount == 0:
            return current
        self._balances[user_id] = current - amount
        return current - amount

    def take(self, user_id: int, amount: int) -> int:
        """Debit up to ``amount``, clamping the balance at zero."""
        _check_amount(amount)
        return self.debit(user_id, min(amount, self.balance(user_id)))

    def clear(self, user_id: int) -> int:
        """Reset a balance to zero and return the amount removed."""
        return self._balances.pop(user_id, 0)

    def __len__(self) -> int:
        return len(self._balances)

    def users(self) -> Iterable[int]:
        return tuple(self._balances)

    def total(self) -> int:
        return sum(self._balances.values())

    def to_document(self) -> dict[str, Any]:
        return {str(user_id): amount for user_id, amount in self._balances.items()}

    @classmethod
    def from_document(cls, data: Mapping[str, Any] | None) -> "Ledger":
        if not data:
            return cls()
        return cls({int(user_id): int(amount) for user_id, amount in data.items()})


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ZeroOrInvalidAmount(f"Amount must be an integer, got {amount!r}")
    if amount < 0:
        raise ZeroOrInvalidAmount(f"Amount must not be negative, got {amount}")
