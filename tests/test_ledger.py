import pytest

from rewardshop.domain.exceptions import InsufficientFunds, ZeroOrInvalidAmount
from rewardshop.domain.ledger import Ledger


def test_credit_and_debit_track_balance():
    ledger = Ledger()
    assert ledger.balance(1) == 0
    assert ledger.credit(1, 150) == 150
    assert ledger.debit(1, 50) == 100
    assert ledger.balance(1) == 100


def test_failed_debit_leaves_balance_untouched():
    ledger = Ledger({1: 80})
    with pytest.raises(InsufficientFunds) as exc_info:
        ledger.debit(1, 100)
    assert exc_info.value.required == 100
    assert exc_info.value.available == 80
    assert ledger.balance(1) == 80


def test_zero_amount_is_a_no_op():
    ledger = Ledger({1: 10})
    assert ledger.credit(1, 0) == 10
    assert ledger.debit(1, 0) == 10
    assert ledger.credit(2, 0) == 0
    assert 2 not in ledger.users()


@pytest.mark.parametrize("amount", [-1, 1.5, "10", True])
def test_invalid_amounts_are_rejected(amount):
    ledger = Ledger({1: 10})
    with pytest.raises(ZeroOrInvalidAmount):
        ledger.credit(1, amount)
    with pytest.raises(ZeroOrInvalidAmount):
        ledger.debit(1, amount)
    assert ledger.balance(1) == 10


def test_take_clamps_at_zero_and_clear_reports_removed():
    ledger = Ledger({1: 30, 2: 5})
    assert ledger.take(1, 50) == 0
    assert ledger.clear(2) == 5
    assert ledger.clear(3) == 0
    assert ledger.balance(2) == 0


def test_document_round_trip_uses_string_keys():
    ledger = Ledger({76561198000000001: 42})
    document = ledger.to_document()
    assert document == {"76561198000000001": 42}
    restored = Ledger.from_document(document)
    assert restored.balance(76561198000000001) == 42
    assert restored.total() == 42
    assert len(Ledger.from_document(None)) == 0


def test_negative_stored_balance_is_rejected():
    with pytest.raises(ValueError):
        Ledger({1: -5})
