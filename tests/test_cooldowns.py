from rewardshop.domain.cooldowns import CooldownTracker
from rewardshop.testing.stubs import FakeClock


def test_cooldown_counts_down_and_expires():
    clock = FakeClock()
    tracker = CooldownTracker(clock=clock)
    tracker.add_cooldown(1, 10, 60)
    assert tracker.has_cooldown(1, 10) == (True, 60)
    clock.advance(59.5)
    assert tracker.has_cooldown(1, 10) == (True, 1)
    clock.advance(0.5)
    assert tracker.has_cooldown(1, 10) == (False, 0)


def test_cooldowns_are_per_user_and_product():
    tracker = CooldownTracker(clock=FakeClock())
    tracker.add_cooldown(1, 10, 30)
    assert tracker.has_cooldown(2, 10) == (False, 0)
    assert tracker.has_cooldown(1, 11) == (False, 0)
    tracker.clear(1, 10)
    assert tracker.has_cooldown(1, 10) == (False, 0)


def test_prune_drops_only_expired_entries():
    clock = FakeClock()
    tracker = CooldownTracker(clock=clock)
    tracker.add_cooldown(1, 1, 10)
    tracker.add_cooldown(1, 2, 100)
    tracker.add_cooldown(2, 1, 10)
    clock.advance(20)
    assert tracker.prune() == 2
    assert tracker.has_cooldown(1, 2)[0] is True
    assert tracker.to_document().keys() == {"1"}


def test_document_round_trip_keeps_expiry():
    clock = FakeClock()
    tracker = CooldownTracker(clock=clock)
    tracker.add_cooldown(5, 3, 120)
    restored = CooldownTracker.from_document(tracker.to_document(), clock=clock)
    assert restored.has_cooldown(5, 3) == (True, 120)
