"""Tests for idle-entry eviction and the background sweeper."""

import threading
from unittest.mock import Mock

import pytest

from request_shield.adapters.lockout import InMemoryLockoutGuard
from request_shield.adapters.rate_limit.in_memory import ShardedFixedWindowRateLimiter
from request_shield.core.errors import ConfigAppError
from request_shield.core.eviction import EvictionSweeper, SweepTarget, rate_limit_target


@pytest.fixture
def limiter(clock) -> ShardedFixedWindowRateLimiter:
    return ShardedFixedWindowRateLimiter(limit=5, window_seconds=60, shard_count=8, clock=clock)


def test_evicts_entries_idle_longer_than_threshold(limiter, clock) -> None:
    limiter.try_acquire("stale")
    clock.advance(100.0)
    limiter.try_acquire("fresh")
    clock.advance(50.0)

    removed = limiter.evict_idle(120.0)

    assert removed == 1
    assert limiter.peek("stale") is None
    assert limiter.peek("fresh") is not None
    assert limiter.active_entries == 1


def test_never_evicts_entry_touched_in_current_window(limiter, clock) -> None:
    limiter.try_acquire("live")
    clock.advance(59.0)
    limiter.try_acquire("live")
    clock.advance(59.0)

    assert limiter.evict_idle(120.0) == 0
    assert limiter.peek("live").count == 2


def test_evicted_key_starts_a_new_window(limiter, clock) -> None:
    for _ in range(6):
        limiter.try_acquire("k")
    clock.advance(200.0)
    limiter.evict_idle(120.0)

    assert limiter.try_acquire("k").allowed is True
    assert limiter.total_blocked_requests == 1


def test_lockout_eviction_keeps_locked_records(clock) -> None:
    guard = InMemoryLockoutGuard(threshold=2, lockout_seconds=900, clock=clock)
    guard.record_failure("account:idle")
    guard.record_failure("account:locked")
    guard.record_failure("account:locked")

    clock.advance(500.0)
    removed = guard.evict_idle(300.0)

    assert removed == 1
    assert guard.is_locked("account:locked").locked is True
    assert guard.failed_attempts("account:idle") == 0


def test_sweeper_rejects_rate_threshold_within_window(limiter) -> None:
    with pytest.raises(ConfigAppError) as exc_info:
        EvictionSweeper([rate_limit_target(limiter, window_seconds=60, idle_seconds=60)], interval_seconds=300)

    assert exc_info.value.code == "invalid_eviction_threshold"


def test_sweeper_rejects_hand_built_target_within_window(limiter) -> None:
    target = SweepTarget(name="rate_limit", tracker=limiter, idle_seconds=30, min_idle_seconds=60)

    with pytest.raises(ConfigAppError):
        EvictionSweeper([target], interval_seconds=300)


def test_sweeper_rejects_non_positive_threshold(limiter) -> None:
    with pytest.raises(ConfigAppError):
        EvictionSweeper([SweepTarget(name="t", tracker=limiter, idle_seconds=0)], interval_seconds=300)


def test_sweep_once_reports_removed_per_target(limiter, clock) -> None:
    guard = InMemoryLockoutGuard(threshold=5, lockout_seconds=900, clock=clock)
    limiter.try_acquire("a")
    limiter.try_acquire("b")
    guard.record_failure("account:x")
    clock.advance(4000.0)

    sweeper = EvictionSweeper(
        [
            rate_limit_target(limiter, window_seconds=60, idle_seconds=120),
            SweepTarget(name="lockout", tracker=guard, idle_seconds=3600),
        ],
        interval_seconds=300,
    )

    assert sweeper.sweep_once() == {"rate_limit": 2, "lockout": 1}


def test_sweep_once_propagates_tracker_faults() -> None:
    broken = Mock()
    broken.evict_idle.side_effect = MemoryError("map exhausted")
    sweeper = EvictionSweeper([SweepTarget(name="broken", tracker=broken, idle_seconds=1)], interval_seconds=1)

    with pytest.raises(MemoryError):
        sweeper.sweep_once()



def test_failing_target_does_not_skip_later_targets(clock) -> None:
    guard = InMemoryLockoutGuard(threshold=5, lockout_seconds=900, clock=clock)
    guard.record_failure("account:x")
    clock.advance(4000.0)
    broken = Mock()
    broken.evict_idle.side_effect = MemoryError("map exhausted")

    sweeper = EvictionSweeper(
        [
            SweepTarget(name="rate_limit", tracker=broken, idle_seconds=120),
            SweepTarget(name="lockout", tracker=guard, idle_seconds=3600),
        ],
        interval_seconds=300,
    )

    with pytest.raises(MemoryError):
        sweeper.sweep_once()

    assert guard.stats()["active_entries"] == 0


def test_background_thread_sweeps_until_stopped() -> None:
    swept = threading.Event()
    tracker = Mock()
    tracker.evict_idle.side_effect = lambda idle: swept.set() or 0

    sweeper = EvictionSweeper([SweepTarget(name="t", tracker=tracker, idle_seconds=1)], interval_seconds=0.01)
    sweeper.start()
    try:
        assert swept.wait(timeout=2.0)
        assert sweeper.running is True
    finally:
        sweeper.stop()

    assert sweeper.running is False
    tracker.evict_idle.assert_called_with(1)


def test_background_thread_survives_failed_sweep() -> None:
    calls = []
    recovered = threading.Event()

    def evict(idle: float) -> int:
        calls.append(idle)
        if len(calls) == 1:
            raise RuntimeError("transient")
        recovered.set()
        return 0

    tracker = Mock()
    tracker.evict_idle.side_effect = evict
    sweeper = EvictionSweeper([SweepTarget(name="t", tracker=tracker, idle_seconds=1)], interval_seconds=0.01)
    sweeper.start()
    try:
        assert recovered.wait(timeout=2.0)
    finally:
        sweeper.stop()


def test_invalid_interval() -> None:
    with pytest.raises(ValueError):
        EvictionSweeper([], interval_seconds=0)
