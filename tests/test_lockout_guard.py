"""Unit tests for the in-memory lockout guard state machine."""

import pytest

from request_shield.adapters.lockout import InMemoryLockoutGuard, LockoutStatus
from request_shield.core.errors import AccountLockedAppError


@pytest.fixture
def guard(clock) -> InMemoryLockoutGuard:
    return InMemoryLockoutGuard(threshold=5, lockout_seconds=900, clock=clock)


def test_unknown_key_is_open(guard) -> None:
    assert guard.is_locked("account:nobody") == LockoutStatus(locked=False)
    assert guard.failed_attempts("account:nobody") == 0


def test_failures_below_threshold_do_not_lock(guard) -> None:
    for _ in range(4):
        status = guard.record_failure("account:x")
        assert status.locked is False

    assert guard.failed_attempts("account:x") == 4
    assert guard.is_locked("account:x").locked is False


def test_scenario_lock_after_five_failures(guard, clock) -> None:
    """5 failures in t=0..1 lock for 900s; t=100 ~800s left; t=901 open."""
    for second in (0.0, 0.25, 0.5, 0.75):
        clock.now = second
        guard.record_failure("account:x")

    clock.now = 1.0
    status = guard.record_failure("account:x")
    assert status.locked is True
    assert status.remaining_lockout_seconds == 900

    clock.now = 100.0
    status = guard.is_locked("account:x")
    assert status.locked is True
    assert status.remaining_lockout_seconds == 801

    clock.now = 901.0
    assert guard.is_locked("account:x").locked is False
    assert guard.failed_attempts("account:x") == 0


def test_remaining_seconds_decrease_monotonically(guard, clock) -> None:
    for _ in range(5):
        guard.record_failure("account:x")

    previous = None
    for _ in range(10):
        remaining = guard.is_locked("account:x").remaining_lockout_seconds
        if previous is not None:
            assert remaining <= previous
        previous = remaining
        clock.advance(90.0)

    assert guard.is_locked("account:x").locked is False
    assert guard.is_locked("account:x").remaining_lockout_seconds == 0


def test_unlocks_exactly_at_locked_until(guard, clock) -> None:
    for _ in range(5):
        guard.record_failure("account:x")

    clock.now = 899.5
    status = guard.is_locked("account:x")
    assert status.locked is True
    assert status.remaining_lockout_seconds == 1

    clock.now = 900.0
    assert guard.is_locked("account:x").locked is False


def test_failures_while_locked_do_not_extend_lock(guard, clock) -> None:
    for _ in range(5):
        guard.record_failure("account:x")

    clock.now = 300.0
    status = guard.record_failure("account:x")
    assert status.locked is True
    assert status.remaining_lockout_seconds == 600
    assert guard.failed_attempts("account:x") == 5


def test_failure_after_expiry_starts_fresh_count(guard, clock) -> None:
    for _ in range(5):
        guard.record_failure("account:x")

    clock.now = 1000.0
    status = guard.record_failure("account:x")
    assert status.locked is False
    assert guard.failed_attempts("account:x") == 1


def test_success_resets_failed_attempts(guard) -> None:
    for _ in range(4):
        guard.record_failure("account:x")

    guard.record_success("account:x")
    assert guard.failed_attempts("account:x") == 0

    guard.record_success("account:x")
    assert guard.failed_attempts("account:x") == 0

    for _ in range(4):
        guard.record_failure("account:x")
    assert guard.is_locked("account:x").locked is False


def test_keys_are_isolated(guard) -> None:
    for _ in range(5):
        guard.record_failure("account:x")

    assert guard.is_locked("account:x").locked is True
    assert guard.is_locked("account:y").locked is False


def test_ensure_unlocked_raises_with_remaining_seconds(guard, clock) -> None:
    guard.ensure_unlocked("account:x")

    for _ in range(5):
        guard.record_failure("account:x")
    clock.now = 100.0

    with pytest.raises(AccountLockedAppError) as exc_info:
        guard.ensure_unlocked("account:x")

    assert exc_info.value.code == "account_locked"
    assert exc_info.value.remaining_lockout_seconds == 800


def test_empty_key_is_never_locked(guard) -> None:
    assert guard.record_failure("").locked is False
    assert guard.is_locked("").locked is False


def test_stats(guard) -> None:
    for _ in range(5):
        guard.record_failure("account:x")
    guard.record_failure("account:y")

    assert guard.stats() == {"active_entries": 2, "locked_entries": 1, "total_lockouts": 1}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"threshold": 0, "lockout_seconds": 900},
        {"threshold": 5, "lockout_seconds": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemoryLockoutGuard(**kwargs)
