"""In-memory lockout guard.

Per-key state machine:

    OPEN --(failure #threshold)--> LOCKED --(now >= locked_until)--> OPEN

Expiry is applied lazily: the first ``is_locked``/``record_failure`` call
after ``locked_until`` observes the key as OPEN with a zeroed failure count.
Failures reported while LOCKED are ignored and do not extend the lock; the
HTTP layer rejects locked logins before credentials are checked, so such
reports only come from requests that raced the transition.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from request_shield.adapters.lockout.base import UNLOCKED, AbstractLockoutGuard, LockoutStatus
from request_shield.adapters.sharding import ShardedStore
from request_shield.core.client_key import hash_key

logger = logging.getLogger(__name__)


@dataclass
class LockoutRecord:
    """Failure tracking for one account (or address) key."""

    account_key: str
    failed_attempts: int
    locked_until: float | None
    last_access: float

    def is_locked_at(self, now: float) -> bool:
        return self.locked_until is not None and now < self.locked_until

    def expire_if_due(self, now: float) -> None:
        if self.locked_until is not None and now >= self.locked_until:
            self.locked_until = None
            self.failed_attempts = 0

    def status_at(self, now: float) -> LockoutStatus:
        if not self.is_locked_at(now):
            return UNLOCKED
        return LockoutStatus(
            locked=True,
            remaining_lockout_seconds=int(math.ceil(self.locked_until - now)),
        )


class InMemoryLockoutGuard(AbstractLockoutGuard):
    """Sharded, thread-safe lockout tracker."""

    def __init__(
        self,
        *,
        threshold: int,
        lockout_seconds: float,
        shard_count: int = 64,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        if lockout_seconds <= 0:
            raise ValueError("lockout_seconds must be > 0")

        self._threshold = threshold
        self._lockout_seconds = lockout_seconds
        self._clock = clock
        self._store: ShardedStore[LockoutRecord] = ShardedStore(shard_count)

    @property
    def threshold(self) -> int:
        return self._threshold

    def is_locked(self, key: str) -> LockoutStatus:
        if not key:
            return UNLOCKED
        shard = self._store.shard_for(key)
        with shard.lock:
            record = shard.entries.get(key)
            if record is None:
                return UNLOCKED
            now = self._clock()
            record.expire_if_due(now)
            return record.status_at(now)

    def record_failure(self, key: str) -> LockoutStatus:
        if not key:
            return UNLOCKED
        shard = self._store.shard_for(key)
        with shard.lock:
            now = self._clock()
            record = shard.entries.get(key)
            if record is None:
                record = LockoutRecord(
                    account_key=key,
                    failed_attempts=0,
                    locked_until=None,
                    last_access=now,
                )
                shard.entries[key] = record

            record.expire_if_due(now)
            record.last_access = now
            if record.is_locked_at(now):
                return record.status_at(now)

            record.failed_attempts += 1
            if record.failed_attempts >= self._threshold:
                record.locked_until = now + self._lockout_seconds
                shard.counter += 1
                locked = True
            else:
                locked = False
            attempts = record.failed_attempts
            status = record.status_at(now)

        if locked:
            logger.warning(
                "lockout.locked",
                extra={
                    "key_hash": hash_key(key),
                    "failed_attempts": attempts,
                    "lockout_s": self._lockout_seconds,
                },
            )
        return status

    def record_success(self, key: str) -> None:
        if not key:
            return
        shard = self._store.shard_for(key)
        with shard.lock:
            shard.entries.pop(key, None)

    def failed_attempts(self, key: str) -> int:
        """Current consecutive failure count for ``key`` (0 when untracked)."""
        shard = self._store.shard_for(key)
        with shard.lock:
            record = shard.entries.get(key)
            if record is None:
                return 0
            record.expire_if_due(self._clock())
            return record.failed_attempts

    def evict_idle(self, idle_seconds: float) -> int:
        removed = 0
        for shard in self._store:
            with shard.lock:
                now = self._clock()
                stale = [
                    key
                    for key, record in shard.entries.items()
                    if not record.is_locked_at(now) and now - record.last_access > idle_seconds
                ]
                for key in stale:
                    del shard.entries[key]
                removed += len(stale)
        return removed

    def stats(self) -> dict[str, int]:
        """Lightweight counters for health output and logs."""
        locked = 0
        for shard in self._store:
            with shard.lock:
                now = self._clock()
                locked += sum(1 for record in shard.entries.values() if record.is_locked_at(now))
        return {
            "active_entries": len(self._store),
            "locked_entries": locked,
            "total_lockouts": self._store.counter_total(),
        }
