"""In-memory fixed-window rate limiter with lock striping.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe without a global lock: each key lives in one of N shards and is
  only ever touched under that shard's lock.
- Fixed windows start at a key's first request (not at wall-clock minute
  boundaries), so up to 2x the limit can pass around a window edge.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, replace
from typing import Callable

from request_shield.adapters.rate_limit.base import AbstractRateLimiter, RateDecision
from request_shield.adapters.sharding import ShardedStore


@dataclass
class RateLimitEntry:
    """Counting window for one client key."""

    key: str
    window_start: float
    count: int
    last_access: float


class ShardedFixedWindowRateLimiter(AbstractRateLimiter):
    """Fixed-window request counter per key.

    Each call to :meth:`try_acquire` counts one request. Once ``limit``
    requests have been counted in the current window, further requests are
    denied until the window elapses; denied requests still count and still
    refresh ``last_access`` so an abusive client is not evicted mid-burst.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        shard_count: int = 64,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Default maximum number of requests per window.
            window_seconds: Size of the fixed window in seconds.
            shard_count: Number of independently locked shards.
            clock: Monotonic time source returning seconds.

        Raises:
            ValueError: If limit, window_seconds or shard_count are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._store: ShardedStore[RateLimitEntry] = ShardedStore(shard_count)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def _decision(self, entry: RateLimitEntry, *, now: float, limit: int) -> RateDecision:
        reset_after = max(0, int(math.ceil(entry.window_start + self._window_seconds - now)))
        if entry.count <= limit:
            return RateDecision(
                allowed=True,
                limit=limit,
                remaining=limit - entry.count,
                reset_after_seconds=reset_after,
                retry_after_seconds=None,
            )
        return RateDecision(
            allowed=False,
            limit=limit,
            remaining=0,
            reset_after_seconds=reset_after,
            retry_after_seconds=max(1, reset_after),
        )

    def try_acquire(self, key: str, *, limit: int | None = None) -> RateDecision:
        """Count one request for ``key`` and return the decision.

        Args:
            key: Client key.
            limit: Per-call limit override (endpoint category budgets).

        Returns:
            RateDecision with the allow/deny outcome and window metadata.

        Raises:
            ValueError: If key is empty or the limit override is < 1.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        effective_limit = self._limit if limit is None else limit
        if effective_limit < 1:
            raise ValueError("limit must be >= 1")

        shard = self._store.shard_for(key)
        with shard.lock:
            now = self._clock()
            entry = shard.entries.get(key)
            if entry is None:
                entry = RateLimitEntry(key=key, window_start=now, count=0, last_access=now)
                shard.entries[key] = entry
            elif now - entry.window_start >= self._window_seconds:
                entry.window_start = now
                entry.count = 0

            entry.count += 1
            entry.last_access = now
            decision = self._decision(entry, now=now, limit=effective_limit)
            if decision.denied:
                shard.counter += 1

        return decision

    def evict_idle(self, idle_seconds: float) -> int:
        """Drop entries whose last request is older than ``idle_seconds``.

        Shards are visited one at a time; the staleness check and the delete
        happen under the same shard lock a concurrent ``try_acquire`` would
        take, so an entry touched in between is never removed.
        """
        removed = 0
        for shard in self._store:
            with shard.lock:
                now = self._clock()
                stale = [
                    key
                    for key, entry in shard.entries.items()
                    if now - entry.last_access > idle_seconds
                ]
                for key in stale:
                    del shard.entries[key]
                removed += len(stale)
        return removed

    def peek(self, key: str) -> RateLimitEntry | None:
        """Return a copy of the entry for ``key`` without counting a request."""
        shard = self._store.shard_for(key)
        with shard.lock:
            entry = shard.entries.get(key)
            return replace(entry) if entry is not None else None

    @property
    def total_blocked_requests(self) -> int:
        return self._store.counter_total()

    @property
    def active_entries(self) -> int:
        return len(self._store)
