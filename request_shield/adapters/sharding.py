"""Lock-striped key/value store shared by the in-memory trackers.

Keys are spread over a fixed number of shards, each a plain dict guarded by
its own lock. All reads and writes for a given key go through the same shard
lock, which makes per-key updates linearizable while unrelated keys proceed
in parallel. Nothing ever holds more than one shard lock at a time.
"""

from __future__ import annotations

import threading
from typing import Generic, Iterator, TypeVar

T = TypeVar("T")


class Shard(Generic[T]):
    """One lock-protected slice of the key space.

    ``counter`` is a per-shard event counter (e.g. blocked requests) that must
    only be incremented while holding ``lock``.
    """

    __slots__ = ("lock", "entries", "counter")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.entries: dict[str, T] = {}
        self.counter = 0


class ShardedStore(Generic[T]):
    """Fixed set of shards addressed by key hash."""

    def __init__(self, shard_count: int) -> None:
        if shard_count < 1:
            raise ValueError("shard_count must be >= 1")
        self._shards: tuple[Shard[T], ...] = tuple(Shard() for _ in range(shard_count))

    def shard_for(self, key: str) -> Shard[T]:
        return self._shards[hash(key) % len(self._shards)]

    def __iter__(self) -> Iterator[Shard[T]]:
        return iter(self._shards)

    def __len__(self) -> int:
        # len() of a dict is atomic; the total is a point-in-time approximation
        # under concurrent writes, which is all a gauge needs.
        return sum(len(shard.entries) for shard in self._shards)

    def counter_total(self) -> int:
        return sum(shard.counter for shard in self._shards)

    @property
    def shard_count(self) -> int:
        return len(self._shards)
