"""Background eviction of idle tracker state.

The sweeper runs on its own daemon thread at a fixed interval, independent of
request traffic, and asks each registered tracker to drop entries that have
been idle for longer than that tracker's threshold. Trackers evict shard by
shard under their own per-shard locks, so a sweep never blocks request
threads for longer than one shard scan.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Iterable, Protocol

from request_shield.adapters.rate_limit.base import AbstractRateLimiter
from request_shield.core.errors import ConfigAppError

logger = logging.getLogger(__name__)


class Evictable(Protocol):
    def evict_idle(self, idle_seconds: float) -> int: ...


@dataclass(frozen=True)
class SweepTarget:
    """A tracker plus the idle threshold applied to it.

    ``min_idle_seconds`` is the lower bound the threshold must exceed (the
    rate window for a limiter); the sweeper rejects targets at or below it.
    """

    name: str
    tracker: Evictable
    idle_seconds: float
    min_idle_seconds: float = 0.0


def rate_limit_target(
    limiter: AbstractRateLimiter,
    *,
    window_seconds: float,
    idle_seconds: float,
) -> SweepTarget:
    """Sweep target for a rate limiter; its threshold must exceed the window."""
    return SweepTarget(
        name="rate_limit",
        tracker=limiter,
        idle_seconds=idle_seconds,
        min_idle_seconds=window_seconds,
    )


class EvictionSweeper:
    """Periodic idle-entry sweeper for in-memory trackers.

    Raises:
        ConfigAppError: If a target's idle threshold does not exceed its
            ``min_idle_seconds``, which would allow live windows to be evicted.
    """

    def __init__(self, targets: Iterable[SweepTarget], *, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._targets = tuple(targets)
        for target in self._targets:
            if target.idle_seconds <= target.min_idle_seconds:
                raise ConfigAppError(
                    code="invalid_eviction_threshold",
                    message=(
                        f"Eviction idle threshold for {target.name} must be greater "
                        f"than {target.min_idle_seconds}s"
                    ),
                    details={"setting": "APP_EVICTION_IDLE_SECONDS", "scope": target.name},
                )
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def sweep_once(self) -> dict[str, int]:
        """Run one eviction pass over every target.

        Every target is swept even if an earlier one fails; the first failure
        is re-raised once all targets have run.

        Returns:
            Number of entries removed per target name.
        """
        start = time.perf_counter()
        removed: dict[str, int] = {}
        failure: Exception | None = None
        for target in self._targets:
            try:
                removed[target.name] = target.tracker.evict_idle(target.idle_seconds)
            except Exception as exc:
                logger.exception("eviction.target_failed", extra={"target": target.name})
                if failure is None:
                    failure = exc
        if failure is not None:
            raise failure
        duration_ms = (time.perf_counter() - start) * 1000

        if any(removed.values()):
            logger.info(
                "eviction.sweep_completed",
                extra={"removed": removed, "duration_ms": round(duration_ms, 2)},
            )
        else:
            logger.debug("eviction.sweep_completed", extra={"removed": removed})
        return removed

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.sweep_once()
            except Exception:
                # Keep sweeping; a dead sweeper would let the maps grow unbounded.
                logger.exception("eviction.sweep_failed")

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="eviction-sweeper", daemon=True)
        self._thread.start()
        logger.info(
            "eviction.started",
            extra={
                "interval_s": self._interval,
                "targets": [target.name for target in self._targets],
            },
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("eviction.stopped")
