"""Rate limiter interfaces.

The HTTP layer, the eviction sweeper and the metrics collector depend on this
abstraction rather than on the concrete in-memory tracker.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateDecision:
    """Outcome of a ``try_acquire`` call.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window applied to this call.
        remaining: Requests left in the current window (0 when blocked).
        reset_after_seconds: Seconds until the current window ends.
        retry_after_seconds: Suggested wait when blocked, ``None`` when allowed.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_after_seconds: int
    retry_after_seconds: int | None

    @property
    def denied(self) -> bool:
        return not self.allowed


class AbstractRateLimiter(ABC):
    """Interface for per-key rate limiters."""

    @abstractmethod
    def try_acquire(self, key: str, *, limit: int | None = None) -> RateDecision:
        """Count one request for ``key`` and decide whether it is allowed.

        Args:
            key: Client key (see ``request_shield.core.client_key``).
            limit: Per-call limit; defaults to the limiter's configured limit.

        Returns:
            RateDecision describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def evict_idle(self, idle_seconds: float) -> int:
        """Remove entries not accessed for more than ``idle_seconds``.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError

    @property
    @abstractmethod
    def total_blocked_requests(self) -> int:
        """Cumulative number of denied requests since construction."""
        raise NotImplementedError

    @property
    @abstractmethod
    def active_entries(self) -> int:
        """Number of keys currently tracked."""
        raise NotImplementedError
