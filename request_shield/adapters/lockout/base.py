"""Lockout guard interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from request_shield.core.errors import AccountLockedAppError


@dataclass(frozen=True)
class LockoutStatus:
    """Lock state of one key at the time of the query.

    ``remaining_lockout_seconds`` is 0 whenever ``locked`` is False.
    """

    locked: bool
    remaining_lockout_seconds: int = 0


UNLOCKED = LockoutStatus(locked=False)


class AbstractLockoutGuard(ABC):
    """Tracks consecutive authentication failures and temporary locks."""

    @abstractmethod
    def is_locked(self, key: str) -> LockoutStatus:
        """Return the lock state for ``key``. Never raises."""
        raise NotImplementedError

    @abstractmethod
    def record_failure(self, key: str) -> LockoutStatus:
        """Count a failed credential check; returns the resulting state."""
        raise NotImplementedError

    @abstractmethod
    def record_success(self, key: str) -> None:
        """Reset the failure count after a successful authentication."""
        raise NotImplementedError

    @abstractmethod
    def evict_idle(self, idle_seconds: float) -> int:
        """Remove unlocked records idle for longer than ``idle_seconds``."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, int]:
        """Counters: ``active_entries``, ``locked_entries``, ``total_lockouts``."""
        raise NotImplementedError

    def ensure_unlocked(self, key: str) -> None:
        """Raise if ``key`` is currently locked.

        Raises:
            AccountLockedAppError: Carrying the remaining lockout seconds.
        """
        status = self.is_locked(key)
        if status.locked:
            raise AccountLockedAppError.for_remaining(status.remaining_lockout_seconds)
