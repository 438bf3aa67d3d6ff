"""Login lockout adapters - failed-attempt tracking per account/address."""

from request_shield.adapters.lockout.base import AbstractLockoutGuard, LockoutStatus
from request_shield.adapters.lockout.in_memory import InMemoryLockoutGuard, LockoutRecord

__all__ = [
    "AbstractLockoutGuard",
    "InMemoryLockoutGuard",
    "LockoutRecord",
    "LockoutStatus",
]
