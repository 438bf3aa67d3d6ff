"""Application-level exception types.

This module defines domain errors used across adapters, services and the
HTTP layer, enabling consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep shapes consistent without forcing every error
    to carry every field.
    """

    retry_after: int
    remaining_lockout_seconds: int
    limit: int
    scope: str
    setting: str


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input validation fails."""


class ConfigAppError(AppError):
    """Raised when the defense layer is configured inconsistently."""


class AuthenticationAppError(AppError):
    """Raised when credential verification fails."""


class RateLimitedAppError(AppError):
    """Raised when a client exceeded its request budget for the window."""

    @classmethod
    def for_retry(cls, retry_after: int, *, limit: int, scope: str) -> "RateLimitedAppError":
        return cls(
            code="rate_limited",
            message="Rate limit exceeded. Try again later.",
            details={"retry_after": retry_after, "limit": limit, "scope": scope},
        )

    @property
    def retry_after(self) -> int:
        return int((self.details or {}).get("retry_after", 0))


class AccountLockedAppError(AppError):
    """Raised when a login is attempted against a temporarily locked account."""

    @classmethod
    def for_remaining(cls, remaining_lockout_seconds: int) -> "AccountLockedAppError":
        minutes = remaining_lockout_seconds // 60 + 1
        return cls(
            code="account_locked",
            message=(
                "Account temporarily locked after too many failed login attempts. "
                f"Try again in {minutes} minute{'s' if minutes != 1 else ''}."
            ),
            details={"remaining_lockout_seconds": remaining_lockout_seconds},
        )

    @property
    def remaining_lockout_seconds(self) -> int:
        return int((self.details or {}).get("remaining_lockout_seconds", 0))
