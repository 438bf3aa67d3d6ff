"""Login flow glue between the lockout guard and the credential verifier.

Failures are counted per account and, when enabled, per client address; a
login is refused while either key is locked. The lockout check always runs
before the credential check so a locked account costs no verification work
and reveals nothing about the supplied password.
"""

from __future__ import annotations

import logging

from request_shield.adapters.credentials import AbstractCredentialVerifier
from request_shield.adapters.lockout import AbstractLockoutGuard, LockoutStatus
from request_shield.adapters.lockout.base import UNLOCKED
from request_shield.core.client_key import account_key, address_key, hash_key, normalize_account
from request_shield.core.errors import AccountLockedAppError, AuthenticationAppError

logger = logging.getLogger(__name__)


class LoginService:
    """Authenticate accounts while enforcing the lockout policy."""

    def __init__(
        self,
        *,
        guard: AbstractLockoutGuard,
        verifier: AbstractCredentialVerifier,
        track_address: bool = True,
    ) -> None:
        self._guard = guard
        self._verifier = verifier
        self._track_address = track_address

    def lockout_keys(self, account: str | None, address: str | None) -> list[str]:
        keys: list[str] = []
        key = account_key(account)
        if key:
            keys.append(key)
        if self._track_address and address:
            keys.append(address_key(address))
        return keys

    def lockout_status(self, account: str | None, address: str | None) -> LockoutStatus:
        """Combined lock state; remaining time is the longest of the keys."""
        statuses = [self._guard.is_locked(key) for key in self.lockout_keys(account, address)]
        locked = [status for status in statuses if status.locked]
        if not locked:
            return UNLOCKED
        return max(locked, key=lambda status: status.remaining_lockout_seconds)

    def ensure_not_locked(self, account: str | None, address: str | None) -> None:
        """Raise AccountLockedAppError if the account or address is locked."""
        status = self.lockout_status(account, address)
        if status.locked:
            raise AccountLockedAppError.for_remaining(status.remaining_lockout_seconds)

    def login(self, account: str, password: str, address: str | None = None) -> str:
        """Verify credentials for ``account``.

        Args:
            account: Account identifier as supplied by the client.
            password: Supplied password.
            address: Client address, used for address-level lockout.

        Returns:
            str: Normalized account identifier on success.

        Raises:
            AccountLockedAppError: If the account/address is currently locked.
            AuthenticationAppError: If the credentials are invalid.
        """
        normalized = normalize_account(account) or ""
        keys = self.lockout_keys(normalized, address)
        self.ensure_not_locked(normalized, address)

        if not normalized or not self._verifier.verify(normalized, password):
            statuses = [self._guard.record_failure(key) for key in keys]
            logger.warning(
                "login.failed",
                extra={
                    "account_hash": hash_key(normalized),
                    "locked": any(status.locked for status in statuses),
                },
            )
            raise AuthenticationAppError(
                code="invalid_credentials",
                message="Invalid email or password",
            )

        for key in keys:
            self._guard.record_success(key)
        logger.info("login.succeeded", extra={"account_hash": hash_key(normalized)})
        return normalized
