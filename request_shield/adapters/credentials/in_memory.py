"""Environment-configured credential verifier.

Accounts are read from ``AUTH_CREDENTIALS`` as comma-separated
``email:sha256hex`` pairs, e.g.::

    AUTH_CREDENTIALS="alice@example.com:5e884898...,bob@example.com:..."
"""

from __future__ import annotations

import hashlib
import hmac

from request_shield.adapters.credentials.base import AbstractCredentialVerifier
from request_shield.core.client_key import normalize_account


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def parse_credentials(raw: str | None) -> dict[str, str]:
    """Parse ``email:sha256hex`` pairs into a mapping.

    Examples:
        >>> parse_credentials("A@x.io:abc, b@x.io:def")
        {'a@x.io': 'abc', 'b@x.io': 'def'}
        >>> parse_credentials(None)
        {}

    Raises:
        ValueError: If a pair has no ``:`` separator or an empty part.
    """
    if not raw:
        return {}

    credentials: dict[str, str] = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        account, sep, digest = pair.rpartition(":")
        normalized = normalize_account(account)
        if not sep or normalized is None or not digest.strip():
            raise ValueError("credentials must be 'email:sha256hex' pairs")
        credentials[normalized] = digest.strip().lower()
    return credentials


class InMemoryCredentialVerifier(AbstractCredentialVerifier):
    """Verify passwords against sha256 digests held in memory."""

    # Compared against when the account is unknown so timing does not reveal
    # which accounts exist.
    _DUMMY_DIGEST = hash_password("")

    def __init__(self, credentials: dict[str, str]) -> None:
        self._credentials = dict(credentials)

    @classmethod
    def from_string(cls, raw: str | None) -> "InMemoryCredentialVerifier":
        return cls(parse_credentials(raw))

    def verify(self, account: str, password: str) -> bool:
        expected = self._credentials.get(account)
        candidate = hash_password(password)
        matches = hmac.compare_digest(candidate, expected or self._DUMMY_DIGEST)
        return expected is not None and matches
