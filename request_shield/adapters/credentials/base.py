"""Credential verifier interface.

The defense layer never checks passwords itself; the login service delegates
to an implementation of this interface (user repository, identity provider,
or the in-memory adapter used for local runs and tests).
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractCredentialVerifier(ABC):
    """Interface for credential checks."""

    @abstractmethod
    def verify(self, account: str, password: str) -> bool:
        """Return True when ``password`` is valid for ``account``.

        Args:
            account: Normalized account identifier (lower-cased e-mail).
            password: Password supplied by the client.
        """
        raise NotImplementedError
