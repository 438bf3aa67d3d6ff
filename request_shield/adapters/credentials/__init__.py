"""Credential verification adapters used by the login service."""

from request_shield.adapters.credentials.base import AbstractCredentialVerifier
from request_shield.adapters.credentials.in_memory import (
    InMemoryCredentialVerifier,
    parse_credentials,
)

__all__ = [
    "AbstractCredentialVerifier",
    "InMemoryCredentialVerifier",
    "parse_credentials",
]
