"""Client identity derivation for rate limiting and lockout.

Pure functions only: everything here is a deterministic mapping from request
data to an opaque key string. Keys are namespaced so address-scoped and
account-scoped state can never collide.
"""

from __future__ import annotations

import hashlib

from fastapi import Request

UNKNOWN_ADDRESS = "unknown"


def client_address(request: Request, *, trust_forwarded: bool = True) -> str:
    """Return the originating address of a request.

    When the service sits behind a reverse proxy, the first hop of
    ``X-Forwarded-For`` (or ``X-Real-IP``) is the client; otherwise the
    socket peer is used.

    Args:
        request: Incoming request.
        trust_forwarded: Honour proxy headers.

    Returns:
        str: Client address, or ``"unknown"`` if none can be determined.
    """

    if trust_forwarded:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            first_hop = forwarded_for.split(",")[0].strip()
            if first_hop:
                return first_hop
        real_ip = request.headers.get("x-real-ip")
        if real_ip and real_ip.strip():
            return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_ADDRESS


def normalize_account(identifier: str | None) -> str | None:
    """Lower-case and trim an account identifier; ``None`` when blank."""

    if identifier is None:
        return None
    normalized = identifier.strip().lower()
    return normalized or None


def account_key(identifier: str | None) -> str | None:
    """Lockout key for an account identifier (e-mail), or ``None`` when blank."""

    normalized = normalize_account(identifier)
    if normalized is None:
        return None
    return f"account:{normalized}"


def address_key(address: str) -> str:
    """Lockout key for a client address."""

    return f"ip:{address}"


def rate_limit_key(address: str, category: str) -> str:
    """Rate limit key for one address within one endpoint category."""

    return f"{address}:{category}"


def hash_key(key: str) -> str:
    """Hash a client key for logging without exposing the identity."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]
