"""Endpoint categorisation for per-category rate limits.

Sensitive endpoints (authentication, payments, uploads, the contact form)
get much tighter budgets than ordinary reads. A request is counted under
its category key and, separately, under a per-address global key.
"""

from __future__ import annotations

from dataclasses import dataclass

from request_shield.core.config import DefenseSettings

_AUTH_PATHS = (
    "/auth/login",
    "/auth/admin-login",
    "/auth/register",
    "/auth/forgot-password",
    "/auth/reset-password",
)
_PAYMENT_PATHS = ("/payments/", "/wallet/")
_BOOKING_PATHS = ("/lessons/book", "/availabilities")
_WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

GLOBAL_CATEGORY = "global"


@dataclass(frozen=True)
class EndpointPolicy:
    """Counting category and per-window limit for one request."""

    category: str
    limit: int


def _contains_any(path: str, fragments: tuple[str, ...]) -> bool:
    return any(fragment in path for fragment in fragments)


def is_auth_endpoint(path: str) -> bool:
    return _contains_any(path, _AUTH_PATHS)


def is_excluded_path(path: str, cfg: DefenseSettings) -> bool:
    """Health checks, metrics scraping, uploaded files and static assets bypass the limiter."""

    if path in cfg.excluded_path_set:
        return True
    if _contains_any(path, cfg.excluded_fragment_tuple):
        return True
    return path.endswith(cfg.excluded_suffix_tuple) if cfg.excluded_suffix_tuple else False


def category_for(path: str) -> str:
    """Counting category for a path.

    Booking and other lesson routes share the ``lessons`` bucket, admin routes
    get their own, everything else lands in ``api``.
    """

    if is_auth_endpoint(path):
        return "auth"
    if _contains_any(path, _PAYMENT_PATHS):
        return "payment"
    if "/lessons/" in path:
        return "lessons"
    if "/upload" in path:
        return "upload"
    if "/contact" in path:
        return "contact"
    if "/admin/" in path:
        return "admin"
    return "api"


def limit_for(path: str, method: str, cfg: DefenseSettings) -> int:
    """Per-window request limit for a path/method pair."""

    if is_auth_endpoint(path):
        return cfg.rate_limit_auth_requests
    if _contains_any(path, _PAYMENT_PATHS):
        return cfg.rate_limit_payment_requests
    if _contains_any(path, _BOOKING_PATHS):
        return cfg.rate_limit_booking_requests
    if "/upload" in path:
        return cfg.rate_limit_upload_requests
    if "/contact" in path:
        return cfg.rate_limit_contact_requests
    if method.upper() in _WRITE_METHODS:
        return cfg.rate_limit_write_requests
    return cfg.rate_limit_requests


def resolve_policy(path: str, method: str, cfg: DefenseSettings) -> EndpointPolicy:
    return EndpointPolicy(category=category_for(path), limit=limit_for(path, method, cfg))
