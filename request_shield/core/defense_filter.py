"""Request defense middleware.

Runs once per request, before any route logic:

1. excluded paths (health, metrics, static assets) pass straight through;
2. the client address is charged against its endpoint-category budget and
   its global budget; the first denial ends the request with HTTP 429;
3. on the login route, the account named in the JSON body (and the client
   address) is checked against the lockout guard; a locked account ends the
   request with HTTP 423 before credentials are looked at.

Denied requests never reach downstream handlers. Faults raised by the
trackers themselves are logged and propagated rather than being turned into
an allow or a deny.

Usage:
    app.middleware("http")(defense_filter)
"""

from __future__ import annotations

import json
import logging
import time

from fastapi import Request, Response

from request_shield.adapters.rate_limit.base import RateDecision
from request_shield.core.client_key import client_address, hash_key, rate_limit_key
from request_shield.core.config import DefenseSettings, settings
from request_shield.core.defense import get_login_service, get_rate_limiter
from request_shield.core.endpoint_policy import GLOBAL_CATEGORY, is_excluded_path, resolve_policy
from request_shield.core.errors import AccountLockedAppError, RateLimitedAppError
from request_shield.core.exception_handlers import render_app_error

logger = logging.getLogger(__name__)


def _rate_limit_headers(decision: RateDecision) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(int(time.time()) + decision.reset_after_seconds),
    }


def _acquire(key: str, limit: int) -> RateDecision:
    try:
        return get_rate_limiter().try_acquire(key, limit=limit)
    except Exception:
        logger.exception("defense.fault", extra={"component": "rate_limit", "key_hash": hash_key(key)})
        raise


def _check_rate_limits(
    request: Request,
    address: str,
    cfg: DefenseSettings,
) -> tuple[Response | None, dict[str, str]]:
    """Charge the endpoint and global budgets.

    Returns:
        (rejection response or None, headers to add to an allowed response)
    """
    path = request.url.path
    policy = resolve_policy(path, request.method, cfg)

    checks = (
        ("endpoint", rate_limit_key(address, policy.category), policy.limit),
        ("global", rate_limit_key(address, GLOBAL_CATEGORY), cfg.rate_limit_global_requests),
    )
    endpoint_decision: RateDecision | None = None
    for scope, key, limit in checks:
        decision = _acquire(key, limit)
        if endpoint_decision is None:
            endpoint_decision = decision
        if decision.allowed:
            continue

        retry_after = decision.retry_after_seconds or 1
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "key_hash": hash_key(key),
                "scope": scope,
                "category": policy.category,
                "path": path,
                "limit": decision.limit,
                "window_s": cfg.rate_limit_window_seconds,
                "retry_after_s": retry_after,
            },
        )
        headers = _rate_limit_headers(decision) if cfg.rate_limit_include_headers else {}
        error = RateLimitedAppError.for_retry(retry_after, limit=decision.limit, scope=scope)
        return render_app_error(error, headers=headers), {}

    if cfg.rate_limit_include_headers and endpoint_decision is not None:
        return None, _rate_limit_headers(endpoint_decision)
    return None, {}


async def _login_account(request: Request, field: str) -> str | None:
    """Account identifier from the login JSON body, if one can be read."""
    body = await request.body()
    if not body:
        return None
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    value = payload.get(field)
    return value if isinstance(value, str) else None


async def _check_lockout(request: Request, address: str, cfg: DefenseSettings) -> Response | None:
    account = await _login_account(request, cfg.login_account_field)
    status = get_login_service().lockout_status(account, address)
    if not status.locked:
        return None

    logger.warning(
        "lockout.rejected",
        extra={
            "account_hash": hash_key(account or ""),
            "remaining_lockout_s": status.remaining_lockout_seconds,
        },
    )
    return render_app_error(AccountLockedAppError.for_remaining(status.remaining_lockout_seconds))


def _is_login_request(request: Request, cfg: DefenseSettings) -> bool:
    return request.method.upper() == "POST" and request.url.path.rstrip("/") == cfg.login_path.rstrip("/")


async def defense_filter(request: Request, call_next) -> Response:
    """Rate limit and lockout gate in front of every route.

    Args:
        request: Incoming request.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: A 429/423 error response, or the downstream response with
            ``X-RateLimit-*`` headers for the endpoint budget.
    """
    cfg = settings.app
    if is_excluded_path(request.url.path, cfg):
        return await call_next(request)

    address = client_address(request, trust_forwarded=cfg.trust_forwarded_headers)

    rate_headers: dict[str, str] = {}
    if cfg.rate_limit_enabled:
        rejection, rate_headers = _check_rate_limits(request, address, cfg)
        if rejection is not None:
            return rejection

    if _is_login_request(request, cfg):
        rejection = await _check_lockout(request, address, cfg)
        if rejection is not None:
            return rejection

    response = await call_next(request)
    for name, value in rate_headers.items():
        response.headers.setdefault(name, value)
    return response
