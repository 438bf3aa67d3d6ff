from __future__ import annotations

from fastapi import APIRouter

from request_shield.core.defense import get_lockout_guard, get_rate_limiter
from request_shield.schemas.health import HealthResponse, LockoutHealth, RateLimitHealth

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Health check endpoint.

    Returns a status response plus the current tracker sizes. Used by load
    balancers and operators; never rate limited.
    """

    limiter = get_rate_limiter()
    return HealthResponse(
        rate_limit=RateLimitHealth(
            active_entries=limiter.active_entries,
            total_blocked_requests=limiter.total_blocked_requests,
        ),
        lockout=LockoutHealth(**get_lockout_guard().stats()),
    )
