"""Pydantic schemas for the health endpoint."""

from __future__ import annotations

from pydantic import BaseModel


class RateLimitHealth(BaseModel):
    active_entries: int
    total_blocked_requests: int


class LockoutHealth(BaseModel):
    active_entries: int
    locked_entries: int
    total_lockouts: int


class HealthResponse(BaseModel):
    """Liveness status plus tracker sizes for quick operator checks."""

    status: str = "ok"
    rate_limit: RateLimitHealth
    lockout: LockoutHealth | None = None
