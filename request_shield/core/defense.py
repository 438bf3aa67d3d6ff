"""Process-wide defense components.

The limiter, lockout guard, credential verifier and metrics exporter are
module-level singletons so their state survives across requests. If the
relevant configuration changes (primarily in tests), the instance is rebuilt.
"""

from __future__ import annotations

from request_shield.adapters.credentials import AbstractCredentialVerifier, InMemoryCredentialVerifier
from request_shield.adapters.lockout import AbstractLockoutGuard, InMemoryLockoutGuard
from request_shield.adapters.rate_limit.base import AbstractRateLimiter
from request_shield.adapters.rate_limit.in_memory import ShardedFixedWindowRateLimiter
from request_shield.core.config import settings
from request_shield.core.eviction import EvictionSweeper, SweepTarget, rate_limit_target
from request_shield.core.metrics import MetricsExporter
from request_shield.services.login_service import LoginService


_limiter: AbstractRateLimiter | None = None
_limiter_config: tuple | None = None

_lockout_guard: AbstractLockoutGuard | None = None
_lockout_config: tuple | None = None

_verifier: AbstractCredentialVerifier | None = None
_verifier_config: str | None = None

_exporter: MetricsExporter | None = None
_exporter_limiter: AbstractRateLimiter | None = None


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide rate limiter."""

    global _limiter, _limiter_config

    cfg = settings.app
    config = (
        cfg.rate_limit_requests,
        cfg.rate_limit_window_seconds,
        cfg.rate_limit_shard_count,
    )

    if _limiter is None or _limiter_config != config:
        _limiter = ShardedFixedWindowRateLimiter(
            limit=cfg.rate_limit_requests,
            window_seconds=cfg.rate_limit_window_seconds,
            shard_count=cfg.rate_limit_shard_count,
        )
        _limiter_config = config

    return _limiter


def get_lockout_guard() -> AbstractLockoutGuard:
    """Return the process-wide login lockout guard."""

    global _lockout_guard, _lockout_config

    cfg = settings.app
    config = (
        cfg.lockout_threshold,
        cfg.lockout_duration_seconds,
        cfg.rate_limit_shard_count,
    )

    if _lockout_guard is None or _lockout_config != config:
        _lockout_guard = InMemoryLockoutGuard(
            threshold=cfg.lockout_threshold,
            lockout_seconds=cfg.lockout_duration_seconds,
            shard_count=cfg.rate_limit_shard_count,
        )
        _lockout_config = config

    return _lockout_guard


def get_credential_verifier() -> AbstractCredentialVerifier:
    """Return the credential verifier built from ``AUTH_CREDENTIALS``."""

    global _verifier, _verifier_config

    raw = settings.auth.credentials
    if _verifier is None or _verifier_config != raw:
        _verifier = InMemoryCredentialVerifier.from_string(raw)
        _verifier_config = raw

    return _verifier


def get_metrics_exporter() -> MetricsExporter:
    """Return the metrics exporter bound to the current rate limiter."""

    global _exporter, _exporter_limiter

    limiter = get_rate_limiter()
    if _exporter is None or _exporter_limiter is not limiter:
        _exporter = MetricsExporter(limiter)
        _exporter_limiter = limiter

    return _exporter


def get_login_service() -> LoginService:
    """Login service wired to the current lockout guard and verifier."""

    return LoginService(
        guard=get_lockout_guard(),
        verifier=get_credential_verifier(),
        track_address=settings.app.lockout_track_address,
    )


def build_eviction_sweeper() -> EvictionSweeper:
    """Create a sweeper over the current limiter and lockout guard.

    Raises:
        ConfigAppError: If the idle threshold would evict live windows.
    """

    cfg = settings.app
    targets = [
        rate_limit_target(
            get_rate_limiter(),
            window_seconds=cfg.rate_limit_window_seconds,
            idle_seconds=cfg.eviction_idle_seconds,
        ),
        SweepTarget(
            name="lockout",
            tracker=get_lockout_guard(),
            idle_seconds=cfg.lockout_idle_seconds,
        ),
    ]
    return EvictionSweeper(targets, interval_seconds=cfg.eviction_interval_seconds)


def reset_defense_state() -> None:
    """Drop all singletons so the next access starts from empty state."""

    global _limiter, _limiter_config, _lockout_guard, _lockout_config
    global _verifier, _verifier_config, _exporter, _exporter_limiter

    _limiter = _limiter_config = None
    _lockout_guard = _lockout_config = None
    _verifier = _verifier_config = None
    _exporter = _exporter_limiter = None
