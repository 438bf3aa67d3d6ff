"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers,
background eviction) to keep ``main`` trivial and tests able to build fresh
apps.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from request_shield.api.routes import auth_router, health_router, metrics_router
from request_shield.core.config import settings
from request_shield.core.defense import build_eviction_sweeper
from request_shield.core.defense_filter import defense_filter
from request_shield.core.exception_handlers import setup_exception_handlers
from request_shield.core.logging import configure_logging
from request_shield.core.middleware import request_id_middleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the eviction sweeper for the lifetime of the app."""
    sweeper = build_eviction_sweeper()
    sweeper.start()
    app.state.eviction_sweeper = sweeper

    cfg = settings.app
    logger.info(
        "defense.started",
        extra={
            "rate_limit_enabled": cfg.rate_limit_enabled,
            "window_s": cfg.rate_limit_window_seconds,
            "limit": cfg.rate_limit_requests,
            "lockout_threshold": cfg.lockout_threshold,
            "lockout_s": cfg.lockout_duration_seconds,
            "eviction_idle_s": cfg.eviction_idle_seconds,
        },
    )

    try:
        yield
    finally:
        sweeper.stop()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Request Shield",
        description=(
            "Request-defense layer for the lesson booking platform: per-client "
            "rate limiting on every request, account lockout on the login route, "
            "and Prometheus gauges for the limiter counters."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Middleware: the last one registered runs first, so the request id is
    # bound before the defense filter logs or rejects anything.
    app.middleware("http")(defense_filter)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(auth_router, prefix="/api")
    app.include_router(health_router)
    app.include_router(metrics_router)

    return app
