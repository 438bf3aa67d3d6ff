from __future__ import annotations

from request_shield.api.routes.auth import router as auth_router
from request_shield.api.routes.health import router as health_router
from request_shield.api.routes.metrics import router as metrics_router

__all__ = ["auth_router", "health_router", "metrics_router"]
