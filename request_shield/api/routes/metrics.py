from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response

from request_shield.core.config import settings
from request_shield.core.defense import get_metrics_exporter

router = APIRouter(tags=["Metrics"])


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """Prometheus scrape endpoint for the rate limiter gauges."""

    if not settings.app.metrics_enabled:
        raise HTTPException(status_code=404, detail="Metrics disabled")
    exporter = get_metrics_exporter()
    return Response(exporter.render(), media_type=exporter.content_type)
