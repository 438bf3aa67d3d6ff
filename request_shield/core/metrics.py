"""Prometheus bridge for the rate limiter counters.

The limiter keeps its own counters; this module only reads them. A custom
collector samples the limiter's accessors at scrape time, so nothing is
pushed from the request path and no lock is held beyond what the accessors
take themselves.
"""

from __future__ import annotations

from typing import Iterator

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from request_shield.adapters.rate_limit.base import AbstractRateLimiter

BLOCKED_REQUESTS_METRIC = "rate_limit_blocked_requests_total"
ACTIVE_ENTRIES_METRIC = "rate_limit_active_entries"


class RateLimitMetricsCollector(Collector):
    """Expose limiter counters as gauges, sampled on each collect()."""

    def __init__(self, limiter: AbstractRateLimiter) -> None:
        self._limiter = limiter

    def collect(self) -> Iterator[GaugeMetricFamily]:
        yield GaugeMetricFamily(
            BLOCKED_REQUESTS_METRIC,
            "Total number of requests blocked by rate limiting",
            value=self._limiter.total_blocked_requests,
        )
        yield GaugeMetricFamily(
            ACTIVE_ENTRIES_METRIC,
            "Number of active rate limit tracking entries",
            value=self._limiter.active_entries,
        )


class MetricsExporter:
    """Owns the registry the defense metrics are published on.

    A dedicated registry (rather than the process default) keeps repeated app
    construction in tests from tripping duplicate-registration errors.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, limiter: AbstractRateLimiter, registry: CollectorRegistry | None = None) -> None:
        self._limiter = limiter
        self.registry = registry or CollectorRegistry()
        self.registry.register(RateLimitMetricsCollector(limiter))

    def snapshot(self) -> dict[str, int]:
        """Current gauge values, read without side effects."""
        return {
            BLOCKED_REQUESTS_METRIC: self._limiter.total_blocked_requests,
            ACTIVE_ENTRIES_METRIC: self._limiter.active_entries,
        }

    def render(self) -> bytes:
        """Prometheus text exposition of the registry."""
        return generate_latest(self.registry)
