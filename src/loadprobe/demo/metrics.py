"""Prometheus metrics and rate limiting for the demo users API."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from loadprobe._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Callable

LABELS = ("method", "path", "status")
LATENCY_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10)


class ServerMetrics:
    """Request counters and latency histogram on a private registry.

    Each app gets its own ``CollectorRegistry`` so several demo servers can
    live in one process without duplicate registration errors.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests by status code, method and path",
            LABELS,
            registry=self.registry,
        )
        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request latencies in seconds",
            LABELS,
            buckets=LATENCY_BUCKETS,
            registry=self.registry,
        )
        self.errors_total = Counter(
            "http_errors_total",
            "Total number of HTTP errors (status >= 400)",
            LABELS,
            registry=self.registry,
        )

    def observe(self, method: str, path: str, status: int, duration: float) -> None:
        labels = (method, path, str(status))
        self.requests_total.labels(*labels).inc()
        self.request_duration.labels(*labels).observe(duration)
        if status >= 400:
            self.errors_total.labels(*labels).inc()

    def render(self) -> bytes:
        return generate_latest(self.registry)

    def middleware(self) -> Callable[..., Any]:
        """Build a middleware recording every request, labelled by route template."""

        @web.middleware
        async def _metrics(request: web.Request, handler: web.Handler) -> web.StreamResponse:
            start = time.monotonic()
            status = 500
            try:
                response = await handler(request)
                status = response.status
            except web.HTTPException as exc:
                status = exc.status
                raise
            finally:
                duration = time.monotonic() - start
                self.observe(request.method, _route_path(request), status, duration)
            return response

        return _metrics

    async def handle(self, request: web.Request) -> web.Response:
        """``GET /metrics`` in the Prometheus text format."""
        return web.Response(body=self.render(), headers={"Content-Type": CONTENT_TYPE_LATEST})


def _route_path(request: web.Request) -> str:
    # "/api/users/{id}" rather than "/api/users/7", so label cardinality stays bounded.
    resource = request.match_info.route.resource
    if resource is None:
        return request.path
    return resource.canonical


class RateLimiter:
    """Fixed-window request limit per client address.

    Attributes:
        max_requests: Requests allowed per client within one window.
        window: Window length in seconds.
    """

    def __init__(self, max_requests: int, window: float = 1.0) -> None:
        if max_requests < 1:
            msg = f"max_requests must be at least 1, got {max_requests}"
            raise ConfigError(msg)
        if window <= 0:
            msg = f"window must be positive, got {window}"
            raise ConfigError(msg)
        self.max_requests = max_requests
        self.window = window
        self._windows: dict[str, tuple[float, int]] = {}

    def allow(self, key: str, now: float | None = None) -> bool:
        """Count one request for ``key`` and report whether it is within the limit."""
        now = time.monotonic() if now is None else now
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window:
            started, count = now, 0
        count += 1
        self._windows[key] = (started, count)
        if len(self._windows) > 10_000:
            self._evict(now)
        return count <= self.max_requests

    def _evict(self, now: float) -> None:
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window]
        for key in expired:
            del self._windows[key]

    def middleware(self, exempt: tuple[str, ...] = ()) -> Callable[..., Any]:
        """Build a middleware answering 429 once a client exceeds the limit."""

        @web.middleware
        async def _limit(request: web.Request, handler: web.Handler) -> web.StreamResponse:
            if request.path not in exempt and not self.allow(request.remote or ""):
                return web.json_response({"error": "rate limit exceeded"}, status=429)
            return await handler(request)

        return _limit
