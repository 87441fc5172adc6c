"""Prometheus metrics.

HTTP requests are instrumented by a middleware. The domain services count
notification emails and certificate lifecycle events directly.
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import FastAPI, Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response

METRICS_PATH = "/metrics"

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
REQUEST_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "In-progress HTTP requests",
    ["method"],
)

# outcome: sent | failed | invalid_recipient | render_error
NOTIFICATION_EMAILS = Counter(
    "notification_emails_total",
    "Notification emails by template and outcome",
    ["template", "outcome"],
)
# event: created | verified | tamper_detected | revoked
SIGNATURE_CERTIFICATES = Counter(
    "signature_certificates_total",
    "Signature certificate lifecycle events",
    ["event"],
)


def _get_route_path(request: Request) -> str:
    # Label with the route template, never the raw path.
    route: Any | None = request.scope.get("route")
    path = getattr(route, "path", None) if route is not None else None
    if isinstance(path, str) and path:
        return path
    return "unknown"


def setup_metrics(app: FastAPI) -> None:
    """Attach the request middleware and the /metrics endpoint to the app."""

    @app.middleware("http")
    async def metrics_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path == METRICS_PATH:
            return await call_next(request)

        method = request.method
        REQUEST_IN_PROGRESS.labels(method=method).inc()
        start = time.perf_counter()
        status_code = "500"
        try:
            response = await call_next(request)
            status_code = str(response.status_code)
            return response
        finally:
            path = _get_route_path(request)
            REQUEST_LATENCY.labels(method=method, path=path).observe(time.perf_counter() - start)
            REQUEST_COUNT.labels(method=method, path=path, status_code=status_code).inc()
            REQUEST_IN_PROGRESS.labels(method=method).dec()

    @app.get(METRICS_PATH, include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
