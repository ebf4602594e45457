from __future__ import annotations

import time
from typing import Iterable

from fastapi import APIRouter, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import PlainTextResponse

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# Business counters
orders_created_total = Counter(
    "orders_created_total",
    "Total number of orders accepted by the payment provider",
    labelnames=("checkout",),
)

# Outbound provider calls
dana_requests_total = Counter(
    "dana_requests_total",
    "Total number of signed calls made to the payment provider",
    labelnames=("operation", "outcome"),
)
dana_request_latency_seconds = Histogram(
    "dana_request_latency_seconds",
    "Payment provider call latency in seconds",
    labelnames=("operation",),
)

# Request latency histogram (seconds), labeled by route template and status code
request_latency_seconds = Histogram(
    "request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("route", "status_code"),
)


def inc_orders_created(checkout: str) -> None:
    orders_created_total.labels(checkout=checkout).inc()


def observe_dana_request(operation: str, outcome: str, duration: float) -> None:
    dana_requests_total.labels(operation=operation, outcome=outcome).inc()
    dana_request_latency_seconds.labels(operation=operation).observe(duration)


# Middleware for request timing
class MetricsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, exclude_routes: Iterable[str] | None = None):
        super().__init__(app)
        self.exclude_routes = set(exclude_routes or [])

    async def dispatch(self, request: Request, call_next):
        # Skip by raw path if configured (avoid measuring /metrics and /health)
        if request.url.path in self.exclude_routes:
            return await call_next(request)

        start = time.perf_counter()
        status_code = "500"
        try:
            response: Response = await call_next(request)
            status_code = str(response.status_code)
            return response
        finally:
            duration = time.perf_counter() - start
            route_tmpl = self._resolve_route_template(request)
            request_latency_seconds.labels(route=route_tmpl, status_code=status_code).observe(duration)

    @staticmethod
    def _resolve_route_template(request: Request) -> str:
        # Prefer the route path template (low-cardinality), fallback to raw path when unknown (404)
        route = request.scope.get("route")
        if route and getattr(route, "path", None):
            return route.path
        return request.url.path


# /metrics router
router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def metrics_endpoint():
    data = generate_latest()  # Prometheus exposition text
    return PlainTextResponse(content=data.decode("utf-8"), media_type=CONTENT_TYPE_LATEST)
