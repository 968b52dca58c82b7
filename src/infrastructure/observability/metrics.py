"""
Prometheus metrics definitions and FastAPI instrumentation.

Holds the billing and entitlement counters incremented by the Celery
tasks, and ``setup_metrics`` which adds request tracking and a
``/metrics`` endpoint to a FastAPI application.
"""

from __future__ import annotations

import time

from fastapi import FastAPI, Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response as StarletteResponse


# ======================================================================
# Custom metrics (module-level singletons)
# ======================================================================

api_requests_total = Counter(
    "api_requests_total",
    "Total number of API requests",
    labelnames=["method", "endpoint", "status"],
    registry=REGISTRY,
)

api_request_duration_seconds = Histogram(
    "api_request_duration_seconds",
    "Request latency in seconds",
    labelnames=["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

contract_billing_snapshots_total = Counter(
    "contract_billing_snapshots_total",
    "Billing snapshots written by invoice aggregation",
    labelnames=["final"],
    registry=REGISTRY,
)

customer_tier_updates_total = Counter(
    "customer_tier_updates_total",
    "Customer tier writes made by tier refreshes",
    labelnames=["package_type"],
    registry=REGISTRY,
)

support_tier_excluded_contracts_total = Counter(
    "support_tier_excluded_contracts_total",
    "Google Cloud contracts skipped by support classification for having no assets",
    registry=REGISTRY,
)


# ======================================================================
# Middleware for automatic request instrumentation
# ======================================================================

class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware that records request count and latency per endpoint."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        method = request.method
        start = time.perf_counter()
        response: Response = await call_next(request)
        duration = time.perf_counter() - start

        # The route is only resolved once the request has been routed.
        endpoint = self._get_path_template(request)

        api_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status=str(response.status_code),
        ).inc()

        api_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint,
        ).observe(duration)

        return response

    @staticmethod
    def _get_path_template(request: Request) -> str:
        """
        Resolve the route template (e.g. ``/contracts/{contract_id}``)
        so that label cardinality stays bounded.
        """
        route = request.scope.get("route")
        if route and hasattr(route, "path"):
            return route.path
        return request.url.path


# ======================================================================
# Setup helper
# ======================================================================

def setup_metrics(app: FastAPI) -> None:
    """
    Instrument a FastAPI application with Prometheus metrics.

    * Adds the ``PrometheusMiddleware`` for automatic request tracking.
    * Registers a ``/metrics`` endpoint that serves the Prometheus
      exposition format.
    """

    app.add_middleware(PrometheusMiddleware)

    @app.get("/metrics", include_in_schema=False)
    async def metrics_endpoint() -> StarletteResponse:
        body = generate_latest(REGISTRY)
        return StarletteResponse(
            content=body,
            media_type=CONTENT_TYPE_LATEST,
        )
