"""
Prometheus metrics middleware for the Lead Insights API.

Exposes /metrics endpoint with request counters, latency histograms,
and scoring business metrics.
"""

import logging
import time

from fastapi import Request, Response
from prometheus_client import (
    Counter, Histogram, Gauge,
    generate_latest, CONTENT_TYPE_LATEST,
)
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Request metrics
REQUEST_COUNT = Counter(
    "lead_insights_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "lead_insights_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)
ACTIVE_REQUESTS = Gauge(
    "lead_insights_http_active_requests",
    "Currently active HTTP requests",
)

# Business metrics
PREDICTION_PROBABILITY = Histogram(
    "lead_insights_prediction_probability",
    "Predicted conversion probability distribution",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)
RECOMMENDATION_COUNT = Counter(
    "lead_insights_recommendations_total",
    "Next-best actions issued by recomputes",
    ["action"],
)
STALE_PREDICTIONS = Counter(
    "lead_insights_stale_predictions_total",
    "Recomputes discarded because a newer prediction was stored",
)


def record_prediction(probability: int, action: str):
    """Record a recomputed prediction."""
    PREDICTION_PROBABILITY.observe(probability)
    RECOMMENDATION_COUNT.labels(action=action).inc()


def record_stale_prediction():
    """Record a discarded stale recompute."""
    STALE_PREDICTIONS.inc()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware that records HTTP request metrics."""

    async def dispatch(self, request: Request, call_next):
        ACTIVE_REQUESTS.inc()
        start = time.time()

        try:
            response = await call_next(request)
        except Exception:
            ACTIVE_REQUESTS.dec()
            raise

        duration = time.time() - start
        endpoint = request.url.path

        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()
        REQUEST_LATENCY.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)
        ACTIVE_REQUESTS.dec()

        return response


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
