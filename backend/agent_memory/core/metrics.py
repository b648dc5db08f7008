"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "agmem_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "agmem_request_latency_seconds",
    "Latency of HTTP requests",
    labelnames=("endpoint", "method"),
    registry=REGISTRY,
)

INGEST_DURATION = Histogram(
    "agmem_ingest_duration_seconds",
    "Session ingest duration",
    labelnames=("outcome",),
    registry=REGISTRY,
)

SEARCH_LATENCY = Histogram(
    "agmem_search_latency_seconds",
    "Hybrid search latency",
    registry=REGISTRY,
)

INDEX_SIZE = Gauge(
    "agmem_index_entries",
    "Number of live (not deleted) entries in the search index",
    labelnames=("collection",),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "INGEST_DURATION",
    "SEARCH_LATENCY",
    "INDEX_SIZE",
    "metrics_response",
]
