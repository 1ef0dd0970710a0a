"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

INGEST_RUNS = Counter(
    "rrov_ingest_runs_total",
    "Ingestion runs by outcome",
    labelnames=("status",),
    registry=REGISTRY,
)

FILES_INDEXED = Counter(
    "rrov_files_indexed_total",
    "Files with at least one vector written",
    registry=REGISTRY,
)

VECTORS_WRITTEN = Counter(
    "rrov_vectors_written_total",
    "Vectors upserted into the index",
    registry=REGISTRY,
)

ITEM_FAILURES = Counter(
    "rrov_item_failures_total",
    "Per-item failures dropped by the pipeline",
    labelnames=("stage",),
    registry=REGISTRY,
)

QUERY_LATENCY = Histogram(
    "rrov_query_latency_seconds",
    "Latency of retrieval-augmented answers",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "INGEST_RUNS",
    "FILES_INDEXED",
    "VECTORS_WRITTEN",
    "ITEM_FAILURES",
    "QUERY_LATENCY",
    "metrics_response",
]
