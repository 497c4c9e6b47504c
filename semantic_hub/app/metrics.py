from __future__ import annotations

import time

from fastapi import Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

from semantic_hub.app.settings import settings

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
CHUNKS_INGESTED = Counter(
    "semantic_hub_chunks_ingested_total",
    "Chunks persisted by ingestion runs",
)
ANSWERS = Counter(
    "semantic_hub_answers_total",
    "Answers returned by the query pipeline",
    ["mode"],
)


def _route_path(request: Request) -> str:
    # Templated route path keeps document IDs out of label values.
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


async def metrics_middleware(request: Request, call_next):
    if not settings.metrics_enabled:
        return await call_next(request)
    if request.url.path == "/metrics":
        return await call_next(request)
    start = time.monotonic()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        duration = time.monotonic() - start
        path = _route_path(request)
        REQUEST_COUNT.labels(request.method, path, str(status)).inc()
        REQUEST_LATENCY.labels(request.method, path).observe(duration)


def record_ingested(count: int) -> None:
    if settings.metrics_enabled and count > 0:
        CHUNKS_INGESTED.inc(count)


def record_answer(mode: str) -> None:
    if settings.metrics_enabled:
        ANSWERS.labels(mode).inc()


def metrics_response() -> Response:
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
