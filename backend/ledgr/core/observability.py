"""
Prometheus instrumentation for the Ledgr API.

This module sets up:
- Request/exception counters and latency histogram
- PDF render and artifact cache hit counters
- The /metrics endpoint handler
"""

from __future__ import annotations

import re
import time

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Request, Response
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

_ID_SEGMENT = re.compile(r"/(?:[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}|\d+)")

http_requests_total = Counter(
    "http_server_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"]
)

http_request_duration_seconds = Histogram(
    "http_server_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

http_exceptions_total = Counter(
    "http_server_exceptions_total",
    "Total unhandled exceptions",
    ["method", "path", "exception_type"]
)

pdf_renders_total = Counter(
    "ledgr_pdf_renders_total",
    "Invoice PDFs rendered and uploaded",
)

pdf_cache_hits_total = Counter(
    "ledgr_pdf_cache_hits_total",
    "Invoice PDF requests served from an existing artifact",
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Count and time every request, labelled by its route template."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        except Exception as exc:
            http_exceptions_total.labels(
                method=request.method,
                path=route_label(request),
                exception_type=type(exc).__name__,
            ).inc()
            raise
        finally:
            path = route_label(request)
            http_requests_total.labels(method=request.method, path=path, status=status).inc()
            http_request_duration_seconds.labels(method=request.method, path=path).observe(
                time.perf_counter() - start
            )


def route_label(request: Request) -> str:
    """Matched route template, e.g. ``/api/invoices/{invoice_id}/pdf``.

    Unmatched paths fall back to ``normalize_path`` so requests for unknown paths cannot
    blow up label cardinality.
    """
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    if template:
        return template
    return normalize_path(request.url.path)


def normalize_path(path: str) -> str:
    normalized = _ID_SEGMENT.sub("/{id}", path)
    return "/".join(normalized.split("/")[:5])


async def metrics_endpoint(request: Request) -> Response:
    return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
