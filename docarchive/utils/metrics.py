"""
Prometheus Metrics

Collected in-process and exposed at ``/metrics``.
"""

import time
from collections.abc import Callable

from prometheus_client import Counter, Gauge, Histogram, Info
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

APP_INFO = Info("docarchive_app", "DocArchive application information")

HTTP_REQUESTS_TOTAL = Counter(
    "docarchive_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "docarchive_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

AUTH_ATTEMPTS_TOTAL = Counter(
    "docarchive_auth_attempts_total",
    "Login attempts by outcome",
    ["result"],
)

DOCUMENT_OPERATIONS_TOTAL = Counter(
    "docarchive_document_operations_total",
    "Document operations",
    ["operation"],
)

STORAGE_BYTES_UPLOADED = Counter(
    "docarchive_storage_bytes_uploaded_total",
    "Bytes written to the object store",
)

HEALTH_CHECK_STATUS = Gauge(
    "docarchive_health_check_status",
    "Health of a dependency (1 healthy, 0 unhealthy)",
    ["service"],
)


def set_app_info(version: str, environment: str) -> None:
    APP_INFO.info({"version": version, "environment": environment})


def record_auth_attempt(result: str) -> None:
    AUTH_ATTEMPTS_TOTAL.labels(result=result).inc()


def record_document_operation(operation: str) -> None:
    DOCUMENT_OPERATIONS_TOTAL.labels(operation=operation).inc()


def update_health_status(service: str, healthy: bool) -> None:
    HEALTH_CHECK_STATUS.labels(service=service).set(1 if healthy else 0)


def normalize_path(path: str) -> str:
    """``/api/v1/documents/12/versions/3`` -> ``/api/v1/documents/{id}/versions/{id}``"""
    return "/".join("{id}" if part.isdigit() else part for part in path.split("/"))


class PrometheusMiddleware(BaseHTTPMiddleware):
    EXCLUDED_PATHS = {"/metrics", "/health", "/favicon.ico"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in self.EXCLUDED_PATHS:
            return await call_next(request)

        method = request.method
        endpoint = normalize_path(path)
        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            HTTP_REQUEST_DURATION_SECONDS.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - start_time
            )
            HTTP_REQUESTS_TOTAL.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()

        return response
