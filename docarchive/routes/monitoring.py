"""
Monitoring Routes

Liveness probe and Prometheus metrics. Both live outside the API prefix and
are exempt from rate limiting.
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel

from docarchive.config import settings
from docarchive.middleware.rate_limit import limiter
from docarchive.utils.metrics import set_app_info

router = APIRouter(tags=["Monitoring"])

# Application start time for uptime calculation
APP_START_TIME = time.time()

set_app_info(version=settings.app_version, environment=settings.environment)


class HealthStatus(BaseModel):
    """Health check response model."""

    status: str
    timestamp: str
    version: str
    environment: str
    uptime_seconds: float


@router.get("/health", response_model=HealthStatus)
async def health_check(request: Request) -> HealthStatus:
    """
    Liveness probe endpoint.

    Fast and independent of the database and object store; the admin system
    health endpoint covers those.
    """
    return HealthStatus(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
        environment=settings.environment,
        uptime_seconds=round(time.time() - APP_START_TIME, 2),
    )


@router.get("/metrics")
async def prometheus_metrics(request: Request) -> Response:
    """Prometheus metrics in text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


for endpoint in (health_check, prometheus_metrics):
    limiter.exempt(endpoint)
