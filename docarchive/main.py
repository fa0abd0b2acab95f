"""
Application factory.

Builds the FastAPI app, wires middleware, exception handlers and routers, and
constructs the object-store and mail collaborators once so request handlers
receive them through dependencies.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docarchive.config import settings
from docarchive.database import init_models
from docarchive.exception_handlers import register_exception_handlers
from docarchive.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from docarchive.middleware.rate_limit import configure_rate_limiting
from docarchive.routes import admin, auth, comments, documents, messages, monitoring, notifications, users
from docarchive.scheduler import configure_scheduler, scheduler
from docarchive.services.email_service import EmailService
from docarchive.services.storage_service import StorageService
from docarchive.utils.metrics import PrometheusMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.warn_insecure_defaults()
    if not settings.is_production:
        await init_models()
        logger.info("Database tables ensured")

    configure_scheduler()
    scheduler.start()
    logger.info(f"{settings.app_name} {settings.app_version} started ({settings.environment})")
    try:
        yield
    finally:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def create_app(
    storage: StorageService | None = None,
    mailer: EmailService | None = None,
) -> FastAPI:
    setup_structured_logging(log_level=settings.log_level, json_format=settings.log_json)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.state.storage = storage or StorageService.from_settings(settings)
    app.state.mailer = mailer or EmailService.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(PrometheusMiddleware)
    configure_rate_limiting(app)
    register_exception_handlers(app)

    app.include_router(monitoring.router)
    for module in (auth, documents, users, comments, notifications, messages, admin):
        app.include_router(module.router, prefix=settings.api_prefix)

    return app


app = create_app()
