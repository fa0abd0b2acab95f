"""
Rate Limiting

Per-client-IP fixed-window limits backed by slowapi. A default limit covers
every route; login, registration, password reset and upload carry stricter
decorators.
"""

from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from docarchive.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.api_rate_limit],
    storage_uri=settings.rate_limit_storage_uri,
    headers_enabled=True,
    enabled=settings.rate_limit_enabled,
)

auth_limit = limiter.limit(settings.auth_rate_limit)
password_reset_limit = limiter.limit(settings.password_reset_rate_limit)
upload_limit = limiter.limit(settings.upload_rate_limit)


def configure_rate_limiting(app) -> None:
    """
    Attach the limiter to the application.

    The 429 response itself is produced by
    ``docarchive.exception_handlers.rate_limit_exceeded_handler``.
    """
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
