"""
Global Exception Handlers for DocArchive

Error Response Format:
{
    "status": "error",
    "message": "Document not found",
    "errors": [{"field": "email", "message": "..."}]     # optional
}
"""

import logging
from typing import Any, Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from docarchive.exceptions import DocArchiveError

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    message: str,
    errors: list[dict[str, Any]] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """
    Create a standardized error response.

    Args:
        status_code: HTTP status code
        message: Human-readable error message
        errors: Optional per-field error list

    Returns:
        JSONResponse with the error envelope
    """
    content: dict[str, Any] = {"status": "error", "message": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _field_name(loc: tuple, skip: tuple = ("body", "query", "path", "form")) -> str:
    parts = [str(part) for part in loc if part not in skip]
    return ".".join(parts)


async def docarchive_exception_handler(request: Request, exc: DocArchiveError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(f"{type(exc).__name__}: {exc.message}", extra={"path": request.url.path, "status_code": exc.status_code})
    return create_error_response(exc.status_code, exc.message, exc.errors or None)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Can't find {request.url.path} on this server!"
    else:
        message = str(exc.detail)

    logger.warning(f"HTTPException: {message}", extra={"status_code": exc.status_code, "path": request.url.path})
    return create_error_response(exc.status_code, message, headers=getattr(exc, "headers", None))


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, PydanticValidationError]
) -> JSONResponse:
    errors = [{"field": _field_name(tuple(error["loc"])), "message": error["msg"]} for error in exc.errors()]

    logger.warning(f"Validation error on {request.url.path}", extra={"path": request.url.path})

    return create_error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", errors)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(f"Rate limit exceeded on {request.url.path}: {exc.detail}")
    response = create_error_response(
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Too many requests from this IP, please try again later.",
    )
    limiter = getattr(request.app.state, "limiter", None)
    view_rate_limit = getattr(request.state, "view_rate_limit", None)
    if limiter is not None and view_rate_limit is not None:
        response = limiter._inject_headers(response, view_rate_limit)
    return response


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception: {str(exc)}",
        exc_info=True,
        extra={"path": request.url.path, "method": request.method},
    )

    # Don't expose internal error details
    return create_error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Something went wrong!")


def register_exception_handlers(app) -> None:
    """
    Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(DocArchiveError, docarchive_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    logger.info("Exception handlers registered successfully")
