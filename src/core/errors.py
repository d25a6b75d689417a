"""Application-wide exception handlers.

Every error response has the same envelope::

    {"error": true, "message": ..., "status_code": ..., "request_id": ...}

5xx messages are replaced by a generic text; stack traces never leave
the process.
"""

from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.context import get_request_id


logger = structlog.get_logger(__name__)

GENERIC_SERVER_ERROR = "Internal server error"


def error_response(
    request: Request,
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> ORJSONResponse:
    request_id = getattr(request.state, "request_id", None) or get_request_id()
    return ORJSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "message": message,
            "status_code": status_code,
            "request_id": request_id,
            **extra,
        },
        headers=headers,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> ORJSONResponse:
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=str(exc.detail),
        path=request.url.path,
        method=request.method,
    )
    message = (
        str(exc.detail)
        if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
        else GENERIC_SERVER_ERROR
    )
    return error_response(
        request, exc.status_code, message, headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """Malformed bodies and parameters are 400s, with per-field details."""
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    logger.warning(
        "validation_error",
        path=request.url.path,
        method=request.method,
        details=details,
    )
    return error_response(
        request, status.HTTP_400_BAD_REQUEST, "Validation error", details=details
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logger.exception(
        "unhandled_exception",
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
