"""HTTP middleware binding the log context for each request."""

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.core.context import clear_context, set_request_id, set_trace_id, trace_id_from_headers


logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id, bind it for logging and echo it back.

    A caller-supplied ``X-Request-ID`` is reused. Requests whose path starts
    with one of ``exclude_paths`` (health probes) are not logged.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = tuple(exclude_paths or ["/health"])

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()

        request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        set_trace_id(trace_id_from_headers(request.headers))
        request.state.request_id = request_id

        log = self.log_requests and not request.url.path.startswith(self.exclude_paths)

        try:
            response = await call_next(request)
            if log:
                _log_response(request, response, _elapsed_ms(started))
        except Exception:
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=_elapsed_ms(started),
            )
            raise
        finally:
            clear_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _log_response(request: Request, response: Response, duration_ms: float) -> None:
    if response.status_code >= 500:
        emit = logger.error
    elif response.status_code >= 400:
        emit = logger.warning
    else:
        emit = logger.info

    emit(
        "request_completed",
        method=request.method,
        path=request.url.path,
        query=str(request.query_params) or None,
        status_code=response.status_code,
        duration_ms=duration_ms,
    )
