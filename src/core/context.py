"""Per-request values copied into every log entry.

Backed by contextvars so concurrent requests never see each other's ids.
"""

from collections.abc import Mapping
from contextvars import ContextVar
from typing import Any
from uuid import uuid4


_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_user_id: ContextVar[str | None] = ContextVar("user_id", default=None)
_trace_id: ContextVar[str | None] = ContextVar("trace_id", default=None)

TRACE_ID_HEADER = "x-trace-id"
TRACEPARENT_HEADER = "traceparent"


def set_request_id(request_id: str | None = None) -> str:
    """Bind the request id, minting one when the caller sent none."""
    value = request_id or uuid4().hex
    _request_id.set(value)
    return value


def get_request_id() -> str | None:
    return _request_id.get()


def set_user_id(user_id: str | None) -> None:
    """Bind the authenticated caller."""
    _user_id.set(user_id)


def set_trace_id(trace_id: str | None) -> None:
    _trace_id.set(trace_id)


def trace_id_from_headers(headers: Mapping[str, str]) -> str | None:
    """Trace id from ``X-Trace-ID`` or a W3C ``traceparent`` header.

    traceparent is ``version-traceid-parentid-flags``.
    """
    explicit = headers.get(TRACE_ID_HEADER)
    if explicit:
        return explicit

    parts = (headers.get(TRACEPARENT_HEADER) or "").split("-")
    if len(parts) >= 2 and parts[1]:
        return parts[1]
    return None


def get_context() -> dict[str, Any]:
    """Bound values, unset ones omitted."""
    values = {
        "request_id": _request_id.get(),
        "user_id": _user_id.get(),
        "trace_id": _trace_id.get(),
    }
    return {key: value for key, value in values.items() if value}


def clear_context() -> None:
    for var in (_request_id, _user_id, _trace_id):
        var.set(None)
