"""Trace ids and the {success, data, message, meta, error, traceId} response envelope."""

import uuid
from typing import Any

from fastapi import Request

from app.schemas.common import ApiResponse, ErrorBody, PageMeta

TRACE_HEADER = "X-Trace-ID"


def trace_id(request: Request) -> str:
    """Trace id set by the middleware, or a fresh one if the middleware did not run."""
    value = getattr(request.state, "trace_id", None)
    if value is None:
        value = uuid.uuid4().hex
        request.state.trace_id = value
    return value


def ok(
    request: Request,
    data: Any = None,
    *,
    message: str | None = None,
    meta: PageMeta | None = None,
) -> ApiResponse:
    return ApiResponse(data=data, message=message, meta=meta, trace_id=trace_id(request))


def failure(request: Request, code: str, message: str, details: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    """Error envelope as a JSON-ready dict."""
    envelope = ApiResponse(
        success=False,
        error=ErrorBody(code=code, message=message, details=details),
        trace_id=trace_id(request),
    )
    return envelope.model_dump(mode="json", by_alias=True, exclude_none=True)
