"""Exception handlers and trace-id middleware: every failure leaves as an error envelope."""

import logging
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.envelope import TRACE_HEADER, failure, trace_id
from app.core.errors import ServiceError

logger = logging.getLogger(__name__)

_STATUS_TO_CODE = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
}


def _error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: list[dict] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    response = JSONResponse(
        status_code=status_code,
        content=failure(request, code, message, details),
        headers=headers,
    )
    response.headers[TRACE_HEADER] = trace_id(request)
    return response


def _validation_details(exc: RequestValidationError) -> list[dict]:
    details = []
    for error in exc.errors():
        # loc is ("body", "field", ...) or ("query", "name")
        location = [str(part) for part in error.get("loc", ())[1:]]
        details.append({"field": ".".join(location) or "body", "issue": error.get("msg", "Invalid value")})
    return details


def register_exception_handlers(app: FastAPI) -> None:
    """Install trace-id middleware and the handlers that produce the error envelope."""

    @app.middleware("http")
    async def add_trace_id(request: Request, call_next):
        request.state.trace_id = request.headers.get(TRACE_HEADER) or uuid.uuid4().hex
        response = await call_next(request)
        response.headers[TRACE_HEADER] = request.state.trace_id
        return response

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        log_fn = logger.error if exc.status_code >= 500 else logger.info
        log_fn(
            "Request failed: %s %s -> %s %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.code,
            extra={"trace_id": trace_id(request)},
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return _error_response(request, exc.status_code, exc.code, exc.message, exc.details, headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return _error_response(
            request,
            422,
            "VALIDATION_ERROR",
            "Validation failed",
            _validation_details(exc),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException):
        code = _STATUS_TO_CODE.get(exc.status_code, "INTERNAL" if exc.status_code >= 500 else "ERROR")
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return _error_response(request, exc.status_code, code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_uncaught(request: Request, exc: Exception):
        logger.exception(
            "Unhandled exception: %s %s",
            request.method,
            request.url.path,
            extra={"trace_id": trace_id(request)},
        )
        return _error_response(request, 500, "INTERNAL", "Internal server error")
