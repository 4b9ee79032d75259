"""Typed failures raised by services and translated to responses at the API boundary."""

from typing import Any


class ServiceError(Exception):
    """Base for failures the API layer maps to an error envelope."""

    code = "INTERNAL"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class BadRequest(ServiceError):
    """Request is well-formed but refers to something unusable (inactive client, unknown member)."""

    code = "BAD_REQUEST"
    status_code = 400
    default_message = "Bad request"


class Unauthorized(ServiceError):
    """Bad, expired or reused credentials or tokens."""

    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ServiceError):
    """Authenticated, but role or ownership does not allow the action."""

    code = "FORBIDDEN"
    status_code = 403
    default_message = "Forbidden"


class NotFound(ServiceError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class Conflict(ServiceError):
    """Uniqueness violation (email, active client name, team membership)."""

    code = "CONFLICT"
    status_code = 409
    default_message = "Conflict"


class ValidationFailed(ServiceError):
    """Business-rule validation that pydantic cannot express (e.g. task due before project start)."""

    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Validation failed"


class TokenError(Exception):
    """Raised by the token service when a JWT cannot be accepted."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TokenInvalid(TokenError):
    """Signature mismatch, malformed token or wrong token type."""


class TokenExpired(TokenError):
    """Token signature is valid but exp is in the past."""


class ConfigurationError(Exception):
    """Missing or unusable signing configuration. Fatal at startup, never per request."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
