"""Response envelope, pagination metadata and shared field validators."""

import re
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from app.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100

_LETTER_AND_DIGIT = re.compile(r"^(?=.*[A-Za-z])(?=.*\d)")


def validate_password_strength(value: str) -> str:
    """Require 8-128 characters with at least one letter and one digit."""
    if not (PASSWORD_MIN_LEN <= len(value) <= PASSWORD_MAX_LEN):
        raise ValueError(
            f"Password must be between {PASSWORD_MIN_LEN} and {PASSWORD_MAX_LEN} characters"
        )
    if not _LETTER_AND_DIGIT.match(value):
        raise ValueError("Password must contain at least 1 letter and 1 digit")
    return value


def strip_required(value: str) -> str:
    """Trim surrounding whitespace and reject blank strings."""
    stripped = value.strip()
    if not stripped:
        raise ValueError("must not be blank")
    return stripped


class PageMeta(BaseModel):
    """Pagination metadata for list responses."""

    page: int
    limit: int
    total: int
    total_pages: int


class ErrorBody(BaseModel):
    code: str
    message: str
    details: list[dict[str, Any]] | None = None


class ApiResponse(BaseModel, Generic[T]):
    """Uniform envelope for every response: {success, data, message, meta, error, traceId}."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    data: T | None = None
    message: str | None = None
    meta: PageMeta | None = None
    error: ErrorBody | None = None
    trace_id: str = Field(default="unknown", alias="traceId")
