"""Request/response schemas for user management."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.models.user import Role
from app.schemas.common import strip_required, validate_password_strength


class UserOut(BaseModel):
    """Sanitized user: never carries password, refresh-token or invitation fields."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserSummary(BaseModel):
    """Compact user reference embedded in project responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: str
    role: Role


class UserCreate(BaseModel):
    """
    Admin-created account. When password is omitted a one-time invitation password is
    generated and returned once in UserCreated.temporary_password.
    """

    email: EmailStr
    password: str | None = Field(default=None, description="Leave empty to issue an invitation password")
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    role: Role

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return validate_password_strength(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: str) -> str:
        return strip_required(v)


class UserCreated(BaseModel):
    user: UserOut
    temporary_password: str | None = Field(
        default=None,
        description="Invitation password; shown only once, expires after INVITATION_EXPIRE_HOURS",
    )


class UserUpdate(BaseModel):
    """
    Explicit patch for a user. Only fields present in the request are applied.
    Non-admins updating themselves may only send first_name and last_name.
    """

    model_config = ConfigDict(extra="forbid")

    first_name: str | None = Field(default=None, min_length=1, max_length=255)
    last_name: str | None = Field(default=None, min_length=1, max_length=255)
    role: Role | None = None
    is_active: bool | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: str | None) -> str | None:
        return None if v is None else strip_required(v)


def sanitize_user(user: object) -> UserOut:
    """Project an ORM user onto the public shape (drops hashes and sessions)."""
    return UserOut.model_validate(user)
