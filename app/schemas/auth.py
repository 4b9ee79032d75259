"""Request/response schemas for auth endpoints."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.models.user import Role
from app.schemas.common import strip_required, validate_password_strength
from app.schemas.users import UserOut


class RegisterRequest(BaseModel):
    """Self-registration. Role defaults to project_member."""

    email: EmailStr
    password: str
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    role: Role | None = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: str) -> str:
        return strip_required(v)


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class RefreshRequest(BaseModel):
    """Body for /refresh and /logout."""

    refresh_token: str = Field(..., min_length=1, description="Refresh token from login or refresh")


class ResetPasswordRequest(BaseModel):
    user_id: int = Field(..., ge=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return validate_password_strength(v)


class FirstLoginRequest(BaseModel):
    """Exchange an invitation password for a real one."""

    email: EmailStr
    default_password: str = Field(..., min_length=1, max_length=128)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return validate_password_strength(v)


SESSION_IP_MAX_LEN = 64
SESSION_USER_AGENT_MAX_LEN = 512


class SessionMetadata(BaseModel):
    """Client details recorded with each refresh token, cut to the column widths."""

    ip: str | None = None
    user_agent: str | None = None

    @field_validator("ip")
    @classmethod
    def truncate_ip(cls, v: str | None) -> str | None:
        return v[:SESSION_IP_MAX_LEN] if v is not None else None

    @field_validator("user_agent")
    @classmethod
    def truncate_user_agent(cls, v: str | None) -> str | None:
        return v[:SESSION_USER_AGENT_MAX_LEN] if v is not None else None


class TokenPair(BaseModel):
    """Access and refresh tokens returned after login, registration or rotation."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token (single use)")
    token_type: str = Field(default="bearer", description="Token type")


class AuthResult(TokenPair):
    """Sanitized user plus a fresh token pair."""

    user: UserOut


class FirstLoginResult(BaseModel):
    """Login with an invitation password: no tokens until the password is reset."""

    user_id: int
    is_first_login: Literal[True] = True


class CurrentUser(BaseModel):
    """Authenticated principal (id, email, role) for dependency injection and policy checks."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: Role
    first_name: str = ""
    last_name: str = ""
