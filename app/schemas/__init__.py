"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AuthResult,
    CurrentUser,
    FirstLoginRequest,
    FirstLoginResult,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SessionMetadata,
    TokenPair,
)
from app.schemas.clients import ClientCreate, ClientOut, ClientSummary, ClientUpdate
from app.schemas.common import ApiResponse, ErrorBody, PageMeta
from app.schemas.health import HealthResponse
from app.schemas.projects import (
    ObjectiveCreate,
    ObjectiveOut,
    ObjectiveUpdate,
    ProjectCreate,
    ProjectOut,
    ProjectUpdate,
    TaskCreate,
    TaskOut,
    TaskUpdate,
    TeamMemberAdd,
)
from app.schemas.users import UserCreate, UserCreated, UserOut, UserSummary, UserUpdate

__all__ = [
    "ApiResponse",
    "AuthResult",
    "ClientCreate",
    "ClientOut",
    "ClientSummary",
    "ClientUpdate",
    "CurrentUser",
    "ErrorBody",
    "FirstLoginRequest",
    "FirstLoginResult",
    "HealthResponse",
    "LoginRequest",
    "ObjectiveCreate",
    "ObjectiveOut",
    "ObjectiveUpdate",
    "PageMeta",
    "ProjectCreate",
    "ProjectOut",
    "ProjectUpdate",
    "RefreshRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "SessionMetadata",
    "TaskCreate",
    "TaskOut",
    "TaskUpdate",
    "TeamMemberAdd",
    "TokenPair",
    "UserCreate",
    "UserCreated",
    "UserOut",
    "UserSummary",
    "UserUpdate",
]
