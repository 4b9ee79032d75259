"""Auth routes and the auth dependencies (get_current_user, require_roles) used by every router."""

from functools import lru_cache
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.api.envelope import ok
from app.core.config import get_settings
from app.core.database import get_db
from app.core.errors import Forbidden, TokenError, TokenExpired, Unauthorized
from app.models.user import Role
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
from app.schemas.common import ApiResponse
from app.schemas.users import UserOut
from app.services import policy
from app.services.auth import AuthService
from app.services.credential_store import CredentialStore
from app.services.token_service import TokenConfig, TokenService

router = APIRouter()
security = HTTPBearer(auto_error=False)


@lru_cache
def get_token_service() -> TokenService:
    """One TokenService per process; raises ConfigurationError when secrets are missing."""
    return TokenService(TokenConfig.from_settings(get_settings()))


def get_auth_service(
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> AuthService:
    return AuthService(db, tokens, password_rounds=get_settings().BCRYPT_ROUNDS)


def session_metadata(request: Request) -> SessionMetadata:
    return SessionMetadata(
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def _resolve_principal(token: str, db: Session, tokens: TokenService) -> CurrentUser:
    try:
        claims = tokens.verify_access_token(token)
    except TokenExpired as e:
        raise Unauthorized("Access token expired") from e
    except TokenError as e:
        raise Unauthorized("Invalid access token") from e
    try:
        user_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise Unauthorized("Invalid access token") from e
    # Role and active flag come from the database, not the token.
    user = CredentialStore(db).get_active_user(user_id)
    if user is None:
        raise Unauthorized("Invalid or inactive user")
    return CurrentUser.model_validate(user)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> CurrentUser:
    """Dependency: require a valid Bearer access token for an active user. 401 otherwise."""
    if credentials is None:
        raise Unauthorized("Access token required")
    return _resolve_principal(credentials.credentials, db, tokens)


def get_current_user_optional(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> CurrentUser | None:
    """Like get_current_user, but anonymous requests get None. A bad token is still 401."""
    if credentials is None:
        return None
    return _resolve_principal(credentials.credentials, db, tokens)


def require_roles(*roles: Role):
    """Route-level role gate, checked before any resource is loaded."""

    def dependency(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if not policy.has_role(current_user, *roles):
            raise Forbidden("Insufficient permissions")
        return current_user

    return dependency


require_admin = require_roles(*policy.ADMIN_ONLY)
require_manager = require_roles(*policy.MANAGER_ROLES)


@router.post("/register", response_model=ApiResponse[AuthResult], status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
    current_user: Annotated[CurrentUser | None, Depends(get_current_user_optional)],
) -> ApiResponse:
    """
    Create an account and log it in. Anyone may register as project_member;
    admin and project_manager accounts need an admin bearer token.
    """
    if body.role not in (None, Role.PROJECT_MEMBER) and (
        current_user is None or not policy.has_role(current_user, *policy.ADMIN_ONLY)
    ):
        raise Forbidden("Only admins can register privileged accounts")
    result = service.register(
        email=str(body.email),
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
        metadata=session_metadata(request),
    )
    return ok(request, result, message="User registered successfully")


@router.post("/login", response_model=ApiResponse[AuthResult | FirstLoginResult])
def login(
    body: LoginRequest,
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse:
    """
    Authenticate with email and password. Send the access token as
    Authorization: Bearer <access_token>; keep the refresh token for /auth/refresh.
    Accounts with an invitation password get is_first_login instead of tokens.
    """
    result = service.login(str(body.email), body.password, session_metadata(request))
    if isinstance(result, FirstLoginResult):
        return ok(request, result, message="First login: set a new password via /auth/first-login")
    return ok(request, result, message="Login successful")


@router.post("/refresh", response_model=ApiResponse[TokenPair])
def refresh(
    body: RefreshRequest,
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse:
    """Exchange a refresh token for a new pair. Each refresh token works once."""
    pair = service.refresh(body.refresh_token, session_metadata(request))
    return ok(request, pair, message="Token refreshed successfully")


@router.post("/logout", response_model=ApiResponse[None])
def logout(
    body: RefreshRequest,
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse:
    service.logout(body.refresh_token)
    return ok(request, message="Logged out successfully")


@router.get("/me", response_model=ApiResponse[UserOut])
def me(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse:
    return ok(request, service.get_current_user(current_user.id))


@router.post("/reset-password", response_model=ApiResponse[None])
def reset_password(
    body: ResetPasswordRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse:
    """Set a new password (self, or any user for admins). Every session of that user ends."""
    if not policy.can_update_user(body.user_id, current_user):
        raise Forbidden("Cannot reset another user's password")
    service.reset_password(body.user_id, body.new_password)
    return ok(request, message="Password reset successfully")


@router.post("/first-login", response_model=ApiResponse[AuthResult])
def first_login(
    body: FirstLoginRequest,
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse:
    """Replace an invitation password with a real one and log in."""
    result = service.complete_first_login(
        str(body.email),
        body.default_password,
        body.new_password,
        session_metadata(request),
    )
    return ok(request, result, message="Password set successfully")
