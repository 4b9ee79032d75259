"""User management routes. Listing, creating and deleting users is admin only."""

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.api.envelope import ok
from app.api.v1.auth import get_current_user, require_admin
from app.core.config import get_settings
from app.core.database import get_db
from app.models.user import Role
from app.schemas.auth import CurrentUser
from app.schemas.common import MAX_LIMIT, ApiResponse
from app.schemas.users import UserCreate, UserCreated, UserOut, UserUpdate
from app.services.users import UserService

router = APIRouter()


def get_user_service(db: Annotated[Session, Depends(get_db)]) -> UserService:
    settings = get_settings()
    return UserService(
        db,
        password_rounds=settings.BCRYPT_ROUNDS,
        invitation_ttl=timedelta(hours=settings.INVITATION_EXPIRE_HOURS),
    )


@router.get("", response_model=ApiResponse[list[UserOut]])
def list_users(
    request: Request,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[UserService, Depends(get_user_service)],
    page: Annotated[int | None, Query(ge=1)] = None,
    limit: Annotated[int | None, Query(ge=1, le=MAX_LIMIT)] = None,
    sort: str | None = None,
    role: Role | None = None,
    is_active: bool | None = None,
    search: Annotated[str | None, Query(max_length=255)] = None,
) -> ApiResponse:
    users, meta = service.list_users(
        role=role, is_active=is_active, search=search, page=page, limit=limit, sort=sort
    )
    return ok(request, users, meta=meta)


@router.post("", response_model=ApiResponse[UserCreated], status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate,
    request: Request,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> ApiResponse:
    """Create an account. Without a password the response carries a one-time invitation password."""
    return ok(request, service.create_user(body), message="User created successfully")


@router.get("/{user_id}", response_model=ApiResponse[UserOut])
def get_user(
    user_id: int,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> ApiResponse:
    return ok(request, service.get_user(user_id, current_user))


@router.patch("/{user_id}", response_model=ApiResponse[UserOut])
def update_user(
    user_id: int,
    body: UserUpdate,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> ApiResponse:
    return ok(request, service.update_user(user_id, body, current_user), message="User updated successfully")


@router.delete("/{user_id}", response_model=ApiResponse[None])
def delete_user(
    user_id: int,
    request: Request,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> ApiResponse:
    service.delete_user(user_id)
    return ok(request, message="User deleted successfully")
