"""Client routes. Managers create and edit clients; only admins delete them."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.api.envelope import ok
from app.api.v1.auth import get_current_user, require_admin, require_manager
from app.core.database import get_db
from app.schemas.auth import CurrentUser
from app.schemas.clients import ClientCreate, ClientOut, ClientUpdate
from app.schemas.common import MAX_LIMIT, ApiResponse
from app.services.clients import ClientService

router = APIRouter()


def get_client_service(db: Annotated[Session, Depends(get_db)]) -> ClientService:
    return ClientService(db)


@router.get("", response_model=ApiResponse[list[ClientOut]])
def list_clients(
    request: Request,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ClientService, Depends(get_client_service)],
    page: Annotated[int | None, Query(ge=1)] = None,
    limit: Annotated[int | None, Query(ge=1, le=MAX_LIMIT)] = None,
    sort: str | None = None,
    is_active: bool | None = None,
    search: Annotated[str | None, Query(max_length=255)] = None,
) -> ApiResponse:
    """Without page or limit every matching client is returned in one page."""
    clients, meta = service.list_clients(
        is_active=is_active, search=search, page=page, limit=limit, sort=sort
    )
    return ok(request, clients, meta=meta)


@router.post("", response_model=ApiResponse[ClientOut], status_code=status.HTTP_201_CREATED)
def create_client(
    body: ClientCreate,
    request: Request,
    _manager: Annotated[CurrentUser, Depends(require_manager)],
    service: Annotated[ClientService, Depends(get_client_service)],
) -> ApiResponse:
    return ok(request, service.create_client(body), message="Client created successfully")


@router.get("/{client_id}", response_model=ApiResponse[ClientOut])
def get_client(
    client_id: int,
    request: Request,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ClientService, Depends(get_client_service)],
) -> ApiResponse:
    return ok(request, service.get_client(client_id))


@router.patch("/{client_id}", response_model=ApiResponse[ClientOut])
def update_client(
    client_id: int,
    body: ClientUpdate,
    request: Request,
    _manager: Annotated[CurrentUser, Depends(require_manager)],
    service: Annotated[ClientService, Depends(get_client_service)],
) -> ApiResponse:
    return ok(request, service.update_client(client_id, body), message="Client updated successfully")


@router.delete("/{client_id}", response_model=ApiResponse[None])
def delete_client(
    client_id: int,
    request: Request,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[ClientService, Depends(get_client_service)],
) -> ApiResponse:
    service.delete_client(client_id)
    return ok(request, message="Client deleted successfully")
