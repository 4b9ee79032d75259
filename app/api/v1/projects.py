"""
Project routes, including team, objective and task sub-resources.

Writes are gated to admins and project managers at the route, except task PATCH:
an assigned project_member may update their own task, decided per task by the service.
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.api.envelope import ok
from app.api.v1.auth import get_current_user, require_manager
from app.core.database import get_db
from app.models.project import ProjectStatus
from app.schemas.auth import CurrentUser
from app.schemas.common import MAX_LIMIT, ApiResponse
from app.schemas.projects import (
    ObjectiveCreate,
    ObjectiveUpdate,
    ProjectCreate,
    ProjectOut,
    ProjectSortField,
    ProjectUpdate,
    TaskCreate,
    TaskUpdate,
    TeamMemberAdd,
)
from app.services.projects import ProjectService

router = APIRouter()

Manager = Annotated[CurrentUser, Depends(require_manager)]
Authenticated = Annotated[CurrentUser, Depends(get_current_user)]


def get_project_service(db: Annotated[Session, Depends(get_db)]) -> ProjectService:
    return ProjectService(db)


Projects = Annotated[ProjectService, Depends(get_project_service)]


@router.get("", response_model=ApiResponse[list[ProjectOut]])
def list_projects(
    request: Request,
    current_user: Authenticated,
    service: Projects,
    page: Annotated[int | None, Query(ge=1)] = None,
    limit: Annotated[int | None, Query(ge=1, le=MAX_LIMIT)] = None,
    search: Annotated[str | None, Query(max_length=255)] = None,
    status_filter: Annotated[ProjectStatus | None, Query(alias="status")] = None,
    client_id: Annotated[int | None, Query(ge=1)] = None,
    sort_by: ProjectSortField = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
) -> ApiResponse:
    """Project members only see projects they are on the team of."""
    projects, meta = service.list_projects(
        current_user,
        search=search,
        status=status_filter,
        client_id=client_id,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ok(request, projects, meta=meta)


@router.post("", response_model=ApiResponse[ProjectOut], status_code=status.HTTP_201_CREATED)
def create_project(body: ProjectCreate, request: Request, _manager: Manager, service: Projects) -> ApiResponse:
    return ok(request, service.create_project(body), message="Project created successfully")


@router.get("/{project_id}", response_model=ApiResponse[ProjectOut])
def get_project(project_id: int, request: Request, current_user: Authenticated, service: Projects) -> ApiResponse:
    return ok(request, service.get_project(project_id, current_user))


@router.patch("/{project_id}", response_model=ApiResponse[ProjectOut])
def update_project(
    project_id: int,
    body: ProjectUpdate,
    request: Request,
    current_user: Manager,
    service: Projects,
) -> ApiResponse:
    return ok(request, service.update_project(project_id, body, current_user), message="Project updated successfully")


@router.delete("/{project_id}", response_model=ApiResponse[None])
def delete_project(project_id: int, request: Request, current_user: Manager, service: Projects) -> ApiResponse:
    service.delete_project(project_id, current_user)
    return ok(request, message="Project deleted successfully")


@router.post("/{project_id}/team", response_model=ApiResponse[ProjectOut])
def add_team_member(
    project_id: int,
    body: TeamMemberAdd,
    request: Request,
    current_user: Manager,
    service: Projects,
) -> ApiResponse:
    return ok(request, service.add_team_member(project_id, body.user_id, current_user), message="Team member added")


@router.delete("/{project_id}/team/{user_id}", response_model=ApiResponse[ProjectOut])
def remove_team_member(
    project_id: int,
    user_id: int,
    request: Request,
    current_user: Manager,
    service: Projects,
) -> ApiResponse:
    return ok(request, service.remove_team_member(project_id, user_id, current_user), message="Team member removed")


@router.post("/{project_id}/objectives", response_model=ApiResponse[ProjectOut], status_code=status.HTTP_201_CREATED)
def create_objective(
    project_id: int,
    body: ObjectiveCreate,
    request: Request,
    current_user: Manager,
    service: Projects,
) -> ApiResponse:
    return ok(request, service.create_objective(project_id, body, current_user), message="Objective created")


@router.patch("/{project_id}/objectives/{objective_id}", response_model=ApiResponse[ProjectOut])
def update_objective(
    project_id: int,
    objective_id: int,
    body: ObjectiveUpdate,
    request: Request,
    current_user: Manager,
    service: Projects,
) -> ApiResponse:
    project = service.update_objective(project_id, objective_id, body, current_user)
    return ok(request, project, message="Objective updated")


@router.delete("/{project_id}/objectives/{objective_id}", response_model=ApiResponse[ProjectOut])
def delete_objective(
    project_id: int,
    objective_id: int,
    request: Request,
    current_user: Manager,
    service: Projects,
) -> ApiResponse:
    return ok(request, service.delete_objective(project_id, objective_id, current_user), message="Objective deleted")


@router.post("/{project_id}/tasks", response_model=ApiResponse[ProjectOut], status_code=status.HTTP_201_CREATED)
def create_task(
    project_id: int,
    body: TaskCreate,
    request: Request,
    current_user: Manager,
    service: Projects,
) -> ApiResponse:
    return ok(request, service.create_task(project_id, body, current_user), message="Task created")


@router.patch("/{project_id}/tasks/{task_id}", response_model=ApiResponse[ProjectOut])
def update_task(
    project_id: int,
    task_id: int,
    body: TaskUpdate,
    request: Request,
    current_user: Authenticated,
    service: Projects,
) -> ApiResponse:
    return ok(request, service.update_task(project_id, task_id, body, current_user), message="Task updated")


@router.delete("/{project_id}/tasks/{task_id}", response_model=ApiResponse[ProjectOut])
def delete_task(
    project_id: int,
    task_id: int,
    request: Request,
    current_user: Manager,
    service: Projects,
) -> ApiResponse:
    return ok(request, service.delete_task(project_id, task_id, current_user), message="Task deleted")
