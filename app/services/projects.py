"""
Projects with their team, objectives and tasks.

Every operation loads the project first, then asks app.services.policy whether the
principal may see or change it. Missing projects are NotFound before any Forbidden.
"""

import logging
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.errors import BadRequest, Conflict, Forbidden, NotFound, ValidationFailed
from app.models import Client, Objective, Project, ProjectStatus, Task, TaskStatus, User
from app.schemas.common import PageMeta
from app.schemas.projects import (
    ObjectiveCreate,
    ObjectiveUpdate,
    ProjectCreate,
    ProjectOut,
    ProjectUpdate,
    TaskCreate,
    TaskUpdate,
)
from app.services import policy
from app.services.pagination import paginate, parse_sort, resolve_page
from app.services.token_service import as_utc, utc_now

logger = logging.getLogger(__name__)

PROJECT_SORT_FIELDS = {
    "name": Project.name,
    "status": Project.status,
    "created_at": Project.created_at,
    "end_date": Project.end_date,
}


def _check_due_date(project: Project, due_date: datetime | None) -> None:
    if due_date is None or project.start_date is None:
        return
    if as_utc(due_date) < as_utc(project.start_date):
        raise ValidationFailed(
            "Task due date cannot be before the project start date",
            details=[{"field": "due_date", "issue": "Before project start_date"}],
        )


class ProjectService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _load(self, project_id: int) -> Project:
        project = self.session.get(Project, project_id)
        if project is None:
            raise NotFound("Project not found")
        return project

    def _load_for_change(self, project_id: int, principal: policy.Principal, action: str) -> Project:
        project = self._load(project_id)
        if not policy.can_modify_project(project, principal):
            raise Forbidden(f"Cannot modify {action}")
        return project

    def _active_client(self, client_id: int) -> Client:
        client = self.session.get(Client, client_id)
        if client is None or not client.is_active:
            raise BadRequest("Client not found or inactive")
        return client

    def _active_users(self, user_ids: list[int]) -> list[User]:
        if not user_ids:
            return []
        users = (
            self.session.query(User)
            .filter(User.id.in_(user_ids), User.is_active.is_(True))
            .all()
        )
        if len(users) != len(set(user_ids)):
            raise BadRequest("One or more team members not found or inactive")
        return users

    def _active_assignee(self, user_id: int | None) -> None:
        if user_id is None:
            return
        user = self.session.get(User, user_id)
        if user is None or not user.is_active:
            raise BadRequest("Assignee not found or inactive")

    def _saved(self, project: Project) -> ProjectOut:
        self.session.commit()
        self.session.refresh(project)
        return ProjectOut.model_validate(project)

    def create_project(self, data: ProjectCreate) -> ProjectOut:
        client = self._active_client(data.client_id)
        members = self._active_users(data.team_members)
        project = Project(
            name=data.name,
            description=data.description,
            channel=data.channel,
            status=data.status or ProjectStatus.DRAFT,
            client=client,
            start_date=data.start_date,
            end_date=data.end_date,
            team_members=members,
            objectives=[Objective(**o.model_dump()) for o in data.objectives],
        )
        self.session.add(project)
        out = self._saved(project)
        logger.info("Project created", extra={"project_id": project.id, "client_id": client.id})
        return out

    def get_project(self, project_id: int, principal: policy.Principal) -> ProjectOut:
        project = self._load(project_id)
        if not policy.can_access_project(project, principal):
            raise Forbidden("Access denied to this project")
        return ProjectOut.model_validate(project)

    def update_project(self, project_id: int, data: ProjectUpdate, principal: policy.Principal) -> ProjectOut:
        project = self._load_for_change(project_id, principal, "this project")
        changes = data.model_dump(exclude_unset=True)
        if changes.get("client_id") is not None:
            project.client = self._active_client(changes.pop("client_id"))
        changes.pop("client_id", None)
        for field in ("name", "channel", "status"):
            if field in changes and changes[field] is None:
                changes.pop(field)
        if changes.get("status") == ProjectStatus.COMPLETED and project.end_date is None and "end_date" not in changes:
            changes["end_date"] = utc_now()
        for field, value in changes.items():
            setattr(project, field, value)
        out = self._saved(project)
        logger.info("Project updated", extra={"project_id": project.id, "fields": sorted(changes)})
        return out

    def delete_project(self, project_id: int, principal: policy.Principal) -> None:
        project = self._load_for_change(project_id, principal, "this project")
        self.session.delete(project)
        self.session.commit()
        logger.info("Project deleted", extra={"project_id": project_id})

    def list_projects(
        self,
        principal: policy.Principal,
        *,
        search: str | None = None,
        status: ProjectStatus | None = None,
        client_id: int | None = None,
        page: int | None = None,
        limit: int | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[ProjectOut], PageMeta]:
        """Members only see projects they are on the team of; managers see all."""
        query = self.session.query(Project)
        if not policy.has_role(principal, *policy.MANAGER_ROLES):
            query = query.filter(Project.team_members.any(User.id == principal.id))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(Project.name.ilike(pattern), Project.description.ilike(pattern)))
        if status is not None:
            query = query.filter(Project.status == status)
        if client_id is not None:
            query = query.filter(Project.client_id == client_id)
        sort = f"-{sort_by}" if sort_order == "desc" else sort_by
        query = query.order_by(*parse_sort(sort, PROJECT_SORT_FIELDS, "-created_at"), Project.id)
        projects, meta = paginate(query, resolve_page(page, limit))
        return [ProjectOut.model_validate(p) for p in projects], meta

    def add_team_member(self, project_id: int, user_id: int, principal: policy.Principal) -> ProjectOut:
        project = self._load_for_change(project_id, principal, "project team")
        user = self.session.get(User, user_id)
        if user is None or not user.is_active:
            raise BadRequest("User not found or inactive")
        if user.id in project.team_member_ids:
            raise Conflict("User is already a team member")
        project.team_members.append(user)
        return self._saved(project)

    def remove_team_member(self, project_id: int, user_id: int, principal: policy.Principal) -> ProjectOut:
        project = self._load_for_change(project_id, principal, "project team")
        project.team_members = [m for m in project.team_members if m.id != user_id]
        return self._saved(project)

    def _objective(self, project: Project, objective_id: int) -> Objective:
        for objective in project.objectives:
            if objective.id == objective_id:
                return objective
        raise NotFound("Objective not found")

    def create_objective(self, project_id: int, data: ObjectiveCreate, principal: policy.Principal) -> ProjectOut:
        project = self._load_for_change(project_id, principal, "project objectives")
        project.objectives.append(Objective(**data.model_dump()))
        return self._saved(project)

    def update_objective(
        self,
        project_id: int,
        objective_id: int,
        data: ObjectiveUpdate,
        principal: policy.Principal,
    ) -> ProjectOut:
        project = self._load_for_change(project_id, principal, "project objectives")
        objective = self._objective(project, objective_id)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(objective, field, value)
        return self._saved(project)

    def delete_objective(self, project_id: int, objective_id: int, principal: policy.Principal) -> ProjectOut:
        project = self._load_for_change(project_id, principal, "project objectives")
        project.objectives.remove(self._objective(project, objective_id))
        return self._saved(project)

    def _task(self, project: Project, task_id: int) -> Task:
        for task in project.tasks:
            if task.id == task_id:
                return task
        raise NotFound("Task not found")

    def create_task(self, project_id: int, data: TaskCreate, principal: policy.Principal) -> ProjectOut:
        project = self._load_for_change(project_id, principal, "project tasks")
        self._active_assignee(data.assignee_id)
        _check_due_date(project, data.due_date)
        status = data.status or TaskStatus.PENDING
        project.tasks.append(
            Task(
                name=data.name,
                description=data.description,
                assignee_id=data.assignee_id,
                due_date=data.due_date,
                status=status,
                completed_at=utc_now() if status == TaskStatus.COMPLETED else None,
            )
        )
        return self._saved(project)

    def update_task(
        self,
        project_id: int,
        task_id: int,
        data: TaskUpdate,
        principal: policy.Principal,
    ) -> ProjectOut:
        """Managers may change any task; a member only a task assigned to them."""
        project = self._load(project_id)
        task = self._task(project, task_id)
        if not policy.can_modify_task(project, task, principal):
            raise Forbidden("Cannot modify this task")
        changes = data.model_dump(exclude_unset=True)
        for field in ("name", "due_date", "status"):
            if field in changes and changes[field] is None:
                changes.pop(field)
        if "assignee_id" in changes:
            self._active_assignee(changes["assignee_id"])
        _check_due_date(project, changes.get("due_date"))
        if changes.get("status") == TaskStatus.COMPLETED and task.status != TaskStatus.COMPLETED:
            changes["completed_at"] = utc_now()
        for field, value in changes.items():
            setattr(task, field, value)
        out = self._saved(project)
        logger.info("Task updated", extra={"project_id": project.id, "task_id": task_id})
        return out

    def delete_task(self, project_id: int, task_id: int, principal: policy.Principal) -> ProjectOut:
        project = self._load_for_change(project_id, principal, "project tasks")
        project.tasks.remove(self._task(project, task_id))
        return self._saved(project)
