"""
Authorization predicates over already-loaded state.

No I/O: callers load the project/task/user first and pass the authenticated
principal (anything with id and role, usually CurrentUser).
"""

from collections.abc import Iterable
from typing import Protocol

from app.models.user import Role

MANAGER_ROLES = (Role.ADMIN, Role.PROJECT_MANAGER)
ADMIN_ONLY = (Role.ADMIN,)

# Fields a non-admin may change on their own account.
SELF_UPDATE_FIELDS = frozenset({"first_name", "last_name"})


class Principal(Protocol):
    id: int
    role: Role


class ProjectLike(Protocol):
    @property
    def team_member_ids(self) -> set[int]: ...


class TaskLike(Protocol):
    assignee_id: int | None


def has_role(principal: Principal, *roles: Role) -> bool:
    return principal.role in roles


def can_access_project(project: ProjectLike, principal: Principal) -> bool:
    """Managers see every project; members only those they are on the team of."""
    if has_role(principal, *MANAGER_ROLES):
        return True
    return principal.role == Role.PROJECT_MEMBER and principal.id in project.team_member_ids


def can_modify_project(project: ProjectLike, principal: Principal) -> bool:
    """Any admin or project manager may modify any project; membership does not matter."""
    return has_role(principal, *MANAGER_ROLES)


def can_modify_task(project: ProjectLike, task: TaskLike, principal: Principal) -> bool:
    """Managers may modify any task; a member only tasks assigned to them."""
    if can_modify_project(project, principal):
        return True
    return (
        principal.role == Role.PROJECT_MEMBER
        and task.assignee_id is not None
        and task.assignee_id == principal.id
    )


def can_view_user(user_id: int, principal: Principal) -> bool:
    return principal.id == user_id or has_role(principal, *MANAGER_ROLES)


def can_update_user(user_id: int, principal: Principal) -> bool:
    return principal.id == user_id or has_role(principal, *ADMIN_ONLY)


def restricted_self_update_fields(fields: Iterable[str]) -> set[str]:
    """Fields in a self-update that fall outside the allowlist (empty means allowed)."""
    return set(fields) - SELF_UPDATE_FIELDS
