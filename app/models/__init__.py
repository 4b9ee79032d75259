"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.client import Client
from app.models.project import (
    Objective,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    project_members,
)
from app.models.user import RefreshToken, Role, User

__all__ = [
    "Base",
    "Client",
    "Objective",
    "Project",
    "ProjectStatus",
    "RefreshToken",
    "Role",
    "Task",
    "TaskStatus",
    "User",
    "project_members",
]
