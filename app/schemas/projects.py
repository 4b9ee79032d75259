"""Request/response schemas for projects, team membership, objectives and tasks."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.project import ProjectStatus, TaskStatus
from app.schemas.clients import ClientSummary
from app.schemas.common import strip_required
from app.schemas.users import UserSummary

ProjectSortField = Literal["name", "status", "created_at", "end_date"]


class ObjectiveCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    kpi: str = Field(..., min_length=1, max_length=255)
    target_value: float = Field(..., ge=0, description="Target value must be positive")
    current_value: float = Field(default=0.0, ge=0)

    @field_validator("title", "kpi")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return strip_required(v)


class ObjectiveUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=255)
    kpi: str | None = Field(default=None, min_length=1, max_length=255)
    target_value: float | None = Field(default=None, ge=0)
    current_value: float | None = Field(default=None, ge=0)


class ObjectiveOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    kpi: str
    target_value: float
    current_value: float


class TaskCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    assignee_id: int | None = Field(default=None, ge=1)
    due_date: datetime
    status: TaskStatus | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return strip_required(v)


class TaskUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    assignee_id: int | None = Field(default=None, ge=1)
    due_date: datetime | None = None
    status: TaskStatus | None = None


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    assignee_id: int | None = None
    due_date: datetime
    status: TaskStatus
    completed_at: datetime | None = None


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    channel: str = Field(..., min_length=1, max_length=255)
    status: ProjectStatus | None = None
    client_id: int = Field(..., ge=1)
    objectives: list[ObjectiveCreate] = Field(..., min_length=1, description="At least one objective is required")
    team_members: list[int] = Field(default_factory=list)
    start_date: datetime | None = None
    end_date: datetime | None = None

    @field_validator("name", "channel")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("team_members")
    @classmethod
    def dedupe_members(cls, v: list[int]) -> list[int]:
        return list(dict.fromkeys(v))


class ProjectUpdate(BaseModel):
    """Explicit patch for project fields. Team, objectives and tasks have their own endpoints."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    channel: str | None = Field(default=None, min_length=1, max_length=255)
    status: ProjectStatus | None = None
    client_id: int | None = Field(default=None, ge=1)
    start_date: datetime | None = None
    end_date: datetime | None = None


class TeamMemberAdd(BaseModel):
    user_id: int = Field(..., ge=1)


class ProjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    channel: str
    status: ProjectStatus
    client_id: int
    client: ClientSummary | None = None
    team_members: list[UserSummary] = Field(default_factory=list)
    objectives: list[ObjectiveOut] = Field(default_factory=list)
    tasks: list[TaskOut] = Field(default_factory=list)
    start_date: datetime | None = None
    end_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
