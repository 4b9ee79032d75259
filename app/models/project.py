"""ORM models for projects and their team, objectives and tasks."""

import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin


class ProjectStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def _enum_values(members: type[enum.Enum]) -> list[str]:
    return [m.value for m in members]


project_members = Table(
    "project_members",
    Base.metadata,
    Column("project_id", Integer, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Project(TimestampMixin, Base):
    """
    Marketing project for a client.

    team_members gates read access for project_member users; objectives and tasks
    are owned by the project and deleted with it.
    """

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    channel = Column(String(255), nullable=False)
    status = Column(
        Enum(
            ProjectStatus,
            name="project_status",
            native_enum=False,
            length=32,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=ProjectStatus.DRAFT,
        index=True,
    )
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)

    client = relationship("Client", lazy="joined")
    team_members = relationship("User", secondary=project_members, lazy="selectin")
    objectives = relationship(
        "Objective",
        back_populates="project",
        order_by="Objective.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    tasks = relationship(
        "Task",
        back_populates="project",
        order_by="Task.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def team_member_ids(self) -> set[int]:
        return {member.id for member in self.team_members}


class Objective(Base):
    """KPI objective tracked for a project."""

    __tablename__ = "objectives"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(255), nullable=False)
    kpi = Column(String(255), nullable=False)
    target_value = Column(Float, nullable=False)
    current_value = Column(Float, nullable=False, default=0.0)

    project = relationship("Project", back_populates="objectives")


class Task(Base):
    """Unit of work in a project. assignee_id lets a project_member update it."""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    assignee_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    due_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        Enum(
            TaskStatus,
            name="task_status",
            native_enum=False,
            length=32,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=TaskStatus.PENDING,
        index=True,
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)

    project = relationship("Project", back_populates="tasks")
