"""
Project models: projects, team membership, milestones and client feedback.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator
from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.common import PartialUpdate
from app.models.client import ClientSummary
from app.models.employee import EmployeeSummary
from app.models.enums import (
    MilestoneStatus,
    Priority,
    ProjectStatus,
    TeamRole,
    normalize_choice,
)


class Project(SQLModel, table=True):
    """ORM model for the projects table."""

    __tablename__ = "projects"

    id: Optional[int] = Field(default=None, primary_key=True)
    project_code: str = Field(unique=True, index=True, max_length=20)
    name: str = Field(max_length=200)
    description: str = Field(default="", max_length=5000)

    client_id: int = Field(foreign_key="clients.id", index=True)
    project_manager_id: Optional[int] = Field(
        default=None, foreign_key="employees.id", index=True
    )

    status: str = Field(default=ProjectStatus.PLANNING.value, index=True, max_length=20)
    priority: str = Field(default=Priority.MEDIUM.value, max_length=20)
    start_date: Optional[date] = Field(default=None)
    end_date: Optional[date] = Field(default=None)
    actual_end_date: Optional[date] = Field(default=None)
    budget: float = Field(default=0)
    spent: float = Field(default=0)
    progress: int = Field(default=0)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    # Raised by the client, awaiting admin planning
    is_client_request: bool = Field(default=False)
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")
    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class ProjectTeamMember(SQLModel, table=True):
    """Link table between projects and employees."""

    __tablename__ = "project_team_members"
    __table_args__ = (UniqueConstraint("project_id", "employee_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", index=True)
    employee_id: int = Field(foreign_key="employees.id", index=True)
    role: str = Field(default=TeamRole.DEVELOPER.value, max_length=30)
    assigned_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class ProjectMilestone(SQLModel, table=True):
    __tablename__ = "project_milestones"

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", index=True)
    name: str = Field(max_length=200)
    description: str = Field(default="", max_length=2000)
    due_date: Optional[date] = Field(default=None)
    status: str = Field(default=MilestoneStatus.PENDING.value, max_length=20)
    completed_at: Optional[datetime] = Field(default=None)
    client_approved: bool = Field(default=False)
    approved_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class ProjectFeedback(SQLModel, table=True):
    __tablename__ = "project_feedback"

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", index=True)
    client_id: int = Field(foreign_key="clients.id", index=True)
    rating: int = Field(ge=1, le=5)
    comment: str = Field(default="", max_length=2000)
    category: str = Field(default="general", max_length=50)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


# Request Schemas


class _ProjectFields(SQLModel):
    @field_validator("status", mode="before", check_fields=False)
    @classmethod
    def normalize_status(cls, value):
        return None if value is None else normalize_choice(value, ProjectStatus)

    @field_validator("priority", mode="before", check_fields=False)
    @classmethod
    def normalize_priority(cls, value):
        return None if value is None else normalize_choice(value, Priority)


class TeamAssignment(SQLModel):
    employee_id: int = Field(gt=0)
    role: TeamRole = TeamRole.DEVELOPER

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        return TeamRole.DEVELOPER if value is None else normalize_choice(value, TeamRole)


class ProjectCreate(_ProjectFields):
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=5000)
    client_id: int = Field(gt=0)
    project_manager_id: int = Field(gt=0)
    team: list[TeamAssignment] = []
    status: ProjectStatus = ProjectStatus.PLANNING
    priority: Priority = Priority.MEDIUM
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: float = Field(default=0, ge=0)
    tags: list[str] = []


class ProjectUpdate(_ProjectFields, PartialUpdate):
    not_nullable = frozenset(
        {
            "name", "description", "client_id", "status", "priority",
            "budget", "spent", "progress", "tags", "is_active",
        }
    )

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    client_id: Optional[int] = Field(default=None, gt=0)
    project_manager_id: Optional[int] = Field(default=None, gt=0)
    status: Optional[ProjectStatus] = None
    priority: Optional[Priority] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Optional[float] = Field(default=None, ge=0)
    spent: Optional[float] = Field(default=None, ge=0)
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    tags: Optional[list[str]] = None
    is_active: Optional[bool] = None


class TeamAssignRequest(SQLModel):
    """Add members to a project team, or replace the team when `replace` is set."""

    members: list[TeamAssignment] = Field(min_length=1)
    replace: bool = False


class ClientProjectRequest(_ProjectFields):
    """Project requested by a client; the admin plans and staffs it later."""

    name: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=5000)
    priority: Priority = Priority.MEDIUM
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: float = Field(default=0, ge=0)


class MilestoneCreate(SQLModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    due_date: Optional[date] = None


class MilestoneUpdate(PartialUpdate):
    not_nullable = frozenset({"name", "description", "status"})

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    due_date: Optional[date] = None
    status: Optional[MilestoneStatus] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return None if value is None else normalize_choice(value, MilestoneStatus)


class FeedbackCreate(SQLModel):
    rating: int = Field(ge=1, le=5)
    comment: str = Field(default="", max_length=2000)
    category: str = Field(default="general", max_length=50)


class ClientMessage(SQLModel):
    """Message a client sends to the admins about a project."""

    subject: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=5000)
    priority: Priority = Priority.MEDIUM

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, value):
        return normalize_choice(value, Priority)


# Response Schemas


class TeamMemberPublic(BaseModel):
    employee: EmployeeSummary
    role: str
    assigned_at: datetime


class MilestonePublic(SQLModel):
    id: int
    project_id: int
    name: str
    description: str
    due_date: Optional[date] = None
    status: str
    completed_at: Optional[datetime] = None
    client_approved: bool
    approved_at: Optional[datetime] = None
    created_at: datetime


class FeedbackPublic(SQLModel):
    id: int
    project_id: int
    client_id: int
    rating: int
    comment: str
    category: str
    created_at: datetime


class ProjectPublic(BaseModel):
    """Project with client, manager and team populated."""

    id: int
    project_code: str
    name: str
    description: str
    status: str
    priority: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    actual_end_date: Optional[date] = None
    budget: float
    spent: float
    progress: int
    tags: list[str] = []
    is_client_request: bool = False
    is_active: bool
    client: Optional[ClientSummary] = None
    project_manager: Optional[EmployeeSummary] = None
    team: list[TeamMemberPublic] = []
    milestones: list[MilestonePublic] = []
    created_at: datetime
    updated_at: datetime


class ProjectStats(BaseModel):
    project_id: int
    total_tasks: int
    tasks_by_status: dict[str, int]
    completion_rate: float
    overdue_tasks: int
    team_size: int
    budget: float
    spent: float
    budget_utilization: float
    days_remaining: Optional[int] = None


class TimelineEntry(BaseModel):
    type: str
    title: str
    description: Optional[str] = None
    timestamp: datetime


class ProjectProgress(BaseModel):
    project_id: int
    project_code: str
    name: str
    status: str
    progress: int
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    pending_tasks: int
    milestones_total: int
    milestones_completed: int
    days_remaining: Optional[int] = None
