"""
Task models: tasks, comments and time-tracking sessions.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from app.models.common import PartialUpdate
from app.models.employee import EmployeeSummary
from app.models.enums import Priority, TaskStatus, normalize_choice


class Task(SQLModel, table=True):
    """ORM model for the tasks table."""

    __tablename__ = "tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    task_code: str = Field(unique=True, index=True, max_length=20)
    title: str = Field(max_length=200)
    description: str = Field(default="", max_length=5000)

    project_id: Optional[int] = Field(default=None, foreign_key="projects.id", index=True)
    assigned_to: int = Field(foreign_key="employees.id", index=True)
    assigned_by: Optional[int] = Field(default=None, foreign_key="users.id")

    status: str = Field(default=TaskStatus.PENDING.value, index=True, max_length=20)
    priority: str = Field(default=Priority.MEDIUM.value, max_length=20)
    due_date: Optional[date] = Field(default=None)
    estimated_hours: float = Field(default=0)
    actual_hours: float = Field(default=0)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    started_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)

    # Time tracking
    timer_running: bool = Field(default=False)
    timer_started_at: Optional[datetime] = Field(default=None)
    total_tracked_seconds: int = Field(default=0)

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class TaskComment(SQLModel, table=True):
    __tablename__ = "task_comments"

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="tasks.id", index=True)
    user_id: int = Field(foreign_key="users.id")
    comment: str = Field(max_length=2000)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class TaskTimerSession(SQLModel, table=True):
    __tablename__ = "task_timer_sessions"

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="tasks.id", index=True)
    started_at: datetime
    ended_at: Optional[datetime] = Field(default=None)
    duration_seconds: int = Field(default=0)


# Request Schemas


class _TaskFields(SQLModel):
    @field_validator("status", mode="before", check_fields=False)
    @classmethod
    def normalize_status(cls, value):
        return None if value is None else normalize_choice(value, TaskStatus)

    @field_validator("priority", mode="before", check_fields=False)
    @classmethod
    def normalize_priority(cls, value):
        return None if value is None else normalize_choice(value, Priority)


class TaskCreate(_TaskFields):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    project_id: Optional[int] = Field(default=None, gt=0)
    assigned_to: int = Field(gt=0)
    status: TaskStatus = TaskStatus.PENDING
    priority: Priority = Priority.MEDIUM
    due_date: Optional[date] = None
    estimated_hours: float = Field(default=0, ge=0)
    tags: list[str] = []


class TaskUpdate(_TaskFields, PartialUpdate):
    not_nullable = frozenset(
        {
            "title", "description", "assigned_to", "status", "priority",
            "estimated_hours", "actual_hours", "tags",
        }
    )

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    project_id: Optional[int] = Field(default=None, gt=0)
    assigned_to: Optional[int] = Field(default=None, gt=0)
    status: Optional[TaskStatus] = None
    priority: Optional[Priority] = None
    due_date: Optional[date] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    actual_hours: Optional[float] = Field(default=None, ge=0)
    tags: Optional[list[str]] = None


class TaskAssign(SQLModel):
    assigned_to: int = Field(gt=0)


class TaskBulkUpdate(_TaskFields):
    """Apply the same status and/or priority to many tasks."""

    task_ids: list[int] = Field(min_length=1)
    status: Optional[TaskStatus] = None
    priority: Optional[Priority] = None


class TaskStatusUpdate(_TaskFields):
    status: TaskStatus
    actual_hours: Optional[float] = Field(default=None, ge=0)


class TaskCommentCreate(SQLModel):
    comment: str = Field(min_length=1, max_length=2000)


# Response Schemas


class TaskCommentPublic(BaseModel):
    id: int
    user_id: int
    user_name: Optional[str] = None
    comment: str
    created_at: datetime


class ProjectRef(BaseModel):
    id: int
    project_code: str
    name: str


class TaskPublic(BaseModel):
    id: int
    task_code: str
    title: str
    description: str
    status: str
    priority: str
    due_date: Optional[date] = None
    estimated_hours: float
    actual_hours: float
    tags: list[str] = []
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    is_overdue: bool = False
    is_active: bool
    project: Optional[ProjectRef] = None
    assignee: Optional[EmployeeSummary] = None
    assigned_by: Optional[int] = None
    comments: list[TaskCommentPublic] = []
    created_at: datetime
    updated_at: datetime


class TaskTimerState(BaseModel):
    task_id: int
    running: bool
    started_at: Optional[datetime] = None
    total_seconds: int
    current_session_seconds: int = 0
    sessions: int = 0


class TaskBulkResult(BaseModel):
    updated: int
    task_ids: list[int]


class TaskStats(BaseModel):
    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    overdue: int
    completed_this_week: int
    completion_rate: float


class EmployeePerformance(BaseModel):
    employee: EmployeeSummary
    total_tasks: int
    completed: int
    in_progress: int
    pending: int
    overdue: int
    completion_rate: float
    on_time_rate: float
    hours_logged: float


class PerformanceReport(BaseModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    generated_at: datetime
    employees: list[EmployeePerformance]
