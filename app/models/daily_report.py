"""
Daily work reports submitted by employees.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator
from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.common import PartialUpdate
from app.models.employee import EmployeeSummary
from app.models.enums import Mood, ReportStatus, normalize_choice


class DailyReport(SQLModel, table=True):
    __tablename__ = "daily_reports"
    __table_args__ = (UniqueConstraint("employee_id", "report_date"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    report_code: str = Field(unique=True, index=True, max_length=20)
    employee_id: int = Field(foreign_key="employees.id", index=True)
    report_date: date = Field(index=True)

    tasks_completed: list[dict] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    tasks_in_progress: list[dict] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    planned_for_tomorrow: list[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    achievements: str = Field(default="", max_length=2000)
    challenges: str = Field(default="", max_length=2000)
    blockers: str = Field(default="", max_length=2000)
    total_hours_worked: float = Field(default=0)
    productivity_rating: Optional[int] = Field(default=None)
    mood: Optional[str] = Field(default=None, max_length=20)

    status: str = Field(default=ReportStatus.SUBMITTED.value, index=True, max_length=20)
    reviewed_by: Optional[int] = Field(default=None, foreign_key="users.id")
    reviewed_at: Optional[datetime] = Field(default=None)
    reviewer_feedback: Optional[str] = Field(default=None, max_length=2000)

    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class ReportTaskItem(BaseModel):
    task_id: Optional[int] = None
    title: str
    hours_spent: float = 0
    progress: Optional[int] = None
    notes: Optional[str] = None


class _ReportFields(SQLModel):
    @field_validator("mood", mode="before", check_fields=False)
    @classmethod
    def normalize_mood(cls, value):
        return None if value in (None, "") else normalize_choice(value, Mood)


class DailyReportCreate(_ReportFields):
    report_date: Optional[date] = None
    tasks_completed: list[ReportTaskItem] = []
    tasks_in_progress: list[ReportTaskItem] = []
    planned_for_tomorrow: list[str] = []
    achievements: str = Field(default="", max_length=2000)
    challenges: str = Field(default="", max_length=2000)
    blockers: str = Field(default="", max_length=2000)
    total_hours_worked: float = Field(default=0, ge=0, le=24)
    productivity_rating: Optional[int] = Field(default=None, ge=1, le=5)
    mood: Optional[Mood] = None


class DailyReportUpdate(_ReportFields, PartialUpdate):
    not_nullable = frozenset(
        {
            "tasks_completed", "tasks_in_progress", "planned_for_tomorrow", "achievements",
            "challenges", "blockers", "total_hours_worked",
        }
    )

    tasks_completed: Optional[list[ReportTaskItem]] = None
    tasks_in_progress: Optional[list[ReportTaskItem]] = None
    planned_for_tomorrow: Optional[list[str]] = None
    achievements: Optional[str] = Field(default=None, max_length=2000)
    challenges: Optional[str] = Field(default=None, max_length=2000)
    blockers: Optional[str] = Field(default=None, max_length=2000)
    total_hours_worked: Optional[float] = Field(default=None, ge=0, le=24)
    productivity_rating: Optional[int] = Field(default=None, ge=1, le=5)
    mood: Optional[Mood] = None


class DailyReportReview(SQLModel):
    status: ReportStatus = ReportStatus.REVIEWED
    feedback: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return normalize_choice(value, ReportStatus)


class DailyReportPublic(BaseModel):
    id: int
    report_code: str
    employee_id: int
    employee: Optional[EmployeeSummary] = None
    report_date: date
    tasks_completed: list[dict] = []
    tasks_in_progress: list[dict] = []
    planned_for_tomorrow: list[str] = []
    achievements: str = ""
    challenges: str = ""
    blockers: str = ""
    total_hours_worked: float = 0
    productivity_rating: Optional[int] = None
    mood: Optional[str] = None
    status: str
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    reviewer_feedback: Optional[str] = None
    created_at: datetime
    updated_at: datetime
