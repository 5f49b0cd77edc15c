"""
Admin profile and company-wide settings.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

DEFAULT_COMPANY_SETTINGS: dict[str, Any] = {
    "company": {
        "name": "OfficeSphere",
        "email": "",
        "phone": "",
        "address": "",
        "timezone": "UTC",
    },
    "attendance": {
        "work_start_time": "09:00",
        "work_end_time": "18:00",
        "late_grace_minutes": 15,
        "working_days": ["Mon", "Tue", "Wed", "Thu", "Fri"],
    },
    "tasks": {
        "default_priority": "medium",
        "allow_employee_comments": True,
    },
    "notifications": {
        "email_enabled": False,
        "realtime_enabled": True,
    },
}


class Admin(SQLModel, table=True):
    __tablename__ = "admins"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    designation: str = Field(default="Administrator", max_length=100)
    department: str = Field(default="Management", max_length=50)
    permissions: list[str] = Field(
        default_factory=lambda: ["all"], sa_column=Column(JSON, nullable=False)
    )

    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class CompanySettings(SQLModel, table=True):
    """Single-row table holding the settings document."""

    __tablename__ = "company_settings"

    id: Optional[int] = Field(default=None, primary_key=True)
    data: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    updated_by: Optional[int] = Field(default=None, foreign_key="users.id")
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class SettingsUpdate(SQLModel):
    """Partial settings document; sections are merged key by key."""

    company: Optional[dict[str, Any]] = None
    attendance: Optional[dict[str, Any]] = None
    tasks: Optional[dict[str, Any]] = None
    notifications: Optional[dict[str, Any]] = None
