"""
Meeting models: meetings, their participants and minutes.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.common import PartialUpdate
from app.models.enums import (
    MeetingStatus,
    MeetingType,
    ParticipantRole,
    ParticipantStatus,
    normalize_choice,
)


class Meeting(SQLModel, table=True):
    """ORM model for the meetings table."""

    __tablename__ = "meetings"

    id: Optional[int] = Field(default=None, primary_key=True)
    meeting_code: str = Field(unique=True, index=True, max_length=20)
    title: str = Field(max_length=200)
    description: str = Field(default="", max_length=2000)
    meeting_type: str = Field(default=MeetingType.TEAM.value, max_length=20)

    organizer_id: int = Field(foreign_key="users.id", index=True)
    project_id: Optional[int] = Field(default=None, foreign_key="projects.id")

    start_time: datetime = Field(index=True)
    end_time: datetime
    duration_minutes: int = Field(default=0)
    location: Optional[str] = Field(default=None, max_length=255)
    meeting_link: Optional[str] = Field(default=None, max_length=500)
    agenda: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    # Minutes
    minutes_discussion: Optional[str] = Field(default=None, max_length=10000)
    minutes_decisions: list[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    minutes_action_items: list[dict] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    minutes_recorded_by: Optional[int] = Field(default=None, foreign_key="users.id")

    status: str = Field(default=MeetingStatus.SCHEDULED.value, index=True, max_length=20)
    cancellation_reason: Optional[str] = Field(default=None, max_length=500)
    is_recurring: bool = Field(default=False)
    recurrence_pattern: Optional[str] = Field(default=None, max_length=20)

    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class MeetingParticipant(SQLModel, table=True):
    __tablename__ = "meeting_participants"
    __table_args__ = (UniqueConstraint("meeting_id", "user_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    meeting_id: int = Field(foreign_key="meetings.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    role: str = Field(default=ParticipantRole.REQUIRED.value, max_length=20)
    status: str = Field(default=ParticipantStatus.INVITED.value, max_length=20)
    responded_at: Optional[datetime] = Field(default=None)


# Request Schemas


class MeetingCreate(SQLModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    meeting_type: MeetingType = MeetingType.TEAM
    project_id: Optional[int] = Field(default=None, gt=0)
    start_time: datetime
    end_time: datetime
    location: Optional[str] = Field(default=None, max_length=255)
    meeting_link: Optional[str] = Field(default=None, max_length=500)
    agenda: list[str] = []
    participant_ids: list[int] = []
    is_recurring: bool = False
    recurrence_pattern: Optional[str] = Field(default=None, max_length=20)

    @field_validator("meeting_type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        return normalize_choice(value, MeetingType)

    @model_validator(mode="after")
    def check_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class MeetingUpdate(PartialUpdate):
    not_nullable = frozenset(
        {"title", "description", "meeting_type", "start_time", "end_time", "agenda", "status"}
    )

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    meeting_type: Optional[MeetingType] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = Field(default=None, max_length=255)
    meeting_link: Optional[str] = Field(default=None, max_length=500)
    agenda: Optional[list[str]] = None
    participant_ids: Optional[list[int]] = None
    status: Optional[MeetingStatus] = None

    @field_validator("meeting_type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        return None if value is None else normalize_choice(value, MeetingType)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return None if value is None else normalize_choice(value, MeetingStatus)


class MeetingCancel(SQLModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class ActionItem(BaseModel):
    task: str
    assigned_to: Optional[int] = None
    due_date: Optional[datetime] = None


class MeetingMinutes(SQLModel):
    discussion: str = Field(min_length=1, max_length=10000)
    decisions: list[str] = []
    action_items: list[ActionItem] = []


class ParticipantStatusUpdate(SQLModel):
    status: ParticipantStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return normalize_choice(value, ParticipantStatus)


# Response Schemas


class ParticipantPublic(BaseModel):
    user_id: int
    name: str
    email: str
    role: str
    status: str
    responded_at: Optional[datetime] = None


class MeetingPublic(BaseModel):
    id: int
    meeting_code: str
    title: str
    description: str
    meeting_type: str
    organizer_id: int
    organizer_name: Optional[str] = None
    project_id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    agenda: list[str] = []
    status: str
    cancellation_reason: Optional[str] = None
    is_recurring: bool = False
    recurrence_pattern: Optional[str] = None
    minutes_discussion: Optional[str] = None
    minutes_decisions: list[str] = []
    minutes_action_items: list[dict] = []
    participants: list[ParticipantPublic] = []
    created_at: datetime
    updated_at: datetime
