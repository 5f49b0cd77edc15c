"""
Persisted notifications.

A notification addresses either every user of a role (`recipient_id`
empty, used for the shared admin inbox) or one user.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from app.models.enums import NotificationType


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    role: str = Field(index=True, max_length=20)
    recipient_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    sender_id: Optional[int] = Field(default=None, foreign_key="users.id")
    title: str = Field(max_length=200)
    message: str = Field(max_length=2000)
    type: str = Field(default=NotificationType.INFO.value, max_length=20)
    link: Optional[str] = Field(default=None, max_length=500)
    data: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    is_read: bool = Field(default=False, index=True)
    read_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class NotificationPublic(SQLModel):
    id: int
    role: str
    recipient_id: Optional[int] = None
    sender_id: Optional[int] = None
    title: str
    message: str
    type: str
    link: Optional[str] = None
    data: dict = {}
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationIds(SQLModel):
    ids: list[int] = Field(min_length=1)
