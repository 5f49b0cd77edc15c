"""
Event definitions for OfficeSphere.

Every state change that other users should see is described by an
`EventEnvelope`. The same envelope is pushed to WebSocket rooms and, when
enabled, published to Kafka. Events are categorized into:
- Attendance events (check-in, check-out, corrections, leave)
- Task and project events
- Client and meeting events
- Notifications
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the API. Values are the wire event names."""

    # Attendance Events
    ATTENDANCE_MARKED = "attendance-marked"
    ATTENDANCE_UPDATED = "attendance-updated"
    CORRECTION_REQUESTED = "correction-requested"
    CORRECTION_REVIEWED = "correction-reviewed"
    LEAVE_REQUESTED = "leave-requested"
    LEAVE_REVIEWED = "leave-reviewed"

    # Task Events
    TASK_CREATED = "task-created"
    TASK_ASSIGNED = "task-assigned"
    TASK_UPDATED = "task-updated"
    TASK_STATUS_CHANGED = "task-status-changed"

    # Project Events
    PROJECT_CREATED = "project-created"
    PROJECT_UPDATED = "project-updated"
    TEAM_ASSIGNED = "team-assigned"
    PROJECT_REQUESTED = "project-requested"

    # Client Events
    FEEDBACK_RECEIVED = "feedback-received"
    CLIENT_MESSAGE = "client-message"

    # Meeting Events
    MEETING_SCHEDULED = "meeting-scheduled"
    MEETING_UPDATED = "meeting-updated"
    MEETING_CANCELLED = "meeting-cancelled"

    NOTIFICATION = "notification"


class EventMetadata(BaseModel):
    """Metadata attached to every event for tracing and correlation."""

    source_service: str = "officesphere-api"
    correlation_id: str = Field(default_factory=lambda: str(uuid4()))
    actor_user_id: Optional[int] = None
    actor_role: Optional[str] = None


class EventEnvelope(BaseModel):
    """
    Standard envelope for all events.
    Provides consistent structure for WebSocket frames and Kafka messages.
    """

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: EventType
    timestamp: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    version: str = "1.0"
    data: dict[str, Any]
    metadata: EventMetadata = Field(default_factory=EventMetadata)

    def to_frame(self) -> dict[str, Any]:
        """Shape pushed to WebSocket clients."""
        return {
            "event": self.event_type.value,
            "event_id": self.event_id,
            "timestamp": self.timestamp,
            "data": self.data,
        }


# Event Data Models


class AttendanceMarkedEvent(BaseModel):
    """Data for attendance-marked and attendance-updated events."""

    attendance_id: int
    employee_id: int
    employee_code: str
    employee_name: str
    date: str
    status: str
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    is_late: bool = False
    late_minutes: int = 0
    work_hours: float = 0


class TaskAssignedEvent(BaseModel):
    """Data for task-assigned and task-created events."""

    task_id: int
    task_code: str
    title: str
    priority: str
    status: str
    due_date: Optional[str] = None
    project_id: Optional[int] = None
    assigned_to: int
    assigned_by: Optional[int] = None


class ProjectUpdatedEvent(BaseModel):
    project_id: int
    project_code: str
    name: str
    status: str
    progress: int
    updated_fields: list[str] = []


def create_event(
    event_type: EventType,
    data: Union[dict[str, Any], BaseModel],
    actor_user_id: Optional[int] = None,
    actor_role: Optional[str] = None,
) -> EventEnvelope:
    """
    Helper function to create an event envelope.

    Args:
        event_type: Type of the event
        data: Event payload, a dict or one of the event data models
        actor_user_id: ID of the user who triggered the event
        actor_role: Role of the user who triggered the event

    Returns:
        EventEnvelope ready for publishing
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")

    return EventEnvelope(
        event_type=event_type,
        data=data,
        metadata=EventMetadata(actor_user_id=actor_user_id, actor_role=actor_role),
    )
