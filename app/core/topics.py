"""
Kafka Topic Definitions for OfficeSphere.

Topic naming follows the pattern: officesphere-<domain>
Each event type is published to the topic of its domain.
"""

from app.core.events import EventType


class KafkaTopics:
    """
    Central registry of all Kafka topics used by OfficeSphere.
    Topics are named following the pattern: officesphere-<domain>
    """

    ATTENDANCE = "officesphere-attendance"
    TASKS = "officesphere-tasks"
    PROJECTS = "officesphere-projects"
    CLIENTS = "officesphere-clients"
    MEETINGS = "officesphere-meetings"
    NOTIFICATIONS = "officesphere-notifications"

    _EVENT_TOPICS = {
        EventType.ATTENDANCE_MARKED: ATTENDANCE,
        EventType.ATTENDANCE_UPDATED: ATTENDANCE,
        EventType.CORRECTION_REQUESTED: ATTENDANCE,
        EventType.CORRECTION_REVIEWED: ATTENDANCE,
        EventType.LEAVE_REQUESTED: ATTENDANCE,
        EventType.LEAVE_REVIEWED: ATTENDANCE,
        EventType.TASK_CREATED: TASKS,
        EventType.TASK_ASSIGNED: TASKS,
        EventType.TASK_UPDATED: TASKS,
        EventType.TASK_STATUS_CHANGED: TASKS,
        EventType.PROJECT_CREATED: PROJECTS,
        EventType.PROJECT_UPDATED: PROJECTS,
        EventType.TEAM_ASSIGNED: PROJECTS,
        EventType.PROJECT_REQUESTED: PROJECTS,
        EventType.FEEDBACK_RECEIVED: CLIENTS,
        EventType.CLIENT_MESSAGE: CLIENTS,
        EventType.MEETING_SCHEDULED: MEETINGS,
        EventType.MEETING_UPDATED: MEETINGS,
        EventType.MEETING_CANCELLED: MEETINGS,
        EventType.NOTIFICATION: NOTIFICATIONS,
    }

    @classmethod
    def for_event(cls, event_type: EventType) -> str:
        """Return the topic an event type is published to."""
        return cls._EVENT_TOPICS.get(event_type, cls.NOTIFICATIONS)
