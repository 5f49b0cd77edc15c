"""
Database models and schemas module.
Contains all SQLModel table definitions and Pydantic schemas.
"""

from app.models.admin import Admin, CompanySettings
from app.models.attendance import (
    Attendance,
    AttendancePublic,
    CheckInRequest,
    CheckOutRequest,
)
from app.models.client import Client, ClientPublic
from app.models.daily_report import DailyReport
from app.models.employee import Employee, EmployeePublic
from app.models.meeting import Meeting, MeetingParticipant
from app.models.notification import Notification
from app.models.project import (
    Project,
    ProjectFeedback,
    ProjectMilestone,
    ProjectTeamMember,
)
from app.models.task import Task, TaskComment, TaskTimerSession
from app.models.user import User

__all__ = [
    "User",
    "Admin",
    "CompanySettings",
    "Employee",
    "EmployeePublic",
    "Client",
    "ClientPublic",
    "Project",
    "ProjectTeamMember",
    "ProjectMilestone",
    "ProjectFeedback",
    "Task",
    "TaskComment",
    "TaskTimerSession",
    "Attendance",
    "AttendancePublic",
    "CheckInRequest",
    "CheckOutRequest",
    "Meeting",
    "MeetingParticipant",
    "DailyReport",
    "Notification",
]
