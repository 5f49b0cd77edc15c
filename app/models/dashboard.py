"""
Dashboard response schemas for the three roles.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.models.attendance import AttendancePublic
from app.models.meeting import MeetingPublic
from app.models.project import FeedbackPublic, ProjectPublic
from app.models.task import TaskPublic


class AttendanceBrief(BaseModel):
    employee_name: str
    email: str
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    status: str
    is_late: bool = False


class ActivityItem(BaseModel):
    type: str  # project, task, attendance
    description: str
    time: str  # "5 minutes ago"
    timestamp: datetime


class AdminDashboard(BaseModel):
    total_employees: int
    total_clients: int
    present_today: int
    active_projects: int
    pending_tasks: int
    attendance_data: list[AttendanceBrief]
    recent_activity: list[ActivityItem]


class EmployeeDashboard(BaseModel):
    employee_id: int
    employee_code: str
    name: str
    designation: str
    department: str
    active_tasks: int
    completed_this_month: int
    overdue_tasks: int
    active_projects: int
    upcoming_meetings: list[MeetingPublic]
    pending_reports: int
    attendance_rate_this_month: float
    today_attendance: Optional[AttendancePublic] = None
    recent_tasks: list[TaskPublic]


class ClientDashboard(BaseModel):
    client_id: int
    client_code: str
    company_name: str
    total_projects: int
    projects_by_status: dict[str, int]
    total_investment: float
    average_progress: float
    recent_projects: list[ProjectPublic]
    upcoming_meetings: list[MeetingPublic]
    recent_feedback: list[FeedbackPublic]
