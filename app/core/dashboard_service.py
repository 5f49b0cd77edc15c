"""
Dashboard aggregation for admins, employees and clients.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, col, or_, select

from app.core.attendance_service import records_between, summarize, today_str
from app.core.populate import (
    client_summaries,
    employee_summaries,
    meetings_public,
    projects_public,
    tasks_public,
)
from app.models.attendance import Attendance, AttendancePublic
from app.models.client import Client
from app.models.daily_report import DailyReport
from app.models.dashboard import (
    ActivityItem,
    AdminDashboard,
    AttendanceBrief,
    ClientDashboard,
    EmployeeDashboard,
)
from app.models.employee import Employee
from app.models.enums import (
    AttendanceStatus,
    MeetingStatus,
    ProjectStatus,
    ReportStatus,
    TaskStatus,
)
from app.models.meeting import Meeting, MeetingParticipant
from app.models.project import FeedbackPublic, Project, ProjectFeedback, ProjectTeamMember
from app.models.task import Task
from app.models.user import User

RECENT_PROJECTS = 3
RECENT_TASKS = 2
RECENT_ATTENDANCE = 3
RECENT_ACTIVITY_LIMIT = 5

_TIME_UNITS = (
    (365 * 24 * 3600, "year"),
    (30 * 24 * 3600, "month"),
    (24 * 3600, "day"),
    (3600, "hour"),
    (60, "minute"),
)


def format_time_ago(then: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Human label for elapsed time: "just now", "1 minute ago", "3 days ago"..."""
    if then is None:
        return "just now"
    now = now or datetime.utcnow()
    seconds = int((now - then).total_seconds())
    if seconds < 60:
        return "just now"
    for unit_seconds, unit in _TIME_UNITS:
        if seconds >= unit_seconds:
            count = seconds // unit_seconds
            return f"{count} {unit}{'' if count == 1 else 's'} ago"
    return "just now"


def _count(session: Session, statement) -> int:
    return session.exec(statement).one()


def admin_dashboard(session: Session, now: Optional[datetime] = None) -> AdminDashboard:
    now = now or datetime.utcnow()

    total_employees = _count(
        session,
        select(func.count()).select_from(Employee).where(Employee.is_active == True),  # noqa: E712
    )
    total_clients = _count(
        session,
        select(func.count()).select_from(Client).where(Client.is_active == True),  # noqa: E712
    )
    active_projects = _count(
        session,
        select(func.count())
        .select_from(Project)
        .where(
            Project.is_active == True,  # noqa: E712
            Project.status == ProjectStatus.IN_PROGRESS.value,
        ),
    )
    pending_tasks = _count(
        session,
        select(func.count())
        .select_from(Task)
        .where(
            Task.is_active == True,  # noqa: E712
            col(Task.status).in_(
                [TaskStatus.PENDING.value, TaskStatus.IN_PROGRESS.value]
            ),
        ),
    )

    today_records = list(
        session.exec(
            select(Attendance)
            .join(Employee, Attendance.employee_id == Employee.id)
            .where(
                Attendance.date == today_str(),
                Employee.is_active == True,  # noqa: E712
            )
        ).all()
    )
    present_today = sum(
        1
        for record in today_records
        if record.status in (AttendanceStatus.PRESENT.value, AttendanceStatus.LATE.value)
    )
    employees = employee_summaries(session, [record.employee_id for record in today_records])

    attendance_data = [
        AttendanceBrief(
            employee_name=employees[record.employee_id].name
            if record.employee_id in employees
            else "Unknown",
            email=employees[record.employee_id].email
            if record.employee_id in employees
            else "",
            check_in_time=record.check_in_time,
            check_out_time=record.check_out_time,
            status=record.status,
            is_late=record.is_late,
        )
        for record in today_records
    ]
    # Latest check-in first, records without check-in last
    attendance_data.sort(
        key=lambda row: (row.check_in_time is not None, row.check_in_time or datetime.min),
        reverse=True,
    )

    return AdminDashboard(
        total_employees=total_employees,
        total_clients=total_clients,
        present_today=present_today,
        active_projects=active_projects,
        pending_tasks=pending_tasks,
        attendance_data=attendance_data,
        recent_activity=recent_activity(session, today_records, employees, now),
    )


def recent_activity(
    session: Session,
    today_records: list[Attendance],
    employees: dict,
    now: datetime,
) -> list[ActivityItem]:
    """Newest projects, tasks and check-ins merged, newest first."""
    projects = session.exec(
        select(Project).order_by(col(Project.created_at).desc()).limit(RECENT_PROJECTS)
    ).all()
    clients = client_summaries(session, [project.client_id for project in projects])
    tasks = session.exec(
        select(Task).order_by(col(Task.created_at).desc()).limit(RECENT_TASKS)
    ).all()
    assignees = employee_summaries(session, [task.assigned_to for task in tasks])

    items = []
    for project in projects:
        client = clients.get(project.client_id)
        suffix = f" for {client.company_name}" if client else ""
        message = f'New project "{project.name}" created{suffix}'
        items.append((project.created_at, "project", message))
    for task in tasks:
        assignee = assignees.get(task.assigned_to)
        suffix = f" to {assignee.name}" if assignee else ""
        items.append((task.created_at, "task", f'Task "{task.title}" assigned{suffix}'))
    for record in today_records[:RECENT_ATTENDANCE]:
        employee = employees.get(record.employee_id)
        name = employee.name if employee else "Someone"
        # created_at and updated_at share the UTC clock with projects and tasks
        if record.check_out_time:
            items.append((record.updated_at, "attendance", f"{name} checked out"))
        else:
            items.append((record.created_at, "attendance", f"{name} checked in"))

    items.sort(key=lambda item: item[0], reverse=True)
    return [
        ActivityItem(
            type=kind,
            description=description,
            time=format_time_ago(timestamp, now),
            timestamp=timestamp,
        )
        for timestamp, kind, description in items[:RECENT_ACTIVITY_LIMIT]
    ]


def upcoming_meetings(session: Session, user_id: int, days: int = 7, limit: int = 5):
    now = datetime.utcnow()
    participant_meetings = select(MeetingParticipant.meeting_id).where(
        MeetingParticipant.user_id == user_id
    )
    meetings = session.exec(
        select(Meeting)
        .where(
            or_(Meeting.organizer_id == user_id, col(Meeting.id).in_(participant_meetings)),
            Meeting.start_time >= now,
            Meeting.start_time <= now + timedelta(days=days),
            col(Meeting.status).in_(
                [MeetingStatus.SCHEDULED.value, MeetingStatus.RESCHEDULED.value]
            ),
        )
        .order_by(Meeting.start_time)
        .limit(limit)
    ).all()
    return meetings_public(session, list(meetings))


def employee_dashboard(session: Session, employee: Employee, user: User) -> EmployeeDashboard:
    today = date.today()
    month_start = today.replace(day=1)

    tasks = list(
        session.exec(
            select(Task).where(
                Task.assigned_to == employee.id,
                Task.is_active == True,  # noqa: E712
            )
        ).all()
    )
    active_tasks = [
        task
        for task in tasks
        if task.status in (TaskStatus.PENDING.value, TaskStatus.IN_PROGRESS.value)
    ]
    completed_this_month = sum(
        1
        for task in tasks
        if task.status == TaskStatus.COMPLETED.value
        and task.completed_at is not None
        and task.completed_at.date() >= month_start
    )
    overdue = sum(
        1
        for task in active_tasks
        if task.due_date is not None and task.due_date < today
    )

    team_projects = select(ProjectTeamMember.project_id).where(
        ProjectTeamMember.employee_id == employee.id
    )
    active_projects = _count(
        session,
        select(func.count())
        .select_from(Project)
        .where(
            or_(Project.project_manager_id == employee.id, col(Project.id).in_(team_projects)),
            Project.is_active == True,  # noqa: E712
            Project.status == ProjectStatus.IN_PROGRESS.value,
        ),
    )
    pending_reports = _count(
        session,
        select(func.count())
        .select_from(DailyReport)
        .where(
            DailyReport.employee_id == employee.id,
            DailyReport.status == ReportStatus.SUBMITTED.value,
        ),
    )

    month_records = records_between(session, month_start, today, employee.id)
    summary = summarize(employee.id, month_records, month_start, today)
    today_record = next(
        (record for record in month_records if record.date == today.isoformat()), None
    )

    recent = sorted(tasks, key=lambda task: task.updated_at, reverse=True)[:5]
    return EmployeeDashboard(
        employee_id=employee.id,
        employee_code=employee.employee_code,
        name=user.name,
        designation=employee.designation,
        department=employee.department,
        active_tasks=len(active_tasks),
        completed_this_month=completed_this_month,
        overdue_tasks=overdue,
        active_projects=active_projects,
        upcoming_meetings=upcoming_meetings(session, user.id),
        pending_reports=pending_reports,
        attendance_rate_this_month=summary.attendance_rate,
        today_attendance=AttendancePublic.model_validate(today_record) if today_record else None,
        recent_tasks=tasks_public(session, recent),
    )


def client_dashboard(session: Session, client: Client, user: User) -> ClientDashboard:
    projects = list(
        session.exec(
            select(Project)
            .where(Project.client_id == client.id, Project.is_active == True)  # noqa: E712
            .order_by(col(Project.created_at).desc())
        ).all()
    )
    by_status = {status.value: 0 for status in ProjectStatus}
    for project in projects:
        by_status[project.status] = by_status.get(project.status, 0) + 1

    feedback = session.exec(
        select(ProjectFeedback)
        .where(ProjectFeedback.client_id == client.id)
        .order_by(col(ProjectFeedback.created_at).desc())
        .limit(5)
    ).all()

    return ClientDashboard(
        client_id=client.id,
        client_code=client.client_code,
        company_name=client.company_name,
        total_projects=len(projects),
        projects_by_status=by_status,
        total_investment=round(sum(project.budget for project in projects), 2),
        average_progress=round(
            sum(project.progress for project in projects) / len(projects), 2
        )
        if projects
        else 0.0,
        recent_projects=projects_public(session, projects[:5]),
        upcoming_meetings=upcoming_meetings(session, user.id),
        recent_feedback=[FeedbackPublic.model_validate(item) for item in feedback],
    )
