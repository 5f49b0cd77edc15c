"""
Resolve foreign keys into response schemas.

List endpoints pass whole pages here so related rows are loaded with one
query per relation instead of one per record.
"""

from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import func
from sqlmodel import Session, col, select

from app.models.attendance import Attendance, AttendanceWithEmployee
from app.models.client import Client, ClientPublic, ClientSummary
from app.models.daily_report import DailyReport, DailyReportPublic
from app.models.employee import Employee, EmployeePublic, EmployeeSummary
from app.models.enums import ProjectStatus
from app.models.meeting import Meeting, MeetingParticipant, MeetingPublic, ParticipantPublic
from app.models.project import (
    MilestonePublic,
    Project,
    ProjectMilestone,
    ProjectPublic,
    ProjectTeamMember,
    TeamMemberPublic,
)
from app.models.task import (
    ProjectRef,
    Task,
    TaskComment,
    TaskCommentPublic,
    TaskPublic,
)
from app.models.user import User


def _ids(values: Iterable[Optional[int]]) -> list[int]:
    return sorted({value for value in values if value is not None})


def users_by_id(session: Session, user_ids: Iterable[Optional[int]]) -> dict[int, User]:
    ids = _ids(user_ids)
    if not ids:
        return {}
    users = session.exec(select(User).where(col(User.id).in_(ids))).all()
    return {user.id: user for user in users}


# Employees


def to_employee_public(employee: Employee, user: User) -> EmployeePublic:
    return EmployeePublic(
        **employee.model_dump(),
        name=user.name,
        email=user.email,
        phone=user.phone,
        avatar=user.avatar,
    )


def to_employee_summary(employee: Employee, user: User) -> EmployeeSummary:
    return EmployeeSummary(
        id=employee.id,
        employee_code=employee.employee_code,
        name=user.name,
        email=user.email,
        designation=employee.designation,
        department=employee.department,
        avatar=user.avatar,
    )


def employee_summaries(
    session: Session, employee_ids: Iterable[Optional[int]]
) -> dict[int, EmployeeSummary]:
    ids = _ids(employee_ids)
    if not ids:
        return {}
    rows = session.exec(
        select(Employee, User)
        .join(User, Employee.user_id == User.id)
        .where(col(Employee.id).in_(ids))
    ).all()
    return {employee.id: to_employee_summary(employee, user) for employee, user in rows}


def employee_with_user(session: Session, employee_id: int) -> Optional[tuple[Employee, User]]:
    row = session.exec(
        select(Employee, User)
        .join(User, Employee.user_id == User.id)
        .where(Employee.id == employee_id)
    ).first()
    return (row[0], row[1]) if row else None


# Clients


def to_client_summary(client: Client, user: User) -> ClientSummary:
    return ClientSummary(
        id=client.id,
        client_code=client.client_code,
        company_name=client.company_name,
        name=user.name,
        email=user.email,
    )


def client_summaries(
    session: Session, client_ids: Iterable[Optional[int]]
) -> dict[int, ClientSummary]:
    ids = _ids(client_ids)
    if not ids:
        return {}
    rows = session.exec(
        select(Client, User)
        .join(User, Client.user_id == User.id)
        .where(col(Client.id).in_(ids))
    ).all()
    return {client.id: to_client_summary(client, user) for client, user in rows}


def client_project_counts(
    session: Session, client_ids: Iterable[int]
) -> dict[int, dict[str, int]]:
    """Total, active and completed project counts per client."""
    ids = _ids(client_ids)
    counts: dict[int, dict[str, int]] = {
        client_id: {"total": 0, "active": 0, "completed": 0} for client_id in ids
    }
    if not ids:
        return counts
    rows = session.exec(
        select(Project.client_id, Project.status, func.count())
        .where(col(Project.client_id).in_(ids), Project.is_active == True)  # noqa: E712
        .group_by(Project.client_id, Project.status)
    ).all()
    for client_id, status, count in rows:
        counts[client_id]["total"] += count
        if status == ProjectStatus.IN_PROGRESS.value:
            counts[client_id]["active"] += count
        elif status == ProjectStatus.COMPLETED.value:
            counts[client_id]["completed"] += count
    return counts


def to_client_public(
    client: Client, user: User, counts: Optional[dict[str, int]] = None
) -> ClientPublic:
    counts = counts or {}
    return ClientPublic(
        **client.model_dump(),
        name=user.name,
        email=user.email,
        phone=user.phone,
        avatar=user.avatar,
        total_projects=counts.get("total", 0),
        active_projects=counts.get("active", 0),
        completed_projects=counts.get("completed", 0),
    )


# Projects


def projects_public(session: Session, projects: list[Project]) -> list[ProjectPublic]:
    if not projects:
        return []
    project_ids = [project.id for project in projects]

    team_rows = session.exec(
        select(ProjectTeamMember)
        .where(col(ProjectTeamMember.project_id).in_(project_ids))
        .order_by(ProjectTeamMember.assigned_at)
    ).all()
    milestone_rows = session.exec(
        select(ProjectMilestone)
        .where(col(ProjectMilestone.project_id).in_(project_ids))
        .order_by(ProjectMilestone.created_at)
    ).all()

    employees = employee_summaries(
        session,
        [project.project_manager_id for project in projects]
        + [member.employee_id for member in team_rows],
    )
    clients = client_summaries(session, [project.client_id for project in projects])

    teams: dict[int, list[TeamMemberPublic]] = defaultdict(list)
    for member in team_rows:
        if member.employee_id in employees:
            teams[member.project_id].append(
                TeamMemberPublic(
                    employee=employees[member.employee_id],
                    role=member.role,
                    assigned_at=member.assigned_at,
                )
            )
    milestones: dict[int, list[MilestonePublic]] = defaultdict(list)
    for milestone in milestone_rows:
        milestones[milestone.project_id].append(MilestonePublic.model_validate(milestone))

    return [
        ProjectPublic(
            **project.model_dump(exclude={"client_id", "project_manager_id", "created_by"}),
            client=clients.get(project.client_id),
            project_manager=employees.get(project.project_manager_id),
            team=teams.get(project.id, []),
            milestones=milestones.get(project.id, []),
        )
        for project in projects
    ]


def project_public(session: Session, project: Project) -> ProjectPublic:
    return projects_public(session, [project])[0]


# Tasks


def is_overdue(task: Task, today: Optional[date] = None) -> bool:
    today = today or date.today()
    return (
        task.due_date is not None
        and task.due_date < today
        and task.status != "completed"
    )


def tasks_public(
    session: Session, tasks: list[Task], include_comments: bool = False
) -> list[TaskPublic]:
    if not tasks:
        return []

    projects = {}
    project_ids = _ids(task.project_id for task in tasks)
    if project_ids:
        for project in session.exec(
            select(Project).where(col(Project.id).in_(project_ids))
        ).all():
            projects[project.id] = ProjectRef(
                id=project.id, project_code=project.project_code, name=project.name
            )
    assignees = employee_summaries(session, [task.assigned_to for task in tasks])

    comments: dict[int, list[TaskCommentPublic]] = defaultdict(list)
    if include_comments:
        comment_rows = session.exec(
            select(TaskComment)
            .where(col(TaskComment.task_id).in_([task.id for task in tasks]))
            .order_by(TaskComment.created_at)
        ).all()
        authors = users_by_id(session, [comment.user_id for comment in comment_rows])
        for comment in comment_rows:
            author = authors.get(comment.user_id)
            comments[comment.task_id].append(
                TaskCommentPublic(
                    id=comment.id,
                    user_id=comment.user_id,
                    user_name=author.name if author else None,
                    comment=comment.comment,
                    created_at=comment.created_at,
                )
            )

    today = date.today()
    return [
        TaskPublic(
            **task.model_dump(
                exclude={
                    "project_id",
                    "assigned_to",
                    "timer_running",
                    "timer_started_at",
                    "total_tracked_seconds",
                }
            ),
            is_overdue=is_overdue(task, today),
            project=projects.get(task.project_id),
            assignee=assignees.get(task.assigned_to),
            comments=comments.get(task.id, []),
        )
        for task in tasks
    ]


def task_public(session: Session, task: Task, include_comments: bool = True) -> TaskPublic:
    return tasks_public(session, [task], include_comments=include_comments)[0]


# Attendance


def attendance_with_employees(
    session: Session, records: list[Attendance]
) -> list[AttendanceWithEmployee]:
    employees = employee_summaries(session, [record.employee_id for record in records])
    return [
        AttendanceWithEmployee(
            **record.model_dump(), employee=employees.get(record.employee_id)
        )
        for record in records
    ]


# Meetings


def meetings_public(session: Session, meetings: list[Meeting]) -> list[MeetingPublic]:
    if not meetings:
        return []
    participant_rows = session.exec(
        select(MeetingParticipant).where(
            col(MeetingParticipant.meeting_id).in_([meeting.id for meeting in meetings])
        )
    ).all()
    users = users_by_id(
        session,
        [row.user_id for row in participant_rows]
        + [meeting.organizer_id for meeting in meetings],
    )

    participants: dict[int, list[ParticipantPublic]] = defaultdict(list)
    for row in participant_rows:
        user = users.get(row.user_id)
        if user is None:
            continue
        participants[row.meeting_id].append(
            ParticipantPublic(
                user_id=row.user_id,
                name=user.name,
                email=user.email,
                role=row.role,
                status=row.status,
                responded_at=row.responded_at,
            )
        )

    result = []
    for meeting in meetings:
        organizer = users.get(meeting.organizer_id)
        result.append(
            MeetingPublic(
                **meeting.model_dump(exclude={"minutes_recorded_by"}),
                organizer_name=organizer.name if organizer else None,
                participants=participants.get(meeting.id, []),
            )
        )
    return result


def meeting_public(session: Session, meeting: Meeting) -> MeetingPublic:
    return meetings_public(session, [meeting])[0]


# Daily reports


def reports_public(session: Session, reports: list[DailyReport]) -> list[DailyReportPublic]:
    employees = employee_summaries(session, [report.employee_id for report in reports])
    return [
        DailyReportPublic(**report.model_dump(), employee=employees.get(report.employee_id))
        for report in reports
    ]
