"""
Project aggregates shared by the admin, employee and client routers.
"""

from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import func
from sqlmodel import Session, col, or_, select

from app.core.logging import get_logger
from app.core.realtime import ADMIN_ROOM, client_room, employee_room
from app.models.client import Client
from app.models.employee import Employee
from app.models.enums import MilestoneStatus, TaskStatus
from app.models.project import (
    Project,
    ProjectFeedback,
    ProjectMilestone,
    ProjectProgress,
    ProjectStats,
    ProjectTeamMember,
    TimelineEntry,
)
from app.models.task import Task

logger = get_logger(__name__)


def employee_user_ids(session: Session, employee_ids: Iterable[Optional[int]]) -> dict[int, int]:
    """Map employee ids to their user ids."""
    ids = sorted({employee_id for employee_id in employee_ids if employee_id is not None})
    if not ids:
        return {}
    rows = session.exec(
        select(Employee.id, Employee.user_id).where(col(Employee.id).in_(ids))
    ).all()
    return {employee_id: user_id for employee_id, user_id in rows}


def team_employee_ids(session: Session, project_id: int) -> list[int]:
    return list(
        session.exec(
            select(ProjectTeamMember.employee_id).where(
                ProjectTeamMember.project_id == project_id
            )
        ).all()
    )


def project_rooms(session: Session, project: Project) -> list[str]:
    """Admin room plus the personal rooms of the client, manager and team."""
    rooms = [ADMIN_ROOM]
    client = session.get(Client, project.client_id)
    if client is not None:
        rooms.append(client_room(client.user_id))
    members = team_employee_ids(session, project.id) + [project.project_manager_id]
    rooms.extend(employee_room(user_id) for user_id in employee_user_ids(session, members).values())
    return rooms


def employee_project_ids(session: Session, employee_id: int) -> list[int]:
    """Projects an employee manages or is on the team of."""
    team = select(ProjectTeamMember.project_id).where(
        ProjectTeamMember.employee_id == employee_id
    )
    return list(
        session.exec(
            select(Project.id).where(
                Project.is_active == True,  # noqa: E712
                or_(Project.project_manager_id == employee_id, col(Project.id).in_(team)),
            )
        ).all()
    )


def task_counts(session: Session, project_id: int) -> dict[str, int]:
    counts = {status.value: 0 for status in TaskStatus}
    rows = session.exec(
        select(Task.status, func.count())
        .where(Task.project_id == project_id, Task.is_active == True)  # noqa: E712
        .group_by(Task.status)
    ).all()
    for status, count in rows:
        counts[status] = count
    return counts


def _days_remaining(project: Project, today: date) -> Optional[int]:
    if project.end_date is None:
        return None
    return (project.end_date - today).days


def project_stats(session: Session, project: Project, today: Optional[date] = None) -> ProjectStats:
    today = today or date.today()
    counts = task_counts(session, project.id)
    total = sum(counts.values())
    completed = counts.get(TaskStatus.COMPLETED.value, 0)

    overdue = session.exec(
        select(func.count()).select_from(Task).where(
            Task.project_id == project.id,
            Task.is_active == True,  # noqa: E712
            Task.status != TaskStatus.COMPLETED.value,
            col(Task.due_date).is_not(None),
            col(Task.due_date) < today,
        )
    ).one()

    return ProjectStats(
        project_id=project.id,
        total_tasks=total,
        tasks_by_status=counts,
        completion_rate=round(completed / total * 100, 2) if total else 0,
        overdue_tasks=overdue,
        team_size=len(team_employee_ids(session, project.id)),
        budget=project.budget,
        spent=project.spent,
        budget_utilization=round(project.spent / project.budget * 100, 2) if project.budget else 0,
        days_remaining=_days_remaining(project, today),
    )


def project_progress(
    session: Session, project: Project, today: Optional[date] = None
) -> ProjectProgress:
    today = today or date.today()
    counts = task_counts(session, project.id)
    milestones = session.exec(
        select(ProjectMilestone).where(ProjectMilestone.project_id == project.id)
    ).all()

    return ProjectProgress(
        project_id=project.id,
        project_code=project.project_code,
        name=project.name,
        status=project.status,
        progress=project.progress,
        total_tasks=sum(counts.values()),
        completed_tasks=counts.get(TaskStatus.COMPLETED.value, 0),
        in_progress_tasks=counts.get(TaskStatus.IN_PROGRESS.value, 0),
        pending_tasks=counts.get(TaskStatus.PENDING.value, 0),
        milestones_total=len(milestones),
        milestones_completed=sum(
            1 for milestone in milestones if milestone.status == MilestoneStatus.COMPLETED.value
        ),
        days_remaining=_days_remaining(project, today),
    )


def refresh_progress(session: Session, project_id: Optional[int]) -> Optional[Project]:
    """Set project progress to the share of its tasks that are completed."""
    if project_id is None:
        return None
    project = session.get(Project, project_id)
    if project is None:
        return None

    counts = task_counts(session, project_id)
    total = sum(counts.values())
    if total:
        project.progress = round(counts.get(TaskStatus.COMPLETED.value, 0) / total * 100)
        project.updated_at = datetime.utcnow()
        session.add(project)
        session.commit()
        session.refresh(project)
        logger.debug(f"Project {project.project_code} progress now {project.progress}%")
    return project


def project_timeline(session: Session, project: Project) -> list[TimelineEntry]:
    """Project history, newest first."""
    entries = [
        TimelineEntry(
            type="project",
            title="Project created",
            description=project.name,
            timestamp=project.created_at,
        )
    ]

    for milestone in session.exec(
        select(ProjectMilestone).where(ProjectMilestone.project_id == project.id)
    ).all():
        entries.append(
            TimelineEntry(
                type="milestone",
                title=f"Milestone added: {milestone.name}",
                description=milestone.description or None,
                timestamp=milestone.created_at,
            )
        )
        if milestone.completed_at:
            entries.append(
                TimelineEntry(
                    type="milestone",
                    title=f"Milestone completed: {milestone.name}",
                    timestamp=milestone.completed_at,
                )
            )

    for task in session.exec(
        select(Task).where(Task.project_id == project.id, Task.is_active == True)  # noqa: E712
    ).all():
        entries.append(
            TimelineEntry(
                type="task",
                title=f"Task created: {task.title}",
                description=task.task_code,
                timestamp=task.created_at,
            )
        )
        if task.completed_at:
            entries.append(
                TimelineEntry(
                    type="task",
                    title=f"Task completed: {task.title}",
                    description=task.task_code,
                    timestamp=task.completed_at,
                )
            )

    for feedback in session.exec(
        select(ProjectFeedback).where(ProjectFeedback.project_id == project.id)
    ).all():
        entries.append(
            TimelineEntry(
                type="feedback",
                title=f"Client feedback ({feedback.rating}/5)",
                description=feedback.comment or None,
                timestamp=feedback.created_at,
            )
        )

    for member in session.exec(
        select(ProjectTeamMember).where(ProjectTeamMember.project_id == project.id)
    ).all():
        entries.append(
            TimelineEntry(
                type="team",
                title=f"Team member assigned as {member.role}",
                timestamp=member.assigned_at,
            )
        )

    entries.sort(key=lambda entry: entry.timestamp, reverse=True)
    return entries
