"""
Task lifecycle: status transitions, time tracking and statistics.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlmodel import Session, col, select

from app.core.events import TaskAssignedEvent
from app.core.logging import get_logger
from app.core.populate import employee_summaries, is_overdue
from app.core.project_service import employee_user_ids
from app.core.realtime import ADMIN_ROOM, employee_room
from app.models.employee import Employee
from app.models.enums import Priority, TaskStatus
from app.models.task import (
    EmployeePerformance,
    PerformanceReport,
    Task,
    TaskStats,
    TaskTimerSession,
    TaskTimerState,
)

logger = get_logger(__name__)


def task_event(task: Task) -> TaskAssignedEvent:
    return TaskAssignedEvent(
        task_id=task.id,
        task_code=task.task_code,
        title=task.title,
        priority=task.priority,
        status=task.status,
        due_date=task.due_date.isoformat() if task.due_date else None,
        project_id=task.project_id,
        assigned_to=task.assigned_to,
        assigned_by=task.assigned_by,
    )


def task_rooms(session: Session, task: Task, *extra_employee_ids: int) -> list[str]:
    """Admin room plus the personal room of the assignee (and any previous one)."""
    user_ids = employee_user_ids(session, [task.assigned_to, *extra_employee_ids])
    return [ADMIN_ROOM] + [employee_room(user_id) for user_id in user_ids.values()]


def apply_status(task: Task, status: TaskStatus, now: Optional[datetime] = None) -> None:
    """Set the status and stamp start/completion times."""
    now = now or datetime.utcnow()
    task.status = status.value
    if status == TaskStatus.IN_PROGRESS and task.started_at is None:
        task.started_at = now
    if status == TaskStatus.COMPLETED:
        task.completed_at = task.completed_at or now
        if task.started_at is None:
            task.started_at = now
    else:
        task.completed_at = None


# Time tracking


def _open_session(session: Session, task: Task) -> Optional[TaskTimerSession]:
    return session.exec(
        select(TaskTimerSession)
        .where(TaskTimerSession.task_id == task.id, col(TaskTimerSession.ended_at).is_(None))
        .order_by(col(TaskTimerSession.started_at).desc())
    ).first()


def start_timer(session: Session, task: Task, now: Optional[datetime] = None) -> None:
    """
    Raises:
        HTTPException: 400 if the timer is running or the task is completed
    """
    if task.timer_running:
        raise HTTPException(status_code=400, detail="Timer is already running for this task")
    if task.status == TaskStatus.COMPLETED.value:
        raise HTTPException(status_code=400, detail="Cannot track time on a completed task")

    now = now or datetime.utcnow()
    task.timer_running = True
    task.timer_started_at = now
    if task.status == TaskStatus.PENDING.value:
        apply_status(task, TaskStatus.IN_PROGRESS, now)
    session.add(TaskTimerSession(task_id=task.id, started_at=now))
    logger.info(f"Timer started on task {task.task_code}")


def stop_timer(session: Session, task: Task, now: Optional[datetime] = None) -> int:
    """
    Close the running session and add its duration. Returns the seconds added.

    Raises:
        HTTPException: 400 if no timer is running
    """
    if not task.timer_running or task.timer_started_at is None:
        raise HTTPException(status_code=400, detail="No timer is running for this task")

    now = now or datetime.utcnow()
    seconds = max(0, int((now - task.timer_started_at).total_seconds()))

    open_session = _open_session(session, task)
    if open_session is not None:
        open_session.ended_at = now
        open_session.duration_seconds = seconds
        session.add(open_session)

    task.timer_running = False
    task.timer_started_at = None
    task.total_tracked_seconds += seconds
    task.actual_hours = round(task.total_tracked_seconds / 3600, 2)
    logger.info(f"Timer stopped on task {task.task_code} after {seconds}s")
    return seconds


def timer_state(session: Session, task: Task, now: Optional[datetime] = None) -> TaskTimerState:
    now = now or datetime.utcnow()
    current = 0
    if task.timer_running and task.timer_started_at is not None:
        current = max(0, int((now - task.timer_started_at).total_seconds()))
    sessions = session.exec(
        select(func.count())
        .select_from(TaskTimerSession)
        .where(TaskTimerSession.task_id == task.id)
    ).one()
    return TaskTimerState(
        task_id=task.id,
        running=task.timer_running,
        started_at=task.timer_started_at,
        total_seconds=task.total_tracked_seconds + current,
        current_session_seconds=current,
        sessions=sessions,
    )


# Statistics


def task_stats(tasks: list[Task], today: Optional[date] = None) -> TaskStats:
    today = today or date.today()
    week_start = datetime.combine(today - timedelta(days=today.weekday()), datetime.min.time())

    by_status = {status.value: 0 for status in TaskStatus}
    by_priority = {priority.value: 0 for priority in Priority}
    overdue = 0
    completed_this_week = 0
    for task in tasks:
        by_status[task.status] = by_status.get(task.status, 0) + 1
        by_priority[task.priority] = by_priority.get(task.priority, 0) + 1
        if is_overdue(task, today):
            overdue += 1
        if task.completed_at and task.completed_at >= week_start:
            completed_this_week += 1

    total = len(tasks)
    completed = by_status.get(TaskStatus.COMPLETED.value, 0)
    return TaskStats(
        total=total,
        by_status=by_status,
        by_priority=by_priority,
        overdue=overdue,
        completed_this_week=completed_this_week,
        completion_rate=round(completed / total * 100, 2) if total else 0,
    )


def performance_report(
    session: Session,
    start: Optional[date] = None,
    end: Optional[date] = None,
    department: Optional[str] = None,
    today: Optional[date] = None,
) -> PerformanceReport:
    """
    Task completion per active employee, best completion rate first.

    Only tasks created inside the window count when a window is given.
    A completed task is on time when it finished on or before its due date
    or has no due date.
    """
    today = today or date.today()
    employee_statement = select(Employee).where(Employee.is_active == True)  # noqa: E712
    if department:
        employee_statement = employee_statement.where(Employee.department == department)
    employee_ids = [employee.id for employee in session.exec(employee_statement).all()]

    task_statement = select(Task).where(
        Task.is_active == True, col(Task.assigned_to).in_(employee_ids)  # noqa: E712
    )
    if start:
        task_statement = task_statement.where(
            Task.created_at >= datetime.combine(start, datetime.min.time())
        )
    if end:
        task_statement = task_statement.where(
            Task.created_at < datetime.combine(end + timedelta(days=1), datetime.min.time())
        )

    by_employee: dict[int, list[Task]] = {employee_id: [] for employee_id in employee_ids}
    for task in session.exec(task_statement).all():
        by_employee[task.assigned_to].append(task)

    summaries = employee_summaries(session, employee_ids)
    rows = []
    for employee_id, tasks in by_employee.items():
        if employee_id not in summaries:
            continue
        completed = [task for task in tasks if task.status == TaskStatus.COMPLETED.value]
        on_time = [
            task
            for task in completed
            if task.due_date is None
            or (task.completed_at and task.completed_at.date() <= task.due_date)
        ]
        rows.append(
            EmployeePerformance(
                employee=summaries[employee_id],
                total_tasks=len(tasks),
                completed=len(completed),
                in_progress=sum(1 for task in tasks if task.status == TaskStatus.IN_PROGRESS.value),
                pending=sum(1 for task in tasks if task.status == TaskStatus.PENDING.value),
                overdue=sum(1 for task in tasks if is_overdue(task, today)),
                completion_rate=round(len(completed) / len(tasks) * 100, 2) if tasks else 0,
                on_time_rate=round(len(on_time) / len(completed) * 100, 2) if completed else 0,
                hours_logged=round(sum(task.actual_hours for task in tasks), 2),
            )
        )

    rows.sort(key=lambda row: (-row.completion_rate, -row.completed, row.employee.name))
    return PerformanceReport(
        start_date=start.isoformat() if start else None,
        end_date=end.isoformat() if end else None,
        generated_at=datetime.utcnow(),
        employees=rows,
    )
