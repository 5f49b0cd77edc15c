from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from sqlmodel import Session, col, select

from app.api.dependencies import CurrentEmployeeDep, EmployeeUserDep, PaginationDep, SessionDep
from app.api.routes.employees import apply_employee_update
from app.api.routes.tasks import filtered_tasks
from app.core.dashboard_service import employee_dashboard
from app.core.database import paginate
from app.core.events import EventType
from app.core.id_generator import REPORT_CODE, create_with_sequential_id
from app.core.logging import get_logger
from app.core.notification_service import notify
from app.core.populate import (
    project_public,
    projects_public,
    reports_public,
    task_public,
    tasks_public,
    to_employee_public,
)
from app.core.project_service import employee_project_ids, refresh_progress
from app.core.realtime import ADMIN_ROOM, emit_event
from app.core.security import hash_password, verify_password
from app.core.task_service import (
    apply_status,
    start_timer,
    stop_timer,
    task_event,
    task_rooms,
    timer_state,
)
from app.models.common import ApiResponse, MessageResponse, PaginatedResponse
from app.models.daily_report import (
    DailyReport,
    DailyReportCreate,
    DailyReportPublic,
    DailyReportUpdate,
)
from app.models.dashboard import EmployeeDashboard
from app.models.employee import Employee, EmployeeProfileUpdate, EmployeePublic
from app.models.enums import (
    NotificationType,
    ProjectStatus,
    ReportStatus,
    TaskStatus,
    UserRole,
    enum_values,
    normalize_choice,
)
from app.models.project import Project, ProjectPublic
from app.models.task import (
    Task,
    TaskComment,
    TaskCommentCreate,
    TaskPublic,
    TaskStatusUpdate,
    TaskTimerState,
)
from app.models.user import PasswordUpdate

logger = get_logger(__name__)

router = APIRouter(tags=["employee"])


def _own_task_or_404(session: Session, employee: Employee, task_id: int) -> Task:
    task = session.get(Task, task_id)
    if task is None or not task.is_active or task.assigned_to != employee.id:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def _own_report_or_404(session: Session, employee: Employee, report_id: int) -> DailyReport:
    report = session.get(DailyReport, report_id)
    if report is None or report.employee_id != employee.id:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


def _save_task(session: Session, task: Task) -> None:
    task.updated_at = datetime.utcnow()
    session.add(task)
    session.commit()
    session.refresh(task)


# Dashboard and profile


@router.get("/dashboard", response_model=ApiResponse[EmployeeDashboard])
async def get_dashboard(session: SessionDep, employee: CurrentEmployeeDep, user: EmployeeUserDep):
    """Tasks, projects, meetings and this month's attendance at a glance."""
    return ApiResponse(data=employee_dashboard(session, employee, user))


@router.get("/profile", response_model=ApiResponse[EmployeePublic])
async def get_profile(employee: CurrentEmployeeDep, user: EmployeeUserDep):
    return ApiResponse(data=to_employee_public(employee, user))


@router.put("/profile", response_model=ApiResponse[EmployeePublic])
async def update_profile(
    request: EmployeeProfileUpdate,
    session: SessionDep,
    employee: CurrentEmployeeDep,
    user: EmployeeUserDep,
):
    """
    Update the fields an employee manages themselves. HR fields such as
    salary and department stay admin-only.
    """
    apply_employee_update(session, employee, user, request.model_dump(exclude_unset=True))
    logger.info(f"Employee {employee.employee_code} updated their profile")
    return ApiResponse(
        message="Profile updated successfully", data=to_employee_public(employee, user)
    )


@router.post("/profile/change-password", response_model=MessageResponse)
async def change_password(request: PasswordUpdate, session: SessionDep, user: EmployeeUserDep):
    """
    Raises:
        HTTPException: 400 if the current password is wrong
    """
    if not verify_password(request.current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    user.password_hash = hash_password(request.new_password)
    user.updated_at = datetime.utcnow()
    session.add(user)
    session.commit()
    logger.info(f"Password changed for {user.email}")
    return MessageResponse(message="Password changed successfully")


# Tasks


@router.get("/tasks", response_model=PaginatedResponse[TaskPublic])
async def my_tasks(
    session: SessionDep,
    employee: CurrentEmployeeDep,
    pagination: PaginationDep,
    search: Optional[str] = Query(None, max_length=100),
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    project_id: Optional[int] = Query(None, gt=0),
):
    statement = select(Task).where(
        Task.assigned_to == employee.id, Task.is_active == True  # noqa: E712
    )
    if project_id:
        statement = statement.where(Task.project_id == project_id)
    statement = filtered_tasks(statement, search, status, priority)

    rows, total = paginate(session, statement, pagination.offset, pagination.limit)
    return PaginatedResponse.build(
        tasks_public(session, rows), total, pagination.page, pagination.limit
    )


@router.get("/tasks/{task_id}", response_model=ApiResponse[TaskPublic])
async def my_task(task_id: int, session: SessionDep, employee: CurrentEmployeeDep):
    return ApiResponse(data=task_public(session, _own_task_or_404(session, employee, task_id)))


@router.patch("/tasks/{task_id}/status", response_model=ApiResponse[TaskPublic])
async def update_task_status(
    task_id: int,
    request: TaskStatusUpdate,
    session: SessionDep,
    employee: CurrentEmployeeDep,
    user: EmployeeUserDep,
):
    """
    Move a task through pending, in-progress, on-hold and completed.

    Completing a task stops its timer. Project progress follows the share
    of completed tasks.
    """
    task = _own_task_or_404(session, employee, task_id)
    previous = task.status
    now = datetime.utcnow()

    if request.status == TaskStatus.COMPLETED and task.timer_running:
        stop_timer(session, task, now)
    apply_status(task, request.status, now)
    if request.actual_hours is not None:
        task.actual_hours = request.actual_hours
    _save_task(session, task)
    logger.info(f"Task {task.task_code} moved from {previous} to {task.status} by {user.email}")

    refresh_progress(session, task.project_id)
    await emit_event(
        EventType.TASK_STATUS_CHANGED,
        {**task_event(task).model_dump(mode="json"), "previous_status": previous},
        task_rooms(session, task),
        actor=user,
    )
    if task.status == TaskStatus.COMPLETED.value and previous != task.status:
        await notify(
            session,
            role=UserRole.ADMIN.value,
            sender=user,
            title="Task completed",
            message=f"{user.name} completed {task.task_code}: {task.title}",
            type=NotificationType.TASK,
            link=f"/admin/tasks/{task.id}",
            data={"task_id": task.id},
        )
    return ApiResponse(message="Task status updated", data=task_public(session, task))


@router.post("/tasks/{task_id}/comments", response_model=ApiResponse[TaskPublic], status_code=201)
async def add_task_comment(
    task_id: int,
    request: TaskCommentCreate,
    session: SessionDep,
    employee: CurrentEmployeeDep,
    user: EmployeeUserDep,
):
    task = _own_task_or_404(session, employee, task_id)
    session.add(TaskComment(task_id=task.id, user_id=user.id, comment=request.comment))
    _save_task(session, task)

    await emit_event(
        EventType.TASK_UPDATED,
        {**task_event(task).model_dump(mode="json"), "comment": request.comment},
        [ADMIN_ROOM],
        actor=user,
    )
    return ApiResponse(message="Comment added", data=task_public(session, task))


@router.post("/tasks/{task_id}/timer/start", response_model=ApiResponse[TaskTimerState])
async def start_task_timer(
    task_id: int, session: SessionDep, employee: CurrentEmployeeDep, user: EmployeeUserDep
):
    """Start tracking time. A pending task moves to in-progress."""
    task = _own_task_or_404(session, employee, task_id)
    previous = task.status
    start_timer(session, task)
    _save_task(session, task)

    if task.status != previous:
        await emit_event(
            EventType.TASK_STATUS_CHANGED, task_event(task), task_rooms(session, task), actor=user
        )
    return ApiResponse(message="Timer started", data=timer_state(session, task))


@router.post("/tasks/{task_id}/timer/stop", response_model=ApiResponse[TaskTimerState])
async def stop_task_timer(task_id: int, session: SessionDep, employee: CurrentEmployeeDep):
    task = _own_task_or_404(session, employee, task_id)
    seconds = stop_timer(session, task)
    _save_task(session, task)
    return ApiResponse(
        message=f"Timer stopped after {seconds} seconds", data=timer_state(session, task)
    )


@router.get("/tasks/{task_id}/timer", response_model=ApiResponse[TaskTimerState])
async def get_task_timer(task_id: int, session: SessionDep, employee: CurrentEmployeeDep):
    task = _own_task_or_404(session, employee, task_id)
    return ApiResponse(data=timer_state(session, task))


# Projects


@router.get("/projects", response_model=PaginatedResponse[ProjectPublic])
async def my_projects(
    session: SessionDep,
    employee: CurrentEmployeeDep,
    pagination: PaginationDep,
    status: Optional[str] = Query(None),
):
    """Projects the employee manages or is on the team of."""
    project_ids = employee_project_ids(session, employee.id)
    statement = select(Project).where(col(Project.id).in_(project_ids))
    if status:
        try:
            statement = statement.where(
                Project.status == normalize_choice(status, ProjectStatus).value
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    rows, total = paginate(
        session,
        statement.order_by(col(Project.created_at).desc()),
        pagination.offset,
        pagination.limit,
    )
    return PaginatedResponse.build(
        projects_public(session, rows), total, pagination.page, pagination.limit
    )


@router.get("/projects/{project_id}", response_model=ApiResponse[ProjectPublic])
async def my_project(project_id: int, session: SessionDep, employee: CurrentEmployeeDep):
    if project_id not in employee_project_ids(session, employee.id):
        raise HTTPException(status_code=404, detail="Project not found")
    return ApiResponse(data=project_public(session, session.get(Project, project_id)))


# Daily reports


@router.post("/reports/daily", response_model=ApiResponse[DailyReportPublic], status_code=201)
async def submit_daily_report(
    request: DailyReportCreate,
    session: SessionDep,
    employee: CurrentEmployeeDep,
    user: EmployeeUserDep,
):
    """
    Submit the report for a day, today by default. One report per day.

    Raises:
        HTTPException: 400 for a future date or a second report on the same day
    """
    report_date = request.report_date or date.today()
    if report_date > date.today():
        raise HTTPException(status_code=400, detail="Cannot submit a report for a future date")
    existing = session.exec(
        select(DailyReport).where(
            DailyReport.employee_id == employee.id, DailyReport.report_date == report_date
        )
    ).first()
    if existing is not None:
        raise HTTPException(status_code=400, detail="A report for this date already exists")

    fields = enum_values(request.model_dump(exclude={"report_date"}))

    def build(code: str) -> DailyReport:
        report = DailyReport(
            report_code=code, employee_id=employee.id, report_date=report_date, **fields
        )
        session.add(report)
        return report

    report = create_with_sequential_id(session, DailyReport, "report_code", REPORT_CODE, build)
    logger.info(f"Daily report {report.report_code} submitted by {employee.employee_code}")

    await notify(
        session,
        role=UserRole.ADMIN.value,
        sender=user,
        title="Daily report submitted",
        message=f"{user.name} submitted the report for {report_date}",
        type=NotificationType.INFO,
        link=f"/admin/reports/daily/{report.id}",
        data={"report_id": report.id},
    )
    return ApiResponse(
        message="Report submitted successfully", data=reports_public(session, [report])[0]
    )


@router.get("/reports", response_model=PaginatedResponse[DailyReportPublic])
async def my_reports(
    session: SessionDep,
    employee: CurrentEmployeeDep,
    pagination: PaginationDep,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    statement = select(DailyReport).where(DailyReport.employee_id == employee.id)
    if start_date:
        statement = statement.where(DailyReport.report_date >= start_date)
    if end_date:
        statement = statement.where(DailyReport.report_date <= end_date)

    rows, total = paginate(
        session,
        statement.order_by(col(DailyReport.report_date).desc()),
        pagination.offset,
        pagination.limit,
    )
    return PaginatedResponse.build(
        reports_public(session, rows), total, pagination.page, pagination.limit
    )


@router.get("/reports/{report_id}", response_model=ApiResponse[DailyReportPublic])
async def my_report(report_id: int, session: SessionDep, employee: CurrentEmployeeDep):
    report = _own_report_or_404(session, employee, report_id)
    return ApiResponse(data=reports_public(session, [report])[0])


@router.put("/reports/{report_id}", response_model=ApiResponse[DailyReportPublic])
async def update_my_report(
    report_id: int,
    request: DailyReportUpdate,
    session: SessionDep,
    employee: CurrentEmployeeDep,
):
    """
    Raises:
        HTTPException: 400 once the report has been reviewed
    """
    report = _own_report_or_404(session, employee, report_id)
    if report.status != ReportStatus.SUBMITTED.value:
        raise HTTPException(status_code=400, detail="Reviewed reports can no longer be edited")

    for key, value in enum_values(request.model_dump(exclude_unset=True)).items():
        setattr(report, key, value)
    report.updated_at = datetime.utcnow()
    session.add(report)
    session.commit()
    session.refresh(report)
    return ApiResponse(
        message="Report updated successfully", data=reports_public(session, [report])[0]
    )
