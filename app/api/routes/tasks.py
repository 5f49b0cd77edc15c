from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from sqlmodel import Session, col, or_, select

from app.api.dependencies import AdminDep, PaginationDep, SessionDep
from app.api.routes.projects import get_project_or_404
from app.core.database import paginate
from app.core.events import EventType
from app.core.id_generator import TASK_CODE, create_with_sequential_id
from app.core.logging import get_logger
from app.core.notification_service import notify
from app.core.populate import task_public, tasks_public
from app.core.project_service import employee_user_ids, refresh_progress
from app.core.realtime import ADMIN_ROOM, emit_event
from app.core.task_service import apply_status, stop_timer, task_event, task_rooms, task_stats
from app.models.common import ApiResponse, MessageResponse, PaginatedResponse
from app.models.employee import Employee
from app.models.enums import (
    NotificationType,
    Priority,
    TaskStatus,
    UserRole,
    enum_values,
    normalize_choice,
)
from app.models.project import Project
from app.models.task import (
    Task,
    TaskAssign,
    TaskBulkResult,
    TaskBulkUpdate,
    TaskCreate,
    TaskPublic,
    TaskStats,
    TaskUpdate,
)
from app.models.user import User

logger = get_logger(__name__)

router = APIRouter(
    prefix="/tasks",
    tags=["admin-tasks"],
    responses={404: {"description": "Task not found"}},
)


def get_task_or_404(session: Session, task_id: int) -> Task:
    task = session.get(Task, task_id)
    if task is None or not task.is_active:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def _require_assignee(session: Session, employee_id: int) -> Employee:
    employee = session.get(Employee, employee_id)
    if employee is None or not employee.is_active:
        raise HTTPException(status_code=400, detail=f"Employee {employee_id} does not exist")
    return employee


def _require_project(session: Session, project_id: Optional[int]) -> None:
    if project_id is None:
        return
    project = session.get(Project, project_id)
    if project is None or not project.is_active:
        raise HTTPException(status_code=400, detail=f"Project {project_id} does not exist")


def filtered_tasks(
    statement,
    search: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
):
    """Apply the common task list filters to a select."""
    try:
        if status:
            statement = statement.where(Task.status == normalize_choice(status, TaskStatus).value)
        if priority:
            statement = statement.where(
                Task.priority == normalize_choice(priority, Priority).value
            )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if search:
        pattern = f"%{search.strip()}%"
        statement = statement.where(
            or_(
                col(Task.title).ilike(pattern),
                col(Task.task_code).ilike(pattern),
                col(Task.description).ilike(pattern),
            )
        )
    return statement.order_by(col(Task.created_at).desc(), col(Task.id).desc())


def _active_tasks():
    return select(Task).where(Task.is_active == True)  # noqa: E712


def _page(session: Session, statement, pagination) -> PaginatedResponse:
    rows, total = paginate(session, statement, pagination.offset, pagination.limit)
    return PaginatedResponse.build(
        tasks_public(session, rows), total, pagination.page, pagination.limit
    )


async def announce_assignment(session: Session, task: Task, sender: User) -> None:
    """Push task-assigned to the assignee and leave them a notification."""
    user_ids = employee_user_ids(session, [task.assigned_to])
    await emit_event(
        EventType.TASK_ASSIGNED, task_event(task), task_rooms(session, task), actor=sender
    )
    if task.assigned_to in user_ids:
        await notify(
            session,
            role=UserRole.EMPLOYEE.value,
            recipient_id=user_ids[task.assigned_to],
            sender=sender,
            title="New task assigned",
            message=f"{task.task_code}: {task.title}",
            type=NotificationType.TASK,
            link=f"/employee/tasks/{task.id}",
            data={"task_id": task.id},
        )


@router.get("", response_model=PaginatedResponse[TaskPublic])
async def list_tasks(
    session: SessionDep,
    admin: AdminDep,
    pagination: PaginationDep,
    search: Optional[str] = Query(None, max_length=100),
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    project_id: Optional[int] = Query(None, gt=0),
    assigned_to: Optional[int] = Query(None, gt=0),
):
    """
    **RBAC:** Admin only.
    """
    statement = _active_tasks()
    if project_id:
        statement = statement.where(Task.project_id == project_id)
    if assigned_to:
        statement = statement.where(Task.assigned_to == assigned_to)
    return _page(session, filtered_tasks(statement, search, status, priority), pagination)


@router.post("", response_model=ApiResponse[TaskPublic], status_code=201)
async def create_task(request: TaskCreate, session: SessionDep, admin: AdminDep):
    """
    Create a task with the next TSK code and notify the assignee.

    **RBAC:** Admin only.

    Raises:
        HTTPException: 400 if the assignee or project does not exist
    """
    _require_assignee(session, request.assigned_to)
    _require_project(session, request.project_id)
    fields = enum_values(request.model_dump(exclude={"status"}))

    def build(code: str) -> Task:
        task = Task(task_code=code, assigned_by=admin.id, **fields)
        apply_status(task, request.status)
        session.add(task)
        return task

    task = create_with_sequential_id(session, Task, "task_code", TASK_CODE, build)
    logger.info(f"Task {task.task_code} created and assigned to employee {task.assigned_to}")

    refresh_progress(session, task.project_id)
    await emit_event(EventType.TASK_CREATED, task_event(task), [ADMIN_ROOM], actor=admin)
    await announce_assignment(session, task, admin)
    return ApiResponse(message="Task created successfully", data=task_public(session, task))


@router.get("/stats", response_model=ApiResponse[TaskStats])
async def get_task_stats(
    session: SessionDep,
    admin: AdminDep,
    project_id: Optional[int] = Query(None, gt=0),
    assigned_to: Optional[int] = Query(None, gt=0),
):
    """
    Counts by status and priority, overdue tasks and completion rate.

    **RBAC:** Admin only.
    """
    statement = _active_tasks()
    if project_id:
        statement = statement.where(Task.project_id == project_id)
    if assigned_to:
        statement = statement.where(Task.assigned_to == assigned_to)
    return ApiResponse(data=task_stats(list(session.exec(statement).all())))


@router.put("/bulk", response_model=ApiResponse[TaskBulkResult])
async def bulk_update_tasks(request: TaskBulkUpdate, session: SessionDep, admin: AdminDep):
    """
    Apply one status and/or priority to many tasks.

    **RBAC:** Admin only.

    Raises:
        HTTPException: 400 if neither field is given, 404 if any task is missing
    """
    if request.status is None and request.priority is None:
        raise HTTPException(status_code=400, detail="Provide a status or a priority to update")

    ids = sorted(set(request.task_ids))
    tasks = list(
        session.exec(_active_tasks().where(col(Task.id).in_(ids))).all()
    )
    missing = sorted(set(ids) - {task.id for task in tasks})
    if missing:
        raise HTTPException(
            status_code=404, detail=f"Tasks not found: {', '.join(str(i) for i in missing)}"
        )

    now = datetime.utcnow()
    for task in tasks:
        if request.status is not None:
            if request.status == TaskStatus.COMPLETED and task.timer_running:
                stop_timer(session, task, now)
            apply_status(task, request.status, now)
        if request.priority is not None:
            task.priority = request.priority.value
        task.updated_at = now
        session.add(task)
    session.commit()
    logger.info(f"Bulk update of {len(tasks)} tasks by {admin.email}")

    for project_id in {task.project_id for task in tasks if task.project_id}:
        refresh_progress(session, project_id)
    for task in tasks:
        session.refresh(task)
        await emit_event(
            EventType.TASK_UPDATED, task_event(task), task_rooms(session, task), actor=admin
        )

    return ApiResponse(
        message=f"{len(tasks)} tasks updated",
        data=TaskBulkResult(updated=len(tasks), task_ids=[task.id for task in tasks]),
    )


@router.get("/project/{project_id}", response_model=PaginatedResponse[TaskPublic])
async def list_project_tasks(
    project_id: int,
    session: SessionDep,
    admin: AdminDep,
    pagination: PaginationDep,
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
):
    """
    **RBAC:** Admin only.
    """
    get_project_or_404(session, project_id)
    statement = _active_tasks().where(Task.project_id == project_id)
    return _page(session, filtered_tasks(statement, None, status, priority), pagination)


@router.get("/employee/{employee_id}", response_model=PaginatedResponse[TaskPublic])
async def list_employee_tasks(
    employee_id: int,
    session: SessionDep,
    admin: AdminDep,
    pagination: PaginationDep,
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
):
    """
    **RBAC:** Admin only.
    """
    if session.get(Employee, employee_id) is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    statement = _active_tasks().where(Task.assigned_to == employee_id)
    return _page(session, filtered_tasks(statement, None, status, priority), pagination)


@router.get("/{task_id}", response_model=ApiResponse[TaskPublic])
async def get_task(task_id: int, session: SessionDep, admin: AdminDep):
    """
    **RBAC:** Admin only.
    """
    return ApiResponse(data=task_public(session, get_task_or_404(session, task_id)))


@router.put("/{task_id}", response_model=ApiResponse[TaskPublic])
async def update_task(task_id: int, request: TaskUpdate, session: SessionDep, admin: AdminDep):
    """
    Update a task. Reassignment and status changes emit their own events.

    **RBAC:** Admin only.
    """
    task = get_task_or_404(session, task_id)
    changes = request.model_dump(exclude_unset=True)
    previous_assignee = task.assigned_to
    previous_project = task.project_id
    previous_status = task.status

    if changes.get("assigned_to"):
        _require_assignee(session, changes["assigned_to"])
    if changes.get("project_id"):
        _require_project(session, changes["project_id"])

    status = changes.pop("status", None)
    for key, value in enum_values(changes).items():
        setattr(task, key, value)
    now = datetime.utcnow()
    if status is not None:
        if status == TaskStatus.COMPLETED and task.timer_running:
            stop_timer(session, task, now)
        apply_status(task, status, now)
    task.updated_at = now
    session.add(task)
    session.commit()
    session.refresh(task)
    logger.info(f"Task {task.task_code} updated by {admin.email}")

    for project_id in {previous_project, task.project_id}:
        refresh_progress(session, project_id)

    reassigned = task.assigned_to != previous_assignee
    await emit_event(
        EventType.TASK_STATUS_CHANGED if task.status != previous_status else EventType.TASK_UPDATED,
        task_event(task),
        task_rooms(session, task, previous_assignee),
        actor=admin,
    )
    if reassigned:
        await announce_assignment(session, task, admin)
    return ApiResponse(message="Task updated successfully", data=task_public(session, task))


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(task_id: int, session: SessionDep, admin: AdminDep):
    """
    Soft delete.

    **RBAC:** Admin only.
    """
    task = get_task_or_404(session, task_id)
    if task.timer_running:
        stop_timer(session, task)
    task.is_active = False
    task.updated_at = datetime.utcnow()
    session.add(task)
    session.commit()
    refresh_progress(session, task.project_id)
    logger.info(f"Task {task.task_code} deleted by {admin.email}")
    return MessageResponse(message="Task deleted successfully")


@router.post("/{task_id}/assign", response_model=ApiResponse[TaskPublic])
async def assign_task(task_id: int, request: TaskAssign, session: SessionDep, admin: AdminDep):
    """
    Reassign a task to another employee.

    **RBAC:** Admin only.
    """
    task = get_task_or_404(session, task_id)
    _require_assignee(session, request.assigned_to)

    previous = task.assigned_to
    if task.timer_running:
        stop_timer(session, task)
    task.assigned_to = request.assigned_to
    task.assigned_by = admin.id
    task.updated_at = datetime.utcnow()
    session.add(task)
    session.commit()
    session.refresh(task)
    logger.info(f"Task {task.task_code} reassigned from {previous} to {task.assigned_to}")

    await announce_assignment(session, task, admin)
    return ApiResponse(message="Task assigned successfully", data=task_public(session, task))
