from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from sqlmodel import Session, col, or_, select

from app.api.dependencies import AdminDep, PaginationDep, SessionDep
from app.core.database import paginate
from app.core.events import EventType, ProjectUpdatedEvent
from app.core.id_generator import PROJECT_CODE, create_with_sequential_id
from app.core.logging import get_logger
from app.core.notification_service import notify
from app.core.populate import project_public, projects_public
from app.core.project_service import (
    employee_user_ids,
    project_rooms,
    project_stats,
    project_timeline,
)
from app.core.realtime import emit_event
from app.models.client import Client
from app.models.common import ApiResponse, MessageResponse, PaginatedResponse
from app.models.employee import Employee
from app.models.enums import (
    MilestoneStatus,
    NotificationType,
    Priority,
    ProjectStatus,
    UserRole,
    enum_values,
    normalize_choice,
)
from app.models.project import (
    MilestoneCreate,
    MilestonePublic,
    MilestoneUpdate,
    Project,
    ProjectCreate,
    ProjectMilestone,
    ProjectPublic,
    ProjectStats,
    ProjectTeamMember,
    ProjectUpdate,
    TeamAssignRequest,
    TeamAssignment,
    TimelineEntry,
)
from app.models.user import User

logger = get_logger(__name__)

router = APIRouter(
    prefix="/projects",
    tags=["admin-projects"],
    responses={404: {"description": "Project not found"}},
)


def get_project_or_404(session: Session, project_id: int) -> Project:
    project = session.get(Project, project_id)
    if project is None or not project.is_active:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _require_client(session: Session, client_id: int) -> Client:
    client = session.get(Client, client_id)
    if client is None or not client.is_active:
        raise HTTPException(status_code=400, detail=f"Client {client_id} does not exist")
    return client


def _require_employees(session: Session, employee_ids: list[int]) -> None:
    ids = set(employee_ids)
    if not ids:
        return
    found = set(
        session.exec(
            select(Employee.id).where(
                col(Employee.id).in_(ids), Employee.is_active == True  # noqa: E712
            )
        ).all()
    )
    missing = sorted(ids - found)
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Employees not found or inactive: {', '.join(str(i) for i in missing)}",
        )


def _dedupe_members(members: list[TeamAssignment]) -> dict[int, str]:
    """Last role wins when an employee is listed twice."""
    return {member.employee_id: member.role.value for member in members}


async def _notify_team_members(
    session: Session, project: Project, employee_ids: list[int], sender: User
) -> None:
    for user_id in employee_user_ids(session, employee_ids).values():
        await notify(
            session,
            role=UserRole.EMPLOYEE.value,
            recipient_id=user_id,
            sender=sender,
            title="Added to project",
            message=f"You have been added to project {project.name}",
            type=NotificationType.PROJECT,
            link=f"/employee/projects/{project.id}",
            data={"project_id": project.id},
        )


def _update_event(project: Project, fields: list[str]) -> ProjectUpdatedEvent:
    return ProjectUpdatedEvent(
        project_id=project.id,
        project_code=project.project_code,
        name=project.name,
        status=project.status,
        progress=project.progress,
        updated_fields=fields,
    )


@router.get("", response_model=PaginatedResponse[ProjectPublic])
async def list_projects(
    session: SessionDep,
    admin: AdminDep,
    pagination: PaginationDep,
    search: Optional[str] = Query(None, max_length=100),
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    client_id: Optional[int] = Query(None, gt=0),
):
    """
    List active projects with client, manager and team populated.

    **RBAC:** Admin only.
    """
    statement = select(Project).where(Project.is_active == True)  # noqa: E712
    try:
        if status:
            statement = statement.where(
                Project.status == normalize_choice(status, ProjectStatus).value
            )
        if priority:
            statement = statement.where(
                Project.priority == normalize_choice(priority, Priority).value
            )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if client_id:
        statement = statement.where(Project.client_id == client_id)
    if search:
        pattern = f"%{search.strip()}%"
        statement = statement.where(
            or_(
                col(Project.name).ilike(pattern),
                col(Project.project_code).ilike(pattern),
                col(Project.description).ilike(pattern),
            )
        )

    rows, total = paginate(
        session,
        statement.order_by(col(Project.created_at).desc(), col(Project.id).desc()),
        pagination.offset,
        pagination.limit,
    )
    return PaginatedResponse.build(
        projects_public(session, rows), total, pagination.page, pagination.limit
    )


@router.post("", response_model=ApiResponse[ProjectPublic], status_code=201)
async def create_project(request: ProjectCreate, session: SessionDep, admin: AdminDep):
    """
    Create a project with the next PRJ code and its initial team.

    **RBAC:** Admin only.

    Raises:
        HTTPException: 400 if the client, manager or a team member does not exist
    """
    client = _require_client(session, request.client_id)
    members = _dedupe_members(request.team)
    _require_employees(session, [request.project_manager_id, *members])
    if request.start_date and request.end_date and request.end_date < request.start_date:
        raise HTTPException(status_code=400, detail="End date must be after start date")

    fields = enum_values(request.model_dump(exclude={"team"}))

    def build(code: str) -> Project:
        project = Project(project_code=code, created_by=admin.id, **fields)
        session.add(project)
        session.flush()
        for employee_id, role in members.items():
            session.add(
                ProjectTeamMember(project_id=project.id, employee_id=employee_id, role=role)
            )
        return project

    project = create_with_sequential_id(session, Project, "project_code", PROJECT_CODE, build)
    logger.info(f"Project {project.project_code} created by {admin.email}")

    result = project_public(session, project)
    await emit_event(
        EventType.PROJECT_CREATED,
        result.model_dump(mode="json"),
        project_rooms(session, project),
        actor=admin,
    )
    await notify(
        session,
        role=UserRole.CLIENT.value,
        recipient_id=client.user_id,
        sender=admin,
        title="New project created",
        message=f"Project {project.name} ({project.project_code}) has been created",
        type=NotificationType.PROJECT,
        link=f"/client/projects/{project.id}",
        data={"project_id": project.id},
    )
    await _notify_team_members(
        session, project, list({request.project_manager_id, *members}), admin
    )
    return ApiResponse(message="Project created successfully", data=result)


@router.get("/{project_id}", response_model=ApiResponse[ProjectPublic])
async def get_project(project_id: int, session: SessionDep, admin: AdminDep):
    """
    **RBAC:** Admin only.
    """
    project = get_project_or_404(session, project_id)
    return ApiResponse(data=project_public(session, project))


@router.put("/{project_id}", response_model=ApiResponse[ProjectPublic])
async def update_project(
    project_id: int, request: ProjectUpdate, session: SessionDep, admin: AdminDep
):
    """
    Update project fields. Marking a project completed stamps the actual
    end date and sets progress to 100.

    **RBAC:** Admin only.
    """
    project = get_project_or_404(session, project_id)
    changes = enum_values(request.model_dump(exclude_unset=True))

    if changes.get("client_id"):
        _require_client(session, changes["client_id"])
    if changes.get("project_manager_id"):
        _require_employees(session, [changes["project_manager_id"]])

    for key, value in changes.items():
        setattr(project, key, value)
    if changes.get("status") == ProjectStatus.COMPLETED.value:
        project.actual_end_date = project.actual_end_date or date.today()
        project.progress = 100
    if project.start_date and project.end_date and project.end_date < project.start_date:
        raise HTTPException(status_code=400, detail="End date must be after start date")

    project.updated_at = datetime.utcnow()
    session.add(project)
    session.commit()
    session.refresh(project)
    logger.info(f"Project {project.project_code} updated: {sorted(changes)}")

    await emit_event(
        EventType.PROJECT_UPDATED,
        _update_event(project, sorted(changes)),
        project_rooms(session, project),
        actor=admin,
    )
    return ApiResponse(
        message="Project updated successfully", data=project_public(session, project)
    )


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(project_id: int, session: SessionDep, admin: AdminDep):
    """
    Soft delete.

    **RBAC:** Admin only.
    """
    project = get_project_or_404(session, project_id)
    project.is_active = False
    project.updated_at = datetime.utcnow()
    session.add(project)
    session.commit()
    logger.info(f"Project {project.project_code} deleted by {admin.email}")
    return MessageResponse(message="Project deleted successfully")


@router.post("/{project_id}/assign", response_model=ApiResponse[ProjectPublic])
async def assign_team(
    project_id: int, request: TeamAssignRequest, session: SessionDep, admin: AdminDep
):
    """
    Add employees to the project team, or replace the team.

    Existing members listed again get their role updated.

    **RBAC:** Admin only.
    """
    project = get_project_or_404(session, project_id)
    members = _dedupe_members(request.members)
    _require_employees(session, list(members))

    existing = {
        member.employee_id: member
        for member in session.exec(
            select(ProjectTeamMember).where(ProjectTeamMember.project_id == project.id)
        ).all()
    }
    if request.replace:
        for employee_id, member in existing.items():
            if employee_id not in members:
                session.delete(member)

    added = []
    for employee_id, role in members.items():
        member = existing.get(employee_id)
        if member is None:
            session.add(
                ProjectTeamMember(project_id=project.id, employee_id=employee_id, role=role)
            )
            added.append(employee_id)
        else:
            member.role = role
            session.add(member)

    project.updated_at = datetime.utcnow()
    session.add(project)
    session.commit()
    session.refresh(project)
    logger.info(f"Project {project.project_code} team updated, {len(added)} added")

    result = project_public(session, project)
    await emit_event(
        EventType.TEAM_ASSIGNED,
        {
            "project_id": project.id,
            "project_code": project.project_code,
            "name": project.name,
            "added": added,
            "team": [member.model_dump(mode="json") for member in result.team],
        },
        project_rooms(session, project),
        actor=admin,
    )
    await _notify_team_members(session, project, added, admin)
    return ApiResponse(message="Team assigned successfully", data=result)


@router.get("/{project_id}/timeline", response_model=ApiResponse[list[TimelineEntry]])
async def get_project_timeline(project_id: int, session: SessionDep, admin: AdminDep):
    """
    **RBAC:** Admin only.
    """
    project = get_project_or_404(session, project_id)
    return ApiResponse(data=project_timeline(session, project))


@router.get("/{project_id}/stats", response_model=ApiResponse[ProjectStats])
async def get_project_stats(project_id: int, session: SessionDep, admin: AdminDep):
    """
    Task counts, completion rate, overdue tasks and budget utilization.

    **RBAC:** Admin only.
    """
    project = get_project_or_404(session, project_id)
    return ApiResponse(data=project_stats(session, project))


@router.post(
    "/{project_id}/milestones", response_model=ApiResponse[MilestonePublic], status_code=201
)
async def add_milestone(
    project_id: int, request: MilestoneCreate, session: SessionDep, admin: AdminDep
):
    """
    **RBAC:** Admin only.
    """
    project = get_project_or_404(session, project_id)
    milestone = ProjectMilestone(project_id=project.id, **request.model_dump())
    session.add(milestone)
    session.commit()
    session.refresh(milestone)
    logger.info(f"Milestone {milestone.id} added to {project.project_code}")

    await emit_event(
        EventType.PROJECT_UPDATED,
        _update_event(project, ["milestones"]),
        project_rooms(session, project),
        actor=admin,
    )
    return ApiResponse(
        message="Milestone added successfully", data=MilestonePublic.model_validate(milestone)
    )


@router.put(
    "/{project_id}/milestones/{milestone_id}", response_model=ApiResponse[MilestonePublic]
)
async def update_milestone(
    project_id: int,
    milestone_id: int,
    request: MilestoneUpdate,
    session: SessionDep,
    admin: AdminDep,
):
    """
    **RBAC:** Admin only.
    """
    project = get_project_or_404(session, project_id)
    milestone = session.get(ProjectMilestone, milestone_id)
    if milestone is None or milestone.project_id != project.id:
        raise HTTPException(status_code=404, detail="Milestone not found")

    changes = enum_values(request.model_dump(exclude_unset=True))
    for key, value in changes.items():
        setattr(milestone, key, value)
    if changes.get("status") == MilestoneStatus.COMPLETED.value:
        milestone.completed_at = milestone.completed_at or datetime.utcnow()
    elif "status" in changes:
        milestone.completed_at = None
    session.add(milestone)
    session.commit()
    session.refresh(milestone)

    await emit_event(
        EventType.PROJECT_UPDATED,
        _update_event(project, ["milestones"]),
        project_rooms(session, project),
        actor=admin,
    )
    return ApiResponse(
        message="Milestone updated successfully", data=MilestonePublic.model_validate(milestone)
    )
