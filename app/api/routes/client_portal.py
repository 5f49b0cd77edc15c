from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from sqlalchemy import func
from sqlmodel import Session, col, select

from app.api.dependencies import ClientUserDep, CurrentClientDep, PaginationDep, SessionDep
from app.api.routes.clients import apply_client_update
from app.core.dashboard_service import client_dashboard
from app.core.database import paginate
from app.core.events import EventType, ProjectUpdatedEvent
from app.core.id_generator import PROJECT_CODE, create_with_sequential_id
from app.core.logging import get_logger
from app.core.notification_service import notify
from app.core.populate import (
    client_project_counts,
    project_public,
    projects_public,
    to_client_public,
)
from app.core.project_service import project_progress, project_rooms
from app.core.realtime import ADMIN_ROOM, emit_event
from app.models.client import Client, ClientProfileUpdate, ClientPublic
from app.models.common import ApiResponse, MessageResponse, PaginatedResponse
from app.models.dashboard import ClientDashboard
from app.models.enums import (
    MilestoneStatus,
    NotificationType,
    ProjectStatus,
    UserRole,
    enum_values,
    normalize_choice,
)
from app.models.project import (
    ClientMessage,
    ClientProjectRequest,
    FeedbackCreate,
    FeedbackPublic,
    MilestonePublic,
    Project,
    ProjectFeedback,
    ProjectMilestone,
    ProjectProgress,
    ProjectPublic,
)

logger = get_logger(__name__)

router = APIRouter(tags=["client"])


def _own_project_or_404(session: Session, client: Client, project_id: int) -> Project:
    project = session.get(Project, project_id)
    if project is None or not project.is_active or project.client_id != client.id:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.get("/dashboard", response_model=ApiResponse[ClientDashboard])
async def get_dashboard(session: SessionDep, client: CurrentClientDep, user: ClientUserDep):
    """Project counts, investment, progress, meetings and recent feedback."""
    return ApiResponse(data=client_dashboard(session, client, user))


@router.get("/profile", response_model=ApiResponse[ClientPublic])
async def get_profile(session: SessionDep, client: CurrentClientDep, user: ClientUserDep):
    counts = client_project_counts(session, [client.id])
    return ApiResponse(data=to_client_public(client, user, counts.get(client.id)))


@router.put("/profile", response_model=ApiResponse[ClientPublic])
async def update_profile(
    request: ClientProfileUpdate,
    session: SessionDep,
    client: CurrentClientDep,
    user: ClientUserDep,
):
    apply_client_update(session, client, user, request.model_dump(exclude_unset=True))
    logger.info(f"Client {client.client_code} updated their profile")
    counts = client_project_counts(session, [client.id])
    return ApiResponse(
        message="Profile updated successfully",
        data=to_client_public(client, user, counts.get(client.id)),
    )


# Projects


@router.get("/projects", response_model=PaginatedResponse[ProjectPublic])
async def my_projects(
    session: SessionDep,
    client: CurrentClientDep,
    pagination: PaginationDep,
    status: Optional[str] = Query(None),
):
    statement = select(Project).where(
        Project.client_id == client.id, Project.is_active == True  # noqa: E712
    )
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


@router.post("/projects", response_model=ApiResponse[ProjectPublic], status_code=201)
async def request_project(
    request: ClientProjectRequest,
    session: SessionDep,
    client: CurrentClientDep,
    user: ClientUserDep,
):
    """
    Request a new project. It starts in planning without a manager until
    an admin staffs it.
    """
    fields = enum_values(request.model_dump())

    def build(code: str) -> Project:
        project = Project(
            project_code=code,
            client_id=client.id,
            status=ProjectStatus.PLANNING.value,
            is_client_request=True,
            created_by=user.id,
            **fields,
        )
        session.add(project)
        return project

    project = create_with_sequential_id(session, Project, "project_code", PROJECT_CODE, build)
    logger.info(f"Project {project.project_code} requested by client {client.client_code}")

    result = project_public(session, project)
    await emit_event(
        EventType.PROJECT_REQUESTED, result.model_dump(mode="json"), [ADMIN_ROOM], actor=user
    )
    await notify(
        session,
        role=UserRole.ADMIN.value,
        sender=user,
        title="New project request",
        message=f"{client.company_name} requested project {project.name}",
        type=NotificationType.PROJECT,
        link=f"/admin/projects/{project.id}",
        data={"project_id": project.id},
    )
    return ApiResponse(message="Project request submitted", data=result)


@router.get("/projects/{project_id}", response_model=ApiResponse[ProjectPublic])
async def my_project(project_id: int, session: SessionDep, client: CurrentClientDep):
    project = _own_project_or_404(session, client, project_id)
    return ApiResponse(data=project_public(session, project))


@router.get("/projects/{project_id}/progress", response_model=ApiResponse[ProjectProgress])
async def get_progress(project_id: int, session: SessionDep, client: CurrentClientDep):
    """Task and milestone completion for one project."""
    project = _own_project_or_404(session, client, project_id)
    return ApiResponse(data=project_progress(session, project))


@router.post(
    "/projects/{project_id}/feedback", response_model=ApiResponse[FeedbackPublic], status_code=201
)
async def give_feedback(
    project_id: int,
    request: FeedbackCreate,
    session: SessionDep,
    client: CurrentClientDep,
    user: ClientUserDep,
):
    """Rate a project. The client's rating becomes the average of all their feedback."""
    project = _own_project_or_404(session, client, project_id)
    feedback = ProjectFeedback(project_id=project.id, client_id=client.id, **request.model_dump())
    session.add(feedback)
    session.flush()

    average = session.exec(
        select(func.avg(ProjectFeedback.rating)).where(ProjectFeedback.client_id == client.id)
    ).one()
    client.rating = round(float(average or 0), 2)
    client.updated_at = datetime.utcnow()
    session.add(client)
    session.commit()
    session.refresh(feedback)
    logger.info(f"Feedback {feedback.rating}/5 received for {project.project_code}")

    result = FeedbackPublic.model_validate(feedback)
    await emit_event(
        EventType.FEEDBACK_RECEIVED,
        {**result.model_dump(mode="json"), "project_code": project.project_code},
        project_rooms(session, project),
        actor=user,
    )
    await notify(
        session,
        role=UserRole.ADMIN.value,
        sender=user,
        title="Client feedback received",
        message=f"{client.company_name} rated {project.name} {feedback.rating}/5",
        type=NotificationType.FEEDBACK,
        link=f"/admin/projects/{project.id}",
        data={"project_id": project.id, "feedback_id": feedback.id},
    )
    return ApiResponse(message="Feedback submitted successfully", data=result)


@router.get("/projects/{project_id}/feedback", response_model=ApiResponse[list[FeedbackPublic]])
async def list_feedback(project_id: int, session: SessionDep, client: CurrentClientDep):
    project = _own_project_or_404(session, client, project_id)
    rows = session.exec(
        select(ProjectFeedback)
        .where(ProjectFeedback.project_id == project.id)
        .order_by(col(ProjectFeedback.created_at).desc())
    ).all()
    return ApiResponse(data=[FeedbackPublic.model_validate(row) for row in rows])


@router.post("/projects/{project_id}/send-to-admin", response_model=MessageResponse)
async def send_to_admin(
    project_id: int,
    request: ClientMessage,
    session: SessionDep,
    client: CurrentClientDep,
    user: ClientUserDep,
):
    """Send a message about a project to the admin inbox."""
    project = _own_project_or_404(session, client, project_id)
    payload = {
        "project_id": project.id,
        "project_code": project.project_code,
        "client_id": client.id,
        "company_name": client.company_name,
        "subject": request.subject,
        "message": request.message,
        "priority": request.priority.value,
    }
    await emit_event(EventType.CLIENT_MESSAGE, payload, [ADMIN_ROOM], actor=user)
    await notify(
        session,
        role=UserRole.ADMIN.value,
        sender=user,
        title=f"{client.company_name}: {request.subject}",
        message=request.message,
        type=NotificationType.PROJECT,
        link=f"/admin/projects/{project.id}",
        data=payload,
    )
    logger.info(f"Client {client.client_code} sent a message about {project.project_code}")
    return MessageResponse(message="Message sent to admin")


@router.put(
    "/projects/{project_id}/milestones/{milestone_id}/approve",
    response_model=ApiResponse[MilestonePublic],
)
async def approve_milestone(
    project_id: int,
    milestone_id: int,
    session: SessionDep,
    client: CurrentClientDep,
    user: ClientUserDep,
):
    """
    Raises:
        HTTPException: 400 unless the milestone is completed and not yet approved
    """
    project = _own_project_or_404(session, client, project_id)
    milestone = session.get(ProjectMilestone, milestone_id)
    if milestone is None or milestone.project_id != project.id:
        raise HTTPException(status_code=404, detail="Milestone not found")
    if milestone.status != MilestoneStatus.COMPLETED.value:
        raise HTTPException(status_code=400, detail="Only completed milestones can be approved")
    if milestone.client_approved:
        raise HTTPException(status_code=400, detail="Milestone is already approved")

    milestone.client_approved = True
    milestone.approved_at = datetime.utcnow()
    session.add(milestone)
    session.commit()
    session.refresh(milestone)
    logger.info(f"Milestone {milestone.id} of {project.project_code} approved by client")

    await emit_event(
        EventType.PROJECT_UPDATED,
        ProjectUpdatedEvent(
            project_id=project.id,
            project_code=project.project_code,
            name=project.name,
            status=project.status,
            progress=project.progress,
            updated_fields=["milestones"],
        ),
        project_rooms(session, project),
        actor=user,
    )
    await notify(
        session,
        role=UserRole.ADMIN.value,
        sender=user,
        title="Milestone approved",
        message=f"{client.company_name} approved milestone {milestone.name}",
        type=NotificationType.PROJECT,
        link=f"/admin/projects/{project.id}",
        data={"project_id": project.id, "milestone_id": milestone.id},
    )
    return ApiResponse(
        message="Milestone approved", data=MilestonePublic.model_validate(milestone)
    )
