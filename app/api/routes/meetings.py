"""
Meeting scheduling for admins, employees and clients.

Admins see and manage every meeting. Employees and clients see the
meetings they organize or were invited to; clients may also schedule
meetings and cancel the ones they organized.
"""

from datetime import date, datetime, time
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from sqlmodel import Session, col, or_, select

from app.api.dependencies import (
    AdminDep,
    ClientUserDep,
    EmployeeUserDep,
    PaginationDep,
    SessionDep,
)
from app.core.database import paginate
from app.core.events import EventType
from app.core.id_generator import MEETING_CODE, create_with_sequential_id
from app.core.logging import get_logger
from app.core.notification_service import notify
from app.core.populate import meeting_public, meetings_public, users_by_id
from app.core.realtime import ADMIN_ROOM, emit_event, user_room
from app.models.common import ApiResponse, MessageResponse, PaginatedResponse
from app.models.enums import (
    MeetingStatus,
    MeetingType,
    NotificationType,
    ParticipantRole,
    ParticipantStatus,
    UserRole,
    enum_values,
    normalize_choice,
)
from app.models.meeting import (
    Meeting,
    MeetingCreate,
    MeetingMinutes,
    MeetingParticipant,
    MeetingPublic,
    MeetingUpdate,
    ParticipantStatusUpdate,
)
from app.models.project import Project
from app.models.user import User

logger = get_logger(__name__)

router = APIRouter(prefix="/meetings", tags=["meetings"])
admin_router = APIRouter(prefix="/admin", tags=["admin-meetings"])
employee_router = APIRouter(prefix="/employee", tags=["employee-meetings"])
client_router = APIRouter(prefix="/client", tags=["client-meetings"])

RESPONSE_STATUSES = {
    ParticipantStatus.ACCEPTED,
    ParticipantStatus.DECLINED,
    ParticipantStatus.TENTATIVE,
}


def _duration(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


def _active_users(session: Session, user_ids: list[int]) -> list[User]:
    ids = sorted(set(user_ids))
    if not ids:
        return []
    users = list(
        session.exec(
            select(User).where(col(User.id).in_(ids), User.is_active == True)  # noqa: E712
        ).all()
    )
    missing = sorted(set(ids) - {user.id for user in users})
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Participants not found or inactive: {', '.join(str(i) for i in missing)}",
        )
    return users


def _participant_rows(session: Session, meeting_id: int) -> list[MeetingParticipant]:
    return list(
        session.exec(
            select(MeetingParticipant).where(MeetingParticipant.meeting_id == meeting_id)
        ).all()
    )


def meeting_rooms(session: Session, meeting: Meeting) -> list[str]:
    """Admin room plus the personal room of every participant."""
    rows = _participant_rows(session, meeting.id)
    users = users_by_id(session, [row.user_id for row in rows] + [meeting.organizer_id])
    return [ADMIN_ROOM] + [user_room(user.role, user.id) for user in users.values()]


def visible_meetings(user: User):
    """Meetings the user organizes or was invited to."""
    invited = select(MeetingParticipant.meeting_id).where(MeetingParticipant.user_id == user.id)
    return select(Meeting).where(
        or_(Meeting.organizer_id == user.id, col(Meeting.id).in_(invited))
    )


def _filters(
    statement,
    status: Optional[str],
    meeting_type: Optional[str],
    start_date: Optional[date],
    end_date: Optional[date],
    search: Optional[str] = None,
):
    try:
        if status:
            statement = statement.where(
                Meeting.status == normalize_choice(status, MeetingStatus).value
            )
        if meeting_type:
            statement = statement.where(
                Meeting.meeting_type == normalize_choice(meeting_type, MeetingType).value
            )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if start_date:
        statement = statement.where(Meeting.start_time >= datetime.combine(start_date, time.min))
    if end_date:
        statement = statement.where(Meeting.start_time <= datetime.combine(end_date, time.max))
    if search:
        pattern = f"%{search.strip()}%"
        statement = statement.where(
            or_(col(Meeting.title).ilike(pattern), col(Meeting.meeting_code).ilike(pattern))
        )
    return statement.order_by(col(Meeting.start_time).desc())


def _page(session: Session, statement, pagination) -> PaginatedResponse:
    rows, total = paginate(session, statement, pagination.offset, pagination.limit)
    return PaginatedResponse.build(
        meetings_public(session, rows), total, pagination.page, pagination.limit
    )


def _get_meeting_or_404(session: Session, meeting_id: int) -> Meeting:
    meeting = session.get(Meeting, meeting_id)
    if meeting is None:
        raise HTTPException(status_code=404, detail="Meeting not found")
    return meeting


def _get_visible_meeting(session: Session, user: User, meeting_id: int) -> Meeting:
    meeting = session.exec(visible_meetings(user).where(Meeting.id == meeting_id)).first()
    if meeting is None:
        raise HTTPException(status_code=404, detail="Meeting not found")
    return meeting


async def _notify_participants(
    session: Session,
    meeting: Meeting,
    sender: User,
    title: str,
    message: str,
    user_ids: Optional[list[int]] = None,
) -> None:
    if user_ids is None:
        user_ids = [row.user_id for row in _participant_rows(session, meeting.id)]
    for user in users_by_id(session, user_ids).values():
        if user.id == sender.id:
            continue
        await notify(
            session,
            role=user.role,
            recipient_id=user.id,
            sender=sender,
            title=title,
            message=message,
            type=NotificationType.MEETING,
            link=f"/{user.role}/meetings/{meeting.id}",
            data={"meeting_id": meeting.id},
        )


async def schedule_meeting(
    session: Session, organizer: User, request: MeetingCreate, participant_ids: list[int]
) -> MeetingPublic:
    """Create a meeting with the next MTG code and invite the participants."""
    if request.project_id is not None:
        project = session.get(Project, request.project_id)
        if project is None or not project.is_active:
            raise HTTPException(
                status_code=400, detail=f"Project {request.project_id} does not exist"
            )
    invitees = [user for user in _active_users(session, participant_ids) if user.id != organizer.id]
    fields = request.model_dump(exclude={"participant_ids", "meeting_type"})

    def build(code: str) -> Meeting:
        meeting = Meeting(
            meeting_code=code,
            organizer_id=organizer.id,
            meeting_type=request.meeting_type.value,
            duration_minutes=_duration(request.start_time, request.end_time),
            **fields,
        )
        session.add(meeting)
        session.flush()
        session.add(
            MeetingParticipant(
                meeting_id=meeting.id,
                user_id=organizer.id,
                role=ParticipantRole.ORGANIZER.value,
                status=ParticipantStatus.ACCEPTED.value,
                responded_at=datetime.utcnow(),
            )
        )
        for user in invitees:
            session.add(MeetingParticipant(meeting_id=meeting.id, user_id=user.id))
        return meeting

    meeting = create_with_sequential_id(session, Meeting, "meeting_code", MEETING_CODE, build)
    logger.info(
        f"Meeting {meeting.meeting_code} scheduled by {organizer.email} "
        f"with {len(invitees)} invitee(s)"
    )

    result = meeting_public(session, meeting)
    await emit_event(
        EventType.MEETING_SCHEDULED,
        result.model_dump(mode="json"),
        meeting_rooms(session, meeting),
        actor=organizer,
    )
    await _notify_participants(
        session,
        meeting,
        organizer,
        "Meeting scheduled",
        f"{meeting.title} on {meeting.start_time:%Y-%m-%d %H:%M}",
        [user.id for user in invitees],
    )
    return result


async def cancel_meeting(
    session: Session, meeting: Meeting, actor: User, reason: Optional[str]
) -> None:
    if meeting.status == MeetingStatus.CANCELLED.value:
        raise HTTPException(status_code=400, detail="Meeting is already cancelled")
    if meeting.status == MeetingStatus.COMPLETED.value:
        raise HTTPException(status_code=400, detail="Cannot cancel a completed meeting")

    meeting.status = MeetingStatus.CANCELLED.value
    meeting.cancellation_reason = reason
    meeting.updated_at = datetime.utcnow()
    session.add(meeting)
    session.commit()
    session.refresh(meeting)
    logger.info(f"Meeting {meeting.meeting_code} cancelled by {actor.email}")

    await emit_event(
        EventType.MEETING_CANCELLED,
        {"meeting_id": meeting.id, "meeting_code": meeting.meeting_code, "reason": reason},
        meeting_rooms(session, meeting),
        actor=actor,
    )
    await _notify_participants(
        session,
        meeting,
        actor,
        "Meeting cancelled",
        f"{meeting.title} on {meeting.start_time:%Y-%m-%d %H:%M} was cancelled",
    )


async def respond_to_meeting(
    session: Session, meeting: Meeting, user: User, request: ParticipantStatusUpdate
) -> MeetingPublic:
    """Record the caller's accept/decline/tentative response."""
    if request.status not in RESPONSE_STATUSES:
        raise HTTPException(
            status_code=400, detail="Status must be one of: accepted, declined, tentative"
        )
    if meeting.status == MeetingStatus.CANCELLED.value:
        raise HTTPException(status_code=400, detail="Meeting is cancelled")

    row = session.exec(
        select(MeetingParticipant).where(
            MeetingParticipant.meeting_id == meeting.id, MeetingParticipant.user_id == user.id
        )
    ).first()
    if row is None:
        raise HTTPException(status_code=403, detail="You are not a participant of this meeting")

    row.status = request.status.value
    row.responded_at = datetime.utcnow()
    session.add(row)
    session.commit()
    logger.info(f"{user.email} {row.status} meeting {meeting.meeting_code}")

    result = meeting_public(session, meeting)
    await emit_event(
        EventType.MEETING_UPDATED,
        {
            "meeting_id": meeting.id,
            "meeting_code": meeting.meeting_code,
            "user_id": user.id,
            "status": row.status,
        },
        meeting_rooms(session, meeting),
        actor=user,
    )
    return result


# Admin


@admin_router.get("", response_model=PaginatedResponse[MeetingPublic])
async def admin_list_meetings(
    session: SessionDep,
    admin: AdminDep,
    pagination: PaginationDep,
    search: Optional[str] = Query(None, max_length=100),
    status: Optional[str] = Query(None),
    meeting_type: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    """
    **RBAC:** Admin only.
    """
    statement = _filters(select(Meeting), status, meeting_type, start_date, end_date, search)
    return _page(session, statement, pagination)


@admin_router.post("", response_model=ApiResponse[MeetingPublic], status_code=201)
async def admin_create_meeting(request: MeetingCreate, session: SessionDep, admin: AdminDep):
    """
    Schedule a meeting and invite participants by user id.

    **RBAC:** Admin only.
    """
    result = await schedule_meeting(session, admin, request, request.participant_ids)
    return ApiResponse(message="Meeting scheduled successfully", data=result)


@admin_router.get("/{meeting_id}", response_model=ApiResponse[MeetingPublic])
async def admin_get_meeting(meeting_id: int, session: SessionDep, admin: AdminDep):
    """
    **RBAC:** Admin only.
    """
    return ApiResponse(data=meeting_public(session, _get_meeting_or_404(session, meeting_id)))


@admin_router.put("/{meeting_id}", response_model=ApiResponse[MeetingPublic])
async def admin_update_meeting(
    meeting_id: int, request: MeetingUpdate, session: SessionDep, admin: AdminDep
):
    """
    Update a meeting. Moving it marks it rescheduled unless a status is
    given; `participant_ids` replaces the invitee list.

    **RBAC:** Admin only.
    """
    meeting = _get_meeting_or_404(session, meeting_id)
    changes = request.model_dump(exclude_unset=True)
    participant_ids = changes.pop("participant_ids", None)

    start = changes.get("start_time") or meeting.start_time
    end = changes.get("end_time") or meeting.end_time
    if end <= start:
        raise HTTPException(status_code=400, detail="End time must be after start time")
    moved = start != meeting.start_time or end != meeting.end_time

    for key, value in enum_values(changes).items():
        setattr(meeting, key, value)
    meeting.duration_minutes = _duration(start, end)
    if moved and "status" not in changes:
        meeting.status = MeetingStatus.RESCHEDULED.value

    added: list[int] = []
    if participant_ids is not None:
        wanted = {user.id for user in _active_users(session, participant_ids)}
        wanted.discard(meeting.organizer_id)
        current = {
            row.user_id: row
            for row in _participant_rows(session, meeting.id)
            if row.role != ParticipantRole.ORGANIZER.value
        }
        for user_id, row in current.items():
            if user_id not in wanted:
                session.delete(row)
        for user_id in sorted(wanted - set(current)):
            session.add(MeetingParticipant(meeting_id=meeting.id, user_id=user_id))
            added.append(user_id)

    meeting.updated_at = datetime.utcnow()
    session.add(meeting)
    session.commit()
    session.refresh(meeting)
    logger.info(f"Meeting {meeting.meeting_code} updated by {admin.email}")

    result = meeting_public(session, meeting)
    await emit_event(
        EventType.MEETING_UPDATED,
        result.model_dump(mode="json"),
        meeting_rooms(session, meeting),
        actor=admin,
    )
    if added:
        await _notify_participants(
            session,
            meeting,
            admin,
            "Meeting scheduled",
            f"{meeting.title} on {meeting.start_time:%Y-%m-%d %H:%M}",
            added,
        )
    if moved:
        await _notify_participants(
            session,
            meeting,
            admin,
            "Meeting rescheduled",
            f"{meeting.title} moved to {meeting.start_time:%Y-%m-%d %H:%M}",
        )
    return ApiResponse(message="Meeting updated successfully", data=result)


@admin_router.delete("/{meeting_id}", response_model=MessageResponse)
async def admin_cancel_meeting(
    meeting_id: int,
    session: SessionDep,
    admin: AdminDep,
    reason: Optional[str] = Query(None, max_length=500),
):
    """
    Cancel a meeting. The record is kept so participants see the cancellation.

    **RBAC:** Admin only.
    """
    await cancel_meeting(session, _get_meeting_or_404(session, meeting_id), admin, reason)
    return MessageResponse(message="Meeting cancelled successfully")


@admin_router.post("/{meeting_id}/minutes", response_model=ApiResponse[MeetingPublic])
async def admin_record_minutes(
    meeting_id: int, request: MeetingMinutes, session: SessionDep, admin: AdminDep
):
    """
    Record minutes; the meeting is marked completed.

    **RBAC:** Admin only.
    """
    meeting = _get_meeting_or_404(session, meeting_id)
    if meeting.status == MeetingStatus.CANCELLED.value:
        raise HTTPException(status_code=400, detail="Cannot record minutes for a cancelled meeting")

    meeting.minutes_discussion = request.discussion
    meeting.minutes_decisions = request.decisions
    meeting.minutes_action_items = [item.model_dump(mode="json") for item in request.action_items]
    meeting.minutes_recorded_by = admin.id
    meeting.status = MeetingStatus.COMPLETED.value
    meeting.updated_at = datetime.utcnow()
    session.add(meeting)
    session.commit()
    session.refresh(meeting)
    logger.info(f"Minutes recorded for meeting {meeting.meeting_code}")

    result = meeting_public(session, meeting)
    await emit_event(
        EventType.MEETING_UPDATED,
        result.model_dump(mode="json"),
        meeting_rooms(session, meeting),
        actor=admin,
    )
    return ApiResponse(message="Minutes recorded successfully", data=result)


# Employee


@employee_router.get("", response_model=PaginatedResponse[MeetingPublic])
async def employee_list_meetings(
    session: SessionDep,
    user: EmployeeUserDep,
    pagination: PaginationDep,
    status: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    statement = _filters(visible_meetings(user), status, None, start_date, end_date)
    return _page(session, statement, pagination)


@employee_router.get("/{meeting_id}", response_model=ApiResponse[MeetingPublic])
async def employee_get_meeting(meeting_id: int, session: SessionDep, user: EmployeeUserDep):
    meeting = _get_visible_meeting(session, user, meeting_id)
    return ApiResponse(data=meeting_public(session, meeting))


@employee_router.patch("/{meeting_id}/status", response_model=ApiResponse[MeetingPublic])
async def employee_respond(
    meeting_id: int, request: ParticipantStatusUpdate, session: SessionDep, user: EmployeeUserDep
):
    """Accept, decline or tentatively accept an invitation."""
    meeting = _get_visible_meeting(session, user, meeting_id)
    result = await respond_to_meeting(session, meeting, user, request)
    return ApiResponse(message="Response recorded", data=result)


# Client


@client_router.get("", response_model=PaginatedResponse[MeetingPublic])
async def client_list_meetings(
    session: SessionDep,
    user: ClientUserDep,
    pagination: PaginationDep,
    status: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    statement = _filters(visible_meetings(user), status, None, start_date, end_date)
    return _page(session, statement, pagination)


@client_router.post("", response_model=ApiResponse[MeetingPublic], status_code=201)
async def client_create_meeting(request: MeetingCreate, session: SessionDep, user: ClientUserDep):
    """
    Schedule a meeting. Without explicit participants every active admin
    is invited.
    """
    participant_ids = request.participant_ids
    if not participant_ids:
        participant_ids = list(
            session.exec(
                select(User.id).where(
                    User.role == UserRole.ADMIN.value, User.is_active == True  # noqa: E712
                )
            ).all()
        )
    result = await schedule_meeting(session, user, request, participant_ids)
    return ApiResponse(message="Meeting scheduled successfully", data=result)


@client_router.get("/{meeting_id}", response_model=ApiResponse[MeetingPublic])
async def client_get_meeting(meeting_id: int, session: SessionDep, user: ClientUserDep):
    meeting = _get_visible_meeting(session, user, meeting_id)
    return ApiResponse(data=meeting_public(session, meeting))


@client_router.delete("/{meeting_id}", response_model=MessageResponse)
async def client_cancel_meeting(
    meeting_id: int,
    session: SessionDep,
    user: ClientUserDep,
    reason: Optional[str] = Query(None, max_length=500),
):
    """
    Cancel a meeting the client organized.

    Raises:
        HTTPException: 403 if the client did not organize the meeting
    """
    meeting = _get_visible_meeting(session, user, meeting_id)
    if meeting.organizer_id != user.id:
        raise HTTPException(status_code=403, detail="Only the organizer can cancel this meeting")
    await cancel_meeting(session, meeting, user, reason)
    return MessageResponse(message="Meeting cancelled successfully")


@client_router.patch("/{meeting_id}/status", response_model=ApiResponse[MeetingPublic])
async def client_respond(
    meeting_id: int, request: ParticipantStatusUpdate, session: SessionDep, user: ClientUserDep
):
    meeting = _get_visible_meeting(session, user, meeting_id)
    result = await respond_to_meeting(session, meeting, user, request)
    return ApiResponse(message="Response recorded", data=result)


router.include_router(admin_router)
router.include_router(employee_router)
router.include_router(client_router)
