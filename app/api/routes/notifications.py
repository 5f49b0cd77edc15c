"""
Notification inbox endpoints.

The same set of endpoints is mounted for each role; every query is
scoped to the notifications the caller may see.
"""

from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import col, select

from app.api.dependencies import (
    PaginationDep,
    SessionDep,
    require_admin,
    require_client,
    require_employee,
)
from app.core.database import paginate
from app.core.logging import get_logger
from app.core.notification_service import get_visible_notification, visible_to
from app.models.common import ApiResponse, MessageResponse, PaginatedResponse
from app.models.notification import Notification, NotificationIds, NotificationPublic
from app.models.user import User

logger = get_logger(__name__)


class UnreadCount(BaseModel):
    count: int


class BulkResult(BaseModel):
    affected: int


def build_notification_router(role_dependency, tag: str) -> APIRouter:
    """Create the inbox router guarded by a role dependency."""
    UserDep = Annotated[User, Depends(role_dependency)]

    router = APIRouter(
        prefix="/notifications",
        tags=[tag],
        responses={404: {"description": "Notification not found"}},
    )

    def _get_or_404(session, user: User, notification_id: int) -> Notification:
        notification = get_visible_notification(session, user, notification_id)
        if notification is None:
            raise HTTPException(status_code=404, detail="Notification not found")
        return notification

    def _set_read(session, notification: Notification, is_read: bool) -> Notification:
        notification.is_read = is_read
        notification.read_at = datetime.utcnow() if is_read else None
        session.add(notification)
        session.commit()
        session.refresh(notification)
        return notification

    @router.get("", response_model=PaginatedResponse[NotificationPublic])
    async def list_notifications(
        session: SessionDep,
        user: UserDep,
        pagination: PaginationDep,
        is_read: Optional[bool] = Query(None),
        type: Optional[str] = Query(None, max_length=20),
    ):
        """Newest first."""
        statement = select(Notification).where(visible_to(user))
        if is_read is not None:
            statement = statement.where(Notification.is_read == is_read)
        if type:
            statement = statement.where(Notification.type == type.strip().lower())

        rows, total = paginate(
            session,
            statement.order_by(col(Notification.created_at).desc(), col(Notification.id).desc()),
            pagination.offset,
            pagination.limit,
        )
        return PaginatedResponse.build(
            [NotificationPublic.model_validate(row) for row in rows],
            total,
            pagination.page,
            pagination.limit,
        )

    @router.get("/unread-count", response_model=ApiResponse[UnreadCount])
    async def unread_count(session: SessionDep, user: UserDep):
        count = session.exec(
            select(func.count())
            .select_from(Notification)
            .where(visible_to(user), Notification.is_read == False)  # noqa: E712
        ).one()
        return ApiResponse(data=UnreadCount(count=count))

    @router.patch("/mark-all-read", response_model=ApiResponse[BulkResult])
    async def mark_all_read(session: SessionDep, user: UserDep):
        unread = session.exec(
            select(Notification).where(
                visible_to(user), Notification.is_read == False  # noqa: E712
            )
        ).all()
        now = datetime.utcnow()
        for notification in unread:
            notification.is_read = True
            notification.read_at = now
            session.add(notification)
        session.commit()
        logger.info(f"{user.email} marked {len(unread)} notifications read")
        return ApiResponse(
            message="All notifications marked as read", data=BulkResult(affected=len(unread))
        )

    @router.post("/delete-many", response_model=ApiResponse[BulkResult])
    async def delete_many(request: NotificationIds, session: SessionDep, user: UserDep):
        """Delete the listed notifications; ids the caller cannot see are ignored."""
        rows = session.exec(
            select(Notification).where(visible_to(user), col(Notification.id).in_(request.ids))
        ).all()
        for notification in rows:
            session.delete(notification)
        session.commit()
        logger.info(f"{user.email} deleted {len(rows)} notifications")
        return ApiResponse(
            message=f"{len(rows)} notifications deleted", data=BulkResult(affected=len(rows))
        )

    @router.patch("/{notification_id}/read", response_model=ApiResponse[NotificationPublic])
    async def mark_read(notification_id: int, session: SessionDep, user: UserDep):
        notification = _set_read(session, _get_or_404(session, user, notification_id), True)
        return ApiResponse(
            message="Notification marked as read",
            data=NotificationPublic.model_validate(notification),
        )

    @router.patch("/{notification_id}/unread", response_model=ApiResponse[NotificationPublic])
    async def mark_unread(notification_id: int, session: SessionDep, user: UserDep):
        notification = _set_read(session, _get_or_404(session, user, notification_id), False)
        return ApiResponse(
            message="Notification marked as unread",
            data=NotificationPublic.model_validate(notification),
        )

    @router.delete("/{notification_id}", response_model=MessageResponse)
    async def delete_notification(notification_id: int, session: SessionDep, user: UserDep):
        notification = _get_or_404(session, user, notification_id)
        session.delete(notification)
        session.commit()
        return MessageResponse(message="Notification deleted")

    return router


admin_router = build_notification_router(require_admin, "admin-notifications")
employee_router = build_notification_router(require_employee, "employee-notifications")
client_router = build_notification_router(require_client, "client-notifications")
