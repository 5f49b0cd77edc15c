"""
Notification persistence and delivery.

Notifications are stored first and then pushed as a `notification`
event to the recipient's personal room, or to the role room when the
notification is addressed to the whole role.
"""

from typing import Any, Optional

from sqlmodel import Session, or_, select

from app.core.events import EventType
from app.core.logging import get_logger
from app.core.realtime import emit_event, user_room
from app.models.enums import NotificationType
from app.models.notification import Notification, NotificationPublic
from app.models.user import User

logger = get_logger(__name__)


async def notify(
    session: Session,
    *,
    role: str,
    title: str,
    message: str,
    type: NotificationType = NotificationType.INFO,
    recipient_id: Optional[int] = None,
    sender: Optional[User] = None,
    link: Optional[str] = None,
    data: Optional[dict[str, Any]] = None,
) -> Notification:
    notification = Notification(
        role=role,
        recipient_id=recipient_id,
        sender_id=sender.id if sender else None,
        title=title,
        message=message,
        type=type.value,
        link=link,
        data=data or {},
    )
    session.add(notification)
    session.commit()
    session.refresh(notification)
    logger.info(
        f"Notification {notification.id} created for {role}"
        + (f" user {recipient_id}" if recipient_id else "")
    )

    room = user_room(role, recipient_id) if recipient_id else role
    await emit_event(
        EventType.NOTIFICATION,
        NotificationPublic.model_validate(notification).model_dump(mode="json"),
        [room],
        actor=sender,
    )
    return notification


def visible_to(user: User):
    """Filter clause for notifications a user may see and manage."""
    return (Notification.role == user.role) & or_(
        Notification.recipient_id == None,  # noqa: E711
        Notification.recipient_id == user.id,
    )


def get_visible_notification(
    session: Session, user: User, notification_id: int
) -> Optional[Notification]:
    return session.exec(
        select(Notification).where(Notification.id == notification_id, visible_to(user))
    ).first()
