"""
Real-time fan-out of change events.

WebSocket connections are grouped in rooms. Every connection joins its
role room (`admin`, `employee`, `client`) and its personal room
(`<role>-<user id>`). `emit_event` pushes an event to a set of rooms and
publishes it to Kafka when publishing is enabled.
"""

from typing import Any, Iterable, Optional, Union

from fastapi import WebSocket
from fastapi.websockets import WebSocketState
from pydantic import BaseModel

from app.core.events import EventEnvelope, EventType, create_event
from app.core.kafka import publish_event
from app.core.logging import get_logger
from app.core.topics import KafkaTopics
from app.models.enums import UserRole
from app.models.user import User

logger = get_logger(__name__)

ADMIN_ROOM = UserRole.ADMIN.value
EMPLOYEE_ROOM = UserRole.EMPLOYEE.value
CLIENT_ROOM = UserRole.CLIENT.value


def user_room(role: str, user_id: int) -> str:
    return f"{role}-{user_id}"


def employee_room(user_id: int) -> str:
    return user_room(UserRole.EMPLOYEE.value, user_id)


def client_room(user_id: int) -> str:
    return user_room(UserRole.CLIENT.value, user_id)


def default_rooms(user: User) -> list[str]:
    return [user.role, user_room(user.role, user.id)]


def can_join(user: User, room: str) -> bool:
    """Admins may listen anywhere; others only to their own rooms."""
    if user.role == UserRole.ADMIN.value:
        return True
    return room in default_rooms(user)


class ConnectionManager:
    """Room registry. Connections are keyed by id() since WebSocket is unhashable."""

    def __init__(self):
        self.rooms: dict[str, dict[int, WebSocket]] = {}
        self.memberships: dict[int, set[str]] = {}

    async def connect(self, websocket: WebSocket, rooms: Iterable[str]) -> None:
        if websocket.client_state == WebSocketState.CONNECTING:
            await websocket.accept()
        for room in rooms:
            self.join(websocket, room)

    def join(self, websocket: WebSocket, room: str) -> None:
        self.rooms.setdefault(room, {})[id(websocket)] = websocket
        self.memberships.setdefault(id(websocket), set()).add(room)
        logger.debug(f"Connection {id(websocket)} joined room {room}")

    def leave(self, websocket: WebSocket, room: str) -> None:
        members = self.rooms.get(room)
        if members is not None:
            members.pop(id(websocket), None)
            if not members:
                del self.rooms[room]
        self.memberships.get(id(websocket), set()).discard(room)

    def disconnect(self, websocket: WebSocket) -> None:
        for room in list(self.memberships.pop(id(websocket), set())):
            members = self.rooms.get(room)
            if members is not None:
                members.pop(id(websocket), None)
                if not members:
                    del self.rooms[room]

    def rooms_of(self, websocket: WebSocket) -> set[str]:
        return set(self.memberships.get(id(websocket), set()))

    def room_size(self, room: str) -> int:
        return len(self.rooms.get(room, {}))

    async def send_to_room(self, room: str, message: dict[str, Any]) -> int:
        """Send to every connection in a room. Returns the number delivered."""
        delivered = 0
        for websocket in list(self.rooms.get(room, {}).values()):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping broken connection in room {room}: {e}")
                self.disconnect(websocket)
        return delivered


manager = ConnectionManager()


async def emit_event(
    event_type: EventType,
    data: Union[dict[str, Any], BaseModel],
    rooms: Iterable[str],
    actor: Optional[User] = None,
) -> EventEnvelope:
    """
    Push an event to rooms and publish it to Kafka.

    Delivery problems are logged and never propagate to the caller.
    """
    event = create_event(
        event_type,
        data,
        actor_user_id=actor.id if actor else None,
        actor_role=actor.role if actor else None,
    )
    frame = event.to_frame()

    delivered = 0
    for room in dict.fromkeys(rooms):
        delivered += await manager.send_to_room(room, frame)
    logger.debug(f"Event {event_type.value} delivered to {delivered} connection(s)")

    try:
        await publish_event(KafkaTopics.for_event(event_type), event)
    except Exception as e:
        logger.warning(f"Failed to publish {event_type.value} event: {e}")

    return event
