"""
Tests for the WebSocket endpoint and room fan-out.
"""

import pytest
from fastapi import WebSocketDisconnect
from fastapi.websockets import WebSocketState

from app.core.events import EventType
from app.core.realtime import ConnectionManager, can_join, default_rooms, emit_event, manager
from app.core.security import create_access_token
from app.core.topics import KafkaTopics


class FakeSocket:
    def __init__(self, broken: bool = False):
        self.sent = []
        self.broken = broken
        self.client_state = WebSocketState.CONNECTING

    async def accept(self):
        self.client_state = WebSocketState.CONNECTED

    async def send_json(self, message):
        if self.broken:
            raise RuntimeError("connection reset")
        self.sent.append(message)


def _ws_url(user) -> str:
    return f"/ws?token={create_access_token(user)}"


def test_rooms_and_join_rules(admin_user, employee):
    _, user = employee

    assert default_rooms(user) == ["employee", f"employee-{user.id}"]
    assert can_join(user, f"employee-{user.id}")
    assert not can_join(user, "admin")
    assert not can_join(user, f"employee-{user.id + 100}")
    assert can_join(admin_user, f"employee-{user.id}")


@pytest.mark.asyncio
async def test_connection_manager_drops_broken_sockets():
    # Arrange
    rooms = ConnectionManager()
    healthy, broken = FakeSocket(), FakeSocket(broken=True)
    await rooms.connect(healthy, ["admin", "admin-1"])
    await rooms.connect(broken, ["admin"])

    # Act
    delivered = await rooms.send_to_room("admin", {"event": "ping"})

    # Assert
    assert delivered == 1
    assert healthy.sent == [{"event": "ping"}]
    assert rooms.room_size("admin") == 1
    assert rooms.rooms_of(broken) == set()

    rooms.disconnect(healthy)
    assert rooms.rooms == {}


@pytest.mark.asyncio
async def test_emit_event_reaches_each_room_once():
    socket = FakeSocket()
    await manager.connect(socket, ["admin", "admin-1"])
    try:
        await emit_event(EventType.NOTIFICATION, {"title": "Hello"}, ["admin", "admin-1", "admin"])
    finally:
        manager.disconnect(socket)

    assert [frame["event"] for frame in socket.sent] == ["notification", "notification"]
    assert socket.sent[0]["data"] == {"title": "Hello"}


def test_connect_rejects_bad_token_after_handshake(client):
    with client.websocket_connect("/ws?token=not-a-token") as websocket:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()

    assert exc_info.value.code == 4401


def test_connect_ping_and_rooms(client, employee):
    _, user = employee

    with client.websocket_connect(_ws_url(user)) as websocket:
        hello = websocket.receive_json()
        websocket.send_json({"type": "ping"})
        pong = websocket.receive_json()
        websocket.send_json({"type": "join-room", "room": "admin"})
        denied = websocket.receive_json()
        websocket.send_json({"type": "leave-room", "room": "employee"})
        left = websocket.receive_json()
        websocket.send_json({"type": "dance"})
        unknown = websocket.receive_json()

    assert hello == {"type": "connected", "rooms": ["employee", f"employee-{user.id}"]}
    assert pong == {"type": "pong"}
    assert denied["type"] == "error"
    assert left == {"type": "left", "room": "employee"}
    assert unknown["type"] == "error"


def test_task_assignment_is_pushed_live(client, admin_user, admin_headers, employee):
    _, user = employee

    with client.websocket_connect(_ws_url(user)) as employee_socket, client.websocket_connect(
        _ws_url(admin_user)
    ) as admin_socket:
        employee_socket.receive_json()
        admin_socket.receive_json()

        response = client.post(
            "/api/admin/tasks",
            json={"title": "Ship it", "assigned_to": employee[0].id},
            headers=admin_headers,
        )
        assigned = employee_socket.receive_json()
        created = admin_socket.receive_json()

    assert response.status_code == 201
    assert assigned["event"] == "task-assigned"
    assert assigned["data"]["title"] == "Ship it"
    assert created["event"] == "task-created"


@pytest.mark.parametrize(
    "event_type, topic",
    [
        (EventType.ATTENDANCE_MARKED, "officesphere-attendance"),
        (EventType.MEETING_CANCELLED, "officesphere-meetings"),
        (EventType.FEEDBACK_RECEIVED, "officesphere-clients"),
        (EventType.NOTIFICATION, "officesphere-notifications"),
    ],
)
def test_events_are_published_to_their_domain_topic(event_type, topic):
    assert KafkaTopics.for_event(event_type) == topic
