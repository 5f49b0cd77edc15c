"""
WebSocket endpoint for live updates.

Clients connect to `/ws?token=<jwt>`. After the handshake the server
pushes event frames for the connection's rooms. Clients may send:

- `{"type": "ping"}` → `{"type": "pong"}`
- `{"type": "join-room", "room": "..."}`
- `{"type": "leave-room", "room": "..."}`
"""

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect
from sqlmodel import Session

from app.core.database import engine
from app.core.logging import get_logger
from app.core.realtime import can_join, default_rooms, manager
from app.core.security import decode_access_token, load_active_user

logger = get_logger(__name__)

router = APIRouter(tags=["realtime"])

# Application-defined close code for a rejected token
WS_UNAUTHORIZED = 4401


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: str = Query("")):
    # Rejected tokens close an accepted socket with 4401
    await websocket.accept()
    try:
        token_data = decode_access_token(token)
        with Session(engine) as session:
            user = load_active_user(session, token_data)
            session.expunge(user)
    except HTTPException as e:
        logger.info(f"WebSocket connection rejected: {e.detail}")
        await websocket.close(code=WS_UNAUTHORIZED, reason=str(e.detail))
        return

    await manager.connect(websocket, default_rooms(user))
    logger.info(f"WebSocket connected for {user.email} ({user.role})")
    await websocket.send_json(
        {"type": "connected", "rooms": sorted(manager.rooms_of(websocket))}
    )

    try:
        while True:
            message = await websocket.receive_json()
            kind = message.get("type") if isinstance(message, dict) else None
            room = message.get("room") if isinstance(message, dict) else None

            if kind == "ping":
                await websocket.send_json({"type": "pong"})
            elif kind == "join-room" and isinstance(room, str):
                if can_join(user, room):
                    manager.join(websocket, room)
                    await websocket.send_json({"type": "joined", "room": room})
                else:
                    await websocket.send_json(
                        {"type": "error", "message": f"Not allowed to join {room}"}
                    )
            elif kind == "leave-room" and isinstance(room, str):
                manager.leave(websocket, room)
                await websocket.send_json({"type": "left", "room": room})
            else:
                await websocket.send_json({"type": "error", "message": "Unknown message"})
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for {user.email}")
    except ValueError as e:
        logger.warning(f"Closing WebSocket for {user.email} after malformed frame: {e}")
        await websocket.close(code=1003)
    finally:
        manager.disconnect(websocket)
