"""WebSocket endpoint for realtime updates."""

import json
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy import select

from app.core.security import token_authenticator
from app.database import AsyncSessionLocal
from app.exceptions.base import UnauthenticatedError
from app.realtime.events import task_room, user_room
from app.realtime.manager import ConnectionManager
from app.realtime.rooms import authorize_room
from models import User
from models.base import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


async def authenticate_socket(token: str | None) -> User | None:
    """Resolve the user behind a bearer token, or ``None`` if it is not usable."""
    if not token:
        return None
    try:
        payload = token_authenticator.verify_token(token)
        user_id = UUID(str(payload["sub"]))
    except (UnauthenticatedError, ValueError):
        return None

    async with AsyncSessionLocal() as db:
        user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None or not user.is_active:
        return None
    return user


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: str | None = Query(None)):
    manager: ConnectionManager = websocket.app.state.connections
    user = await authenticate_socket(token)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await manager.connect(websocket, user.id)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                await websocket.send_json({"event": "error", "message": "Invalid JSON message"})
                continue
            if not isinstance(message, dict):
                await websocket.send_json({"event": "error", "message": "Invalid message format"})
                continue
            await handle_client_message(manager, websocket, user.id, message)
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)


async def handle_client_message(
    manager: ConnectionManager, websocket: WebSocket, user_id: UUID, message: dict[str, Any]
) -> None:
    """Dispatch one client message: room membership, typing and presence."""
    message_type = message.get("type")

    if message_type == "room:join":
        room = str(message.get("room", ""))
        async with AsyncSessionLocal() as db:
            allowed = await authorize_room(db, user_id, room)
        if not allowed:
            await websocket.send_json(
                {"event": "error", "message": "Not authorized to join this room", "room": room}
            )
            return
        manager.join(websocket, room)
        await websocket.send_json({"event": "room:joined", "room": room})

    elif message_type == "room:leave":
        room = str(message.get("room", ""))
        if room == user_room(user_id):
            return
        manager.leave(websocket, room)
        await websocket.send_json({"event": "room:left", "room": room})

    elif message_type == "comment:typing":
        room = task_room(message.get("task_id"))
        if room not in manager.rooms_of(websocket):
            await websocket.send_json({"event": "error", "message": "Join the task room first"})
            return
        payload = {
            "user_id": str(user_id),
            "task_id": str(message.get("task_id")),
            "is_typing": bool(message.get("is_typing", True)),
        }
        await manager.broadcast(
            room, {"event": "comment:typing", "payload": payload}, exclude=websocket
        )

    elif message_type == "user:presence":
        payload = {
            "user_id": str(user_id),
            "status": str(message.get("status", "online")),
            "timestamp": utcnow().isoformat(),
        }
        for room in manager.rooms_of(websocket):
            await manager.broadcast(
                room, {"event": "user:presence", "payload": payload}, exclude=websocket
            )

    else:
        await websocket.send_json({"event": "error", "message": f"Unknown message type: {message_type}"})
