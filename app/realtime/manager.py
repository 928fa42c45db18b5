"""WebSocket connections grouped into rooms."""

import logging
from typing import Any

from fastapi import WebSocket

from .events import ALL_EVENTS, EventBus, RealtimeEvent, user_room

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self):
        self.rooms: dict[str, list[WebSocket]] = {}
        self.joined: dict[WebSocket, set[str]] = {}
        self.users: dict[WebSocket, str] = {}

    def attach(self, bus: EventBus):
        """Forward every published event to its rooms; returns the unsubscribe callable."""
        return bus.subscribe(ALL_EVENTS, self.handle_event)

    async def connect(self, websocket: WebSocket, user_id) -> None:
        await websocket.accept()
        self.users[websocket] = str(user_id)
        self.joined[websocket] = set()
        self.join(websocket, user_room(user_id))
        logger.info(f"🔌 Realtime client connected for user {user_id}")

    def join(self, websocket: WebSocket, room: str) -> None:
        connections = self.rooms.setdefault(room, [])
        if websocket not in connections:
            connections.append(websocket)
        self.joined.setdefault(websocket, set()).add(room)

    def leave(self, websocket: WebSocket, room: str) -> None:
        connections = self.rooms.get(room, [])
        if websocket in connections:
            connections.remove(websocket)
        if not connections and room in self.rooms:
            del self.rooms[room]
        self.joined.get(websocket, set()).discard(room)

    def disconnect(self, websocket: WebSocket) -> None:
        for room in list(self.joined.get(websocket, set())):
            self.leave(websocket, room)
        self.joined.pop(websocket, None)
        user_id = self.users.pop(websocket, None)
        logger.info(f"🔌 Realtime client disconnected for user {user_id}")

    def rooms_of(self, websocket: WebSocket) -> set[str]:
        return set(self.joined.get(websocket, set()))

    async def broadcast(
        self, room: str, message: dict[str, Any], exclude: WebSocket | None = None
    ) -> None:
        for websocket in list(self.rooms.get(room, [])):
            if websocket is exclude:
                continue
            try:
                await websocket.send_json(message)
            except Exception:
                self.disconnect(websocket)

    async def handle_event(self, event: RealtimeEvent) -> None:
        message = event.envelope()
        for room in event.rooms:
            await self.broadcast(room, message)
