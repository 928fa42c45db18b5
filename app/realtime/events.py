"""Typed in-process event registry.

Services publish ``RealtimeEvent`` objects after their database work is
committed; subscribers (the WebSocket connection manager, tests) register a
handler per event type and get back a callable that removes it again.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from models.base import utcnow

logger = logging.getLogger(__name__)

REALTIME_EVENT_TYPES = (
    "task:created",
    "task:updated",
    "task:deleted",
    "task:assigned",
    "task:completed",
    "comment:created",
    "comment:updated",
    "comment:deleted",
    "team:member:added",
    "team:member:removed",
    "team:updated",
    "list:shared",
    "list:updated",
    "notification:created",
)

ALL_EVENTS = "*"

EventHandler = Callable[["RealtimeEvent"], Awaitable[None]]


class RealtimeEvent(BaseModel):
    """A mutation pushed to the rooms it concerns."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    rooms: list[str] = Field(default_factory=list)
    user_id: UUID | None = None
    team_id: UUID | None = None
    timestamp: datetime = Field(default_factory=utcnow)

    def envelope(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", exclude={"rooms"})
        return {"event": "realtime:event", "payload": payload}


class EventBus:
    """Registry of async handlers keyed by event type."""

    def __init__(self):
        self._handlers: dict[str, list[EventHandler]] = {}

    def subscribe(self, event_type: str, handler: EventHandler) -> Callable[[], None]:
        if event_type != ALL_EVENTS and event_type not in REALTIME_EVENT_TYPES:
            raise ValueError(f"Unknown realtime event type: {event_type}")
        self._handlers.setdefault(event_type, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    async def publish(self, event: RealtimeEvent) -> None:
        """Deliver ``event`` to its subscribers; a failing handler never stops the others."""
        handlers = list(self._handlers.get(event.type, [])) + list(
            self._handlers.get(ALL_EVENTS, [])
        )
        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.error(f"❌ Realtime handler failed for {event.type}: {str(e)}")

    async def emit(
        self,
        event_type: str,
        data: dict[str, Any],
        rooms: list[str],
        user_id: UUID | None = None,
        team_id: UUID | None = None,
    ) -> None:
        await self.publish(
            RealtimeEvent(type=event_type, data=data, rooms=rooms, user_id=user_id, team_id=team_id)
        )


def task_room(task_id) -> str:
    return f"task:{task_id}"


def team_room(team_id) -> str:
    return f"team:{team_id}"


def list_room(list_id) -> str:
    return f"list:{list_id}"


def user_room(user_id) -> str:
    return f"user:{user_id}"
