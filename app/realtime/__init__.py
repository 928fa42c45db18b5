"""Real-time event registry and WebSocket room fan-out."""

from .events import REALTIME_EVENT_TYPES, EventBus, RealtimeEvent
from .manager import ConnectionManager

__all__ = ["REALTIME_EVENT_TYPES", "EventBus", "RealtimeEvent", "ConnectionManager"]
