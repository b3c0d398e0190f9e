from app.events.bus import EventBus
from app.events.types import EventType

__all__ = ["EventBus", "EventType"]
