"""
In-process publish/subscribe for domain events.

The bus is constructed once at application startup, stored on
``app.state.event_bus`` and handed to services through a dependency.
``emit`` never waits for handlers: each handler is scheduled as its own
task and runs inside its own error boundary, so a failing handler cannot
affect the emitter or its siblings.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Set, Union

from app.core.log import redact

logger = logging.getLogger(__name__)

# Only these keys are hidden in the emission log line
EVENT_REDACT_KEYS = ("password", "token", "refreshToken", "passwordHash")

EventHandler = Callable[[Dict[str, Any]], Awaitable[None]]


class EventBus:
    """Register-and-fire event bus with fire-and-forget handler dispatch."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._pending: Set[asyncio.Task] = set()

    def on(self, event_name: Union[str, Any], handler: EventHandler) -> None:
        """Register ``handler`` for ``event_name``. Multiple handlers per name are allowed."""
        self._handlers[str(getattr(event_name, "value", event_name))].append(handler)

    def off(self, event_name: Union[str, Any], handler: EventHandler) -> None:
        name = str(getattr(event_name, "value", event_name))
        if handler in self._handlers.get(name, []):
            self._handlers[name].remove(handler)

    def listener_count(self, event_name: Union[str, Any]) -> int:
        return len(self._handlers.get(str(getattr(event_name, "value", event_name)), []))

    def emit(self, event_name: Union[str, Any], payload: Dict[str, Any]) -> List[asyncio.Task]:
        """
        Schedule every handler registered for ``event_name`` and return immediately.

        Must be called from a running event loop. Returns the scheduled tasks;
        callers normally ignore them.
        """
        name = str(getattr(event_name, "value", event_name))
        logger.info(f"event: {name} payload={redact(payload, EVENT_REDACT_KEYS)}")

        loop = asyncio.get_running_loop()
        tasks = []
        for handler in list(self._handlers.get(name, [])):
            task = loop.create_task(self._run_handler(name, handler, payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        return tasks

    async def _run_handler(self, name: str, handler: EventHandler, payload: Dict[str, Any]) -> None:
        try:
            await handler(payload)
        except Exception:
            logger.exception(f"Handler {getattr(handler, '__name__', handler)!r} failed for event {name}")

    async def drain(self) -> None:
        """Wait for all in-flight handlers. Used at shutdown and by tests."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def clear(self) -> None:
        self._handlers.clear()
