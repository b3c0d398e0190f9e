"""Side effects of authentication events."""
import asyncio
import logging
from typing import Any, Dict

from app.events.bus import EventBus
from app.events.types import EventType
from app.services.email_service import EmailService

logger = logging.getLogger(__name__)


def register(bus: EventBus, email_service: EmailService) -> None:

    async def on_registered(payload: Dict[str, Any]) -> None:
        user = payload.get("user") or {}
        if not user.get("email"):
            return
        try:
            await asyncio.to_thread(email_service.send_welcome_email, user)
        except Exception as e:
            logger.error(f"Welcome email to {user.get('email')} failed: {e}")

    async def on_login(payload: Dict[str, Any]) -> None:
        user = payload.get("user") or {}
        logger.info(f"User {user.get('email')} logged in from {payload.get('ip')}")

    bus.on(EventType.AUTH_REGISTERED, on_registered)
    bus.on(EventType.AUTH_LOGIN, on_login)
