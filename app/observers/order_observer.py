"""Side effects of order events."""
import asyncio
import logging
from typing import Any, Dict

from app.events.bus import EventBus
from app.events.types import EventType
from app.services.email_service import EmailService

logger = logging.getLogger(__name__)


def register(bus: EventBus, email_service: EmailService) -> None:

    async def on_created(payload: Dict[str, Any]) -> None:
        order = payload.get("order") or {}
        user = payload.get("user") or {}
        if not user.get("email"):
            logger.info(f"Order {order.get('orderNumber')} has no user email; confirmation skipped")
            return
        try:
            await asyncio.to_thread(email_service.send_order_confirmation, order, user)
        except Exception as e:
            logger.error(f"Order confirmation for {order.get('orderNumber')} failed: {e}")

    async def on_updated(payload: Dict[str, Any]) -> None:
        order = payload.get("order") or {}
        logger.info(f"Order {order.get('orderNumber')} updated: {sorted(payload.get('changes') or {})}")

    bus.on(EventType.ORDER_CREATED, on_created)
    bus.on(EventType.ORDER_UPDATED, on_updated)
