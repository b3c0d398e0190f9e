"""Side effects of shipment events."""
import asyncio
import logging
from typing import Any, Dict

from app.events.bus import EventBus
from app.events.types import EventType
from app.services.email_service import EmailService

logger = logging.getLogger(__name__)


def register(bus: EventBus, email_service: EmailService) -> None:

    async def on_created(payload: Dict[str, Any]) -> None:
        shipment = payload.get("shipment") or {}
        order = payload.get("order") or {}
        logger.info(
            f"Shipment {shipment.get('trackingNumber')} created for order {order.get('orderNumber')}"
        )

    async def on_updated(payload: Dict[str, Any]) -> None:
        shipment = payload.get("shipment") or {}
        user = payload.get("user") or {}
        if not user.get("email"):
            return
        try:
            await asyncio.to_thread(email_service.send_shipment_notification, shipment, user)
        except Exception as e:
            logger.error(f"Shipment notification for {shipment.get('trackingNumber')} failed: {e}")

    bus.on(EventType.SHIPMENT_CREATED, on_created)
    bus.on(EventType.SHIPMENT_UPDATED, on_updated)
