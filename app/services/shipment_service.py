"""Shipment creation, tracking lookups and status updates."""
import uuid
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError
from app.core.numbering import generate_reference_number
from app.events.bus import EventBus
from app.events.types import EventType
from app.models.order import Order
from app.models.shipment import Shipment, ShipmentStatus
from app.models.warehouse import Warehouse
from app.repositories.base import BaseRepository
from app.repositories.shipment_repository import ShipmentRepository
from app.schemas.shipment import ShipmentCreate, ShipmentResponse, ShipmentUpdate
from app.services.order_service import order_payload, user_payload

logger = logging.getLogger(__name__)

TRACKING_NUMBER_PREFIX = "TRK"

SHIPMENT_DETAIL_OPTIONS = (
    selectinload(Shipment.order),
    selectinload(Shipment.warehouse),
)


def shipment_payload(shipment: Shipment) -> Dict[str, Any]:
    return ShipmentResponse.model_validate(shipment).model_dump(mode="json", by_alias=True)


class ShipmentService:
    def __init__(self, db: AsyncSession, event_bus: Optional[EventBus] = None):
        self.db = db
        self.event_bus = event_bus
        self.repo = ShipmentRepository(db)
        self.orders = BaseRepository(db, Order)
        self.warehouses = BaseRepository(db, Warehouse)

    def _emit(self, event: EventType, payload: Dict[str, Any]) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(event, payload)

    async def _load_order_with_user(self, order_id: uuid.UUID) -> Optional[Order]:
        return await self.orders.get_by_id(order_id, options=(selectinload(Order.user),))

    async def create_shipment(self, data: ShipmentCreate) -> Shipment:
        """
        Create a shipment for an existing order from an existing warehouse.

        The order is checked before the warehouse. The status supplied by the
        client is ignored; new shipments always start as PREPARING.
        """
        order = await self.orders.get_by_id(data.order_id)
        if order is None:
            raise NotFoundError("Order not found")

        warehouse = await self.warehouses.get_by_id(data.warehouse_id)
        if warehouse is None:
            raise NotFoundError("Warehouse not found")

        shipment = await self.repo.create(
            tracking_number=generate_reference_number(TRACKING_NUMBER_PREFIX),
            order_id=order.id,
            warehouse_id=warehouse.id,
            status=ShipmentStatus.PREPARING.value,
            carrier=data.carrier,
            estimated_delivery=data.estimated_delivery,
            notes=data.notes,
        )
        await self.repo.commit()
        logger.info(f"Shipment {shipment.tracking_number} created for order {order.order_number}")

        self._emit(EventType.SHIPMENT_CREATED, {
            "shipment": shipment_payload(shipment),
            "order": order_payload(order),
        })
        return shipment

    async def get_shipments(
        self,
        page: int = 1,
        size: int = 20,
        status: Optional[str] = None,
        order_id: Optional[uuid.UUID] = None,
        warehouse_id: Optional[uuid.UUID] = None,
    ) -> Tuple[List[Shipment], int]:
        filters = []
        if status:
            filters.append(Shipment.status == status)
        if order_id:
            filters.append(Shipment.order_id == order_id)
        if warehouse_id:
            filters.append(Shipment.warehouse_id == warehouse_id)
        return await self.repo.find_many(*filters, page=page, size=size)

    async def get_shipment(self, shipment_id: uuid.UUID) -> Shipment:
        return await self.repo.get_or_404(shipment_id, "Shipment not found", options=SHIPMENT_DETAIL_OPTIONS)

    async def get_by_tracking_number(self, tracking_number: str) -> Shipment:
        shipment = await self.repo.find_by_tracking_number(tracking_number, options=SHIPMENT_DETAIL_OPTIONS)
        if shipment is None:
            raise NotFoundError("Shipment not found")
        return shipment

    async def update_shipment(self, shipment_id: uuid.UUID, data: ShipmentUpdate) -> Shipment:
        """Apply a partial update. Any status value is accepted."""
        shipment = await self.repo.get_or_404(shipment_id, "Shipment not found")
        values = data.model_dump(exclude_unset=True, exclude_none=True)
        if "status" in values:
            values["status"] = ShipmentStatus(values["status"]).value

        await self.repo.update(shipment, **values)
        await self.repo.commit()

        order = await self._load_order_with_user(shipment.order_id)
        self._emit(EventType.SHIPMENT_UPDATED, {
            "shipment": shipment_payload(shipment),
            "order": order_payload(order) if order is not None else None,
            "user": user_payload(order.user) if order is not None else None,
        })
        return shipment

    async def delete_shipment(self, shipment_id: uuid.UUID) -> None:
        shipment = await self.repo.get_or_404(shipment_id, "Shipment not found")
        await self.repo.delete(shipment)
        await self.repo.commit()
