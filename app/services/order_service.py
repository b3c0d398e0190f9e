"""
Order pricing and lifecycle.

Creating an order resolves the fare for the destination, prices it for the
requested delivery type, persists it and only then announces it on the
event bus.
"""
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import BusinessLogicError, NotFoundError
from app.core.numbering import generate_reference_number
from app.core.permissions import STAFF_ROLES, has_role
from app.events.bus import EventBus
from app.events.types import EventType
from app.models.order import Order, OrderStatus
from app.models.user import User
from app.repositories.base import BaseRepository
from app.repositories.user_repository import UserRepository
from app.repositories.vendor_repository import VendorRepository
from app.schemas.order import OrderCreate, OrderResponse, OrderUpdate
from app.services.fare_service import PRICE_COLUMNS, FareService, price_for_type

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "ORD"

ORDER_DETAIL_OPTIONS = (
    selectinload(Order.vendor),
    selectinload(Order.user),
    selectinload(Order.fare),
    selectinload(Order.shipments),
)


def user_payload(user: Optional[User]) -> Optional[Dict[str, Any]]:
    """Event-safe view of a user (never includes the password hash)."""
    if user is None:
        return None
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role,
    }


def order_payload(order: Order) -> Dict[str, Any]:
    return OrderResponse.model_validate(order).model_dump(mode="json", by_alias=True)


class OrderService:
    def __init__(self, db: AsyncSession, event_bus: Optional[EventBus] = None):
        self.db = db
        self.event_bus = event_bus
        self.repo = BaseRepository(db, Order)
        self.vendors = VendorRepository(db)
        self.users = UserRepository(db)
        self.fares = FareService(db)

    def _emit(self, event: EventType, payload: Dict[str, Any]) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(event, payload)

    async def create_order(self, data: OrderCreate, requester: Optional[User] = None) -> Order:
        """
        Price and persist a new order.

        Raises:
            NotFoundError: vendor (or explicit user) does not exist
            BusinessLogicError: no active fare for the destination, or
                unknown delivery type
        """
        vendor = await self.vendors.get_by_id(data.vendor_id)
        if vendor is None:
            raise NotFoundError("Vendor not found")

        user_id = data.user_id or (requester.id if requester is not None else None)
        user = None
        if user_id is not None:
            user = await self.users.get_by_id(user_id)
            if user is None:
                raise NotFoundError("User not found")

        fare = await self.fares.find_active_fare_for_route(data.delivery_city)
        if fare is None:
            raise BusinessLogicError("No fare found for this route")

        fare_amount = price_for_type(fare, data.delivery_type)
        amount_to_collect = data.amount_to_be_collected or Decimal("0")
        total_amount = fare_amount + amount_to_collect

        order = await self.repo.create(
            order_number=generate_reference_number(ORDER_NUMBER_PREFIX),
            vendor_id=vendor.id,
            user_id=user_id,
            fare_id=fare.id,
            status=OrderStatus.PENDING.value,
            name=data.name,
            delivery_city=data.delivery_city,
            delivery_address=data.delivery_address,
            contact_number=data.contact_number,
            alternate_contact_number=data.alternate_contact_number,
            delivery_type=str(data.delivery_type),
            amount_to_be_collected=amount_to_collect,
            total_amount=total_amount,
            product_weight=data.product_weight,
            product_type=data.product_type,
            notes=data.notes,
        )
        await self.repo.commit()
        logger.info(f"Order {order.order_number} created: fare {fare_amount} + collect {amount_to_collect}")

        self._emit(EventType.ORDER_CREATED, {
            "order": order_payload(order),
            "user": user_payload(user),
        })
        return order

    async def get_orders(
        self,
        page: int = 1,
        size: int = 20,
        status: Optional[str] = None,
        vendor_id: Optional[uuid.UUID] = None,
        user_id: Optional[uuid.UUID] = None,
        delivery_city: Optional[str] = None,
        delivery_type: Optional[str] = None,
        requester: Optional[User] = None,
    ) -> Tuple[List[Order], int]:
        filters = []
        if status:
            filters.append(Order.status == status)
        if vendor_id:
            filters.append(Order.vendor_id == vendor_id)
        if user_id:
            filters.append(Order.user_id == user_id)
        if delivery_city:
            filters.append(Order.delivery_city.icontains(delivery_city, autoescape=True))
        if delivery_type:
            filters.append(Order.delivery_type == delivery_type)

        # Plain users only ever see their own orders
        if requester is not None and not has_role(requester.role, *STAFF_ROLES):
            filters.append(Order.user_id == requester.id)

        return await self.repo.find_many(*filters, page=page, size=size)

    async def get_order(self, order_id: uuid.UUID) -> Order:
        return await self.repo.get_or_404(order_id, "Order not found", options=ORDER_DETAIL_OPTIONS)

    async def update_order(self, order_id: uuid.UUID, data: OrderUpdate) -> Order:
        """
        Apply a partial update. Any status value is accepted and the total is
        not re-priced, even when delivery type or city change.
        """
        order = await self.repo.get_or_404(order_id, "Order not found")
        values = data.model_dump(exclude_unset=True, exclude_none=True)
        if "status" in values:
            values["status"] = OrderStatus(values["status"]).value
        if "delivery_type" in values and values["delivery_type"] not in PRICE_COLUMNS:
            raise BusinessLogicError("Invalid delivery type")

        await self.repo.update(order, **values)
        await self.repo.commit()

        user = await self.users.get_by_id(order.user_id) if order.user_id else None
        self._emit(EventType.ORDER_UPDATED, {
            "order": order_payload(order),
            "user": user_payload(user),
            "changes": sorted(values.keys()),
        })
        return order

    async def delete_order(self, order_id: uuid.UUID) -> None:
        order = await self.repo.get_or_404(order_id, "Order not found")
        await self.repo.delete(order)
        await self.repo.commit()
