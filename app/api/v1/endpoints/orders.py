"""Order API endpoints."""
from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from app.api.deps import DB, AdminUser, Bus, CurrentUser, StaffUser
from app.core.exceptions import ForbiddenError
from app.core.permissions import STAFF_ROLES, has_role
from app.models.order import OrderStatus
from app.schemas.base import MessageResponse
from app.schemas.order import (
    OrderCreate,
    OrderDetailResponse,
    OrderListResponse,
    OrderResponse,
    OrderUpdate,
)
from app.services.order_service import OrderService

router = APIRouter(tags=["Orders"])


@router.get("", response_model=OrderListResponse)
async def list_orders(
    db: DB,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = Query(None),
    vendor_id: Optional[uuid.UUID] = Query(None, alias="vendorId"),
    user_id: Optional[uuid.UUID] = Query(None, alias="userId"),
    delivery_city: Optional[str] = Query(None, alias="deliveryCity"),
    delivery_type: Optional[str] = Query(None, alias="deliveryType"),
):
    """
    Get paginated list of orders.
    USER accounts only see their own orders.
    """
    orders, total = await OrderService(db).get_orders(
        page=page,
        size=size,
        status=status.value if status else None,
        vendor_id=vendor_id,
        user_id=user_id,
        delivery_city=delivery_city,
        delivery_type=delivery_type,
        requester=current_user,
    )
    return OrderListResponse.build(
        [OrderResponse.model_validate(o) for o in orders], total, page, size
    )


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(data: OrderCreate, db: DB, bus: Bus, current_user: CurrentUser):
    """
    Book a delivery.

    The total is priced server-side from the active fare for the delivery
    city. Send an ``Idempotency-Key`` header to make retries safe.
    """
    order = await OrderService(db, bus).create_order(data, requester=current_user)
    return OrderResponse.model_validate(order)


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(order_id: uuid.UUID, db: DB, current_user: CurrentUser):
    order = await OrderService(db).get_order(order_id)
    if not has_role(current_user.role, *STAFF_ROLES) and order.user_id != current_user.id:
        raise ForbiddenError("Access forbidden")
    return OrderDetailResponse.model_validate(order)


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: uuid.UUID, data: OrderUpdate, db: DB, bus: Bus, current_user: StaffUser
):
    """
    Update an order. The total is not re-priced.
    Requires: ADMIN or MANAGER
    """
    order = await OrderService(db, bus).update_order(order_id, data)
    return OrderResponse.model_validate(order)


@router.delete("/{order_id}", response_model=MessageResponse)
async def delete_order(order_id: uuid.UUID, db: DB, current_user: AdminUser):
    await OrderService(db).delete_order(order_id)
    return MessageResponse(message="Order deleted successfully")
