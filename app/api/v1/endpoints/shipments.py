"""Shipment API endpoints."""
from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from app.api.deps import DB, AdminUser, Bus, CurrentUser, StaffUser
from app.models.shipment import ShipmentStatus
from app.schemas.base import MessageResponse
from app.schemas.shipment import (
    ShipmentCreate,
    ShipmentDetailResponse,
    ShipmentListResponse,
    ShipmentResponse,
    ShipmentUpdate,
)
from app.services.shipment_service import ShipmentService

router = APIRouter(tags=["Shipments"])


@router.get("", response_model=ShipmentListResponse)
async def list_shipments(
    db: DB,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    status: Optional[ShipmentStatus] = Query(None),
    order_id: Optional[uuid.UUID] = Query(None, alias="orderId"),
    warehouse_id: Optional[uuid.UUID] = Query(None, alias="warehouseId"),
):
    shipments, total = await ShipmentService(db).get_shipments(
        page=page,
        size=size,
        status=status.value if status else None,
        order_id=order_id,
        warehouse_id=warehouse_id,
    )
    return ShipmentListResponse.build(
        [ShipmentResponse.model_validate(s) for s in shipments], total, page, size
    )


@router.post("", response_model=ShipmentResponse, status_code=status.HTTP_201_CREATED)
async def create_shipment(data: ShipmentCreate, db: DB, bus: Bus, current_user: StaffUser):
    """
    Create a shipment for an order. New shipments always start PREPARING.
    Requires: ADMIN or MANAGER
    """
    shipment = await ShipmentService(db, bus).create_shipment(data)
    return ShipmentResponse.model_validate(shipment)


@router.get("/tracking/{tracking_number}", response_model=ShipmentDetailResponse)
async def track_shipment(tracking_number: str, db: DB, current_user: CurrentUser):
    shipment = await ShipmentService(db).get_by_tracking_number(tracking_number)
    return ShipmentDetailResponse.model_validate(shipment)


@router.get("/{shipment_id}", response_model=ShipmentDetailResponse)
async def get_shipment(shipment_id: uuid.UUID, db: DB, current_user: CurrentUser):
    shipment = await ShipmentService(db).get_shipment(shipment_id)
    return ShipmentDetailResponse.model_validate(shipment)


@router.put("/{shipment_id}", response_model=ShipmentResponse)
async def update_shipment(
    shipment_id: uuid.UUID, data: ShipmentUpdate, db: DB, bus: Bus, current_user: StaffUser
):
    """
    Update a shipment. A user attached to the order is notified by email.
    Requires: ADMIN or MANAGER
    """
    shipment = await ShipmentService(db, bus).update_shipment(shipment_id, data)
    return ShipmentResponse.model_validate(shipment)


@router.delete("/{shipment_id}", response_model=MessageResponse)
async def delete_shipment(shipment_id: uuid.UUID, db: DB, current_user: AdminUser):
    await ShipmentService(db).delete_shipment(shipment_id)
    return MessageResponse(message="Shipment deleted successfully")
