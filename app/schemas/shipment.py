from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.models.shipment import ShipmentStatus
from app.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema, PaginatedResponse
from app.schemas.order import OrderBrief
from app.schemas.warehouse import WarehouseBrief


class ShipmentCreate(BaseCreateSchema):
    order_id: UUID
    warehouse_id: UUID
    status: Optional[str] = None  # Ignored: new shipments always start PREPARING
    carrier: Optional[str] = Field(None, max_length=100)
    estimated_delivery: Optional[datetime] = None
    notes: Optional[str] = None


class ShipmentUpdate(BaseUpdateSchema):
    status: Optional[ShipmentStatus] = None
    carrier: Optional[str] = Field(None, max_length=100)
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    notes: Optional[str] = None


class ShipmentResponse(BaseResponseSchema):
    id: UUID
    tracking_number: str
    order_id: UUID
    warehouse_id: UUID
    status: str
    carrier: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ShipmentDetailResponse(ShipmentResponse):
    order: Optional[OrderBrief] = None
    warehouse: Optional[WarehouseBrief] = None


ShipmentListResponse = PaginatedResponse[ShipmentResponse]
