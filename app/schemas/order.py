from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from app.models.order import OrderStatus
from app.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema, Money, PaginatedResponse
from app.schemas.fare import FareResponse
from app.schemas.vendor import VendorBrief


class OrderCreate(BaseCreateSchema):
    """
    Book a delivery. The price is never taken from the client: the fare for
    ``delivery_city`` and ``delivery_type`` is resolved server-side.
    """
    vendor_id: UUID
    user_id: Optional[UUID] = None  # Defaults to the requesting user
    name: str = Field(..., min_length=1, max_length=200)
    delivery_city: str = Field(..., min_length=1, max_length=100)
    delivery_address: str = Field(..., min_length=1)
    contact_number: str = Field(..., min_length=5, max_length=20)
    alternate_contact_number: Optional[str] = Field(None, max_length=20)
    delivery_type: str  # Checked by the fare resolver
    amount_to_be_collected: Optional[Decimal] = Field(None, ge=0)
    product_weight: Optional[Decimal] = Field(None, ge=0)
    product_type: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class OrderUpdate(BaseUpdateSchema):
    status: Optional[OrderStatus] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    delivery_city: Optional[str] = Field(None, min_length=1, max_length=100)
    delivery_address: Optional[str] = None
    contact_number: Optional[str] = Field(None, min_length=5, max_length=20)
    alternate_contact_number: Optional[str] = Field(None, max_length=20)
    delivery_type: Optional[str] = None  # Checked against the fare price columns
    amount_to_be_collected: Optional[Decimal] = Field(None, ge=0)
    product_weight: Optional[Decimal] = Field(None, ge=0)
    product_type: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class OrderResponse(BaseResponseSchema):
    id: UUID
    order_number: str
    vendor_id: UUID
    user_id: Optional[UUID] = None
    fare_id: UUID
    status: str
    name: str
    delivery_city: str
    delivery_address: str
    contact_number: str
    alternate_contact_number: Optional[str] = None
    delivery_type: str
    amount_to_be_collected: Money
    total_amount: Money
    product_weight: Optional[Money] = None
    product_type: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class OrderBrief(BaseResponseSchema):
    id: UUID
    order_number: str
    vendor_id: UUID
    status: str
    delivery_city: str


class OrderUserBrief(BaseResponseSchema):
    id: UUID
    email: str
    name: str


class OrderShipmentBrief(BaseResponseSchema):
    id: UUID
    tracking_number: str
    status: str
    warehouse_id: UUID


class OrderDetailResponse(OrderResponse):
    vendor: Optional[VendorBrief] = None
    user: Optional[OrderUserBrief] = None
    fare: Optional[FareResponse] = None
    shipments: List[OrderShipmentBrief] = []


OrderListResponse = PaginatedResponse[OrderResponse]
