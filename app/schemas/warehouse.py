from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema, PaginatedResponse


class WarehouseCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    address: Optional[str] = None
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    capacity: Optional[int] = Field(None, ge=0)
    is_active: bool = True


class WarehouseUpdate(BaseUpdateSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = None
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    capacity: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class WarehouseResponse(BaseResponseSchema):
    id: UUID
    name: str
    city: str
    address: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    capacity: Optional[int] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class WarehouseBrief(BaseResponseSchema):
    id: UUID
    name: str
    city: str


WarehouseListResponse = PaginatedResponse[WarehouseResponse]
