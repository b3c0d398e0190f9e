from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema, Money, PaginatedResponse


class FareCreate(BaseCreateSchema):
    """Create a fare route. ``from_city`` defaults to the hub city."""
    from_city: Optional[str] = Field(None, min_length=1, max_length=100)
    to_city: str = Field(..., min_length=1, max_length=100)
    branch_delivery: Decimal = Field(..., ge=0)
    cod_branch: Decimal = Field(..., ge=0)
    door_delivery: Decimal = Field(..., ge=0)
    is_active: bool = True


class FareUpdate(BaseUpdateSchema):
    from_city: Optional[str] = Field(None, min_length=1, max_length=100)
    to_city: Optional[str] = Field(None, min_length=1, max_length=100)
    branch_delivery: Optional[Decimal] = Field(None, ge=0)
    cod_branch: Optional[Decimal] = Field(None, ge=0)
    door_delivery: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None


class FareResponse(BaseResponseSchema):
    id: UUID
    from_city: str
    to_city: str
    branch_delivery: Money
    cod_branch: Money
    door_delivery: Money
    is_active: bool
    created_at: datetime
    updated_at: datetime


FareListResponse = PaginatedResponse[FareResponse]
