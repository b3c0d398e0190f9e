"""Warehouse API endpoints."""
from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from app.api.deps import DB, CurrentUser, AdminUser, StaffUser
from app.schemas.base import MessageResponse
from app.schemas.warehouse import (
    WarehouseCreate,
    WarehouseListResponse,
    WarehouseResponse,
    WarehouseUpdate,
)
from app.services.warehouse_service import WarehouseService

router = APIRouter(tags=["Warehouses"])


@router.get("", response_model=WarehouseListResponse)
async def list_warehouses(
    db: DB,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    city: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
):
    """Get paginated list of warehouses."""
    warehouses, total = await WarehouseService(db).get_warehouses(
        page=page, size=size, city=city, is_active=is_active
    )
    return WarehouseListResponse.build(
        [WarehouseResponse.model_validate(w) for w in warehouses], total, page, size
    )


@router.post("", response_model=WarehouseResponse, status_code=status.HTTP_201_CREATED)
async def create_warehouse(data: WarehouseCreate, db: DB, current_user: StaffUser):
    warehouse = await WarehouseService(db).create_warehouse(data)
    return WarehouseResponse.model_validate(warehouse)


@router.get("/{warehouse_id}", response_model=WarehouseResponse)
async def get_warehouse(warehouse_id: uuid.UUID, db: DB, current_user: CurrentUser):
    warehouse = await WarehouseService(db).get_warehouse(warehouse_id)
    return WarehouseResponse.model_validate(warehouse)


@router.put("/{warehouse_id}", response_model=WarehouseResponse)
async def update_warehouse(
    warehouse_id: uuid.UUID, data: WarehouseUpdate, db: DB, current_user: StaffUser
):
    warehouse = await WarehouseService(db).update_warehouse(warehouse_id, data)
    return WarehouseResponse.model_validate(warehouse)


@router.delete("/{warehouse_id}", response_model=MessageResponse)
async def delete_warehouse(warehouse_id: uuid.UUID, db: DB, current_user: AdminUser):
    await WarehouseService(db).delete_warehouse(warehouse_id)
    return MessageResponse(message="Warehouse deleted successfully")
