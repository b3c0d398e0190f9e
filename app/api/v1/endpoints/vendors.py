"""Vendor API endpoints."""
from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from app.api.deps import DB, CurrentUser, AdminUser, StaffUser
from app.schemas.base import MessageResponse
from app.schemas.vendor import (
    VendorCreate,
    VendorListResponse,
    VendorResponse,
    VendorUpdate,
)
from app.services.vendor_service import VendorService

router = APIRouter(tags=["Vendors"])


@router.get("", response_model=VendorListResponse)
async def list_vendors(
    db: DB,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = Query(None),
):
    """Get paginated list of vendors."""
    vendors, total = await VendorService(db).get_vendors(
        page=page, size=size, is_active=is_active, search=search
    )
    return VendorListResponse.build(
        [VendorResponse.model_validate(v) for v in vendors], total, page, size
    )


@router.post("", response_model=VendorResponse, status_code=status.HTTP_201_CREATED)
async def create_vendor(data: VendorCreate, db: DB, current_user: StaffUser):
    """
    Create a new vendor.
    Requires: ADMIN or MANAGER
    """
    vendor = await VendorService(db).create_vendor(data)
    return VendorResponse.model_validate(vendor)


@router.get("/{vendor_id}", response_model=VendorResponse)
async def get_vendor(vendor_id: uuid.UUID, db: DB, current_user: CurrentUser):
    vendor = await VendorService(db).get_vendor(vendor_id)
    return VendorResponse.model_validate(vendor)


@router.put("/{vendor_id}", response_model=VendorResponse)
async def update_vendor(vendor_id: uuid.UUID, data: VendorUpdate, db: DB, current_user: StaffUser):
    vendor = await VendorService(db).update_vendor(vendor_id, data)
    return VendorResponse.model_validate(vendor)


@router.delete("/{vendor_id}", response_model=MessageResponse)
async def delete_vendor(vendor_id: uuid.UUID, db: DB, current_user: AdminUser):
    await VendorService(db).delete_vendor(vendor_id)
    return MessageResponse(message="Vendor deleted successfully")
