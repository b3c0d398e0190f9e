import uuid
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError
from app.models.vendor import Vendor
from app.repositories.vendor_repository import VendorRepository
from app.schemas.vendor import VendorCreate, VendorUpdate


class VendorService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = VendorRepository(db)

    async def create_vendor(self, data: VendorCreate) -> Vendor:
        if await self.repo.find_by_email(data.email):
            raise ConflictError("Email already exists")
        vendor = await self.repo.create(**data.model_dump())
        await self.repo.commit()
        return vendor

    async def get_vendors(
        self,
        page: int = 1,
        size: int = 20,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Vendor], int]:
        filters = []
        if is_active is not None:
            filters.append(Vendor.is_active.is_(is_active))
        if search:
            filters.append(or_(
                Vendor.name.icontains(search, autoescape=True),
                Vendor.email.icontains(search, autoescape=True),
            ))
        return await self.repo.find_many(*filters, page=page, size=size)

    async def get_vendor(self, vendor_id: uuid.UUID) -> Vendor:
        return await self.repo.get_or_404(vendor_id, "Vendor not found")

    async def update_vendor(self, vendor_id: uuid.UUID, data: VendorUpdate) -> Vendor:
        vendor = await self.get_vendor(vendor_id)
        values = data.model_dump(exclude_unset=True, exclude_none=True)
        if "email" in values and values["email"].lower() != vendor.email.lower():
            if await self.repo.find_by_email(values["email"]):
                raise ConflictError("Email already exists")
        await self.repo.update(vendor, **values)
        await self.repo.commit()
        return vendor

    async def delete_vendor(self, vendor_id: uuid.UUID) -> None:
        vendor = await self.get_vendor(vendor_id)
        await self.repo.delete(vendor)
        await self.repo.commit()
