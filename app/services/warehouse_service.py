import uuid
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.warehouse import Warehouse
from app.repositories.base import BaseRepository
from app.schemas.warehouse import WarehouseCreate, WarehouseUpdate


class WarehouseService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = BaseRepository(db, Warehouse)

    async def create_warehouse(self, data: WarehouseCreate) -> Warehouse:
        warehouse = await self.repo.create(**data.model_dump())
        await self.repo.commit()
        return warehouse

    async def get_warehouses(
        self,
        page: int = 1,
        size: int = 20,
        city: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Tuple[List[Warehouse], int]:
        filters = []
        if city:
            filters.append(Warehouse.city.icontains(city, autoescape=True))
        if is_active is not None:
            filters.append(Warehouse.is_active.is_(is_active))
        return await self.repo.find_many(*filters, page=page, size=size)

    async def get_warehouse(self, warehouse_id: uuid.UUID) -> Warehouse:
        return await self.repo.get_or_404(warehouse_id, "Warehouse not found")

    async def update_warehouse(self, warehouse_id: uuid.UUID, data: WarehouseUpdate) -> Warehouse:
        warehouse = await self.get_warehouse(warehouse_id)
        await self.repo.update(warehouse, **data.model_dump(exclude_unset=True, exclude_none=True))
        await self.repo.commit()
        return warehouse

    async def delete_warehouse(self, warehouse_id: uuid.UUID) -> None:
        warehouse = await self.get_warehouse(warehouse_id)
        await self.repo.delete(warehouse)
        await self.repo.commit()
