"""Fare routes and the price lookup used by order creation."""
import uuid
from decimal import Decimal
from typing import List, Optional, Tuple
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import BusinessLogicError, ConflictError, NotFoundError
from app.models.fare import Fare
from app.models.order import DeliveryType
from app.repositories.fare_repository import FareRepository
from app.schemas.fare import FareCreate, FareUpdate

logger = logging.getLogger(__name__)

# Delivery type -> Fare price column
PRICE_COLUMNS = {
    DeliveryType.BRANCH_DELIVERY.value: "branch_delivery",
    DeliveryType.COD_BRANCH.value: "cod_branch",
    DeliveryType.DOOR_DELIVERY.value: "door_delivery",
}


def price_for_type(fare: Fare, delivery_type: str) -> Decimal:
    """Price of ``fare`` for one delivery type. Unknown types raise BusinessLogicError."""
    column = PRICE_COLUMNS.get(str(getattr(delivery_type, "value", delivery_type)))
    if column is None:
        raise BusinessLogicError("Invalid delivery type")
    return Decimal(getattr(fare, column))


class FareService:
    """Fare CRUD and route resolution from the hub city."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = FareRepository(db)

    async def find_active_fare_for_route(self, to_city: str) -> Optional[Fare]:
        """
        Active fare from the hub city to ``to_city``.

        ``to_city`` matches as a case-insensitive substring of the fare's
        destination. No caching: every call hits the store.
        """
        return await self.repo.find_active_for_destination(settings.DEFAULT_CITY, to_city)

    async def create_fare(self, data: FareCreate) -> Fare:
        from_city = data.from_city or settings.DEFAULT_CITY
        if await self.repo.find_route(from_city, data.to_city):
            raise ConflictError("Fare route already exists")

        fare = await self.repo.create(
            from_city=from_city,
            to_city=data.to_city,
            branch_delivery=data.branch_delivery,
            cod_branch=data.cod_branch,
            door_delivery=data.door_delivery,
            is_active=data.is_active,
        )
        await self.repo.commit()
        logger.info(f"Fare created for route {from_city} -> {data.to_city}")
        return fare

    async def get_fares(
        self,
        page: int = 1,
        size: int = 20,
        from_city: Optional[str] = None,
        to_city: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Tuple[List[Fare], int]:
        filters = []
        if from_city:
            filters.append(Fare.from_city.icontains(from_city, autoescape=True))
        if to_city:
            filters.append(Fare.to_city.icontains(to_city, autoescape=True))
        if is_active is not None:
            filters.append(Fare.is_active.is_(is_active))
        return await self.repo.find_many(*filters, page=page, size=size, order_by=[Fare.to_city, Fare.id])

    async def get_fare(self, fare_id: uuid.UUID) -> Fare:
        return await self.repo.get_or_404(fare_id, "Fare not found")

    async def get_fare_by_route(self, from_city: str, to_city: str) -> Fare:
        fare = await self.repo.find_route(from_city, to_city)
        if fare is None:
            raise NotFoundError("No fare found for this route")
        return fare

    async def update_fare(self, fare_id: uuid.UUID, data: FareUpdate) -> Fare:
        fare = await self.get_fare(fare_id)
        values = data.model_dump(exclude_unset=True, exclude_none=True)

        from_city = values.get("from_city", fare.from_city)
        to_city = values.get("to_city", fare.to_city)
        if (from_city, to_city) != (fare.from_city, fare.to_city):
            existing = await self.repo.find_route(from_city, to_city)
            if existing is not None and existing.id != fare.id:
                raise ConflictError("Fare route already exists")

        await self.repo.update(fare, **values)
        await self.repo.commit()
        return fare

    async def delete_fare(self, fare_id: uuid.UUID) -> None:
        fare = await self.get_fare(fare_id)
        await self.repo.delete(fare)
        await self.repo.commit()
