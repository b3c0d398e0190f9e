from typing import Optional

from sqlalchemy import func

from app.models.fare import Fare
from app.repositories.base import BaseRepository


class FareRepository(BaseRepository[Fare]):
    model = Fare

    async def find_active_for_destination(self, from_city: str, to_city: str) -> Optional[Fare]:
        """Active fare out of ``from_city`` whose destination contains ``to_city`` (case-insensitive)."""
        return await self.find_first(
            Fare.from_city == from_city,
            Fare.to_city.icontains(to_city, autoescape=True),
            Fare.is_active.is_(True),
        )

    async def find_route(self, from_city: str, to_city: str) -> Optional[Fare]:
        """Exact route lookup (the unique key), ignoring case."""
        return await self.find_first(
            func.lower(Fare.from_city) == from_city.lower(),
            func.lower(Fare.to_city) == to_city.lower(),
        )
