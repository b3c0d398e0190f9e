from typing import Any, Optional, Sequence

from app.models.shipment import Shipment
from app.repositories.base import BaseRepository


class ShipmentRepository(BaseRepository[Shipment]):
    model = Shipment

    async def find_by_tracking_number(
        self, tracking_number: str, options: Sequence[Any] = ()
    ) -> Optional[Shipment]:
        return await self.find_first(Shipment.tracking_number == tracking_number, options=options)
