from typing import Optional

from sqlalchemy import func

from app.models.vendor import Vendor
from app.repositories.base import BaseRepository


class VendorRepository(BaseRepository[Vendor]):
    model = Vendor

    async def find_by_email(self, email: str) -> Optional[Vendor]:
        return await self.find_first(func.lower(Vendor.email) == email.lower())
