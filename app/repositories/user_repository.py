from typing import Optional

from sqlalchemy import func

from app.models.user import User
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self.find_first(func.lower(User.email) == email.lower())
