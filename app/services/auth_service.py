from typing import Any, Dict, Optional
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ConflictError, UnauthorizedError
from app.core.security import create_access_token, get_password_hash, verify_password
from app.events.bus import EventBus
from app.events.types import EventType
from app.models.user import User, UserRole
from app.repositories.user_repository import UserRepository
from app.schemas.auth import RegisterRequest
from app.services.order_service import user_payload
from app.services.token_service import RefreshTokenStore

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, login and refresh-token rotation."""

    def __init__(
        self,
        db: AsyncSession,
        token_store: RefreshTokenStore,
        event_bus: Optional[EventBus] = None,
    ):
        self.db = db
        self.users = UserRepository(db)
        self.token_store = token_store
        self.event_bus = event_bus

    def _emit(self, event: EventType, payload: Dict[str, Any]) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(event, payload)

    async def register_user(self, data: RegisterRequest) -> User:
        if await self.users.find_by_email(data.email):
            raise ConflictError("Email already exists")

        user = await self.users.create(
            email=data.email.lower(),
            password_hash=get_password_hash(data.password),
            name=data.name,
            role=UserRole(data.role).value,
            vendor_id=data.vendor_id,
        )
        await self.users.commit()
        logger.info(f"User registered: {user.email} ({user.role})")

        self._emit(EventType.AUTH_REGISTERED, {"user": user_payload(user)})
        return user

    async def authenticate_user(self, email: str, password: str) -> User:
        """Return the active user for these credentials or raise UnauthorizedError."""
        user = await self.users.find_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise UnauthorizedError("Invalid credentials")
        if not user.is_active:
            raise UnauthorizedError("Invalid credentials")
        return user

    async def create_tokens(
        self,
        user: User,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        access_token = create_access_token(user.id, role=user.role)
        refresh_token = await self.token_store.issue(user.id, ip=ip, user_agent=user_agent)
        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "user": user,
        }

    async def login(
        self,
        email: str,
        password: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        user = await self.authenticate_user(email, password)
        tokens = await self.create_tokens(user, ip=ip, user_agent=user_agent)
        self._emit(EventType.AUTH_LOGIN, {"user": user_payload(user), "ip": ip})
        return tokens

    async def refresh_tokens(
        self,
        refresh_token: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Rotate a refresh token.

        The old record is deleted before the new pair is issued, so a token
        can be exchanged once; presenting it again raises UnauthorizedError.
        """
        record = await self.token_store.consume(refresh_token)
        if record is None:
            raise UnauthorizedError("Invalid token")

        try:
            user_id = uuid.UUID(record["userId"])
        except (KeyError, ValueError):
            raise UnauthorizedError("Invalid token")

        user = await self.users.get_by_id(user_id)
        if user is None or not user.is_active:
            raise UnauthorizedError("User not found")

        return await self.create_tokens(user, ip=ip, user_agent=user_agent)

    async def logout(self, refresh_token: str) -> None:
        await self.token_store.revoke(refresh_token)
