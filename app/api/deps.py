from typing import Annotated, Optional
import uuid
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.core.exceptions import ForbiddenError, UnauthorizedError
from app.core.permissions import has_role
from app.core.security import verify_access_token
from app.events.bus import EventBus
from app.jobs.queue import QueueRegistry
from app.models.user import User, UserRole
from app.repositories.user_repository import UserRepository
from app.services.cache_service import CacheService
from app.services.token_service import RefreshTokenStore


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme; missing credentials are reported as our own 401
security = HTTPBearer(auto_error=False)

DB = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user(
    db: DB,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> User:
    """
    Dependency to get the current authenticated user.
    Validates the JWT access token and loads the active user it names.
    """
    if credentials is None:
        raise UnauthorizedError("Authentication required")

    user_id = verify_access_token(credentials.credentials)
    if user_id is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise UnauthorizedError("Invalid or expired token")

    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        logger.warning(f"Invalid user_id in token: {user_id}")
        raise UnauthorizedError("Invalid or expired token")

    user = await UserRepository(db).get_by_id(user_uuid)
    if user is None:
        raise UnauthorizedError("User not found")
    if not user.is_active:
        raise ForbiddenError("User account is deactivated")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_role(*roles: UserRole):
    """
    Dependency factory restricting an endpoint to the given roles.

    Usage:
        @router.post("", dependencies=[Depends(require_role(UserRole.ADMIN, UserRole.MANAGER))])
        async def create_vendor():
            ...
    """
    async def role_dependency(user: CurrentUser) -> User:
        if not has_role(user.role, *roles):
            raise ForbiddenError("Insufficient permissions")
        return user

    return role_dependency


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_cache_service(request: Request) -> CacheService:
    return request.app.state.cache


def get_token_store(request: Request) -> RefreshTokenStore:
    return request.app.state.token_store


def get_queues(request: Request) -> QueueRegistry:
    return request.app.state.queues


def get_client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


# Type aliases for cleaner endpoint signatures
Bus = Annotated[EventBus, Depends(get_event_bus)]
Cache = Annotated[CacheService, Depends(get_cache_service)]
TokenStore = Annotated[RefreshTokenStore, Depends(get_token_store)]
Queues = Annotated[QueueRegistry, Depends(get_queues)]
ClientIP = Annotated[Optional[str], Depends(get_client_ip)]
StaffUser = Annotated[User, Depends(require_role(UserRole.ADMIN, UserRole.MANAGER))]
AdminUser = Annotated[User, Depends(require_role(UserRole.ADMIN))]
