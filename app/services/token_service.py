"""Refresh-token records kept in the cache.

A refresh token is valid exactly as long as its ``refresh:{token}`` record
exists. Consuming a token deletes the record, so every token is single-use.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

from app.config import settings
from app.core.security import generate_refresh_token
from app.services.cache_service import CacheService

logger = logging.getLogger(__name__)


class RefreshTokenStore:
    PREFIX = "refresh"

    def __init__(self, cache: CacheService, ttl_days: Optional[int] = None):
        self.cache = cache
        self.ttl_seconds = (ttl_days or settings.REFRESH_TOKEN_EXPIRE_DAYS) * 24 * 3600

    def _key(self, token: str) -> str:
        return f"{self.PREFIX}:{token}"

    async def issue(
        self,
        user_id: Any,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> str:
        token = generate_refresh_token()
        record = {
            "userId": str(user_id),
            "createdAt": datetime.now(timezone.utc).isoformat(),
            "ip": ip,
            "userAgent": user_agent,
        }
        await self.cache.set(self._key(token), record, ttl=self.ttl_seconds)
        return token

    async def consume(self, token: str) -> Optional[Dict[str, Any]]:
        """Return the record for ``token`` and delete it. None if unknown or expired."""
        if not token:
            return None
        return await self.cache.pop(self._key(token))

    async def revoke(self, token: str) -> bool:
        return await self.cache.delete(self._key(token))
