from datetime import datetime
import json
from typing import Any, List, Optional, Tuple
import uuid
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.log import redact, truncate
from app.models.activity_log import ActivityLog
from app.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
MAX_FIELD_LENGTH = 500
MAX_BODY_LENGTH = 2048


class ActivityLogService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = BaseRepository(db, ActivityLog)

    async def log(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: int,
        user_id: Optional[uuid.UUID] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        query: Optional[dict] = None,
        params: Optional[dict] = None,
        body: Optional[Any] = None,
    ) -> Optional[ActivityLog]:
        """Record one request. Never raises: a failed write is logged and dropped."""
        try:
            if body is not None and not isinstance(body, str):
                body = json.dumps(redact(body), default=str)
            entry = await self.repo.create(
                method=method,
                path=path[:MAX_FIELD_LENGTH],
                status_code=status_code,
                duration_ms=duration_ms,
                user_id=user_id,
                ip=ip,
                user_agent=(user_agent or "")[:MAX_FIELD_LENGTH] or None,
                query=truncate(redact(query), MAX_FIELD_LENGTH) if query else None,
                params=truncate(redact(params), MAX_FIELD_LENGTH) if params else None,
                body=body[:MAX_BODY_LENGTH] if body else None,
            )
            await self.repo.commit()
            return entry
        except Exception as e:
            logger.error(f"Failed to write activity log for {method} {path}: {e}")
            return None

    async def get_activity_logs(
        self,
        page: int = 1,
        size: int = 20,
        user_id: Optional[uuid.UUID] = None,
        method: Optional[str] = None,
        status_code: Optional[int] = None,
        path: Optional[str] = None,
        ip: Optional[str] = None,
        min_duration: Optional[int] = None,
        max_duration: Optional[int] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> Tuple[List[ActivityLog], int]:
        filters = []
        if user_id:
            filters.append(ActivityLog.user_id == user_id)
        if method:
            filters.append(ActivityLog.method == method.upper())
        if status_code:
            filters.append(ActivityLog.status_code == status_code)
        if path:
            filters.append(ActivityLog.path.icontains(path, autoescape=True))
        if ip:
            filters.append(ActivityLog.ip == ip)
        if min_duration is not None:
            filters.append(ActivityLog.duration_ms >= min_duration)
        if max_duration is not None:
            filters.append(ActivityLog.duration_ms <= max_duration)
        if date_from:
            filters.append(ActivityLog.created_at >= date_from)
        if date_to:
            filters.append(ActivityLog.created_at <= date_to)

        return await self.repo.find_many(*filters, page=page, size=min(size, MAX_PAGE_SIZE))
