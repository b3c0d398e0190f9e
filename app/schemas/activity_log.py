from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from app.schemas.base import BaseResponseSchema, PaginatedResponse


class ActivityLogResponse(BaseResponseSchema):
    id: UUID
    user_id: Optional[UUID] = None
    method: str
    path: str
    status_code: int
    duration_ms: int
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    query: Optional[Any] = None
    params: Optional[Any] = None
    body: Optional[str] = None
    created_at: datetime


ActivityLogListResponse = PaginatedResponse[ActivityLogResponse]
