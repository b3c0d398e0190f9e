"""Activity log listing (admin only)."""
from datetime import datetime
from typing import Optional
import uuid

from fastapi import APIRouter, Query

from app.api.deps import DB, AdminUser
from app.schemas.activity_log import ActivityLogListResponse, ActivityLogResponse
from app.services.activity_log_service import MAX_PAGE_SIZE, ActivityLogService

router = APIRouter(tags=["Activity Logs"])


@router.get("", response_model=ActivityLogListResponse)
async def list_activity_logs(
    db: DB,
    current_user: AdminUser,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1),
    user_id: Optional[uuid.UUID] = Query(None, alias="userId"),
    method: Optional[str] = Query(None),
    status_code: Optional[int] = Query(None, alias="statusCode"),
    path: Optional[str] = Query(None),
    ip: Optional[str] = Query(None),
    min_duration: Optional[int] = Query(None, alias="minDuration", ge=0),
    max_duration: Optional[int] = Query(None, alias="maxDuration", ge=0),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
):
    """
    Search recorded API requests. Page size is capped at 100.
    Requires: ADMIN
    """
    size = min(size, MAX_PAGE_SIZE)
    logs, total = await ActivityLogService(db).get_activity_logs(
        page=page,
        size=size,
        user_id=user_id,
        method=method,
        status_code=status_code,
        path=path,
        ip=ip,
        min_duration=min_duration,
        max_duration=max_duration,
        date_from=date_from,
        date_to=date_to,
    )
    return ActivityLogListResponse.build(
        [ActivityLogResponse.model_validate(entry) for entry in logs], total, page, size
    )
