from typing import Any, Dict, Optional

from app.schemas.base import BaseResponseSchema


class QueueStats(BaseResponseSchema):
    waiting: int
    active: int
    completed: int
    failed: int
    delayed: int
    paused: bool = False


class JobResponse(BaseResponseSchema):
    id: str
    queue: str
    type: str
    state: str
    progress: int
    payload: Dict[str, Any]
    result: Optional[Any] = None
    failed_reason: Optional[str] = None
    attempts: int
    attempts_made: int
    created_at: float
    processed_at: Optional[float] = None
    finished_at: Optional[float] = None
    run_at: Optional[float] = None


class QueueHealth(BaseResponseSchema):
    healthy: bool
    queues: Dict[str, QueueStats]
