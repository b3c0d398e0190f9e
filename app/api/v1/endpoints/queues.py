"""Queue administration endpoints (admin only)."""
from typing import Dict

from fastapi import APIRouter, Query

from app.api.deps import AdminUser, Queues
from app.core.exceptions import NotFoundError
from app.jobs.scheduler import get_job_status
from app.schemas.base import MessageResponse
from app.schemas.queue import JobResponse, QueueHealth, QueueStats

router = APIRouter(tags=["Queues"])


@router.get("/health", response_model=QueueHealth)
async def queue_health(queues: Queues, current_user: AdminUser):
    """Counts per queue; unhealthy when any queue is paused."""
    stats = {queue.name: QueueStats.model_validate(await queue.stats()) for queue in queues}
    return QueueHealth(
        healthy=not any(s.paused for s in stats.values()),
        queues=stats,
    )


@router.get("/stats", response_model=Dict[str, QueueStats])
async def all_queue_stats(queues: Queues, current_user: AdminUser):
    return {queue.name: QueueStats.model_validate(await queue.stats()) for queue in queues}


@router.get("/stats/{queue_name}", response_model=QueueStats)
async def queue_stats(queue_name: str, queues: Queues, current_user: AdminUser):
    return QueueStats.model_validate(await queues.get(queue_name).stats())


@router.get("/scheduler")
async def scheduler_jobs(current_user: AdminUser):
    """List the scheduled housekeeping jobs."""
    return {"jobs": get_job_status()}


@router.post("/{queue_name}/pause", response_model=MessageResponse)
async def pause_queue(queue_name: str, queues: Queues, current_user: AdminUser):
    await queues.get(queue_name).pause()
    return MessageResponse(message=f"Queue {queue_name} paused")


@router.post("/{queue_name}/resume", response_model=MessageResponse)
async def resume_queue(queue_name: str, queues: Queues, current_user: AdminUser):
    await queues.get(queue_name).resume()
    return MessageResponse(message=f"Queue {queue_name} resumed")


@router.post("/{queue_name}/clean", response_model=MessageResponse)
async def clean_queue(
    queue_name: str,
    queues: Queues,
    current_user: AdminUser,
    state: str = Query("completed", pattern="^(completed|failed)$"),
    grace_ms: int = Query(0, alias="graceMs", ge=0),
):
    removed = await queues.get(queue_name).clean(state, grace_ms)
    return MessageResponse(message=f"Removed {removed} {state} job(s) from {queue_name}")


@router.get("/{queue_name}/jobs/{job_id}", response_model=JobResponse)
async def get_job(queue_name: str, job_id: str, queues: Queues, current_user: AdminUser):
    job = await queues.get(queue_name).get_job(job_id)
    if job is None:
        raise NotFoundError("Job not found")
    return JobResponse.model_validate(job.to_dict())


@router.post("/{queue_name}/jobs/{job_id}/retry", response_model=JobResponse)
async def retry_job(queue_name: str, job_id: str, queues: Queues, current_user: AdminUser):
    job = await queues.get(queue_name).retry(job_id)
    return JobResponse.model_validate(job.to_dict())


@router.delete("/{queue_name}/jobs/{job_id}", response_model=MessageResponse)
async def remove_job(queue_name: str, job_id: str, queues: Queues, current_user: AdminUser):
    if not await queues.get(queue_name).remove(job_id):
        raise NotFoundError("Job not found")
    return MessageResponse(message=f"Job {job_id} removed")
