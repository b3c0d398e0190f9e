"""
Durable job queue.

Jobs move through ``waiting -> active -> completed | failed``. A failed
attempt with attempts remaining parks the job in ``delayed`` until its
exponential backoff elapses; the scheduler then promotes it back to
``waiting``.

An active job whose worker stops reporting (process killed mid-export) is
stalled once its last heartbeat is older than ``QUEUE_STALLED_TIMEOUT_MS``;
recovery puts it back in ``waiting`` or fails it when no attempts are left.

Storage is pluggable like the cache:
1. Redis (shared between the API process and standalone workers)
2. In-memory (single process, development and tests)
"""
import asyncio
import json
import logging
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import redis.asyncio as redis

from app.config import settings
from app.core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

STATES = ("waiting", "active", "completed", "failed", "delayed")


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Job:
    id: str
    queue: str
    type: str
    payload: Dict[str, Any]
    state: str = "waiting"
    progress: int = 0
    result: Optional[Any] = None
    failed_reason: Optional[str] = None
    attempts: int = 1
    attempts_made: int = 0
    backoff_ms: int = 0
    created_at: int = field(default_factory=now_ms)
    processed_at: Optional[int] = None
    heartbeat_at: Optional[int] = None
    finished_at: Optional[int] = None
    run_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        return cls(**data)


class QueueBackend(ABC):
    """Storage for job records and the per-state id lists of one queue."""

    @abstractmethod
    async def save_job(self, job: Job) -> None:
        pass

    @abstractmethod
    async def load_job(self, job_id: str) -> Optional[Job]:
        pass

    @abstractmethod
    async def delete_job(self, job_id: str) -> None:
        pass

    @abstractmethod
    async def push(self, state: str, job_id: str) -> None:
        """Append ``job_id`` to the ``state`` list."""
        pass

    @abstractmethod
    async def remove_from(self, state: str, job_id: str) -> bool:
        """Remove ``job_id`` from the ``state`` list; False if it was not there."""
        pass

    @abstractmethod
    async def list_ids(self, state: str) -> List[str]:
        pass

    @abstractmethod
    async def pop(self, state: str) -> Optional[str]:
        """Remove and return the oldest id in ``state``."""
        pass

    @abstractmethod
    async def count(self, state: str) -> int:
        pass

    @abstractmethod
    async def set_paused(self, paused: bool) -> None:
        pass

    @abstractmethod
    async def is_paused(self) -> bool:
        pass

    async def close(self) -> None:
        pass


class InMemoryQueueBackend(QueueBackend):
    def __init__(self):
        self._jobs: Dict[str, Dict[str, Any]] = {}
        self._lists: Dict[str, List[str]] = {state: [] for state in STATES}
        self._paused = False
        self._lock = asyncio.Lock()

    async def save_job(self, job: Job) -> None:
        async with self._lock:
            self._jobs[job.id] = job.to_dict()

    async def load_job(self, job_id: str) -> Optional[Job]:
        async with self._lock:
            data = self._jobs.get(job_id)
            return Job.from_dict(dict(data)) if data else None

    async def delete_job(self, job_id: str) -> None:
        async with self._lock:
            self._jobs.pop(job_id, None)

    async def push(self, state: str, job_id: str) -> None:
        async with self._lock:
            self._lists[state].append(job_id)

    async def remove_from(self, state: str, job_id: str) -> bool:
        async with self._lock:
            if job_id in self._lists[state]:
                self._lists[state].remove(job_id)
                return True
            return False

    async def list_ids(self, state: str) -> List[str]:
        async with self._lock:
            return list(self._lists[state])

    async def pop(self, state: str) -> Optional[str]:
        async with self._lock:
            if self._lists[state]:
                return self._lists[state].pop(0)
            return None

    async def count(self, state: str) -> int:
        async with self._lock:
            return len(self._lists[state])

    async def set_paused(self, paused: bool) -> None:
        self._paused = paused

    async def is_paused(self) -> bool:
        return self._paused


class RedisQueueBackend(QueueBackend):
    """
    Redis layout for queue ``name``::

        {prefix}:queue:{name}:job:{id}     JSON job record
        {prefix}:queue:{name}:{state}      list of job ids
        {prefix}:queue:{name}:paused       "1" while paused
    """

    def __init__(self, redis_url: str, name: str, prefix: Optional[str] = None):
        self._redis_url = redis_url
        self._base = f"{prefix or settings.CACHE_PREFIX}:queue:{name}"
        self._client = None

    async def _get_client(self):
        if self._client is None:
            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    def _job_key(self, job_id: str) -> str:
        return f"{self._base}:job:{job_id}"

    def _list_key(self, state: str) -> str:
        return f"{self._base}:{state}"

    async def save_job(self, job: Job) -> None:
        client = await self._get_client()
        await client.set(self._job_key(job.id), json.dumps(job.to_dict(), default=str))

    async def load_job(self, job_id: str) -> Optional[Job]:
        client = await self._get_client()
        raw = await client.get(self._job_key(job_id))
        return Job.from_dict(json.loads(raw)) if raw else None

    async def delete_job(self, job_id: str) -> None:
        client = await self._get_client()
        await client.delete(self._job_key(job_id))

    async def push(self, state: str, job_id: str) -> None:
        client = await self._get_client()
        await client.rpush(self._list_key(state), job_id)

    async def remove_from(self, state: str, job_id: str) -> bool:
        client = await self._get_client()
        return bool(await client.lrem(self._list_key(state), 0, job_id))

    async def list_ids(self, state: str) -> List[str]:
        client = await self._get_client()
        return list(await client.lrange(self._list_key(state), 0, -1))

    async def pop(self, state: str) -> Optional[str]:
        client = await self._get_client()
        return await client.lpop(self._list_key(state))

    async def count(self, state: str) -> int:
        client = await self._get_client()
        return int(await client.llen(self._list_key(state)))

    async def set_paused(self, paused: bool) -> None:
        client = await self._get_client()
        if paused:
            await client.set(f"{self._base}:paused", "1")
        else:
            await client.delete(f"{self._base}:paused")

    async def is_paused(self) -> bool:
        client = await self._get_client()
        return bool(await client.exists(f"{self._base}:paused"))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class JobQueue:
    """
    A named queue with retry, exponential backoff and bounded retention.

    Usage:
        queue = JobQueue("report")
        job = await queue.add("report", {"type": "ORDERS_SUMMARY"}, attempts=2)
        next_job = await queue.fetch_next()
    """

    def __init__(
        self,
        name: str,
        backend: Optional[QueueBackend] = None,
        default_attempts: Optional[int] = None,
        default_backoff_ms: Optional[int] = None,
        keep_completed: Optional[int] = None,
        keep_failed: Optional[int] = None,
    ):
        self.name = name
        self.backend = backend or create_queue_backend(name)
        self.default_attempts = default_attempts or settings.QUEUE_DEFAULT_ATTEMPTS
        self.default_backoff_ms = (
            default_backoff_ms if default_backoff_ms is not None else settings.QUEUE_BACKOFF_MS
        )
        self.keep_completed = keep_completed if keep_completed is not None else settings.QUEUE_REMOVE_ON_COMPLETE
        self.keep_failed = keep_failed if keep_failed is not None else settings.QUEUE_REMOVE_ON_FAIL

    async def add(
        self,
        job_type: str,
        payload: Dict[str, Any],
        attempts: Optional[int] = None,
        backoff_ms: Optional[int] = None,
        delay_ms: int = 0,
    ) -> Job:
        job = Job(
            id=uuid.uuid4().hex,
            queue=self.name,
            type=job_type,
            payload=payload,
            attempts=max(1, attempts or self.default_attempts),
            backoff_ms=self.default_backoff_ms if backoff_ms is None else backoff_ms,
        )
        if delay_ms > 0:
            job.state = "delayed"
            job.run_at = job.created_at + delay_ms
        await self.backend.save_job(job)
        await self.backend.push(job.state, job.id)
        logger.info(f"Queued job {job.id} ({job_type}) on '{self.name}'")
        return job

    async def fetch_next(self) -> Optional[Job]:
        """Move the oldest waiting job to active. None when idle or paused."""
        if await self.backend.is_paused():
            return None
        while True:
            job_id = await self.backend.pop("waiting")
            if job_id is None:
                return None
            job = await self.backend.load_job(job_id)
            if job is None:
                # Record removed while still listed
                continue
            job.state = "active"
            job.attempts_made += 1
            job.processed_at = now_ms()
            job.heartbeat_at = job.processed_at
            await self.backend.save_job(job)
            await self.backend.push("active", job.id)
            return job

    async def update_progress(self, job_id: str, progress: int) -> None:
        job = await self.backend.load_job(job_id)
        if job is None:
            return
        job.progress = max(0, min(100, int(progress)))
        job.heartbeat_at = now_ms()
        await self.backend.save_job(job)

    async def complete(self, job_id: str, result: Any = None) -> None:
        job = await self.backend.load_job(job_id)
        if job is None:
            return
        await self.backend.remove_from("active", job_id)
        job.state = "completed"
        job.progress = 100
        job.result = result
        job.failed_reason = None
        job.finished_at = now_ms()
        await self.backend.save_job(job)
        await self.backend.push("completed", job_id)
        await self._trim("completed", self.keep_completed)

    async def fail(self, job_id: str, reason: str) -> str:
        """
        Record a failed attempt. Returns the job's new state: ``delayed`` if
        it will be retried, ``failed`` once attempts are exhausted.
        """
        job = await self.backend.load_job(job_id)
        if job is None:
            return "unknown"
        await self.backend.remove_from("active", job_id)
        job.failed_reason = reason

        if job.attempts_made < job.attempts:
            delay = job.backoff_ms * (2 ** max(0, job.attempts_made - 1))
            job.state = "delayed"
            job.run_at = now_ms() + delay
            await self.backend.save_job(job)
            await self.backend.push("delayed", job_id)
            logger.warning(
                f"Job {job_id} attempt {job.attempts_made}/{job.attempts} failed, retrying in {delay}ms: {reason}"
            )
        else:
            job.state = "failed"
            job.finished_at = now_ms()
            await self.backend.save_job(job)
            await self.backend.push("failed", job_id)
            await self._trim("failed", self.keep_failed)
            logger.error(f"Job {job_id} failed after {job.attempts_made} attempts: {reason}")
        return job.state

    async def promote_delayed(self, now: Optional[int] = None) -> int:
        """Move delayed jobs whose backoff has elapsed back to waiting."""
        now = now if now is not None else now_ms()
        promoted = 0
        for job_id in await self.backend.list_ids("delayed"):
            job = await self.backend.load_job(job_id)
            if job is None:
                await self.backend.remove_from("delayed", job_id)
                continue
            if job.run_at is not None and job.run_at > now:
                continue
            # Another promoter may have taken it already
            if not await self.backend.remove_from("delayed", job_id):
                continue
            job.state = "waiting"
            job.run_at = None
            await self.backend.save_job(job)
            await self.backend.push("waiting", job_id)
            promoted += 1
        return promoted

    async def recover_stalled(self, stall_ms: Optional[int] = None, now: Optional[int] = None) -> int:
        """
        Take back active jobs that have not reported for ``stall_ms``.

        The interrupted run counts as an attempt: with attempts left the job
        returns to ``waiting``, otherwise it moves to ``failed``.
        """
        stall_ms = stall_ms if stall_ms is not None else settings.QUEUE_STALLED_TIMEOUT_MS
        now = now if now is not None else now_ms()
        recovered = 0
        for job_id in await self.backend.list_ids("active"):
            job = await self.backend.load_job(job_id)
            if job is None:
                await self.backend.remove_from("active", job_id)
                continue
            last_seen = job.heartbeat_at or job.processed_at or job.created_at
            if now - last_seen < stall_ms:
                continue
            if not await self.backend.remove_from("active", job_id):
                continue

            job.failed_reason = "Job stalled"
            if job.attempts_made < job.attempts:
                job.state = "waiting"
                await self.backend.save_job(job)
                await self.backend.push("waiting", job_id)
                logger.warning(f"Job {job_id} stalled on '{self.name}', requeued")
            else:
                job.state = "failed"
                job.finished_at = now
                await self.backend.save_job(job)
                await self.backend.push("failed", job_id)
                await self._trim("failed", self.keep_failed)
                logger.error(f"Job {job_id} stalled on '{self.name}' with no attempts left")
            recovered += 1
        return recovered

    async def _trim(self, state: str, keep: int) -> None:
        ids = await self.backend.list_ids(state)
        for job_id in ids[: max(0, len(ids) - keep)]:
            await self.backend.remove_from(state, job_id)
            await self.backend.delete_job(job_id)

    async def get_job(self, job_id: str) -> Optional[Job]:
        return await self.backend.load_job(job_id)

    async def get_state(self, job_id: str) -> str:
        job = await self.backend.load_job(job_id)
        return job.state if job else "unknown"

    async def retry(self, job_id: str) -> Job:
        job = await self.backend.load_job(job_id)
        if job is None:
            raise NotFoundError("Job not found")
        if job.state != "failed":
            raise ValidationError("Only failed jobs can be retried")
        await self.backend.remove_from("failed", job_id)
        job.state = "waiting"
        job.attempts_made = 0
        job.failed_reason = None
        job.finished_at = None
        job.progress = 0
        await self.backend.save_job(job)
        await self.backend.push("waiting", job_id)
        return job

    async def remove(self, job_id: str) -> bool:
        job = await self.backend.load_job(job_id)
        if job is None:
            return False
        await self.backend.remove_from(job.state, job_id)
        await self.backend.delete_job(job_id)
        return True

    async def stats(self) -> Dict[str, Any]:
        counts = {state: await self.backend.count(state) for state in STATES}
        counts["paused"] = await self.backend.is_paused()
        return counts

    async def pause(self) -> None:
        await self.backend.set_paused(True)
        logger.info(f"Queue '{self.name}' paused")

    async def resume(self) -> None:
        await self.backend.set_paused(False)
        logger.info(f"Queue '{self.name}' resumed")

    async def clean(self, state: str = "completed", grace_ms: int = 0) -> int:
        """Delete finished jobs in ``state`` older than ``grace_ms``."""
        if state not in ("completed", "failed"):
            raise ValidationError("Only completed or failed jobs can be cleaned")
        cutoff = now_ms() - grace_ms
        removed = 0
        for job_id in await self.backend.list_ids(state):
            job = await self.backend.load_job(job_id)
            if job is None or (job.finished_at or 0) <= cutoff:
                await self.backend.remove_from(state, job_id)
                await self.backend.delete_job(job_id)
                removed += 1
        return removed

    async def close(self) -> None:
        await self.backend.close()


class QueueRegistry:
    """Named queues owned by one process."""

    def __init__(self):
        self._queues: Dict[str, JobQueue] = {}

    def register(self, queue: JobQueue) -> JobQueue:
        self._queues[queue.name] = queue
        return queue

    def get(self, name: str) -> JobQueue:
        queue = self._queues.get(name)
        if queue is None:
            raise NotFoundError(f"Queue '{name}' not found")
        return queue

    def names(self) -> List[str]:
        return list(self._queues)

    def __iter__(self):
        return iter(self._queues.values())

    async def promote_all(self) -> int:
        total = 0
        for queue in self._queues.values():
            total += await queue.promote_delayed()
        return total

    async def recover_all(self) -> int:
        total = 0
        for queue in self._queues.values():
            total += await queue.recover_stalled()
        return total

    async def close(self) -> None:
        for queue in self._queues.values():
            await queue.close()


def create_queue_backend(name: str) -> QueueBackend:
    if settings.REDIS_URL:
        return RedisQueueBackend(settings.REDIS_URL, name)
    return InMemoryQueueBackend()
