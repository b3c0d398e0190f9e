"""
Queue worker.

Runs inside the API process by default (``RUN_WORKER_IN_PROCESS``) or as
its own process against a shared Redis:

    python -m app.jobs.worker
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from app.config import settings
from app.jobs.queue import Job, JobQueue

logger = logging.getLogger(__name__)

ProgressReporter = Callable[[int], Awaitable[None]]
JobHandler = Callable[[Job, ProgressReporter], Awaitable[Any]]


class Worker:
    """Pulls jobs from one queue and dispatches them by ``job.type``."""

    def __init__(
        self,
        queue: JobQueue,
        handlers: Dict[str, JobHandler],
        poll_interval: Optional[float] = None,
    ):
        self.queue = queue
        self.handlers = handlers
        self.poll_interval = poll_interval or settings.QUEUE_POLL_INTERVAL_SECONDS
        self._task: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()

    async def process_next(self) -> Optional[Job]:
        """Run one job if one is waiting. Returns the processed job, or None when idle."""
        job = await self.queue.fetch_next()
        if job is None:
            return None

        handler = self.handlers.get(job.type)
        if handler is None:
            await self.queue.fail(job.id, f"No handler for job type '{job.type}'")
            return job

        async def progress(value: int) -> None:
            await self.queue.update_progress(job.id, value)

        try:
            result = await handler(job, progress)
        except Exception as e:
            logger.exception(f"Job {job.id} ({job.type}) raised")
            await self.queue.fail(job.id, str(e) or type(e).__name__)
        else:
            await self.queue.complete(job.id, result)
            logger.info(f"Job {job.id} ({job.type}) completed")
        return job

    async def run(self) -> None:
        logger.info(f"Worker started on queue '{self.queue.name}'")
        try:
            recovered = await self.queue.recover_stalled()
            if recovered:
                logger.info(f"Recovered {recovered} stalled job(s) on '{self.queue.name}'")
        except Exception:
            logger.exception(f"Stalled job recovery failed on queue '{self.queue.name}'")
        while not self._stopping.is_set():
            try:
                job = await self.process_next()
            except Exception:
                logger.exception(f"Worker loop error on queue '{self.queue.name}'")
                job = None
            if job is None:
                try:
                    await asyncio.wait_for(self._stopping.wait(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    pass
        logger.info(f"Worker stopped on queue '{self.queue.name}'")

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self) -> None:
        self._stopping.set()
        if self._task is not None:
            await self._task
            self._task = None


async def main() -> None:
    from app.core.log import configure_logging
    from app.database import async_session_factory, init_db
    from app.jobs.queue import QueueRegistry
    from app.jobs.report_jobs import REPORT_QUEUE, build_report_handlers
    from app.jobs.scheduler import shutdown_scheduler, start_scheduler
    from app.services.email_service import get_email_service

    configure_logging(settings.LOG_LEVEL)
    await init_db()

    queues = QueueRegistry()
    report_queue = queues.register(JobQueue(REPORT_QUEUE))
    worker = Worker(
        report_queue,
        build_report_handlers(async_session_factory, email_service=get_email_service()),
    )
    start_scheduler(queues)
    try:
        await worker.run()
    finally:
        shutdown_scheduler()
        await queues.close()


if __name__ == "__main__":
    asyncio.run(main())
