"""
Background Jobs Module

Handles:
- Durable job queues with retry and backoff
- Report generation workers
- Scheduled housekeeping (delayed-job promotion, cache cleanup)
"""

from app.jobs.queue import Job, JobQueue, QueueRegistry
from app.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler
from app.jobs.worker import Worker

__all__ = [
    "Job",
    "JobQueue",
    "QueueRegistry",
    "Worker",
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
]
