"""
APScheduler configuration.

Periodic housekeeping:
- promote delayed queue jobs whose backoff has elapsed
- requeue or fail active jobs whose worker stopped reporting
- purge expired entries from the in-memory cache
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from app.jobs.queue import QueueRegistry

logger = logging.getLogger(__name__)

# Job stores
jobstores = {
    'default': MemoryJobStore()
}

# Executors
executors = {
    'default': AsyncIOExecutor(),
}

# Job defaults
job_defaults = {
    'coalesce': True,  # Combine multiple pending executions into one
    'max_instances': 1,  # Only one instance of each job at a time
    'misfire_grace_time': 60,
}

scheduler = AsyncIOScheduler(
    jobstores=jobstores,
    executors=executors,
    job_defaults=job_defaults,
    timezone='UTC'
)


async def promote_delayed_jobs(queues: QueueRegistry) -> None:
    try:
        promoted = await queues.promote_all()
        if promoted:
            logger.info(f"Promoted {promoted} delayed job(s)")
    except Exception as e:
        logger.error(f"Delayed job promotion failed: {e}")


async def recover_stalled_jobs(queues: QueueRegistry) -> None:
    try:
        recovered = await queues.recover_all()
        if recovered:
            logger.warning(f"Recovered {recovered} stalled job(s)")
    except Exception as e:
        logger.error(f"Stalled job recovery failed: {e}")


async def cleanup_expired_cache() -> None:
    from app.services.cache_service import InMemoryCache, get_cache

    backend = get_cache().backend
    if isinstance(backend, InMemoryCache):
        removed = await backend.cleanup_expired()
        if removed:
            logger.info(f"Removed {removed} expired cache entries")


def start_scheduler(queues: Optional[QueueRegistry] = None):
    """Start the background job scheduler."""
    if not scheduler.running:
        if queues is not None:
            scheduler.add_job(
                promote_delayed_jobs,
                'interval',
                seconds=1,
                args=[queues],
                id='promote_delayed_jobs',
                name='Promote Delayed Queue Jobs',
                replace_existing=True,
            )
            scheduler.add_job(
                recover_stalled_jobs,
                'interval',
                seconds=30,
                args=[queues],
                id='recover_stalled_jobs',
                name='Recover Stalled Queue Jobs',
                replace_existing=True,
            )

        scheduler.add_job(
            cleanup_expired_cache,
            'interval',
            minutes=10,
            id='cleanup_expired_cache',
            name='Cleanup Expired Cache Entries',
            replace_existing=True,
        )

        scheduler.start()
        logger.info("Background job scheduler started")

        for job in scheduler.get_jobs():
            logger.info(f"Scheduled job: {job.name} - Next run: {job.next_run_time}")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background job scheduler stopped")


def get_job_status():
    """Get status of all scheduled jobs."""
    return [
        {
            'id': job.id,
            'name': job.name,
            'next_run_time': str(job.next_run_time) if job.next_run_time else None,
            'trigger': str(job.trigger),
        }
        for job in scheduler.get_jobs()
    ]
