import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.jobs.queue import InMemoryQueueBackend, JobQueue, QueueRegistry
from app.jobs.worker import Worker


@pytest.fixture
def queue():
    return JobQueue(
        "test",
        backend=InMemoryQueueBackend(),
        default_attempts=1,
        default_backoff_ms=1000,
        keep_completed=3,
        keep_failed=2,
    )


async def test_jobs_are_fetched_in_order(queue):
    first = await queue.add("echo", {"n": 1})
    second = await queue.add("echo", {"n": 2})

    fetched = await queue.fetch_next()

    assert fetched.id == first.id
    assert fetched.state == "active"
    assert fetched.attempts_made == 1
    assert await queue.get_state(second.id) == "waiting"


async def test_failed_attempt_backs_off_exponentially(queue):
    job = await queue.add("flaky", {}, attempts=3)

    await queue.fetch_next()
    assert await queue.fail(job.id, "boom") == "delayed"
    first = await queue.get_job(job.id)
    assert first.run_at - first.processed_at >= 1000

    # Not yet due
    assert await queue.promote_delayed(now=first.run_at - 1) == 0
    assert await queue.promote_delayed(now=first.run_at) == 1

    await queue.fetch_next()
    await queue.fail(job.id, "boom again")
    second = await queue.get_job(job.id)
    assert second.state == "delayed"
    assert second.run_at - second.processed_at >= 2000

    await queue.promote_delayed(now=second.run_at)
    await queue.fetch_next()
    assert await queue.fail(job.id, "still broken") == "failed"

    final = await queue.get_job(job.id)
    assert final.attempts_made == 3
    assert final.failed_reason == "still broken"


async def test_completed_jobs_are_trimmed(queue):
    ids = []
    for n in range(5):
        job = await queue.add("echo", {"n": n})
        await queue.fetch_next()
        await queue.complete(job.id, {"n": n})
        ids.append(job.id)

    stats = await queue.stats()
    assert stats["completed"] == 3
    assert await queue.get_job(ids[0]) is None
    completed = await queue.get_job(ids[-1])
    assert completed.progress == 100
    assert completed.result == {"n": 4}


async def test_paused_queue_hands_out_nothing(queue):
    await queue.add("echo", {})
    await queue.pause()

    assert await queue.fetch_next() is None
    assert (await queue.stats())["paused"] is True

    await queue.resume()
    assert await queue.fetch_next() is not None


async def test_retry_only_applies_to_failed_jobs(queue):
    job = await queue.add("echo", {})

    with pytest.raises(ValidationError):
        await queue.retry(job.id)
    with pytest.raises(NotFoundError):
        await queue.retry("missing")

    await queue.fetch_next()
    await queue.fail(job.id, "nope")
    retried = await queue.retry(job.id)

    assert retried.state == "waiting"
    assert retried.attempts_made == 0
    assert retried.failed_reason is None


async def test_clean_rejects_live_states(queue):
    with pytest.raises(ValidationError):
        await queue.clean("waiting")

    job = await queue.add("echo", {})
    await queue.fetch_next()
    await queue.complete(job.id)

    assert await queue.clean("completed", grace_ms=60_000) == 0
    assert await queue.clean("completed", grace_ms=0) == 1
    assert await queue.get_state(job.id) == "unknown"


async def test_stalled_job_goes_back_to_waiting(queue):
    job = await queue.add("export", {}, attempts=2)
    active = await queue.fetch_next()

    assert await queue.recover_stalled(stall_ms=1000, now=active.processed_at + 500) == 0
    assert await queue.recover_stalled(stall_ms=1000, now=active.processed_at + 1000) == 1

    stats = await queue.stats()
    assert stats["active"] == 0
    assert stats["waiting"] == 1
    again = await queue.fetch_next()
    assert again.id == job.id
    assert again.attempts_made == 2


async def test_progress_keeps_a_long_job_alive(queue):
    await queue.add("export", {}, attempts=2)
    active = await queue.fetch_next()
    await queue.update_progress(active.id, 40)
    heartbeat = (await queue.get_job(active.id)).heartbeat_at

    assert await queue.recover_stalled(stall_ms=1000, now=heartbeat + 999) == 0
    assert await queue.get_state(active.id) == "active"


async def test_stalled_job_without_attempts_left_fails(queue):
    job = await queue.add("export", {})
    active = await queue.fetch_next()

    assert await queue.recover_stalled(stall_ms=0, now=active.processed_at) == 1

    failed = await queue.get_job(job.id)
    assert failed.state == "failed"
    assert failed.failed_reason == "Job stalled"
    assert (await queue.retry(job.id)).state == "waiting"


async def test_worker_recovers_stalled_jobs_on_start(queue):
    job = await queue.add("export", {}, attempts=2)
    active = await queue.fetch_next()
    active.processed_at = active.heartbeat_at = 0
    await queue.backend.save_job(active)
    await queue.pause()

    worker = Worker(queue, {}, poll_interval=0.01)
    worker.start()
    await worker.stop()

    assert await queue.get_state(job.id) == "waiting"


async def test_worker_runs_handler_and_reports_progress(queue):
    seen = []

    async def handler(job, progress):
        await progress(50)
        seen.append((await queue.get_job(job.id)).progress)
        return {"echo": job.payload["n"]}

    worker = Worker(queue, {"echo": handler})
    job = await queue.add("echo", {"n": 7})

    assert (await worker.process_next()).id == job.id
    assert seen == [50]
    done = await queue.get_job(job.id)
    assert done.state == "completed"
    assert done.result == {"echo": 7}
    assert await worker.process_next() is None


async def test_worker_fails_jobs_whose_handler_raises(queue):
    async def handler(job, progress):
        raise RuntimeError("disk full")

    worker = Worker(queue, {"echo": handler})
    job = await queue.add("echo", {})
    await worker.process_next()

    failed = await queue.get_job(job.id)
    assert failed.state == "failed"
    assert failed.failed_reason == "disk full"


async def test_worker_fails_unknown_job_types(queue):
    worker = Worker(queue, {})
    job = await queue.add("mystery", {})
    await worker.process_next()

    assert await queue.get_state(job.id) == "failed"


async def test_registry_lookup():
    registry = QueueRegistry()
    registry.register(JobQueue("a", backend=InMemoryQueueBackend()))

    assert registry.names() == ["a"]
    with pytest.raises(NotFoundError):
        registry.get("b")
