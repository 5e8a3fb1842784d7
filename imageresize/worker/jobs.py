"""
RQ job functions for scheduled garbage collection.
The collection job re-enqueues itself, so one scheduled job keeps the cycle going.
"""

from datetime import timedelta
from typing import Optional

import structlog
from redis import Redis
from rq import Queue

from imageresize.config import Settings, get_settings
from imageresize.storage.garbage_collector import GarbageCollector, run_scheduled_collection

logger = structlog.get_logger(__name__)


def get_queue(settings: Optional[Settings] = None) -> Queue:
    """Get the maintenance job queue."""
    settings = settings or get_settings()
    conn = Redis.from_url(settings.REDIS_URL)
    return Queue(settings.QUEUE_NAME, connection=conn)


def schedule_collection(settings: Optional[Settings] = None, queue: Optional[Queue] = None) -> str:
    """
    Enqueue the next collection GC_INTERVAL_SECONDS from now.
    Returns the job ID.
    """
    settings = settings or get_settings()
    q = queue or get_queue(settings)
    job = q.enqueue_in(
        timedelta(seconds=settings.GC_INTERVAL_SECONDS),
        collect_garbage_job,
        job_timeout=settings.JOB_TIMEOUT_SECONDS,
        result_ttl=86400,  # Keep results for 24 hours
        failure_ttl=604800,  # Keep failures for 7 days
    )
    logger.info("gc_job_scheduled", job_id=job.id, in_seconds=settings.GC_INTERVAL_SECONDS)
    return job.id


def collect_garbage_job(reschedule: bool = True) -> dict:
    """
    Run one gated collection of the artifact cache.
    This runs inside the RQ worker process.
    """
    settings = get_settings()
    logger.info("gc_job_started", cache_directory=settings.CACHE_DIRECTORY)

    try:
        result = run_scheduled_collection(settings, GarbageCollector())
    finally:
        if reschedule and settings.GC_ENABLED:
            schedule_collection(settings)

    if result is None:
        return {"ran": False}
    return {"ran": True, **result.as_dict()}
