"""
Worker entry point.
Run with: python -m imageresize.worker.runner
"""

from redis import Redis
from rq import Worker

from imageresize.config import get_settings
from imageresize.observability.logging import setup_logging
from imageresize.worker.jobs import get_queue, schedule_collection


def main():
    """Start the RQ worker, seeding the garbage collection cycle when enabled."""
    settings = get_settings()
    setup_logging(settings)

    conn = Redis.from_url(settings.REDIS_URL)
    if settings.GC_ENABLED:
        schedule_collection(settings, get_queue(settings))

    worker = Worker(
        queues=[settings.QUEUE_NAME],
        connection=conn,
        name=f"imageresize-worker-{settings.APP_VERSION}",
    )

    print(f"Starting worker on queue '{settings.QUEUE_NAME}'...")
    # The scheduler moves enqueue_in jobs onto the queue when due
    worker.work(with_scheduler=True)


if __name__ == "__main__":
    main()
