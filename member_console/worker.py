"""
Worker loop that runs queued bulk import jobs.

Run with `python -m member_console.worker`, or set EMBEDDED_WORKER=true to run
it in a thread of the API process (required with the in-memory queue).
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from member_console.config import get_settings
from member_console.db import DbClient
from member_console.dependencies import get_db_client, get_platform_factory, get_queue_client
from member_console.importer import run_import_job
from member_console.platform_client import PlatformClientFactory
from member_console.queue import JobQueue

logger = logging.getLogger(__name__)


def process_next(
    *,
    db: Optional[DbClient] = None,
    queue: Optional[JobQueue] = None,
    platforms: Optional[PlatformClientFactory] = None,
    block: bool = True,
    timeout: Optional[float] = None,
) -> bool:
    """
    Fetch and run one job from the queue. Returns True if a job id was dequeued
    and handed to the runner.
    """
    settings = get_settings()
    db = db or get_db_client()
    queue = queue or get_queue_client()
    platforms = platforms or get_platform_factory()

    job_id = queue.dequeue(block=block, timeout=timeout)
    if not job_id:
        return False
    if not db.get_job(job_id):
        logger.warning("Received job_id %s from queue but no DB record found", job_id)
        return False

    run_import_job(
        job_id,
        db=db,
        platforms=platforms,
        poll_interval=settings.import_poll_interval_seconds,
    )
    return True


def requeue_stale(db: DbClient, queue: JobQueue, lock_timeout_seconds: float) -> int:
    """Put RUNNING jobs abandoned by a dead worker back on the queue."""
    job_ids = db.requeue_stale_jobs(lock_timeout_seconds=lock_timeout_seconds)
    for job_id in job_ids:
        logger.warning("Requeueing stale import job %s", job_id)
        queue.enqueue(job_id)
    return len(job_ids)


def run_loop(poll_interval_seconds: Optional[float] = None) -> None:
    """
    Polling loop that blocks on the queue. Intended to be run under systemd/supervisor.
    """
    settings = get_settings()
    poll_interval_seconds = poll_interval_seconds or settings.worker_poll_interval_seconds
    db = get_db_client()
    queue = get_queue_client()
    platforms = get_platform_factory()
    logger.info("Import worker started (%s, %s)", db.__class__.__name__, queue.__class__.__name__)
    while True:
        try:
            requeue_stale(db, queue, settings.stale_job_timeout_seconds)
        except Exception:
            logger.exception("Failed to requeue stale jobs")
        try:
            processed = process_next(
                db=db,
                queue=queue,
                platforms=platforms,
                block=True,
                timeout=max(1, int(poll_interval_seconds)),
            )
        except Exception:
            logger.exception("Import job crashed")
            processed = False
        if not processed:
            time.sleep(poll_interval_seconds)


def start_embedded_worker() -> threading.Thread:
    thread = threading.Thread(target=run_loop, name="import-worker", daemon=True)
    thread.start()
    logger.info("Embedded import worker thread started")
    return thread


if __name__ == "__main__":
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )
    run_loop()
