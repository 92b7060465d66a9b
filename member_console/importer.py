"""
Bulk member import: input parsing, password generation, job control and the
row-by-row runner executed by the worker.
"""

from __future__ import annotations

import logging
import re
import secrets
import time
from typing import Callable, Optional

from member_console.activity import record_activity
from member_console.db import DbClient, ImportUser, JobRecord, RowRecord
from member_console.errors import (
    MEMBER_ALREADY_EXISTS,
    InvalidJobTransition,
    JobNotFound,
    PlatformError,
)
from member_console.platform_client import PlatformClient, PlatformClientFactory
from member_console.queue import JobQueue
from member_console.types import JobStatus, LogStatus, RowStatus

logger = logging.getLogger(__name__)

PASSWORD_CHARSET = (
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789!@#$%^&*()"
)
ENTRY_SEPARATOR = re.compile(r"[,\s]+")

SUCCESS_MESSAGE = "Member created successfully."
ALREADY_EXISTS_MESSAGE = "Member already exists."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."
CANCELLED_MESSAGE = "Import cancelled."

CONTEXT = "importUsers"


def split_entries(text: str) -> list[str]:
    return [entry.strip() for entry in ENTRY_SEPARATOR.split(text or "") if entry.strip()]


def parse_import_lines(text: str) -> list[ImportUser]:
    """Parse `email:password` entries; entries missing either part are dropped."""
    users = []
    for entry in split_entries(text):
        email, _, password = entry.partition(":")
        email, password = email.strip(), password.strip()
        if email and password:
            users.append(ImportUser(email=email, password=password))
    return users


def generate_password(length: int = 12) -> str:
    return "".join(secrets.choice(PASSWORD_CHARSET) for _ in range(length))


def attach_passwords(text: str) -> tuple[str, int]:
    """
    Pair every bare email in `text` with a generated password, one
    `email:password` per line. Entries that already carry a password are dropped.
    """
    emails = [e for e in split_entries(text) if "@" in e and ":" not in e]
    lines = [f"{email}:{generate_password()}" for email in emails]
    return "\n".join(lines), len(lines)


def describe_registration_error(exc: Exception) -> str:
    if isinstance(exc, PlatformError) and exc.code == MEMBER_ALREADY_EXISTS:
        return ALREADY_EXISTS_MESSAGE
    return str(exc) or UNKNOWN_ERROR_MESSAGE


def _get_job(db: DbClient, job_id: str) -> JobRecord:
    job = db.get_job(job_id)
    if not job:
        raise JobNotFound(job_id)
    return job


def pause_job(db: DbClient, job_id: str) -> JobRecord:
    job = _get_job(db, job_id)
    updated = db.transition_job(
        job_id, (JobStatus.WAITING, JobStatus.RUNNING), JobStatus.PAUSED
    )
    if not updated:
        raise InvalidJobTransition(f"Cannot pause a job that is {job.status.value}.")
    record_activity(db, LogStatus.INFO, f"Import job {job_id} paused.", CONTEXT)
    return updated


def resume_job(db: DbClient, queue: JobQueue, job_id: str) -> JobRecord:
    """
    Put a paused job back on the queue. Refused while the worker that was
    running it still holds it.
    """
    job = _get_job(db, job_id)
    updated = db.transition_job(
        job_id, (JobStatus.PAUSED,), JobStatus.WAITING, unlocked_only=True
    )
    if not updated:
        if job.status == JobStatus.PAUSED and job.locked_at is not None:
            raise InvalidJobTransition(
                "Cannot resume a job while its current row is still being imported."
            )
        raise InvalidJobTransition(f"Cannot resume a job that is {job.status.value}.")
    queue.enqueue(job_id)
    record_activity(db, LogStatus.INFO, f"Import job {job_id} resumed.", CONTEXT)
    return updated


def cancel_job(db: DbClient, job_id: str) -> JobRecord:
    job = _get_job(db, job_id)
    held_by_worker = job.locked_at is not None
    updated = db.transition_job(
        job_id,
        (JobStatus.WAITING, JobStatus.RUNNING, JobStatus.PAUSED),
        JobStatus.CANCELLED,
    )
    if not updated:
        raise InvalidJobTransition(f"Cannot cancel a job that is {job.status.value}.")
    if not held_by_worker:
        # A worker holding the job skips its rows once it sees the cancel.
        db.skip_pending_rows(job_id, CANCELLED_MESSAGE)
    record_activity(db, LogStatus.INFO, f"Import job {job_id} cancelled.", CONTEXT)
    return updated


def _fail(db: DbClient, job_id: str, error: str) -> Optional[JobRecord]:
    logger.error("[%s] Import failed: %s", job_id, error)
    record_activity(db, LogStatus.ERROR, f"Import job {job_id} failed: {error}", CONTEXT)
    return db.transition_job(job_id, (JobStatus.RUNNING,), JobStatus.FAILED, error=error)


def _wait_between_rows(
    db: DbClient,
    job_id: str,
    seconds: float,
    poll_interval: float,
    sleep: Callable[[float], None],
) -> bool:
    """
    Count down `seconds`, checking the job every tick. Returns False as soon as
    the job stops being RUNNING.
    """
    remaining = seconds
    while remaining > 0:
        tick = min(poll_interval, remaining)
        sleep(tick)
        remaining -= tick
        job = db.get_job(job_id)
        if not job or job.status != JobStatus.RUNNING:
            return False
    return True


def _stop(db: DbClient, job: JobRecord) -> JobRecord:
    logger.info("[%s] Stopped in state %s", job.job_id, job.status.value)
    if job.status == JobStatus.PAUSED:
        db.release_job(job.job_id)
        return db.get_job(job.job_id)
    return job


def _import_row(client: PlatformClient, row: RowRecord) -> tuple[RowStatus, str]:
    try:
        client.register(row.email, row.password or "")
    except Exception as exc:
        message = describe_registration_error(exc)
        logger.warning("[%s] Row %d (%s) failed: %s", row.job_id, row.index, row.email, message)
        return RowStatus.ERROR, message
    return RowStatus.SUCCESS, SUCCESS_MESSAGE


def run_import_job(
    job_id: str,
    *,
    db: DbClient,
    platforms: PlatformClientFactory,
    poll_interval: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[JobRecord]:
    """
    Claim a WAITING job and register its pending rows one at a time.

    Stops early when the job is paused (resuming continues at the next pending
    row) or cancelled (pending rows become SKIPPED). A registration already in
    flight always completes. Returns the job as last seen, or None if the job
    could not be claimed.
    """
    job = db.claim_job(job_id)
    if not job:
        logger.info("[%s] Job is not waiting, skipping", job_id)
        return None

    site = db.get_site(job.site_item_id)
    if not site:
        return _fail(db, job_id, f"Site {job.site_item_id} no longer exists.")
    try:
        client = platforms.get(site.api_key)
    except Exception as exc:
        return _fail(db, job_id, str(exc) or UNKNOWN_ERROR_MESSAGE)

    logger.info("[%s] Importing %d user(s) into %s", job_id, job.total, site.site_name)
    first_row = True
    while True:
        current = db.get_job(job_id)
        if current.status == JobStatus.CANCELLED:
            skipped = db.skip_pending_rows(job_id, CANCELLED_MESSAGE)
            logger.info("[%s] Cancelled, %d row(s) skipped", job_id, skipped)
            return db.get_job(job_id)
        if current.status != JobStatus.RUNNING:
            return _stop(db, current)

        row = db.next_pending_row(job_id)
        if row is None:
            break
        if not first_row and job.delay_seconds > 0:
            if not _wait_between_rows(db, job_id, job.delay_seconds, poll_interval, sleep):
                continue
        first_row = False

        status, message = _import_row(client, row)
        if not db.record_row_result(job_id, row.index, status, message):
            logger.warning(
                "[%s] Row %d already had a result, dropping %s", job_id, row.index, status.value
            )

    finished = db.transition_job(job_id, (JobStatus.RUNNING,), JobStatus.COMPLETED)
    if not finished:
        return _stop(db, db.get_job(job_id))
    logger.info(
        "[%s] Finished: %d succeeded, %d failed", job_id, finished.succeeded, finished.failed
    )
    record_activity(
        db,
        LogStatus.SUCCESS,
        f"Import job {job_id} finished: {finished.succeeded} succeeded, {finished.failed} failed.",
        CONTEXT,
    )
    return finished
