"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Optional, Protocol, Sequence

from sqlalchemy import Column, Float, Integer, String, Text, create_engine, delete, func, select, update
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from member_console.types import JobStatus, LogStatus, RowStatus, SubmissionStatus

# A worker keeps its lock on a paused job until it has finished the row in flight.
LOCK_HOLDING_STATES = (JobStatus.RUNNING, JobStatus.PAUSED)


class DbClient(Protocol):
    """Interface for database access."""

    def add_site(
        self,
        site_name: str,
        site_id: str,
        api_key: str,
        *,
        template_id: Optional[str] = None,
        site_domain: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> "SiteRecord":
        ...

    def list_sites(self) -> list["SiteRecord"]:
        ...

    def get_site(self, item_id: str) -> Optional["SiteRecord"]:
        ...

    def delete_site(self, item_id: str) -> bool:
        ...

    def add_log(self, status: LogStatus, message: str, context: str) -> "LogRecord":
        ...

    def list_logs(self, limit: int = 100) -> list["LogRecord"]:
        ...

    def clear_logs(self) -> int:
        ...

    def add_bounce(self, email: str, contact_id: str) -> "BounceRecord":
        ...

    def list_bounces(self, limit: Optional[int] = None) -> list["BounceRecord"]:
        ...

    def delete_bounce(self, record_id: str) -> bool:
        ...

    def add_submission(
        self, email: str, message: str, ip_address: Optional[str] = None
    ) -> "SubmissionRecord":
        ...

    def list_submissions(
        self, status: Optional[SubmissionStatus] = None, limit: Optional[int] = None
    ) -> list["SubmissionRecord"]:
        ...

    def count_recent_submissions(self, ip_address: str, since: float) -> int:
        ...

    def update_submission_status(
        self, submission_id: str, status: SubmissionStatus
    ) -> bool:
        ...

    def create_import_job(
        self, site_item_id: str, users: Sequence["ImportUser"], delay_seconds: float
    ) -> "JobRecord":
        ...

    def get_job(self, job_id: str) -> Optional["JobRecord"]:
        ...

    def list_jobs(self, limit: int = 50) -> list["JobRecord"]:
        ...

    def list_rows(self, job_id: str) -> list["RowRecord"]:
        ...

    def claim_job(self, job_id: str) -> Optional["JobRecord"]:
        ...

    def transition_job(
        self,
        job_id: str,
        from_states: Iterable[JobStatus],
        to_state: JobStatus,
        *,
        error: Optional[str] = None,
        unlocked_only: bool = False,
    ) -> Optional["JobRecord"]:
        ...

    def release_job(self, job_id: str) -> None:
        ...

    def next_pending_row(self, job_id: str) -> Optional["RowRecord"]:
        ...

    def record_row_result(
        self, job_id: str, index: int, status: RowStatus, message: str
    ) -> bool:
        ...

    def skip_pending_rows(self, job_id: str, message: str) -> int:
        ...

    def requeue_stale_jobs(self, lock_timeout_seconds: float = 900) -> list[str]:
        ...


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class ImportUser:
    email: str
    password: str


@dataclass
class SiteRecord:
    item_id: str
    site_name: str
    site_id: str
    api_key: str
    template_id: Optional[str] = None
    site_domain: Optional[str] = None
    notes: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())


@dataclass
class LogRecord:
    log_id: str
    message: str
    status: LogStatus
    context: str
    created_at: float = field(default_factory=lambda: time.time())


@dataclass
class BounceRecord:
    record_id: str
    email: str
    contact_id: str
    bounced_at: float = field(default_factory=lambda: time.time())


@dataclass
class SubmissionRecord:
    submission_id: str
    email: str
    message: str
    status: SubmissionStatus = SubmissionStatus.NEW
    ip_address: Optional[str] = None
    submitted_at: float = field(default_factory=lambda: time.time())


@dataclass
class JobRecord:
    job_id: str
    site_item_id: str
    status: JobStatus
    total: int
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    delay_seconds: float = 0.0
    error: Optional[str] = None
    locked_at: Optional[float] = None
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    @property
    def progress_percent(self) -> float:
        if not self.total:
            return 0.0
        return self.processed / self.total * 100


@dataclass
class RowRecord:
    job_id: str
    index: int
    email: str
    password: Optional[str]
    status: RowStatus = RowStatus.PENDING
    message: str = ""


def _apply_row_result(job: JobRecord, status: RowStatus, now: float) -> None:
    job.processed += 1
    if status == RowStatus.SUCCESS:
        job.succeeded += 1
    else:
        job.failed += 1
    if job.status == JobStatus.RUNNING:
        job.locked_at = now
    job.updated_at = now


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.sites: Dict[str, SiteRecord] = {}
        self.logs: Dict[str, LogRecord] = {}
        self.bounces: Dict[str, BounceRecord] = {}
        self.submissions: Dict[str, SubmissionRecord] = {}
        self.jobs: Dict[str, JobRecord] = {}
        self.rows: Dict[str, list[RowRecord]] = {}
        # The embedded worker thread shares this store with request handlers.
        self._lock = threading.RLock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.sites.clear()
            self.logs.clear()
            self.bounces.clear()
            self.submissions.clear()
            self.jobs.clear()
            self.rows.clear()

    def add_site(
        self,
        site_name: str,
        site_id: str,
        api_key: str,
        *,
        template_id: Optional[str] = None,
        site_domain: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> SiteRecord:
        record = SiteRecord(
            item_id=_new_id(),
            site_name=site_name,
            site_id=site_id,
            api_key=api_key,
            template_id=template_id,
            site_domain=site_domain,
            notes=notes,
        )
        self.sites[record.item_id] = record
        return record

    def list_sites(self) -> list[SiteRecord]:
        return sorted(self.sites.values(), key=lambda s: s.created_at)

    def get_site(self, item_id: str) -> Optional[SiteRecord]:
        return self.sites.get(item_id)

    def delete_site(self, item_id: str) -> bool:
        return self.sites.pop(item_id, None) is not None

    def add_log(self, status: LogStatus, message: str, context: str) -> LogRecord:
        record = LogRecord(
            log_id=_new_id(), message=message, status=status, context=context
        )
        self.logs[record.log_id] = record
        return record

    def list_logs(self, limit: int = 100) -> list[LogRecord]:
        ordered = sorted(self.logs.values(), key=lambda r: r.created_at, reverse=True)
        return ordered[:limit]

    def clear_logs(self) -> int:
        count = len(self.logs)
        self.logs.clear()
        return count

    def add_bounce(self, email: str, contact_id: str) -> BounceRecord:
        record = BounceRecord(record_id=_new_id(), email=email, contact_id=contact_id)
        self.bounces[record.record_id] = record
        return record

    def list_bounces(self, limit: Optional[int] = None) -> list[BounceRecord]:
        ordered = sorted(
            self.bounces.values(), key=lambda r: r.bounced_at, reverse=True
        )
        return ordered[:limit] if limit else ordered

    def delete_bounce(self, record_id: str) -> bool:
        return self.bounces.pop(record_id, None) is not None

    def add_submission(
        self, email: str, message: str, ip_address: Optional[str] = None
    ) -> SubmissionRecord:
        record = SubmissionRecord(
            submission_id=_new_id(),
            email=email,
            message=message,
            ip_address=ip_address,
        )
        self.submissions[record.submission_id] = record
        return record

    def list_submissions(
        self, status: Optional[SubmissionStatus] = None, limit: Optional[int] = None
    ) -> list[SubmissionRecord]:
        items = [
            s for s in self.submissions.values() if status is None or s.status == status
        ]
        items.sort(key=lambda s: s.submitted_at, reverse=True)
        return items[:limit] if limit else items

    def count_recent_submissions(self, ip_address: str, since: float) -> int:
        return sum(
            1
            for s in self.submissions.values()
            if s.ip_address == ip_address and s.submitted_at >= since
        )

    def update_submission_status(
        self, submission_id: str, status: SubmissionStatus
    ) -> bool:
        record = self.submissions.get(submission_id)
        if not record:
            return False
        record.status = status
        return True

    def create_import_job(
        self, site_item_id: str, users: Sequence[ImportUser], delay_seconds: float
    ) -> JobRecord:
        job = JobRecord(
            job_id=_new_id(),
            site_item_id=site_item_id,
            status=JobStatus.WAITING,
            total=len(users),
            delay_seconds=delay_seconds,
        )
        with self._lock:
            self.jobs[job.job_id] = job
            self.rows[job.job_id] = [
                RowRecord(job_id=job.job_id, index=i, email=u.email, password=u.password)
                for i, u in enumerate(users)
            ]
            return replace(job)

    # Records handed out are copies, as rows read back from a real database.

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            job = self.jobs.get(job_id)
            return replace(job) if job else None

    def list_jobs(self, limit: int = 50) -> list[JobRecord]:
        with self._lock:
            ordered = sorted(self.jobs.values(), key=lambda j: j.created_at, reverse=True)
            return [replace(j) for j in ordered[:limit]]

    def list_rows(self, job_id: str) -> list[RowRecord]:
        with self._lock:
            return [replace(r) for r in self.rows.get(job_id, [])]

    def claim_job(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            job = self.jobs.get(job_id)
            if not job or job.status != JobStatus.WAITING:
                return None
            now = time.time()
            job.status = JobStatus.RUNNING
            job.locked_at = now
            job.updated_at = now
            return replace(job)

    def transition_job(
        self,
        job_id: str,
        from_states: Iterable[JobStatus],
        to_state: JobStatus,
        *,
        error: Optional[str] = None,
        unlocked_only: bool = False,
    ) -> Optional[JobRecord]:
        with self._lock:
            job = self.jobs.get(job_id)
            if not job or job.status not in tuple(from_states):
                return None
            if unlocked_only and job.locked_at is not None:
                return None
            job.status = to_state
            if error is not None:
                job.error = error
            if to_state not in LOCK_HOLDING_STATES:
                job.locked_at = None
            job.updated_at = time.time()
            return replace(job)

    def release_job(self, job_id: str) -> None:
        with self._lock:
            job = self.jobs.get(job_id)
            if job:
                job.locked_at = None

    def next_pending_row(self, job_id: str) -> Optional[RowRecord]:
        with self._lock:
            for row in self.rows.get(job_id, []):
                if row.status == RowStatus.PENDING:
                    return replace(row)
            return None

    def record_row_result(
        self, job_id: str, index: int, status: RowStatus, message: str
    ) -> bool:
        with self._lock:
            job = self.jobs.get(job_id)
            rows = self.rows.get(job_id, [])
            if not job or index >= len(rows) or rows[index].status != RowStatus.PENDING:
                return False
            row = rows[index]
            row.status = status
            row.message = message
            row.password = None
            _apply_row_result(job, status, time.time())
            return True

    def skip_pending_rows(self, job_id: str, message: str) -> int:
        skipped = 0
        with self._lock:
            for row in self.rows.get(job_id, []):
                if row.status == RowStatus.PENDING:
                    row.status = RowStatus.SKIPPED
                    row.message = message
                    row.password = None
                    skipped += 1
        return skipped

    def requeue_stale_jobs(self, lock_timeout_seconds: float = 900) -> list[str]:
        now = time.time()
        requeued: list[str] = []
        with self._lock:
            for job in self.jobs.values():
                if not job.locked_at or now - job.locked_at <= lock_timeout_seconds:
                    continue
                # A worker that died while stopping leaves a paused job locked.
                job.locked_at = None
                job.updated_at = now
                if job.status == JobStatus.RUNNING:
                    job.status = JobStatus.WAITING
                    requeued.append(job.job_id)
        return requeued


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_site_record(self, row: "SiteRow") -> SiteRecord:
        return SiteRecord(
            item_id=row.item_id,
            site_name=row.site_name,
            site_id=row.site_id,
            api_key=row.api_key,
            template_id=row.template_id,
            site_domain=row.site_domain,
            notes=row.notes,
            created_at=row.created_at,
        )

    def _to_log_record(self, row: "LogRow") -> LogRecord:
        return LogRecord(
            log_id=row.log_id,
            message=row.message,
            status=LogStatus(row.status),
            context=row.context,
            created_at=row.created_at,
        )

    def _to_bounce_record(self, row: "BounceRow") -> BounceRecord:
        return BounceRecord(
            record_id=row.record_id,
            email=row.email,
            contact_id=row.contact_id,
            bounced_at=row.bounced_at,
        )

    def _to_submission_record(self, row: "SubmissionRow") -> SubmissionRecord:
        return SubmissionRecord(
            submission_id=row.submission_id,
            email=row.email,
            message=row.message,
            status=SubmissionStatus(row.status),
            ip_address=row.ip_address,
            submitted_at=row.submitted_at,
        )

    def _to_job_record(self, job: "JobRow") -> JobRecord:
        return JobRecord(
            job_id=job.job_id,
            site_item_id=job.site_item_id,
            status=JobStatus(job.status),
            total=job.total,
            processed=job.processed,
            succeeded=job.succeeded,
            failed=job.failed,
            delay_seconds=job.delay_seconds,
            error=job.error,
            locked_at=job.locked_at,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )

    def _to_row_record(self, row: "ImportRowRow") -> RowRecord:
        return RowRecord(
            job_id=row.job_id,
            index=row.row_index,
            email=row.email,
            password=row.password,
            status=RowStatus(row.status),
            message=row.message or "",
        )

    def add_site(
        self,
        site_name: str,
        site_id: str,
        api_key: str,
        *,
        template_id: Optional[str] = None,
        site_domain: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> SiteRecord:
        with self.Session() as session:
            row = SiteRow(
                item_id=_new_id(),
                site_name=site_name,
                site_id=site_id,
                api_key=api_key,
                template_id=template_id,
                site_domain=site_domain,
                notes=notes,
                created_at=time.time(),
            )
            session.add(row)
            session.commit()
            return self._to_site_record(row)

    def list_sites(self) -> list[SiteRecord]:
        with self.Session() as session:
            rows = session.scalars(select(SiteRow).order_by(SiteRow.created_at.asc()))
            return [self._to_site_record(r) for r in rows]

    def get_site(self, item_id: str) -> Optional[SiteRecord]:
        with self.Session() as session:
            row = session.get(SiteRow, item_id)
            return self._to_site_record(row) if row else None

    def delete_site(self, item_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(delete(SiteRow).where(SiteRow.item_id == item_id))
            session.commit()
            return bool(result.rowcount)

    def add_log(self, status: LogStatus, message: str, context: str) -> LogRecord:
        with self.Session() as session:
            row = LogRow(
                log_id=_new_id(),
                message=message,
                status=status.value,
                context=context,
                created_at=time.time(),
            )
            session.add(row)
            session.commit()
            return self._to_log_record(row)

    def list_logs(self, limit: int = 100) -> list[LogRecord]:
        with self.Session() as session:
            stmt = select(LogRow).order_by(LogRow.created_at.desc()).limit(limit)
            return [self._to_log_record(r) for r in session.scalars(stmt)]

    def clear_logs(self) -> int:
        with self.Session() as session:
            result = session.execute(delete(LogRow))
            session.commit()
            return result.rowcount or 0

    def add_bounce(self, email: str, contact_id: str) -> BounceRecord:
        with self.Session() as session:
            row = BounceRow(
                record_id=_new_id(),
                email=email,
                contact_id=contact_id,
                bounced_at=time.time(),
            )
            session.add(row)
            session.commit()
            return self._to_bounce_record(row)

    def list_bounces(self, limit: Optional[int] = None) -> list[BounceRecord]:
        with self.Session() as session:
            stmt = select(BounceRow).order_by(BounceRow.bounced_at.desc())
            if limit:
                stmt = stmt.limit(limit)
            return [self._to_bounce_record(r) for r in session.scalars(stmt)]

    def delete_bounce(self, record_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(
                delete(BounceRow).where(BounceRow.record_id == record_id)
            )
            session.commit()
            return bool(result.rowcount)

    def add_submission(
        self, email: str, message: str, ip_address: Optional[str] = None
    ) -> SubmissionRecord:
        with self.Session() as session:
            row = SubmissionRow(
                submission_id=_new_id(),
                email=email,
                message=message,
                status=SubmissionStatus.NEW.value,
                ip_address=ip_address,
                submitted_at=time.time(),
            )
            session.add(row)
            session.commit()
            return self._to_submission_record(row)

    def list_submissions(
        self, status: Optional[SubmissionStatus] = None, limit: Optional[int] = None
    ) -> list[SubmissionRecord]:
        with self.Session() as session:
            stmt = select(SubmissionRow).order_by(SubmissionRow.submitted_at.desc())
            if status is not None:
                stmt = stmt.where(SubmissionRow.status == status.value)
            if limit:
                stmt = stmt.limit(limit)
            return [self._to_submission_record(r) for r in session.scalars(stmt)]

    def count_recent_submissions(self, ip_address: str, since: float) -> int:
        with self.Session() as session:
            stmt = select(func.count()).where(
                SubmissionRow.ip_address == ip_address,
                SubmissionRow.submitted_at >= since,
            )
            return session.execute(stmt).scalar_one()

    def update_submission_status(
        self, submission_id: str, status: SubmissionStatus
    ) -> bool:
        with self.Session() as session:
            row = session.get(SubmissionRow, submission_id)
            if not row:
                return False
            row.status = status.value
            session.commit()
            return True

    def create_import_job(
        self, site_item_id: str, users: Sequence[ImportUser], delay_seconds: float
    ) -> JobRecord:
        now = time.time()
        job_id = _new_id()
        with self.Session() as session:
            job = JobRow(
                job_id=job_id,
                site_item_id=site_item_id,
                status=JobStatus.WAITING.value,
                total=len(users),
                processed=0,
                succeeded=0,
                failed=0,
                delay_seconds=delay_seconds,
                created_at=now,
                updated_at=now,
            )
            session.add(job)
            for index, user in enumerate(users):
                session.add(
                    ImportRowRow(
                        job_id=job_id,
                        row_index=index,
                        email=user.email,
                        password=user.password,
                        status=RowStatus.PENDING.value,
                        message="",
                    )
                )
            session.commit()
            session.refresh(job)
            return self._to_job_record(job)

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        with self.Session() as session:
            job = session.get(JobRow, job_id)
            if not job:
                return None
            return self._to_job_record(job)

    def list_jobs(self, limit: int = 50) -> list[JobRecord]:
        with self.Session() as session:
            stmt = select(JobRow).order_by(JobRow.created_at.desc()).limit(limit)
            return [self._to_job_record(j) for j in session.scalars(stmt)]

    def list_rows(self, job_id: str) -> list[RowRecord]:
        with self.Session() as session:
            stmt = (
                select(ImportRowRow)
                .where(ImportRowRow.job_id == job_id)
                .order_by(ImportRowRow.row_index.asc())
            )
            return [self._to_row_record(r) for r in session.scalars(stmt)]

    def claim_job(self, job_id: str) -> Optional[JobRecord]:
        now = time.time()
        with self.Session() as session:
            stmt = (
                select(JobRow)
                .where(
                    JobRow.job_id == job_id,
                    JobRow.status == JobStatus.WAITING.value,
                )
                .with_for_update(skip_locked=True)
            )
            job = session.execute(stmt).scalar_one_or_none()
            if not job:
                return None
            job.status = JobStatus.RUNNING.value
            job.locked_at = now
            job.updated_at = now
            session.commit()
            session.refresh(job)
            return self._to_job_record(job)

    def transition_job(
        self,
        job_id: str,
        from_states: Iterable[JobStatus],
        to_state: JobStatus,
        *,
        error: Optional[str] = None,
        unlocked_only: bool = False,
    ) -> Optional[JobRecord]:
        values = {
            JobRow.status: to_state.value,
            JobRow.updated_at: time.time(),
        }
        if error is not None:
            values[JobRow.error] = error
        if to_state not in LOCK_HOLDING_STATES:
            values[JobRow.locked_at] = None
        stmt = update(JobRow).where(
            JobRow.job_id == job_id,
            JobRow.status.in_([s.value for s in from_states]),
        )
        if unlocked_only:
            stmt = stmt.where(JobRow.locked_at == None)
        with self.Session() as session:
            result = session.execute(stmt.values(values))
            session.commit()
            if not result.rowcount:
                return None
            job = session.get(JobRow, job_id)
            session.refresh(job)
            return self._to_job_record(job)

    def release_job(self, job_id: str) -> None:
        with self.Session() as session:
            session.execute(
                update(JobRow).where(JobRow.job_id == job_id).values(locked_at=None)
            )
            session.commit()

    def next_pending_row(self, job_id: str) -> Optional[RowRecord]:
        with self.Session() as session:
            stmt = (
                select(ImportRowRow)
                .where(
                    ImportRowRow.job_id == job_id,
                    ImportRowRow.status == RowStatus.PENDING.value,
                )
                .order_by(ImportRowRow.row_index.asc())
                .limit(1)
            )
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_row_record(row) if row else None

    def record_row_result(
        self, job_id: str, index: int, status: RowStatus, message: str
    ) -> bool:
        now = time.time()
        counter = JobRow.succeeded if status == RowStatus.SUCCESS else JobRow.failed
        with self.Session() as session:
            # Only a still-pending row takes a result, so counters move once per row.
            claimed = session.execute(
                update(ImportRowRow)
                .where(
                    ImportRowRow.job_id == job_id,
                    ImportRowRow.row_index == index,
                    ImportRowRow.status == RowStatus.PENDING.value,
                )
                .values(status=status.value, message=message, password=None)
            )
            if not claimed.rowcount:
                session.rollback()
                return False
            session.execute(
                update(JobRow)
                .where(JobRow.job_id == job_id)
                .values(
                    {
                        JobRow.processed: JobRow.processed + 1,
                        counter: counter + 1,
                        JobRow.updated_at: now,
                    }
                )
            )
            session.execute(
                update(JobRow)
                .where(
                    JobRow.job_id == job_id,
                    JobRow.status == JobStatus.RUNNING.value,
                )
                .values(locked_at=now)
            )
            session.commit()
            return True

    def skip_pending_rows(self, job_id: str, message: str) -> int:
        with self.Session() as session:
            result = session.execute(
                update(ImportRowRow)
                .where(
                    ImportRowRow.job_id == job_id,
                    ImportRowRow.status == RowStatus.PENDING.value,
                )
                .values(
                    status=RowStatus.SKIPPED.value, message=message, password=None
                )
            )
            session.commit()
            return result.rowcount or 0

    def requeue_stale_jobs(self, lock_timeout_seconds: float = 900) -> list[str]:
        cutoff = time.time() - lock_timeout_seconds
        with self.Session() as session:
            stale = session.scalars(
                select(JobRow).where(
                    JobRow.status.in_([s.value for s in LOCK_HOLDING_STATES]),
                    JobRow.locked_at != None,
                    JobRow.locked_at < cutoff,
                )
            ).all()
            now = time.time()
            requeued = []
            for job in stale:
                job.locked_at = None
                job.updated_at = now
                if job.status == JobStatus.RUNNING.value:
                    job.status = JobStatus.WAITING.value
                    requeued.append(job.job_id)
            session.commit()
            return requeued


Base = declarative_base()


class SiteRow(Base):
    __tablename__ = "sites"

    item_id = Column(String, primary_key=True)
    site_name = Column(String, nullable=False)
    site_id = Column(String, nullable=False)
    api_key = Column(String, nullable=False)
    template_id = Column(String, nullable=True)
    site_domain = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(Float, nullable=False)


class LogRow(Base):
    __tablename__ = "activity_logs"

    log_id = Column(String, primary_key=True)
    message = Column(Text, nullable=False)
    status = Column(String, nullable=False)
    context = Column(String, nullable=False)
    created_at = Column(Float, nullable=False, index=True)


class BounceRow(Base):
    __tablename__ = "bounced_emails"

    record_id = Column(String, primary_key=True)
    email = Column(String, nullable=False)
    contact_id = Column(String, nullable=False)
    bounced_at = Column(Float, nullable=False, index=True)


class SubmissionRow(Base):
    __tablename__ = "contact_submissions"

    submission_id = Column(String, primary_key=True)
    email = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String, nullable=False, index=True)
    ip_address = Column(String, nullable=True, index=True)
    submitted_at = Column(Float, nullable=False)


class JobRow(Base):
    __tablename__ = "import_jobs"

    job_id = Column(String, primary_key=True)
    site_item_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, index=True)
    total = Column(Integer, nullable=False)
    processed = Column(Integer, nullable=False, default=0)
    succeeded = Column(Integer, nullable=False, default=0)
    failed = Column(Integer, nullable=False, default=0)
    delay_seconds = Column(Float, nullable=False, default=0.0)
    error = Column(Text, nullable=True)
    locked_at = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class ImportRowRow(Base):
    __tablename__ = "import_rows"

    job_id = Column(String, primary_key=True)
    row_index = Column(Integer, primary_key=True)
    email = Column(String, nullable=False)
    # Cleared once the row has been attempted.
    password = Column(String, nullable=True)
    status = Column(String, nullable=False)
    message = Column(Text, nullable=True)
