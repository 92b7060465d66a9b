"""
Status enums shared by the store, the worker and the HTTP schemas.
"""

from __future__ import annotations

from enum import Enum


class JobStatus(str, Enum):
    WAITING = "WAITING"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# Jobs in these states never run again.
FINAL_JOB_STATES = (JobStatus.CANCELLED, JobStatus.COMPLETED, JobStatus.FAILED)


class RowStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    SKIPPED = "SKIPPED"


class LogStatus(str, Enum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    INFO = "INFO"


class SubmissionStatus(str, Enum):
    NEW = "new"
    READ = "read"
    RESPONDED = "responded"
