"""
Pydantic schemas for the member console API.

Bodies use the camelCase keys (and the `_id` / `_createdDate` record keys)
that the console UI already speaks.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from member_console.db import (
    BounceRecord,
    JobRecord,
    LogRecord,
    RowRecord,
    SiteRecord,
    SubmissionRecord,
)
from member_console.platform_client import MemberSummary
from member_console.types import JobStatus, LogStatus, RowStatus, SubmissionStatus


def _dt(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Sites


class AddSiteRequest(ApiModel):
    # Required fields are checked in the route so a missing one yields the
    # documented 400 body rather than a schema error.
    site_name: Optional[str] = None
    site_id: Optional[str] = None
    api_key: Optional[str] = None
    template_id: Optional[str] = None
    site_domain: Optional[str] = None
    notes: Optional[str] = None


class DeleteSiteRequest(ApiModel):
    item_id: Optional[str] = None


class ManagedSiteResponse(ApiModel):
    id: str = Field(alias="_id")
    site_name: str
    site_id: str
    api_key: str
    template_id: Optional[str] = None
    site_domain: Optional[str] = None
    notes: Optional[str] = None
    created_date: datetime = Field(alias="_createdDate")

    @classmethod
    def from_record(cls, record: SiteRecord) -> "ManagedSiteResponse":
        return cls(
            id=record.item_id,
            site_name=record.site_name,
            site_id=record.site_id,
            api_key=record.api_key,
            template_id=record.template_id,
            site_domain=record.site_domain,
            notes=record.notes,
            created_date=_dt(record.created_at),
        )


class DeleteSiteResponse(ApiModel):
    deleted: str


# Activity log


class LogEntryResponse(ApiModel):
    id: str = Field(alias="_id")
    created_date: datetime = Field(alias="_createdDate")
    message: str
    status: LogStatus
    context: str

    @classmethod
    def from_record(cls, record: LogRecord) -> "LogEntryResponse":
        return cls(
            id=record.log_id,
            created_date=_dt(record.created_at),
            message=record.message,
            status=record.status,
            context=record.context,
        )


class ClearLogsResponse(ApiModel):
    deleted: int


# Members


class MemberResponse(ApiModel):
    id: str
    contact_id: Optional[str] = None
    login_email: Optional[str] = None
    nickname: Optional[str] = None

    @classmethod
    def from_summary(cls, member: MemberSummary) -> "MemberResponse":
        return cls(
            id=member.id,
            contact_id=member.contact_id,
            login_email=member.login_email,
            nickname=member.nickname,
        )


class SearchMembersRequest(ApiModel):
    site_item_id: str
    query: str = ""


class SearchMembersResponse(ApiModel):
    members: list[MemberResponse]
    count: int


class MemberSelection(ApiModel):
    member_id: str
    contact_id: Optional[str] = None


class DeleteMembersRequest(ApiModel):
    site_item_id: str
    members: list[MemberSelection] = Field(..., min_length=1)


class DeleteMembersResponse(ApiModel):
    deleted_members: int
    deleted_contacts: int


class RegisterUserRequest(ApiModel):
    site_item_id: str
    email: str
    password: str


class RegisterUserResponse(ApiModel):
    success: bool
    status: Optional[str] = None
    member: Optional[dict] = None
    contact_id: Optional[str] = None
    error: Optional[str] = None


# Bulk import


class GeneratePasswordsRequest(ApiModel):
    text: str


class GeneratePasswordsResponse(ApiModel):
    text: str
    count: int


class ImportUserIn(ApiModel):
    email: str
    password: str


class ImportUsersRequest(ApiModel):
    site_item_id: str
    users: Optional[list[ImportUserIn]] = None
    text: Optional[str] = None
    delay_seconds: Optional[float] = Field(default=None, ge=0)


class ImportRowResponse(ApiModel):
    index: int
    email: str
    status: RowStatus
    message: str

    @classmethod
    def from_record(cls, row: RowRecord) -> "ImportRowResponse":
        return cls(index=row.index, email=row.email, status=row.status, message=row.message)


class ImportJobResponse(ApiModel):
    job_id: str
    site_item_id: str
    status: JobStatus
    total: int
    processed: int
    succeeded: int
    failed: int
    progress_percent: float
    delay_seconds: float
    error: Optional[str] = None
    created_date: datetime
    updated_date: datetime
    rows: Optional[list[ImportRowResponse]] = None

    @classmethod
    def from_record(
        cls, job: JobRecord, rows: Optional[list[RowRecord]] = None
    ) -> "ImportJobResponse":
        return cls(
            job_id=job.job_id,
            site_item_id=job.site_item_id,
            status=job.status,
            total=job.total,
            processed=job.processed,
            succeeded=job.succeeded,
            failed=job.failed,
            progress_percent=job.progress_percent,
            delay_seconds=job.delay_seconds,
            error=job.error,
            created_date=_dt(job.created_at),
            updated_date=_dt(job.updated_at),
            rows=[ImportRowResponse.from_record(r) for r in rows] if rows is not None else None,
        )


class ListImportJobsResponse(ApiModel):
    jobs: list[ImportJobResponse]


# Contact form


class ContactFormRequest(ApiModel):
    email: str
    message: str


class FormResponse(ApiModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    submission_id: Optional[str] = None


class ContactSubmissionResponse(ApiModel):
    id: str
    email: str
    message: str
    submitted_at: datetime
    status: SubmissionStatus
    ip_address: Optional[str] = None

    @classmethod
    def from_record(cls, record: SubmissionRecord) -> "ContactSubmissionResponse":
        return cls(
            id=record.submission_id,
            email=record.email,
            message=record.message,
            submitted_at=_dt(record.submitted_at),
            status=record.status,
            ip_address=record.ip_address,
        )


class SubmissionStatusRequest(ApiModel):
    status: SubmissionStatus


# Bounced emails


class BounceMainPhone(ApiModel):
    email: Optional[str] = None


class BounceContact(ApiModel):
    id: str = Field(alias="_id")
    email: Optional[str] = None
    main_phone: Optional[BounceMainPhone] = None


class BouncePayload(ApiModel):
    contact: BounceContact


class BouncedEmailResponse(ApiModel):
    id: str
    email: str
    bounced_date: datetime
    contact_id: str

    @classmethod
    def from_record(cls, record: BounceRecord) -> "BouncedEmailResponse":
        return cls(
            id=record.record_id,
            email=record.email,
            bounced_date=_dt(record.bounced_at),
            contact_id=record.contact_id,
        )


class HealthResponse(ApiModel):
    status: str
    backends: dict
