"""
HTTP routes for the member console API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from member_console import importer, members
from member_console.activity import record_activity
from member_console.config import Settings, get_settings
from member_console.db import DbClient, ImportUser
from member_console.dependencies import (
    get_db_client,
    get_platform_factory,
    get_queue_client,
    require_admin,
)
from member_console.errors import PlatformError
from member_console.forms import handle_contact_form
from member_console.platform_client import PlatformClientFactory
from member_console.queue import JobQueue
from member_console.schemas import (
    AddSiteRequest,
    BouncedEmailResponse,
    BouncePayload,
    ClearLogsResponse,
    ContactFormRequest,
    ContactSubmissionResponse,
    DeleteMembersRequest,
    DeleteMembersResponse,
    DeleteSiteRequest,
    DeleteSiteResponse,
    FormResponse,
    GeneratePasswordsRequest,
    GeneratePasswordsResponse,
    HealthResponse,
    ImportJobResponse,
    ImportUsersRequest,
    ListImportJobsResponse,
    LogEntryResponse,
    ManagedSiteResponse,
    MemberResponse,
    RegisterUserRequest,
    RegisterUserResponse,
    SearchMembersRequest,
    SearchMembersResponse,
    SubmissionStatusRequest,
)
from member_console.sites import resolve_site
from member_console.types import LogStatus, SubmissionStatus

logger = logging.getLogger(__name__)

router = APIRouter()
admin = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/health", response_model=HealthResponse)
def health(
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
):
    return HealthResponse(
        status="ok",
        backends={"db": db.__class__.__name__, "queue": queue.__class__.__name__},
    )


# Sites


@admin.get("/listSites", response_model=list[ManagedSiteResponse])
def list_sites(db: DbClient = Depends(get_db_client)):
    try:
        sites = db.list_sites()
    except Exception:
        logger.exception("Error in listSites")
        raise HTTPException(
            status_code=500, detail="Could not retrieve sites from the database."
        )
    return [ManagedSiteResponse.from_record(s) for s in sites]


@admin.post("/addSite", response_model=ManagedSiteResponse, status_code=201)
def add_site(payload: AddSiteRequest, db: DbClient = Depends(get_db_client)):
    site_name = (payload.site_name or "").strip()
    site_id = (payload.site_id or "").strip()
    api_key = (payload.api_key or "").strip()
    if not site_name or not site_id or not api_key:
        raise HTTPException(status_code=400, detail="Missing required site information.")

    try:
        site = db.add_site(
            site_name,
            site_id,
            api_key,
            template_id=payload.template_id or None,
            site_domain=payload.site_domain or None,
            notes=payload.notes or None,
        )
    except Exception:
        logger.exception("Error in addSite")
        record_activity(db, LogStatus.ERROR, f'Failed to add site "{site_name}".', "addSite")
        raise HTTPException(status_code=500, detail="Failed to add site to the database.")

    record_activity(db, LogStatus.SUCCESS, f'Site "{site_name}" added.', "addSite")
    return ManagedSiteResponse.from_record(site)


@admin.post("/deleteSite", response_model=DeleteSiteResponse)
def delete_site(payload: DeleteSiteRequest, db: DbClient = Depends(get_db_client)):
    if not payload.item_id:
        raise HTTPException(status_code=400, detail="Missing itemId.")
    site = db.get_site(payload.item_id)
    if not site or not db.delete_site(payload.item_id):
        raise HTTPException(status_code=404, detail="Site not found.")
    record_activity(
        db, LogStatus.SUCCESS, f'Site "{site.site_name}" deleted.', "deleteSite"
    )
    return DeleteSiteResponse(deleted=payload.item_id)


# Activity log


@admin.get("/logs", response_model=list[LogEntryResponse])
def list_logs(
    limit: int = Query(100, ge=1, le=500),
    db: DbClient = Depends(get_db_client),
):
    return [LogEntryResponse.from_record(r) for r in db.list_logs(limit=limit)]


@admin.post("/clearLogs", response_model=ClearLogsResponse)
def clear_logs(db: DbClient = Depends(get_db_client)):
    deleted = db.clear_logs()
    logger.info("Cleared %d activity log entries", deleted)
    return ClearLogsResponse(deleted=deleted)


# Members


@admin.post("/searchMembers", response_model=SearchMembersResponse)
def search_members(
    payload: SearchMembersRequest,
    db: DbClient = Depends(get_db_client),
    platforms: PlatformClientFactory = Depends(get_platform_factory),
):
    site = resolve_site(db, payload.site_item_id)
    found = members.search_members(platforms.get(site.api_key), payload.query)
    return SearchMembersResponse(
        members=[MemberResponse.from_summary(m) for m in found], count=len(found)
    )


@admin.post("/deleteMembers", response_model=DeleteMembersResponse)
def delete_members(
    payload: DeleteMembersRequest,
    db: DbClient = Depends(get_db_client),
    platforms: PlatformClientFactory = Depends(get_platform_factory),
    settings: Settings = Depends(get_settings),
):
    site = resolve_site(db, payload.site_item_id)
    try:
        deleted_members, deleted_contacts = members.delete_members(
            platforms.get(site.api_key),
            [m.member_id for m in payload.members],
            [m.contact_id for m in payload.members],
            contact_delay_seconds=settings.contact_delete_delay_seconds,
        )
    except PlatformError as exc:
        record_activity(
            db,
            LogStatus.ERROR,
            f"Deleting members on {site.site_name} failed: {exc.message}",
            "deleteMembers",
        )
        raise
    record_activity(
        db,
        LogStatus.SUCCESS,
        f"Deleted {deleted_members} member(s) and {deleted_contacts} contact(s) on {site.site_name}.",
        "deleteMembers",
    )
    return DeleteMembersResponse(
        deleted_members=deleted_members, deleted_contacts=deleted_contacts
    )


@admin.post("/registerUser", response_model=RegisterUserResponse, response_model_exclude_none=True)
def register_user(
    payload: RegisterUserRequest,
    db: DbClient = Depends(get_db_client),
    platforms: PlatformClientFactory = Depends(get_platform_factory),
):
    site = resolve_site(db, payload.site_item_id)
    result = members.register_member(
        platforms.get(site.api_key), payload.email.strip(), payload.password
    )
    return RegisterUserResponse(**result)


# Bulk import


@admin.post("/generatePasswords", response_model=GeneratePasswordsResponse)
def generate_passwords(payload: GeneratePasswordsRequest):
    text, count = importer.attach_passwords(payload.text)
    if not count:
        raise HTTPException(
            status_code=400, detail="No valid emails found to generate passwords for."
        )
    return GeneratePasswordsResponse(text=text, count=count)


@admin.post("/importUsers", response_model=ImportJobResponse, status_code=202)
def import_users(
    payload: ImportUsersRequest,
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
    settings: Settings = Depends(get_settings),
):
    """
    Queue a bulk import job. The worker registers the users one at a time.
    """
    site = resolve_site(db, payload.site_item_id)
    if payload.users is not None:
        users = [
            ImportUser(email=u.email.strip(), password=u.password.strip())
            for u in payload.users
            if u.email.strip() and u.password.strip()
        ]
    else:
        users = importer.parse_import_lines(payload.text or "")
    if not users:
        raise HTTPException(status_code=400, detail="No users with passwords to import.")

    delay = (
        payload.delay_seconds
        if payload.delay_seconds is not None
        else settings.import_delay_seconds
    )
    job = db.create_import_job(site.item_id, users, delay)
    queue.enqueue(job.job_id)
    record_activity(
        db,
        LogStatus.INFO,
        f"Import job {job.job_id} queued for {len(users)} user(s) on {site.site_name}.",
        importer.CONTEXT,
    )
    return ImportJobResponse.from_record(job, db.list_rows(job.job_id))


@admin.get("/importJobs", response_model=ListImportJobsResponse)
def list_import_jobs(
    limit: int = Query(50, ge=1, le=200),
    db: DbClient = Depends(get_db_client),
):
    return ListImportJobsResponse(
        jobs=[ImportJobResponse.from_record(j) for j in db.list_jobs(limit=limit)]
    )


@admin.get("/importJobs/{job_id}", response_model=ImportJobResponse)
def get_import_job(job_id: str, db: DbClient = Depends(get_db_client)):
    job = db.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return ImportJobResponse.from_record(job, db.list_rows(job_id))


@admin.post("/importJobs/{job_id}/pause", response_model=ImportJobResponse)
def pause_import_job(job_id: str, db: DbClient = Depends(get_db_client)):
    job = importer.pause_job(db, job_id)
    return ImportJobResponse.from_record(job, db.list_rows(job_id))


@admin.post("/importJobs/{job_id}/resume", response_model=ImportJobResponse)
def resume_import_job(
    job_id: str,
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
):
    job = importer.resume_job(db, queue, job_id)
    return ImportJobResponse.from_record(job, db.list_rows(job_id))


@admin.post("/importJobs/{job_id}/cancel", response_model=ImportJobResponse)
def cancel_import_job(job_id: str, db: DbClient = Depends(get_db_client)):
    job = importer.cancel_job(db, job_id)
    return ImportJobResponse.from_record(job, db.list_rows(job_id))


# Contact form


@router.post("/contact", response_model=FormResponse, response_model_exclude_none=True)
def contact(
    payload: ContactFormRequest,
    request: Request,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    ip_address = request.client.host if request.client else None
    status_code, body = handle_contact_form(
        db, settings, payload.email, payload.message, ip_address
    )
    if status_code != 200:
        return JSONResponse(
            status_code=status_code,
            content=body.model_dump(by_alias=True, exclude_none=True),
        )
    return body


@admin.get("/contactSubmissions", response_model=list[ContactSubmissionResponse])
def list_contact_submissions(
    status: Optional[SubmissionStatus] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: DbClient = Depends(get_db_client),
):
    return [
        ContactSubmissionResponse.from_record(s)
        for s in db.list_submissions(status=status, limit=limit)
    ]


@admin.post("/contactSubmissions/{submission_id}/status", status_code=204)
def update_contact_submission(
    submission_id: str,
    payload: SubmissionStatusRequest,
    db: DbClient = Depends(get_db_client),
):
    if not db.update_submission_status(submission_id, payload.status):
        raise HTTPException(status_code=404, detail="Submission not found")


# Bounced emails


@admin.post("/bouncedEmails", response_model=BouncedEmailResponse, status_code=201)
def log_bounced_email(payload: BouncePayload, db: DbClient = Depends(get_db_client)):
    contact_info = payload.contact
    email = contact_info.email or (
        contact_info.main_phone.email if contact_info.main_phone else None
    )
    if not email:
        raise HTTPException(status_code=400, detail="Bounce payload has no email address.")
    record = db.add_bounce(email, contact_info.id)
    logger.info("Bounced email logged for contact %s", contact_info.id)
    return BouncedEmailResponse.from_record(record)


@admin.get("/bouncedEmails", response_model=list[BouncedEmailResponse])
def list_bounced_emails(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: DbClient = Depends(get_db_client),
):
    return [BouncedEmailResponse.from_record(r) for r in db.list_bounces(limit=limit)]


@admin.delete("/bouncedEmails/{record_id}", status_code=204)
def delete_bounced_email(record_id: str, db: DbClient = Depends(get_db_client)):
    if not db.delete_bounce(record_id):
        raise HTTPException(status_code=404, detail="Bounced email record not found")


router.include_router(admin)
