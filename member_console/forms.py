"""
Public contact form handling.
"""

from __future__ import annotations

import html
import logging
import time
from typing import Optional

from pydantic import EmailStr, TypeAdapter, ValidationError

from member_console.activity import record_activity
from member_console.config import Settings
from member_console.db import DbClient
from member_console.schemas import FormResponse
from member_console.types import LogStatus

logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)


def is_valid_email(email: str) -> bool:
    try:
        _email_adapter.validate_python(email)
    except ValidationError:
        return False
    return True


def handle_contact_form(
    db: DbClient,
    settings: Settings,
    email: str,
    message: str,
    ip_address: Optional[str] = None,
) -> tuple[int, FormResponse]:
    """
    Validate, rate-limit and store one submission.

    Returns the HTTP status code to answer with and the response body.
    """
    email = (email or "").strip()
    if not is_valid_email(email):
        return 400, FormResponse(success=False, error="Invalid email format")

    text = (message or "").strip()
    if len(text) < settings.contact_min_message_length:
        return 400, FormResponse(
            success=False,
            error=f"Message must be at least {settings.contact_min_message_length} characters",
        )

    if ip_address:
        since = time.time() - settings.contact_rate_window_seconds
        if db.count_recent_submissions(ip_address, since) >= settings.contact_rate_limit:
            logger.warning("Contact form rate limit hit for %s", ip_address)
            return 429, FormResponse(
                success=False, error="Too many submissions. Please try again later."
            )

    submission = db.add_submission(email.lower(), html.escape(text), ip_address)
    record_activity(
        db, LogStatus.INFO, f"New contact submission from {submission.email}", "contactForm"
    )
    return 200, FormResponse(
        success=True,
        message="Message sent successfully",
        submission_id=submission.submission_id,
    )
