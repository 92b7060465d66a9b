"""
Activity log rows shown to the admin next to each console page.
"""

from __future__ import annotations

import logging

from member_console.db import DbClient
from member_console.types import LogStatus

logger = logging.getLogger(__name__)


def record_activity(db: DbClient, status: LogStatus, message: str, context: str) -> None:
    """
    Append a log row. A failing write is reported to the process log and never
    replaces the outcome of the operation being logged.
    """
    try:
        db.add_log(status, message, context)
    except Exception:
        logger.exception("Failed to write activity log (%s): %s", context, message)
