"""
Member search, deletion and single registration against a managed site.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence

from member_console.errors import PlatformError
from member_console.platform_client import MemberSummary, PlatformClient

logger = logging.getLogger(__name__)


def search_members(client: PlatformClient, query: str) -> list[MemberSummary]:
    return client.query_members(query.strip())


def delete_members(
    client: PlatformClient,
    member_ids: Sequence[str],
    contact_ids: Sequence[Optional[str]],
    *,
    contact_delay_seconds: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[int, int]:
    """
    Bulk-delete members, wait for the platform to release their contacts,
    then delete the contacts one by one.

    Returns (members deleted, contacts deleted). A platform error stops the
    remaining steps and propagates; work already done is not rolled back.
    """
    client.bulk_delete_members(list(member_ids))
    logger.info("Deleted %d member(s), pausing before deleting contacts", len(member_ids))
    if contact_delay_seconds > 0:
        sleep(contact_delay_seconds)

    deleted_contacts = 0
    for contact_id in contact_ids:
        if not contact_id:
            continue
        client.delete_contact(contact_id)
        deleted_contacts += 1
    return len(member_ids), deleted_contacts


def register_member(client: PlatformClient, email: str, password: str) -> dict:
    """
    Register one user. Failures are reported in the result rather than raised.
    """
    try:
        # Registration reuses an existing contact with the same email.
        contact_id = client.find_contact_id(email)
        result = client.register(email, password)
    except PlatformError as exc:
        logger.error("Error during user registration for %s: %s", email, exc.message)
        return {
            "success": False,
            "error": f"Failed to register {email}. Reason: {exc.message}",
        }
    return {
        "success": True,
        "status": result.get("status"),
        "member": result.get("member"),
        "contact_id": contact_id,
    }
