"""
Managed-site registry helpers.
"""

from __future__ import annotations

import logging
from typing import Iterable

from member_console.db import DbClient, SiteRecord
from member_console.errors import SiteNotFound

logger = logging.getLogger(__name__)

REQUIRED_SITE_FIELDS = ("siteName", "siteId", "apiKey")


def resolve_site(db: DbClient, item_id: str) -> SiteRecord:
    site = db.get_site(item_id)
    if not site:
        raise SiteNotFound(item_id)
    return site


def seed_sites(db: DbClient, entries: Iterable[dict]) -> int:
    """
    Insert configured sites when the registry is empty. Returns how many were added.
    """
    entries = list(entries)
    if not entries or db.list_sites():
        return 0
    added = 0
    for entry in entries:
        missing = [key for key in REQUIRED_SITE_FIELDS if not entry.get(key)]
        if missing:
            logger.warning("Skipping seeded site %r: missing %s", entry, ", ".join(missing))
            continue
        db.add_site(
            entry["siteName"],
            entry["siteId"],
            entry["apiKey"],
            template_id=entry.get("templateId"),
            site_domain=entry.get("siteDomain"),
            notes=entry.get("notes"),
        )
        added += 1
    logger.info("Seeded %d managed site(s)", added)
    return added
