"""
Dependency wiring for the FastAPI app and the worker.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException

from member_console.config import Settings, get_settings
from member_console.db import DbClient, InMemoryDbClient, PostgresDbClient
from member_console.platform_client import (
    HttpPlatformClient,
    InMemoryPlatformClient,
    PlatformClientFactory,
)
from member_console.queue import InMemoryJobQueue, JobQueue, RedisJobQueue

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_queue_client: JobQueue | None = None
_platform_factory: PlatformClientFactory | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so sites, logs and jobs persist across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    logger.info("Using %s", _db_client.__class__.__name__)
    return _db_client


def get_queue_client() -> JobQueue:
    """
    Return a singleton queue client for dispatching import jobs to workers.
    """
    global _queue_client
    if _queue_client:
        return _queue_client

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _queue_client = RedisJobQueue(
            url=settings.redis_url,
            queue_key=settings.redis_queue_key,
        )
    else:
        _queue_client = InMemoryJobQueue()
    return _queue_client


def get_platform_factory() -> PlatformClientFactory:
    global _platform_factory
    if _platform_factory:
        return _platform_factory

    settings = get_settings()
    if settings.use_in_memory_backends:
        _platform_factory = PlatformClientFactory(InMemoryPlatformClient)
    else:
        _platform_factory = PlatformClientFactory(
            lambda client_id: HttpPlatformClient(
                client_id=client_id,
                base_url=settings.platform_base_url,
                timeout=settings.platform_request_timeout,
                max_retries=settings.platform_max_retries,
            )
        )
    return _platform_factory


def require_admin(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject the request unless it carries the configured admin token."""
    if not settings.admin_token:
        return
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(
        token.strip().encode("utf-8"), settings.admin_token.encode("utf-8")
    ):
        raise HTTPException(status_code=401, detail="Admin authorization required.")
