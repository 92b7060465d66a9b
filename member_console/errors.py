"""
Exceptions raised by services and translated to HTTP responses in routes.
"""

from __future__ import annotations

from typing import Optional

MEMBER_ALREADY_EXISTS = "MEMBER_ALREADY_EXISTS"


class PlatformError(Exception):
    """A call to the headless platform failed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class SiteNotFound(LookupError):
    pass


class JobNotFound(LookupError):
    pass


class InvalidJobTransition(ValueError):
    pass
