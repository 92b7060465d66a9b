"""
FastAPI application entry point for the member console.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from member_console.config import get_settings
from member_console.dependencies import get_db_client
from member_console.errors import InvalidJobTransition, JobNotFound, PlatformError, SiteNotFound
from member_console.routes import router
from member_console.sites import seed_sites

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(name)s %(levelname)s %(asctime)s %(message)s"


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def install_error_handlers(app: FastAPI) -> None:
    """Answer every failure with an `{"error": ...}` body."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return _error(400, "Invalid request body.", details=jsonable_errors(exc))

    @app.exception_handler(PlatformError)
    async def platform_error(request: Request, exc: PlatformError):
        logger.error("Platform call failed (%s): %s", exc.status_code, exc.message)
        return _error(502, exc.message, code=exc.code)

    @app.exception_handler(SiteNotFound)
    async def site_not_found(request: Request, exc: SiteNotFound):
        return _error(404, "Site not found.")

    @app.exception_handler(JobNotFound)
    async def job_not_found(request: Request, exc: JobNotFound):
        return _error(404, "Job not found")

    @app.exception_handler(InvalidJobTransition)
    async def invalid_transition(request: Request, exc: InvalidJobTransition):
        return _error(409, str(exc))


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)

    app = FastAPI(title="Member Console Backend (FastAPI)", version="0.1.0")
    install_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)

    if settings.managed_sites:
        seed_sites(get_db_client(), settings.managed_sites)

    if settings.embedded_worker:
        from member_console.worker import start_embedded_worker

        start_embedded_worker()
    return app


app = create_app()
