"""Middleware configuration for the FastAPI application.

This module registers CORS and the request logging middleware.
"""

import time

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from warden.core.config.settings import settings
from warden.domain.security.data_protection import DataProtectionService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.infrastructure.database.async_db import get_async_db
from warden.infrastructure.repositories import LogRepository

logger = structlog.get_logger(__name__)


def configure_middleware(app: FastAPI) -> None:
    """Configure all middleware for the FastAPI application.

    Args:
        app (FastAPI): The FastAPI application instance
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*", settings.CSRF_HEADER_NAME],
    )

    app.middleware("http")(request_logging_middleware)


def _is_excluded(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in settings.REQUEST_LOGGING_EXCLUDED_PATHS)


async def request_logging_middleware(request: Request, call_next):
    """Log each request's method, path, status and duration.

    The event always goes to structlog. When ``REQUEST_LOGGING_ENABLED`` is
    set it is also persisted as a REQUEST entry in the audit trail. Bodies,
    query strings and cookies are never recorded.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(method=request.method, path=request.url.path)

    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = round((time.perf_counter() - started) * 1000, 1)

    logger.info("request_completed", status_code=response.status_code, duration_ms=elapsed_ms)

    if settings.REQUEST_LOGGING_ENABLED and not _is_excluded(request.url.path):
        async with get_async_db() as db:
            secure_log = SecureLogService(LogRepository(db), DataProtectionService())
            await secure_log.log_request(
                f"{request.method} {request.url.path}",
                "RequestLoggingMiddleware",
                f"Status {response.status_code} in {elapsed_ms} ms",
            )
    return response
