"""Application factory for creating and configuring the FastAPI application.

This module provides a factory function to create a properly configured FastAPI application
with all necessary middleware, exception handlers, and routers registered.
"""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from warden.adapters.api.v1 import api_router
from warden.core.config.settings import settings
from warden.core.handlers import register_exception_handlers
from warden.core.lifecycle import create_lifespan_manager
from warden.core.middleware import configure_middleware


def create_application() -> FastAPI:
    """Create and configure the FastAPI application.

    Interactive docs are only served outside production.

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    docs_enabled = settings.APP_ENV != "production"
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        description="Account management: registration, sign-in with two-factor authentication and audit logging.",
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=create_lifespan_manager(),
        default_response_class=JSONResponse,
    )

    configure_middleware(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api/v1")

    return app
