"""Application lifecycle management.

This module handles application startup and shutdown events: database
checks and schema creation, seeding the default administrator and running
the background email dispatcher.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from warden.core.config.settings import settings
from warden.core.exceptions import WardenError
from warden.core.logging import logger
from warden.domain.entities import Role
from warden.domain.security.data_protection import DataProtectionService
from warden.domain.security.signed_tokens import SignedTokenService
from warden.domain.services.identity.identity_service import IdentityService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.infrastructure.database.async_db import (
    check_database_health,
    create_async_db_and_tables,
    get_async_db,
)
from warden.infrastructure.repositories import LogRepository, UserRepository, UserTokenRepository
from warden.infrastructure.services.email.email_dispatcher import EmailDispatcher


async def seed_default_admin() -> None:
    """Create or update the configured administrator account.

    Skipped with a warning when ``DEFAULT_ADMIN_EMAIL`` or
    ``DEFAULT_ADMIN_PASSWORD`` is empty.
    """
    if not settings.DEFAULT_ADMIN_EMAIL or not settings.DEFAULT_ADMIN_PASSWORD:
        logger.warning("default_admin_not_configured")
        return

    async with get_async_db() as db:
        identity = IdentityService(UserRepository(db), UserTokenRepository(db), SignedTokenService())
        secure_log = SecureLogService(LogRepository(db), DataProtectionService())
        try:
            admin = await identity.ensure_user(
                settings.DEFAULT_ADMIN_USERNAME,
                settings.DEFAULT_ADMIN_EMAIL,
                settings.DEFAULT_ADMIN_PASSWORD,
                [Role.ADMIN, Role.AUDIT_INVESTIGATOR],
            )
        except WardenError as e:
            logger.error("default_admin_seeding_failed", error_code=e.code)
            await secure_log.log_error("SeedAdmin", "Startup", f"Default admin seeding failed: {e.code}")
            return
        await secure_log.log_system("SeedAdmin", "Startup", f"Default admin ensured with user ID {admin.id}")


def create_lifespan_manager():
    """Create the application lifespan manager.

    Returns:
        AsyncContextManager: The lifespan manager for the FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown of application resources.

        Raises:
            RuntimeError: If the database is unavailable during startup
        """
        # Startup
        if not await check_database_health():
            logger.error("database_unavailable_on_startup")
            raise RuntimeError("Database unavailable")
        await create_async_db_and_tables()
        await seed_default_admin()

        dispatcher = None
        if settings.EMAIL_DISPATCHER_ENABLED:
            dispatcher = EmailDispatcher()
            dispatcher.start()
        app.state.email_dispatcher = dispatcher

        logger.info("application_startup", env=settings.APP_ENV, version=settings.VERSION)

        yield

        # Shutdown
        if dispatcher is not None:
            await dispatcher.stop()
        logger.info("application_shutdown", env=settings.APP_ENV)

    return lifespan
