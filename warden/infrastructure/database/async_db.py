"""
Asynchronous Database Utilities Module

This module provides the asynchronous engine and session helpers used by
every repository, the lifespan hooks and the email dispatcher.

**Security Note**: Never log DATABASE_URL; it carries credentials. Use least
privilege database accounts and TLS over untrusted networks.

Key Components:
    - engine: The asynchronous SQLAlchemy engine.
    - AsyncSessionFactory: A factory for creating asynchronous sessions.
    - get_async_db: Context manager yielding a session (background work).
    - get_db_session: FastAPI dependency yielding a session per request.
    - create_async_db_and_tables / drop_async_db_and_tables: schema helpers.
    - check_database_health: connectivity probe with retry.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

import structlog
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from warden.core.config.settings import settings

logger = structlog.get_logger(__name__)


def _build_async_url(url: str) -> str:
    """Point plain PostgreSQL URLs at the asyncpg driver."""
    for sync_prefix in ("postgresql+psycopg2://", "postgresql://", "postgres://"):
        if url.startswith(sync_prefix):
            return "postgresql+asyncpg://" + url[len(sync_prefix):]
    return url


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        # One shared connection keeps in-memory databases alive across sessions.
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_pre_ping": True,
    }


_url = _build_async_url(settings.DATABASE_URL)
engine = create_async_engine(_url, echo=settings.DATABASE_ECHO, future=True, **_engine_options(_url))

AsyncSessionFactory: sessionmaker = sessionmaker(  # type: ignore[call-overload]
    bind=engine, class_=AsyncSession, expire_on_commit=False
)


@asynccontextmanager
async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession outside the request cycle.

    The transaction is rolled back if an exception escapes, and the session
    is always closed.
    """
    async with AsyncSessionFactory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            logger.error("Async database session rollback due to error")
            raise


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields one AsyncSession per request."""
    async with get_async_db() as session:
        yield session


async def create_async_db_and_tables() -> None:
    """Create all tables registered on ``SQLModel.metadata``."""
    # Import entities so their tables are registered.
    from warden.domain import entities  # noqa: F401

    logger.info("Creating async database tables")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Async database tables created")


async def drop_async_db_and_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(OperationalError),
    reraise=True,
)
async def _ping() -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def check_database_health() -> bool:
    """Return True when the database answers a trivial query, retrying transient failures."""
    try:
        await _ping()
    except OperationalError as e:
        logger.error("database_health_check_failed", error_type=type(e).__name__)
        return False
    return True
