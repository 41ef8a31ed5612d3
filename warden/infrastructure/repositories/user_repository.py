"""User Repository implementation using SQLAlchemy.

Lookups by username and email are case-insensitive: both values are stored
alongside an upper-cased normalized copy that carries the unique index.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from warden.core.exceptions import DuplicateUserError
from warden.domain.entities import User, UserRole
from warden.domain.interfaces.repositories import IUserRepository
from warden.utils.clock import utcnow

logger = get_logger(__name__)


def normalize(value: str) -> str:
    return value.strip().upper()


class UserRepository(IUserRepository):
    """SQLAlchemy implementation of ``IUserRepository``."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def get_by_id(self, user_id: int) -> Optional[User]:
        if user_id <= 0:
            return None
        statement = select(User).where(User.id == user_id).execution_options(populate_existing=True)
        result = await self.db_session.execute(statement)
        return result.scalars().first()

    async def get_by_username(self, username: str) -> Optional[User]:
        if not username or not username.strip():
            return None
        statement = select(User).where(User.normalized_username == normalize(username))
        result = await self.db_session.execute(statement.execution_options(populate_existing=True))
        return result.scalars().first()

    async def get_by_email(self, email: str) -> Optional[User]:
        if not email or not email.strip():
            return None
        statement = select(User).where(User.normalized_email == normalize(email))
        result = await self.db_session.execute(statement.execution_options(populate_existing=True))
        return result.scalars().first()

    async def add(self, user: User) -> User:
        """Persist a new user.

        Raises:
            DuplicateUserError: If the unique username or email index rejects the row.
        """
        user.normalized_username = normalize(user.username)
        user.normalized_email = normalize(user.email)
        self.db_session.add(user)
        try:
            await self.db_session.commit()
        except IntegrityError as e:
            await self.db_session.rollback()
            logger.warning("User insert rejected by unique constraint", error_type=type(e).__name__)
            raise DuplicateUserError() from e
        await self.db_session.refresh(user)
        logger.debug("User created", user_id=user.id, operation="add")
        return user

    async def save(self, user: User) -> User:
        user.normalized_username = normalize(user.username)
        user.normalized_email = normalize(user.email)
        user.updated_at = utcnow()
        self.db_session.add(user)
        try:
            await self.db_session.commit()
        except Exception as e:
            await self.db_session.rollback()
            logger.error(
                "Error saving user",
                user_id=user.id,
                error_type=type(e).__name__,
                operation="save",
            )
            raise
        await self.db_session.refresh(user)
        return user

    async def get_roles(self, user_id: int) -> List[str]:
        result = await self.db_session.execute(select(UserRole.role).where(UserRole.user_id == user_id))
        return sorted(result.scalars().all())

    async def add_role(self, user_id: int, role: str) -> None:
        if role in await self.get_roles(user_id):
            return
        self.db_session.add(UserRole(user_id=user_id, role=role))
        await self.db_session.commit()
