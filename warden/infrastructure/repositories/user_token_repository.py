"""Versioned per-user token slots.

Conditional writes are plain ``UPDATE ... WHERE version = :expected``
statements; the affected row count tells the caller whether it won.
Reads use ``populate_existing`` so that a statement-level update from an
earlier step is never masked by the session's identity map.
"""

from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from warden.domain.entities import UserToken
from warden.domain.interfaces.repositories import IUserTokenRepository

logger = get_logger(__name__)


class UserTokenRepository(IUserTokenRepository):
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def get(self, user_id: int, login_provider: str, name: str) -> Optional[UserToken]:
        statement = (
            select(UserToken)
            .where(
                UserToken.user_id == user_id,
                UserToken.login_provider == login_provider,
                UserToken.name == name,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db_session.execute(statement)
        return result.scalars().first()

    async def set(self, user_id: int, login_provider: str, name: str, value: str) -> None:
        existing = await self.get(user_id, login_provider, name)
        if existing is None:
            self.db_session.add(UserToken(user_id=user_id, login_provider=login_provider, name=name, value=value))
            try:
                await self.db_session.commit()
                return
            except IntegrityError:
                # A concurrent writer created the slot first; overwrite it.
                await self.db_session.rollback()
                existing = await self.get(user_id, login_provider, name)
                if existing is None:
                    raise
        await self.db_session.execute(
            update(UserToken)
            .where(UserToken.id == existing.id)
            .values(value=value, version=UserToken.version + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db_session.commit()

    async def update_if_version(self, token_id: int, expected_version: int, value: str) -> bool:
        result = await self.db_session.execute(
            update(UserToken)
            .where(UserToken.id == token_id, UserToken.version == expected_version)
            .values(value=value, version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db_session.commit()
        return result.rowcount == 1

    async def delete_if_version(self, token_id: int, expected_version: int) -> bool:
        result = await self.db_session.execute(
            delete(UserToken)
            .where(UserToken.id == token_id, UserToken.version == expected_version)
            .execution_options(synchronize_session=False)
        )
        await self.db_session.commit()
        return result.rowcount == 1

    async def remove(self, user_id: int, login_provider: str, name: str) -> None:
        await self.db_session.execute(
            delete(UserToken)
            .where(
                UserToken.user_id == user_id,
                UserToken.login_provider == login_provider,
                UserToken.name == name,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db_session.commit()
