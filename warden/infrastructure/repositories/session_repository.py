from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from warden.domain.entities import Session
from warden.domain.interfaces.repositories import ISessionRepository


class SessionRepository(ISessionRepository):
    """SQLAlchemy-backed session store."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def add(self, session: Session) -> Session:
        self.db_session.add(session)
        await self.db_session.commit()
        await self.db_session.refresh(session)
        return session

    async def get_by_token_hash(self, token_hash: str) -> Optional[Session]:
        statement = (
            select(Session).where(Session.token_hash == token_hash).execution_options(populate_existing=True)
        )
        result = await self.db_session.execute(statement)
        return result.scalars().first()

    async def save(self, session: Session) -> Session:
        self.db_session.add(session)
        await self.db_session.commit()
        return session

    async def revoke(self, token_hash: str, now: datetime) -> bool:
        result = await self.db_session.execute(
            update(Session)
            .where(Session.token_hash == token_hash, Session.revoked_at.is_(None))
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.db_session.commit()
        return result.rowcount > 0
