from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from warden.domain.entities import Log
from warden.domain.interfaces.repositories import ILogRepository


class LogRepository(ILogRepository):
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def add(self, log: Log) -> Log:
        self.db_session.add(log)
        await self.db_session.commit()
        await self.db_session.refresh(log)
        return log

    async def get_by_id(self, log_id: int) -> Optional[Log]:
        return await self.db_session.get(Log, log_id)

    async def list_by_category(
        self,
        category: str,
        limit: int,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[Log]:
        statement = select(Log).where(Log.category == category)
        if from_date is not None:
            statement = statement.where(Log.timestamp >= from_date)
        if to_date is not None:
            statement = statement.where(Log.timestamp <= to_date)
        statement = statement.order_by(Log.timestamp.desc(), Log.id.desc()).limit(limit)
        result = await self.db_session.execute(statement)
        return list(result.scalars().all())

    async def list_by_user(self, pseudonym: str, limit: int) -> List[Log]:
        statement = (
            select(Log).where(Log.user == pseudonym).order_by(Log.timestamp.desc(), Log.id.desc()).limit(limit)
        )
        result = await self.db_session.execute(statement)
        return list(result.scalars().all())
