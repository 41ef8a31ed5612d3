from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from warden.domain.entities import EmailJob, EmailJobStatus
from warden.domain.interfaces.repositories import IEmailJobRepository


class EmailJobRepository(IEmailJobRepository):
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def add(self, job: EmailJob) -> EmailJob:
        self.db_session.add(job)
        await self.db_session.commit()
        await self.db_session.refresh(job)
        return job

    async def get_by_id(self, job_id: int) -> Optional[EmailJob]:
        return await self.db_session.get(EmailJob, job_id, populate_existing=True)

    async def save(self, job: EmailJob) -> EmailJob:
        self.db_session.add(job)
        await self.db_session.commit()
        return job

    async def get_due(self, now: datetime, limit: int) -> List[EmailJob]:
        statement = (
            select(EmailJob)
            .where(
                EmailJob.status.in_([EmailJobStatus.PENDING.value, EmailJobStatus.RETRYING.value]),
                EmailJob.scheduled_for <= now,
            )
            .order_by(EmailJob.created_at, EmailJob.id)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db_session.execute(statement)
        return list(result.scalars().all())
