"""Read-only views of the outbox and the audit trail for assertions."""

import json
from typing import List, Optional

from sqlalchemy import select

from warden.domain.entities import EmailJob, Log
from warden.infrastructure.database.async_db import AsyncSessionFactory


async def sent_emails(template_name: Optional[str] = None, to_email: Optional[str] = None) -> List[EmailJob]:
    """Queued email jobs, oldest first."""
    async with AsyncSessionFactory() as session:
        statement = select(EmailJob).order_by(EmailJob.id)
        if template_name is not None:
            statement = statement.where(EmailJob.template_name == template_name)
        if to_email is not None:
            statement = statement.where(EmailJob.to_email == to_email)
        return list((await session.execute(statement)).scalars().all())


async def last_email_data(template_name: str, to_email: str) -> dict:
    jobs = await sent_emails(template_name, to_email)
    assert jobs, f"no {template_name} email queued"
    return json.loads(jobs[-1].template_data)


async def audit_entries(action: Optional[str] = None) -> List[Log]:
    async with AsyncSessionFactory() as session:
        statement = select(Log).order_by(Log.id)
        if action is not None:
            statement = statement.where(Log.action == action)
        return list((await session.execute(statement)).scalars().all())
