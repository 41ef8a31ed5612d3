"""Outbound email queue.

Flows never talk to SMTP. They enqueue an ``EmailJob`` naming a template,
a subject, a recipient and the template context, and return immediately.
The dispatcher drains the queue in the background and reports each outcome
back through the ``mark_as_*`` transitions below.
"""

import json
from datetime import timedelta
from typing import Any, Dict, List, Optional

import structlog

from warden.core.config.settings import settings
from warden.core.exceptions import ValidationError
from warden.domain.entities import EmailJob, EmailJobStatus
from warden.domain.interfaces.repositories import IEmailJobRepository
from warden.domain.security.data_protection import SYSTEM, DataProtectionService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.utils.clock import utcnow

logger = structlog.get_logger(__name__)

LOG_CONTEXT = "EmailService"


class EmailQueueService:
    """Writes jobs to the outbox and applies delivery outcomes to them."""

    def __init__(self, job_repository: IEmailJobRepository, secure_log: SecureLogService):
        self._jobs = job_repository
        self._log = secure_log

    async def enqueue(
        self,
        template_name: str,
        subject: str,
        to_email: str,
        template_data: Optional[Dict[str, Any]] = None,
        to_name: Optional[str] = None,
        triggered_by: Optional[str] = None,
    ) -> EmailJob:
        """Queue one email for delivery as soon as the dispatcher runs.

        Raises:
            ValidationError: If the template name, subject or recipient is blank.
        """
        if not template_name or not template_name.strip():
            raise ValidationError("Template name is required", field="template_name")
        if not subject or not subject.strip():
            raise ValidationError("Subject is required", field="subject")
        if not to_email or not to_email.strip():
            raise ValidationError("Recipient email is required", field="to_email")

        now = utcnow()
        job = await self._jobs.add(
            EmailJob(
                template_name=template_name,
                subject=subject,
                to_email=to_email.strip(),
                to_name=to_name,
                template_data=json.dumps(template_data or {}, default=str),
                status=EmailJobStatus.PENDING.value,
                max_retry_attempts=settings.EMAIL_MAX_RETRY_ATTEMPTS,
                created_at=now,
                scheduled_for=now,
                triggered_by=triggered_by,
            )
        )
        recipient = DataProtectionService.mask_sensitive_data(job.to_email)
        logger.info("email_queued", job_id=job.id, template=template_name, to=recipient)
        await self._log.log_mail(
            "Enqueue",
            LOG_CONTEXT,
            f"Email queued for {recipient} using template {template_name} (job {job.id})",
            triggered_by or SYSTEM,
        )
        return job

    async def get_pending_jobs(self, limit: int = 10) -> List[EmailJob]:
        return await self._jobs.get_due(utcnow(), limit)

    async def mark_as_processing(self, job: EmailJob) -> EmailJob:
        job.status = EmailJobStatus.PROCESSING.value
        return await self._jobs.save(job)

    async def mark_as_sent(self, job_id: int) -> None:
        job = await self._jobs.get_by_id(job_id)
        if job is None:
            return
        job.status = EmailJobStatus.SENT.value
        job.sent_at = utcnow()
        job.last_error = None
        await self._jobs.save(job)

    async def mark_as_failed(self, job_id: int, error: str) -> Optional[EmailJob]:
        """Record a failed attempt, scheduling a retry while attempts remain."""
        job = await self._jobs.get_by_id(job_id)
        if job is None:
            return None
        job.retry_count += 1
        job.last_error = error

        if job.retry_count < job.max_retry_attempts:
            delays = settings.retry_delays_minutes
            delay = delays[min(job.retry_count - 1, len(delays) - 1)]
            job.status = EmailJobStatus.RETRYING.value
            job.scheduled_for = utcnow() + timedelta(minutes=delay)
            await self._jobs.save(job)
            await self._log.log_mail(
                "MarkAsFailed",
                LOG_CONTEXT,
                f"Email job {job.id} failed (attempt {job.retry_count}/{job.max_retry_attempts}), "
                f"retry scheduled in {delay} minutes",
                SYSTEM,
            )
        else:
            job.status = EmailJobStatus.FAILED.value
            await self._jobs.save(job)
            await self._log.log_error(
                "MarkAsFailed",
                LOG_CONTEXT,
                f"Email job {job.id} permanently failed after {job.retry_count} attempts: {error}",
                SYSTEM,
            )
        return job

    async def mark_as_permanently_failed(self, job_id: int, error: str) -> Optional[EmailJob]:
        """Fail a job without retrying, for errors another attempt cannot fix."""
        job = await self._jobs.get_by_id(job_id)
        if job is None:
            return None
        job.status = EmailJobStatus.FAILED.value
        job.last_error = error
        await self._jobs.save(job)
        return job
