"""Background email dispatcher.

A single asyncio task started from the application lifespan. Every cycle it
opens its own database session, takes up to ``EMAIL_BATCH_SIZE`` due jobs
and delivers them one by one with a short pause in between. Errors in one
cycle are logged and never stop the loop. ``stop()`` wakes the loop and
waits for it to leave.
"""

import asyncio
from typing import Callable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from warden.core.config.settings import settings
from warden.core.exceptions import TemplateNotFoundError
from warden.domain.security.data_protection import SYSTEM, DataProtectionService
from warden.domain.services.email.email_queue_service import EmailQueueService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.infrastructure.database.async_db import get_async_db
from warden.infrastructure.repositories import EmailJobRepository, LogRepository
from warden.infrastructure.services.email.email_sender import EmailSender

logger = structlog.get_logger(__name__)

LOG_CONTEXT = "EmailBackgroundService"


class EmailDispatcher:
    def __init__(
        self,
        sender: Optional[EmailSender] = None,
        session_factory: Callable = get_async_db,
        data_protection: Optional[DataProtectionService] = None,
    ):
        self._sender = sender or EmailSender()
        self._session_factory = session_factory
        self._data_protection = data_protection or DataProtectionService()
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    def _services(self, db: AsyncSession):
        secure_log = SecureLogService(LogRepository(db), self._data_protection)
        return EmailQueueService(EmailJobRepository(db), secure_log), secure_log

    async def _log_mail(self, action: str, message: str) -> None:
        async with self._session_factory() as db:
            _, secure_log = self._services(db)
            await secure_log.log_mail(action, LOG_CONTEXT, message, SYSTEM)

    def start(self) -> asyncio.Task:
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name="email-dispatcher")
        return self._task

    async def stop(self, timeout: float = 10.0) -> None:
        if self._task is None:
            return
        logger.info("Email dispatcher is stopping")
        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except asyncio.TimeoutError:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def run(self) -> None:
        logger.info("Email dispatcher started", test_mode=settings.EMAIL_TEST_MODE)
        await self._log_mail("Run", "Email Background Service started")
        if not self._sender.validate_configuration():
            await self._log_mail(
                "Run",
                "Email configuration validation failed. Service will continue but emails may fail to send.",
            )

        while not self._stop_event.is_set():
            try:
                await self.process_batch()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Error occurred while processing email queue", error=str(e))
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=settings.EMAIL_PROCESSING_INTERVAL_SECONDS)
            except asyncio.TimeoutError:
                pass

        logger.info("Email dispatcher stopped")
        await self._log_mail("Run", "Email Background Service stopped")

    async def process_batch(self) -> int:
        """Deliver the jobs that are due now. Returns how many were attempted."""
        async with self._session_factory() as db:
            queue, secure_log = self._services(db)
            jobs = await queue.get_pending_jobs(limit=settings.EMAIL_BATCH_SIZE)
            if not jobs:
                return 0

            logger.info("Processing pending email jobs", count=len(jobs))
            await secure_log.log_mail(
                "ProcessBatch", LOG_CONTEXT, f"Processing {len(jobs)} pending email jobs", SYSTEM
            )

            attempted = 0
            for job in jobs:
                if self._stop_event.is_set():
                    break
                attempted += 1
                job_log = logger.bind(job_id=job.id, template=job.template_name)
                try:
                    await queue.mark_as_processing(job)
                    if await self._sender.send(job):
                        await queue.mark_as_sent(job.id)
                        await secure_log.log_mail(
                            "ProcessBatch", LOG_CONTEXT, f"Email job {job.id} sent successfully", SYSTEM
                        )
                    else:
                        await queue.mark_as_failed(job.id, "SMTP send failed")
                        job_log.warning("Email job failed, retry scheduled")
                except TemplateNotFoundError as e:
                    await queue.mark_as_permanently_failed(job.id, e.message)
                    job_log.error("Template not found for email job")
                    await secure_log.log_error("ProcessBatch", LOG_CONTEXT, e.message, SYSTEM)
                except Exception as e:
                    job_log.error("Error processing email job", error=str(e))
                    await db.rollback()
                    await queue.mark_as_failed(job.id, f"Error: {e}")

                await asyncio.sleep(settings.EMAIL_SEND_DELAY_MS / 1000)
            return attempted
