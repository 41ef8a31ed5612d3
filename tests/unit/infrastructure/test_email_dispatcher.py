"""Dispatcher batch processing against the in-memory database with a mocked transport."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from warden.core.config.settings import settings
from warden.core.exceptions import TemplateNotFoundError
from warden.domain.entities import EmailJobStatus
from warden.domain.security.data_protection import DataProtectionService
from warden.domain.services.email.email_queue_service import EmailQueueService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.infrastructure.repositories import EmailJobRepository, LogRepository
from warden.infrastructure.services.email.email_dispatcher import EmailDispatcher
from warden.infrastructure.services.email.email_sender import EmailSender


@pytest.fixture(autouse=True)
def no_send_delay(mocker):
    mocker.patch.object(settings, "EMAIL_SEND_DELAY_MS", 0)


@pytest.fixture
def sender():
    mock = MagicMock(spec=EmailSender)
    mock.send = AsyncMock(return_value=True)
    mock.validate_configuration.return_value = True
    return mock


async def _enqueue(db_session, template="welcome"):
    secure_log = SecureLogService(LogRepository(db_session), DataProtectionService())
    queue = EmailQueueService(EmailJobRepository(db_session), secure_log)
    return await queue.enqueue(template, "Subject", "alice@example.com", {"login_url": "http://test"})


async def _reload(db_session, job_id):
    return await EmailJobRepository(db_session).get_by_id(job_id)


@pytest.mark.asyncio
async def test_successful_delivery_marks_sent(db_session, sender):
    job = await _enqueue(db_session)

    attempted = await EmailDispatcher(sender=sender).process_batch()

    assert attempted == 1
    assert (await _reload(db_session, job.id)).status == EmailJobStatus.SENT.value


@pytest.mark.asyncio
async def test_transport_failure_schedules_retry(db_session, sender):
    sender.send.return_value = False
    job = await _enqueue(db_session)

    await EmailDispatcher(sender=sender).process_batch()

    stored = await _reload(db_session, job.id)
    assert stored.status == EmailJobStatus.RETRYING.value
    assert stored.retry_count == 1
    # Not due again yet.
    assert await EmailDispatcher(sender=sender).process_batch() == 0


@pytest.mark.asyncio
async def test_missing_template_fails_without_retry(db_session, sender):
    sender.send.side_effect = TemplateNotFoundError("Template not found: nope")
    job = await _enqueue(db_session, template="nope")

    await EmailDispatcher(sender=sender).process_batch()

    stored = await _reload(db_session, job.id)
    assert stored.status == EmailJobStatus.FAILED.value
    assert stored.retry_count == 0


@pytest.mark.asyncio
async def test_unexpected_error_counts_as_failed_attempt(db_session, sender):
    sender.send.side_effect = RuntimeError("connection reset")
    job = await _enqueue(db_session)

    await EmailDispatcher(sender=sender).process_batch()

    stored = await _reload(db_session, job.id)
    assert stored.status == EmailJobStatus.RETRYING.value
    assert "connection reset" in stored.last_error


@pytest.mark.asyncio
async def test_empty_queue(sender):
    assert await EmailDispatcher(sender=sender).process_batch() == 0
    sender.send.assert_not_awaited()


def test_real_sender_renders_packaged_templates():
    sender = EmailSender()
    html = sender.render(
        "2fa-code",
        {"verification_code": "123456", "expiry_minutes": 5, "request_time": "now", "ip_address": "1.2.3.4"},
    )
    assert "123456" in html

    with pytest.raises(TemplateNotFoundError):
        sender.render("does-not-exist", {})
