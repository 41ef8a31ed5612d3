"""Tests for EmailQueueService with a mocked job repository."""

import json
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from warden.core.exceptions import ValidationError
from warden.domain.entities import EmailJob, EmailJobStatus
from warden.domain.services.email.email_queue_service import EmailQueueService
from warden.utils.clock import utcnow


def _job(**overrides) -> EmailJob:
    values = dict(
        id=1,
        template_name="welcome",
        subject="Welcome",
        to_email="alice@example.com",
        template_data="{}",
        status=EmailJobStatus.PROCESSING.value,
        retry_count=0,
        max_retry_attempts=3,
        created_at=utcnow(),
        scheduled_for=utcnow(),
    )
    values.update(overrides)
    return EmailJob(**values)


@pytest.fixture
def jobs():
    repo = AsyncMock()
    repo.add.side_effect = lambda job: job
    repo.save.side_effect = lambda job: job
    return repo


@pytest.fixture
def secure_log():
    return AsyncMock()


@pytest.fixture
def queue(jobs, secure_log):
    return EmailQueueService(jobs, secure_log)


@pytest.mark.asyncio
async def test_enqueue_creates_pending_job(queue, jobs, secure_log):
    job = await queue.enqueue("welcome", "Welcome", " alice@example.com ", {"login_url": "http://x"})

    assert job.status == EmailJobStatus.PENDING.value
    assert job.to_email == "alice@example.com"
    assert json.loads(job.template_data) == {"login_url": "http://x"}
    jobs.add.assert_awaited_once()
    message = secure_log.log_mail.await_args.args[2]
    assert "alice@example.com" not in message


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "template,subject,to",
    [("", "Subject", "a@b.com"), ("welcome", " ", "a@b.com"), ("welcome", "Subject", "")],
)
async def test_enqueue_rejects_blank_fields(queue, template, subject, to):
    with pytest.raises(ValidationError):
        await queue.enqueue(template, subject, to)


@pytest.mark.asyncio
async def test_failure_schedules_retry_with_backoff(queue, jobs):
    job = _job()
    jobs.get_by_id.return_value = job
    before = utcnow()

    await queue.mark_as_failed(job.id, "SMTP send failed")

    assert job.status == EmailJobStatus.RETRYING.value
    assert job.retry_count == 1
    assert job.last_error == "SMTP send failed"
    assert job.scheduled_for >= before + timedelta(minutes=1)

    await queue.mark_as_failed(job.id, "SMTP send failed")
    assert job.scheduled_for >= before + timedelta(minutes=5)


@pytest.mark.asyncio
async def test_failure_becomes_terminal_after_max_attempts(queue, jobs, secure_log):
    job = _job(retry_count=2)
    jobs.get_by_id.return_value = job

    await queue.mark_as_failed(job.id, "boom")

    assert job.status == EmailJobStatus.FAILED.value
    assert job.retry_count == 3
    secure_log.log_error.assert_awaited_once()


@pytest.mark.asyncio
async def test_mark_as_sent(queue, jobs):
    job = _job(last_error="old")
    jobs.get_by_id.return_value = job

    await queue.mark_as_sent(job.id)

    assert job.status == EmailJobStatus.SENT.value
    assert job.sent_at is not None
    assert job.last_error is None


@pytest.mark.asyncio
async def test_permanent_failure_skips_retry(queue, jobs):
    job = _job()
    jobs.get_by_id.return_value = job

    await queue.mark_as_permanently_failed(job.id, "Template not found: nope")

    assert job.status == EmailJobStatus.FAILED.value
    assert job.retry_count == 0


@pytest.mark.asyncio
async def test_unknown_job_is_ignored(queue, jobs):
    jobs.get_by_id.return_value = None
    assert await queue.mark_as_failed(99, "x") is None
    await queue.mark_as_sent(99)
    jobs.save.assert_not_awaited()
