"""AuditInvestigationService against the real log repository."""

import pytest

from tests.factories.user import create_fake_user
from warden.core.exceptions import UserNotFoundError, ValidationError
from warden.domain.security.data_protection import DataProtectionService
from warden.domain.services.audit.audit_investigation_service import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    AuditInvestigationService,
    normalize_limit,
)
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.infrastructure.repositories import LogRepository


@pytest.fixture
def protection():
    return DataProtectionService()


@pytest.fixture
def secure_log(db_session, protection):
    return SecureLogService(LogRepository(db_session), protection)


@pytest.fixture
def audit(db_session, protection, secure_log):
    return AuditInvestigationService(LogRepository(db_session), protection, secure_log)


@pytest.fixture
def investigator():
    return create_fake_user(username="auditor", email="auditor@example.com")


@pytest.mark.parametrize("limit,expected", [(None, DEFAULT_LIMIT), (0, DEFAULT_LIMIT), (-5, DEFAULT_LIMIT), (10, 10), (5000, MAX_LIMIT)])
def test_normalize_limit(limit, expected):
    assert normalize_limit(limit) == expected


@pytest.mark.asyncio
async def test_list_without_decryption_shows_pseudonyms(audit, secure_log, investigator):
    await secure_log.log_audit("LoginSuccess", "AuthController", "User logged in", "alice@example.com")

    views = await audit.list_audit_logs(investigator)

    login = next(view for view in views if view.log.action == "LoginSuccess")
    assert login.decrypted_user is None
    assert login.has_encrypted_info
    assert "alice" not in login.log.user


@pytest.mark.asyncio
async def test_decryption_requires_justification(audit, investigator):
    with pytest.raises(ValidationError):
        await audit.list_audit_logs(investigator, decrypt=True, justification="  ")


@pytest.mark.asyncio
async def test_list_with_decryption_reveals_identity_and_is_audited(audit, secure_log, investigator):
    await secure_log.log_audit("LoginSuccess", "AuthController", "User logged in", "alice@example.com")

    views = await audit.list_audit_logs(investigator, decrypt=True, justification="Incident 42 review")

    login = next(view for view in views if view.log.action == "LoginSuccess")
    assert login.decrypted_user == "alice@example.com"
    again = await audit.list_audit_logs(investigator)
    access = next(view.log for view in again if view.log.action == "GetAuditLogs")
    assert "Incident 42 review" in access.message


@pytest.mark.asyncio
async def test_list_is_newest_first_and_audit_only(audit, secure_log, investigator):
    await secure_log.log_mail("Enqueue", "EmailService", "queued")
    await secure_log.log_audit("First", "Test", "one")
    await secure_log.log_audit("Second", "Test", "two")

    views = await audit.list_audit_logs(investigator, limit=2)

    assert [view.log.action for view in views] == ["Second", "First"]


@pytest.mark.asyncio
async def test_decrypt_entry(audit, secure_log, investigator):
    entry = await secure_log.log_audit("LoginSuccess", "AuthController", "User logged in", "alice@example.com")

    decrypted = await audit.decrypt_entry(investigator, entry.id, "Incident 42 review")

    assert decrypted.decrypted_user == "alice@example.com"
    assert decrypted.decrypted_by == "auditor"


@pytest.mark.asyncio
async def test_decrypt_entry_errors(audit, secure_log, investigator):
    with pytest.raises(UserNotFoundError):
        await audit.decrypt_entry(investigator, 9999, "Incident 42 review")

    anonymous = await secure_log.log_audit("LoginAttempt", "AuthController", "Unknown user")
    with pytest.raises(ValidationError):
        await audit.decrypt_entry(investigator, anonymous.id, "Incident 42 review")


@pytest.mark.asyncio
async def test_search_by_pseudonym(audit, secure_log, protection, investigator):
    await secure_log.log_audit("A", "Test", "one", "alice@example.com")
    await secure_log.log_mail("B", "Test", "two", "alice@example.com")
    await secure_log.log_audit("C", "Test", "three", "bob@example.com")

    logs = await audit.search_by_pseudonym(investigator, protection.pseudonymize_email("alice@example.com"))

    assert {log.action for log in logs} == {"A", "B"}
