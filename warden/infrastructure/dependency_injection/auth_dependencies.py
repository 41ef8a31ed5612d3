"""Dependency factories for the domain services.

Each factory builds one service from its collaborators, all sharing the
request's database session. FastAPI caches dependencies per request, so one
request gets exactly one instance of each service and repository.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from warden.domain.interfaces.repositories import (
    IEmailJobRepository,
    ILogRepository,
    ISessionRepository,
    IUserRepository,
    IUserTokenRepository,
)
from warden.domain.security.code_generator import SecureCodeGenerator
from warden.domain.security.data_protection import DataProtectionService
from warden.domain.security.signed_tokens import SignedTokenService
from warden.domain.services.audit.audit_investigation_service import AuditInvestigationService
from warden.domain.services.authentication.code_delivery import TwoFactorCodeSender
from warden.domain.services.authentication.email_verification_service import EmailVerificationService
from warden.domain.services.authentication.login_service import LoginService
from warden.domain.services.authentication.password_change_service import PasswordChangeService
from warden.domain.services.authentication.password_reset_service import PasswordResetService
from warden.domain.services.authentication.registration_service import RegistrationService
from warden.domain.services.authentication.two_factor_service import TwoFactorService
from warden.domain.services.email.email_queue_service import EmailQueueService
from warden.domain.services.email.security_notification_service import SecurityNotificationService
from warden.domain.services.identity.identity_service import IdentityService
from warden.domain.services.security.csrf_service import CsrfService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.domain.services.security.session_management_service import SessionManagementService
from warden.domain.services.security.temporary_token_service import TemporaryTokenService
from warden.infrastructure.database.async_db import get_db_session
from warden.infrastructure.repositories import (
    EmailJobRepository,
    LogRepository,
    SessionRepository,
    UserRepository,
    UserTokenRepository,
)

# ---------------------------------------------------------------------------
# Type aliases for dependency injection
# ---------------------------------------------------------------------------

AsyncDB = Annotated[AsyncSession, Depends(get_db_session)]

# ---------------------------------------------------------------------------
# Stateless singletons
# ---------------------------------------------------------------------------

_data_protection = None
_signed_tokens = None
_code_generator = SecureCodeGenerator()


def get_data_protection() -> DataProtectionService:
    global _data_protection
    if _data_protection is None:
        _data_protection = DataProtectionService()
    return _data_protection


def get_signed_tokens() -> SignedTokenService:
    global _signed_tokens
    if _signed_tokens is None:
        _signed_tokens = SignedTokenService()
    return _signed_tokens


def get_code_generator() -> SecureCodeGenerator:
    return _code_generator


DataProtection = Annotated[DataProtectionService, Depends(get_data_protection)]
SignedTokens = Annotated[SignedTokenService, Depends(get_signed_tokens)]
CodeGenerator = Annotated[SecureCodeGenerator, Depends(get_code_generator)]

# ---------------------------------------------------------------------------
# Infrastructure Layer Dependencies
# ---------------------------------------------------------------------------


def get_user_repository(db: AsyncDB) -> IUserRepository:
    return UserRepository(db)


def get_user_token_repository(db: AsyncDB) -> IUserTokenRepository:
    return UserTokenRepository(db)


def get_session_repository(db: AsyncDB) -> ISessionRepository:
    return SessionRepository(db)


def get_log_repository(db: AsyncDB) -> ILogRepository:
    return LogRepository(db)


def get_email_job_repository(db: AsyncDB) -> IEmailJobRepository:
    return EmailJobRepository(db)


# ---------------------------------------------------------------------------
# Security and identity services
# ---------------------------------------------------------------------------


def get_secure_log_service(
    log_repository: Annotated[ILogRepository, Depends(get_log_repository)],
    data_protection: DataProtection,
) -> SecureLogService:
    return SecureLogService(log_repository, data_protection)


SecureLog = Annotated[SecureLogService, Depends(get_secure_log_service)]


def get_identity_service(
    user_repository: Annotated[IUserRepository, Depends(get_user_repository)],
    token_repository: Annotated[IUserTokenRepository, Depends(get_user_token_repository)],
    signed_tokens: SignedTokens,
    code_generator: CodeGenerator,
) -> IdentityService:
    return IdentityService(user_repository, token_repository, signed_tokens, code_generator)


Identity = Annotated[IdentityService, Depends(get_identity_service)]


def get_temporary_token_service(
    token_repository: Annotated[IUserTokenRepository, Depends(get_user_token_repository)],
    secure_log: SecureLog,
) -> TemporaryTokenService:
    return TemporaryTokenService(token_repository, secure_log)


TemporaryTokens = Annotated[TemporaryTokenService, Depends(get_temporary_token_service)]


def get_session_management_service(
    identity: Identity,
    session_repository: Annotated[ISessionRepository, Depends(get_session_repository)],
    secure_log: SecureLog,
) -> SessionManagementService:
    return SessionManagementService(identity, session_repository, secure_log)


SessionManagement = Annotated[SessionManagementService, Depends(get_session_management_service)]


def get_csrf_service(signed_tokens: SignedTokens) -> CsrfService:
    return CsrfService(signed_tokens)


Csrf = Annotated[CsrfService, Depends(get_csrf_service)]

# ---------------------------------------------------------------------------
# Email services
# ---------------------------------------------------------------------------


def get_email_queue_service(
    job_repository: Annotated[IEmailJobRepository, Depends(get_email_job_repository)],
    secure_log: SecureLog,
) -> EmailQueueService:
    return EmailQueueService(job_repository, secure_log)


EmailQueue = Annotated[EmailQueueService, Depends(get_email_queue_service)]


def get_security_notification_service(email_queue: EmailQueue, secure_log: SecureLog) -> SecurityNotificationService:
    return SecurityNotificationService(email_queue, secure_log)


Notifications = Annotated[SecurityNotificationService, Depends(get_security_notification_service)]


def get_two_factor_code_sender(
    code_generator: CodeGenerator,
    temporary_tokens: TemporaryTokens,
    email_queue: EmailQueue,
) -> TwoFactorCodeSender:
    return TwoFactorCodeSender(code_generator, temporary_tokens, email_queue)


CodeSender = Annotated[TwoFactorCodeSender, Depends(get_two_factor_code_sender)]

# ---------------------------------------------------------------------------
# Authentication flows
# ---------------------------------------------------------------------------


def get_login_service(
    identity: Identity,
    sessions: SessionManagement,
    temporary_tokens: TemporaryTokens,
    code_sender: CodeSender,
    notifications: Notifications,
    signed_tokens: SignedTokens,
    secure_log: SecureLog,
) -> LoginService:
    return LoginService(identity, sessions, temporary_tokens, code_sender, notifications, signed_tokens, secure_log)


def get_two_factor_service(
    identity: Identity,
    sessions: SessionManagement,
    temporary_tokens: TemporaryTokens,
    code_sender: CodeSender,
    notifications: Notifications,
    secure_log: SecureLog,
) -> TwoFactorService:
    return TwoFactorService(identity, sessions, temporary_tokens, code_sender, notifications, secure_log)


def get_email_verification_service(
    identity: Identity,
    temporary_tokens: TemporaryTokens,
    email_queue: EmailQueue,
    code_generator: CodeGenerator,
    secure_log: SecureLog,
) -> EmailVerificationService:
    return EmailVerificationService(identity, temporary_tokens, email_queue, code_generator, secure_log)


EmailVerification = Annotated[EmailVerificationService, Depends(get_email_verification_service)]


def get_registration_service(
    identity: Identity,
    email_verification: EmailVerification,
    secure_log: SecureLog,
) -> RegistrationService:
    return RegistrationService(identity, email_verification, secure_log)


def get_password_reset_service(
    identity: Identity,
    temporary_tokens: TemporaryTokens,
    email_queue: EmailQueue,
    notifications: Notifications,
    code_generator: CodeGenerator,
    secure_log: SecureLog,
) -> PasswordResetService:
    return PasswordResetService(identity, temporary_tokens, email_queue, notifications, code_generator, secure_log)


def get_password_change_service(
    identity: Identity,
    sessions: SessionManagement,
    notifications: Notifications,
    secure_log: SecureLog,
) -> PasswordChangeService:
    return PasswordChangeService(identity, sessions, notifications, secure_log)


def get_audit_investigation_service(
    log_repository: Annotated[ILogRepository, Depends(get_log_repository)],
    data_protection: DataProtection,
    secure_log: SecureLog,
) -> AuditInvestigationService:
    return AuditInvestigationService(log_repository, data_protection, secure_log)


CleanLoginService = Annotated[LoginService, Depends(get_login_service)]
CleanTwoFactorService = Annotated[TwoFactorService, Depends(get_two_factor_service)]
CleanRegistrationService = Annotated[RegistrationService, Depends(get_registration_service)]
CleanEmailVerificationService = EmailVerification
CleanPasswordResetService = Annotated[PasswordResetService, Depends(get_password_reset_service)]
CleanPasswordChangeService = Annotated[PasswordChangeService, Depends(get_password_change_service)]
CleanAuditInvestigationService = Annotated[AuditInvestigationService, Depends(get_audit_investigation_service)]
