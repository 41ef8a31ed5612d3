"""Two-factor enrollment, self-service disable and administrative overrides."""

from typing import List, Tuple

import structlog

from warden.core.exceptions import (
    TokenInvalidError,
    TwoFactorEnforcedError,
    UserNotFoundError,
    ValidationError,
)
from warden.domain.entities import TwoFactorMethod, User
from warden.domain.services.authentication.code_delivery import TwoFactorCodeSender
from warden.domain.services.email.security_notification_service import SecurityNotificationService
from warden.domain.services.identity.identity_service import IdentityService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.domain.services.security.session_context import SessionContext
from warden.domain.services.security.session_management_service import SessionManagementService
from warden.domain.services.security.temporary_token_service import TemporaryTokenService
from warden.domain.value_objects.token_purpose import TokenPurpose

logger = structlog.get_logger(__name__)

LOG_CONTEXT = "AuthController"


class TwoFactorService:
    def __init__(
        self,
        identity: IdentityService,
        sessions: SessionManagementService,
        temporary_tokens: TemporaryTokenService,
        code_sender: TwoFactorCodeSender,
        notifications: SecurityNotificationService,
        secure_log: SecureLogService,
    ):
        self._identity = identity
        self._sessions = sessions
        self._tokens = temporary_tokens
        self._code_sender = code_sender
        self._notifications = notifications
        self._log = secure_log

    async def setup_authenticator(self, user: User) -> Tuple[str, str]:
        """Generate a new shared secret. Returns ``(otpauth_uri, key)``.

        2FA stays off until ``verify_authenticator_setup`` accepts a code.
        """
        key = await self._identity.reset_authenticator_key(user)
        await self._log.log_audit(
            "Setup2FAAuthenticator", LOG_CONTEXT, "User initiated authenticator 2FA setup", user.email
        )
        return self._identity.authenticator_uri(user, key), key

    async def verify_authenticator_setup(self, user: User, code: str) -> List[str]:
        """Raises:
            ValidationError: If the code does not match the new secret.
        """
        if not self._identity.verify_totp(user, code):
            await self._log.log_audit(
                "VerifyAuthenticatorSetup", LOG_CONTEXT, "Failed to verify authenticator setup code", user.email
            )
            raise ValidationError("Invalid verification code", field="code")

        await self._identity.enable_two_factor(user, TwoFactorMethod.AUTHENTICATOR)
        recovery_codes = await self._identity.generate_recovery_codes(user)
        await self._log.log_audit(
            "VerifyAuthenticatorSetup", LOG_CONTEXT, "Authenticator 2FA setup completed successfully", user.email
        )
        return recovery_codes

    async def setup_email(self, user: User, context: SessionContext) -> None:
        await self._code_sender.send(
            user, TokenPurpose.EMAIL_TWO_FACTOR_SETUP, "Setup Two-Factor Authentication", context.client_ip
        )
        await self._log.log_audit(
            "Setup2FAEmail", LOG_CONTEXT, "User initiated email 2FA setup, code sent", user.email
        )

    async def verify_email_setup(self, user: User, code: str) -> List[str]:
        """Raises:
            TokenInvalidError: If the emailed code is wrong, expired or used up.
        """
        if not await self._tokens.validate_and_consume_token(user, TokenPurpose.EMAIL_TWO_FACTOR_SETUP, code):
            await self._log.log_audit(
                "VerifyEmailSetup", LOG_CONTEXT, "Failed to verify email setup code - invalid or expired", user.email
            )
            raise TokenInvalidError("Invalid or expired verification code")

        await self._identity.enable_two_factor(user, TwoFactorMethod.EMAIL)
        recovery_codes = await self._identity.generate_recovery_codes(user)
        await self._log.log_audit("VerifyEmailSetup", LOG_CONTEXT, "Email 2FA setup completed successfully", user.email)
        return recovery_codes

    async def disable(self, user: User, context: SessionContext) -> None:
        """Raises:
            TwoFactorEnforcedError: If an administrator enforces 2FA for this user.
        """
        if user.two_factor_enforced:
            await self._log.log_audit("Disable2FA", LOG_CONTEXT, "User attempted to disable enforced 2FA", user.email)
            raise TwoFactorEnforcedError()

        await self._identity.disable_two_factor(user)
        await self._notifications.notify_two_factor_disabled(user, context.client_ip)
        await self._log.log_audit("Disable2FA", LOG_CONTEXT, "User disabled 2FA", user.email)

    async def admin_reset(self, admin: User, user_id: int) -> User:
        """Clear another user's 2FA regardless of enforcement.

        The target's security stamp rotates, which ends their sessions.

        Raises:
            UserNotFoundError: If ``user_id`` does not exist.
        """
        target = await self._identity.find_by_id(user_id)
        if target is None:
            await self._log.log_error(
                "Reset2FA", LOG_CONTEXT, f"Attempted to reset 2FA for non-existent user ID: {user_id}", admin.email
            )
            raise UserNotFoundError()

        await self._identity.disable_two_factor(target)
        await self._sessions.refresh_security_stamp(target, "Two-factor authentication reset by administrator")
        await self._notifications.notify_two_factor_reset_by_admin(target, admin)
        await self._log.log_audit(
            "Reset2FA",
            LOG_CONTEXT,
            f"Admin reset 2FA and disabled 2fa for user ID: {target.id}",
            admin.email,
        )
        return target

    async def set_enforced(self, admin: User, user_id: int, enforced: bool) -> User:
        """Raises:
            UserNotFoundError: If ``user_id`` does not exist.
        """
        target = await self._identity.find_by_id(user_id)
        if target is None:
            raise UserNotFoundError()
        await self._identity.set_two_factor_enforced(target, enforced)
        await self._log.log_audit(
            "Enforce2FA",
            "AdminUsersController",
            f"Admin {'enabled' if enforced else 'disabled'} 2FA enforcement for user ID: {target.id}",
            admin.email,
        )
        return target
