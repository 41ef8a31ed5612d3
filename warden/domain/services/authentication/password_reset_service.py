"""Forgotten-password recovery.

The reset email carries two independent proofs: a signed link token and a
6-digit code. ``reset_password`` accepts either. Each proof is a verifier
that either authorizes the reset or does not; the first one that succeeds
wins, and failures of both collapse into one generic error.
"""

from datetime import timedelta
from typing import Awaitable, Callable, List, Optional
from urllib.parse import quote

import structlog

from warden.core.config.settings import settings
from warden.core.exceptions import TokenInvalidError
from warden.domain.entities import User
from warden.domain.security.code_generator import SecureCodeGenerator
from warden.domain.security.data_protection import ANONYMOUS, SYSTEM
from warden.domain.services.email.email_queue_service import EmailQueueService
from warden.domain.services.email.security_notification_service import SecurityNotificationService
from warden.domain.services.identity.identity_service import IdentityService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.domain.services.security.session_context import SessionContext
from warden.domain.services.security.temporary_token_service import TemporaryTokenService
from warden.domain.value_objects.token_purpose import TokenPurpose
from warden.utils.clock import utcnow

logger = structlog.get_logger(__name__)

LOG_CONTEXT = "AuthController"
FORGOT_MESSAGE = "If this email is registered, a password reset link will be sent."
RESET_MESSAGE = "Password reset successful. You can now log in with your new password."
INVALID_RESET_MESSAGE = "Invalid or expired reset token/code"

# A verifier returns a currently valid reset token for the user, or None.
ResetVerifier = Callable[[User], Awaitable[Optional[str]]]


class PasswordResetService:
    def __init__(
        self,
        identity: IdentityService,
        temporary_tokens: TemporaryTokenService,
        email_queue: EmailQueueService,
        notifications: SecurityNotificationService,
        code_generator: SecureCodeGenerator,
        secure_log: SecureLogService,
    ):
        self._identity = identity
        self._tokens = temporary_tokens
        self._queue = email_queue
        self._notifications = notifications
        self._codes = code_generator
        self._log = secure_log

    async def forgot_password(self, email: str, context: SessionContext) -> None:
        """Email a reset link and code to confirmed accounts. Always looks the same to the caller."""
        user = await self._identity.find_by_email(email)
        if user is None:
            await self._log.log_audit(
                "ForgotPassword", LOG_CONTEXT, "Password reset attempted for non-existent email", ANONYMOUS
            )
            return
        if not user.email_confirmed:
            await self._log.log_audit(
                "ForgotPassword", LOG_CONTEXT, "Password reset attempted for unconfirmed email", user.email
            )
            return

        reset_token = self._identity.generate_password_reset_token(user)
        code = self._codes.generate_numeric_code(6)
        minutes = settings.PASSWORD_RESET_CODE_MINUTES
        await self._tokens.store_token(user, TokenPurpose.PASSWORD_RESET, code, timedelta(minutes=minutes))

        base_url = context.base_url.rstrip("/")
        await self._queue.enqueue(
            "password-reset",
            "Password Reset Request",
            user.email,
            {
                "app_name": settings.APP_NAME,
                "user_name": user.username,
                "reset_url": (
                    f"{base_url}/#/reset-password?token={quote(reset_token, safe='')}"
                    f"&email={quote(user.email, safe='')}"
                ),
                "reset_token": code,
                "expiry_minutes": minutes,
                "current_year": utcnow().year,
            },
            to_name=user.username,
            triggered_by=SYSTEM,
        )
        await self._log.log_audit("ForgotPasswordSuccess", LOG_CONTEXT, "Password reset email sent", user.email)

    def _link_token_verifier(self, token: Optional[str]) -> ResetVerifier:
        async def verify(user: User) -> Optional[str]:
            if token and self._identity.verify_password_reset_token(user, token):
                return token
            return None

        return verify

    def _code_verifier(self, code: Optional[str]) -> ResetVerifier:
        async def verify(user: User) -> Optional[str]:
            if code and await self._tokens.validate_and_consume_token(user, TokenPurpose.PASSWORD_RESET, code):
                return self._identity.generate_password_reset_token(user)
            return None

        return verify

    async def reset_password(
        self,
        email: str,
        new_password: str,
        context: SessionContext,
        token: Optional[str] = None,
        code: Optional[str] = None,
    ) -> None:
        """Set a new password given either proof from the reset email.

        The link token is tried first so that a valid link never burns a code
        attempt. A successful reset rotates the security stamp, ending every
        session and every outstanding reset token.

        Raises:
            PasswordPolicyError: If ``new_password`` is too weak.
            TokenInvalidError: Unknown email, or neither proof verifies.
        """
        self._identity.password_policy.validate(new_password)

        user = await self._identity.find_by_email(email)
        if user is None:
            await self._log.log_error("ResetPassword", LOG_CONTEXT, "Password reset attempted for non-existent email")
            raise TokenInvalidError(INVALID_RESET_MESSAGE)

        verifiers: List[ResetVerifier] = [self._link_token_verifier(token), self._code_verifier(code)]
        succeeded = False
        for verify in verifiers:
            reset_token = await verify(user)
            if reset_token is not None and await self._identity.reset_password(user, reset_token, new_password):
                succeeded = True
                break

        if not succeeded:
            await self._log.log_audit(
                "ResetPasswordFailed",
                LOG_CONTEXT,
                "Password reset failed - invalid or expired token/code",
                user.email,
            )
            raise TokenInvalidError(INVALID_RESET_MESSAGE)

        await self._tokens.remove_token(user, TokenPurpose.PASSWORD_RESET)
        await self._notifications.notify_password_changed(user, context.client_ip)
        await self._log.log_audit("ResetPasswordSuccess", LOG_CONTEXT, "Password reset successful", user.email)
