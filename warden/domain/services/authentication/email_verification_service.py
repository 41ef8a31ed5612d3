"""Email address verification.

Two independent proofs confirm an address: the signed link token and the
6-digit code from the same email. Either one is enough; whichever is used
first wins and the other becomes moot because the account is confirmed.
"""

from datetime import timedelta
from urllib.parse import quote

import structlog

from warden.core.config.settings import settings
from warden.core.exceptions import EmailAlreadyVerifiedError, TokenInvalidError, ValidationError
from warden.domain.entities import User
from warden.domain.security.code_generator import SecureCodeGenerator
from warden.domain.security.data_protection import ANONYMOUS, SYSTEM
from warden.domain.services.email.email_queue_service import EmailQueueService
from warden.domain.services.identity.identity_service import IdentityService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.domain.services.security.session_context import SessionContext
from warden.domain.services.security.temporary_token_service import TemporaryTokenService
from warden.domain.value_objects.token_purpose import TokenPurpose
from warden.utils.clock import utcnow

logger = structlog.get_logger(__name__)

LOG_CONTEXT = "AuthController"
VERIFIED_MESSAGE = "Email verified successfully. You can now log in."
RESEND_MESSAGE = "If this email is registered, a verification email will be sent."


class EmailVerificationService:
    def __init__(
        self,
        identity: IdentityService,
        temporary_tokens: TemporaryTokenService,
        email_queue: EmailQueueService,
        code_generator: SecureCodeGenerator,
        secure_log: SecureLogService,
    ):
        self._identity = identity
        self._tokens = temporary_tokens
        self._queue = email_queue
        self._codes = code_generator
        self._log = secure_log

    async def send_verification_email(self, user: User, base_url: str, triggered_by: str = SYSTEM) -> None:
        """Issue a new link token and a new code (replacing the previous code) and email both."""
        link_token = self._identity.generate_email_confirmation_token(user)
        code = self._codes.generate_numeric_code(6)
        hours = settings.EMAIL_VERIFICATION_CODE_HOURS
        await self._tokens.store_token(user, TokenPurpose.EMAIL_VERIFICATION, code, timedelta(hours=hours))

        base_url = base_url.rstrip("/")
        await self._queue.enqueue(
            "verify-email",
            "Verify Your Email Address",
            user.email,
            {
                "app_name": settings.APP_NAME,
                "user_name": user.username,
                "verification_code": code,
                "verification_link": f"{base_url}/#/verify-email?token={quote(link_token, safe='')}&userId={user.id}",
                "manual_verification_link": f"{base_url}/#/verify-email",
                "expiry_hours": hours,
                "current_year": utcnow().year,
            },
            to_name=user.username,
            triggered_by=triggered_by,
        )

    async def verify_with_link(self, user_id: int, token: str, context: SessionContext) -> None:
        """Confirm the address with the signed link token.

        Raises:
            ValidationError: Unknown user id.
            EmailAlreadyVerifiedError: Nothing left to confirm.
            TokenInvalidError: The token is forged, expired or stale.
        """
        user = await self._identity.find_by_id(user_id)
        if user is None:
            await self._log.log_error(
                "VerifyEmail", LOG_CONTEXT, f"Email verification attempted for non-existent user ID: {user_id}"
            )
            raise ValidationError("Invalid verification link")

        await self._ensure_unconfirmed(user, "VerifyEmail")

        if not await self._identity.confirm_email(user, token):
            await self._log.log_audit(
                "VerifyEmailFailed", LOG_CONTEXT, "Email verification failed - invalid or expired token", user.email
            )
            raise TokenInvalidError("Invalid or expired verification token")

        await self._tokens.remove_token(user, TokenPurpose.EMAIL_VERIFICATION)
        await self._log.log_audit("VerifyEmailSuccess", LOG_CONTEXT, "Email verified successfully", user.email)
        await self._send_welcome(user, context)

    async def verify_with_code(self, email: str, code: str, context: SessionContext) -> None:
        """Confirm the address with the emailed 6-digit code.

        Raises:
            ValidationError: Unknown email.
            EmailAlreadyVerifiedError: Nothing left to confirm.
            TokenInvalidError: The code is wrong, expired or used up.
        """
        user = await self._identity.find_by_email(email)
        if user is None:
            await self._log.log_error(
                "VerifyEmailCode", LOG_CONTEXT, "Email verification attempted for non-existent email"
            )
            raise ValidationError("Invalid email or code")

        await self._ensure_unconfirmed(user, "VerifyEmailCode")

        if not await self._tokens.validate_and_consume_token(user, TokenPurpose.EMAIL_VERIFICATION, code):
            await self._log.log_audit(
                "VerifyEmailCode", LOG_CONTEXT, "Email verification failed - invalid or expired code", user.email
            )
            raise TokenInvalidError("Invalid or expired verification code")

        await self._identity.mark_email_confirmed(user)
        await self._log.log_audit(
            "VerifyEmailCode", LOG_CONTEXT, "Email verified successfully using code", user.email
        )
        await self._send_welcome(user, context)

    async def resend(self, email: str, context: SessionContext) -> None:
        """Send a fresh verification email. Unknown addresses succeed silently.

        Raises:
            EmailAlreadyVerifiedError: If the account is already confirmed.
        """
        user = await self._identity.find_by_email(email)
        if user is None:
            await self._log.log_audit(
                "ResendVerification", LOG_CONTEXT, "Verification resend attempted for non-existent email", ANONYMOUS
            )
            return

        await self._ensure_unconfirmed(user, "ResendVerification")
        await self.send_verification_email(user, context.base_url, triggered_by=user.email)
        await self._log.log_audit("ResendVerificationSuccess", LOG_CONTEXT, "Verification email resent", user.email)

    async def _ensure_unconfirmed(self, user: User, action: str) -> None:
        if user.email_confirmed:
            await self._log.log_audit(
                action, LOG_CONTEXT, "Email verification attempted for already confirmed user", user.email
            )
            raise EmailAlreadyVerifiedError()

    async def _send_welcome(self, user: User, context: SessionContext) -> None:
        if not settings.SEND_WELCOME_MAIL_AFTER_EMAILCONFIRMATION:
            return
        await self._queue.enqueue(
            "welcome",
            f"Welcome to {settings.APP_NAME}!",
            user.email,
            {
                "user_name": user.username,
                "user_email": user.email,
                "app_name": settings.APP_NAME,
                "login_url": context.base_url,
                "current_year": utcnow().year,
            },
            to_name=user.username,
            triggered_by=user.email,
        )
        await self._log.log_mail("VerifyEmail", LOG_CONTEXT, f"Welcome email queued for user ID {user.id}", user.email)
