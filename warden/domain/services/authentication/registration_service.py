"""Self-service account registration.

Registration never reveals whether an email address or a username is
already taken: both collisions return the same success outcome as a real
registration after a cryptographically jittered delay, and only the audit
log records which field collided.
"""

import structlog

from warden.core.exceptions import DuplicateUserError
from warden.domain.security.data_protection import ANONYMOUS, SYSTEM
from warden.domain.security.enumeration import apply_random_delay
from warden.domain.services.authentication.email_verification_service import EmailVerificationService
from warden.domain.services.identity.identity_service import IdentityService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.domain.services.security.session_context import SessionContext

logger = structlog.get_logger(__name__)

LOG_CONTEXT = "AuthController"
REGISTERED_MESSAGE = "Registration successful. Please check your email to verify your account."


class RegistrationService:
    def __init__(
        self,
        identity: IdentityService,
        email_verification: EmailVerificationService,
        secure_log: SecureLogService,
    ):
        self._identity = identity
        self._verification = email_verification
        self._log = secure_log

    async def register(self, username: str, email: str, password: str, context: SessionContext) -> None:
        """Create an unconfirmed account and send the verification email.

        Raises:
            ValidationError: If the username is malformed.
            PasswordPolicyError: If the password is too weak.
        """
        username = self._identity.validate_username(username)
        self._identity.password_policy.validate(password)

        if await self._identity.find_by_email(email) is not None:
            await self._reject_duplicate("Registration attempt with existing email")
            return
        if await self._identity.find_by_username(username) is not None:
            await self._reject_duplicate("Registration attempt with existing username")
            return

        try:
            user = await self._identity.create_user(username, email, password)
        except DuplicateUserError:
            # Lost a race with a concurrent registration for the same name or address.
            await self._reject_duplicate("Registration attempt with existing username or email")
            return

        await self._verification.send_verification_email(user, context.base_url, triggered_by=SYSTEM)
        await self._log.log_audit("RegisterSuccess", LOG_CONTEXT, "New user registered", user.email)
        logger.info("user_registered", user_id=user.id)

    async def _reject_duplicate(self, message: str) -> None:
        await self._log.log_audit("RegisterAttempt", LOG_CONTEXT, message, ANONYMOUS)
        await apply_random_delay()
