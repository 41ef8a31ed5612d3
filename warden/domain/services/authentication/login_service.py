"""Login, second-factor completion and logout.

State machine for one sign-in attempt::

    Anonymous -> CredentialsSubmitted -> Locked
                                       | Rejected
                                       | TwoFactorRequired(Email | Authenticator)
                                       | Setup2FARequired
                                       | Authenticated

No session cookie exists until ``Authenticated`` or ``Setup2FARequired``.
For either 2FA method a short-lived signed challenge cookie remembers which
user passed the password step; it never authenticates anything by itself.
It is what lets an email-2FA user fall back to a recovery code.
Every branch writes exactly one audit or error entry describing the outcome.
"""

import hashlib
from dataclasses import dataclass
from typing import Optional

import structlog

from warden.core.config.settings import settings
from warden.core.exceptions import (
    AccountLockedError,
    AuthenticationError,
    InvalidCredentialsError,
    InvalidTwoFactorCodeError,
)
from warden.domain.entities import TwoFactorMethod, User
from warden.domain.security.data_protection import ANONYMOUS
from warden.domain.security.signed_tokens import SignedTokenService
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
TWO_FACTOR_CHALLENGE_PURPOSE = "two-factor-challenge"


@dataclass(frozen=True)
class LoginResult:
    user: User
    requires_two_factor: bool = False
    two_factor_method: Optional[TwoFactorMethod] = None
    needs_setup_2fa: bool = False

    @property
    def authenticated(self) -> bool:
        return not self.requires_two_factor


def _stamp_fingerprint(stamp: str) -> str:
    return hashlib.sha256(stamp.encode("utf-8")).hexdigest()[:16]


class LoginService:
    def __init__(
        self,
        identity: IdentityService,
        sessions: SessionManagementService,
        temporary_tokens: TemporaryTokenService,
        code_sender: TwoFactorCodeSender,
        notifications: SecurityNotificationService,
        signed_tokens: SignedTokenService,
        secure_log: SecureLogService,
    ):
        self._identity = identity
        self._sessions = sessions
        self._tokens = temporary_tokens
        self._code_sender = code_sender
        self._notifications = notifications
        self._signed = signed_tokens
        self._log = secure_log

    async def login(self, login: str, password: str, remember_me: bool, context: SessionContext) -> LoginResult:
        """Run the password step.

        Raises:
            InvalidCredentialsError: Unknown user, wrong password or login not allowed.
            AccountLockedError: The account is, or just became, locked out.
        """
        user = await self._identity.find_by_login(login)
        if user is None:
            await self._log.log_audit(
                "LoginAttempt", LOG_CONTEXT, "Failed login attempt for non-existent user", ANONYMOUS
            )
            raise InvalidCredentialsError()

        result = await self._identity.check_password_sign_in(user, password)

        if result.requires_two_factor:
            return await self._start_two_factor(user, context)

        if not result.succeeded:
            if result.is_locked_out:
                failed_attempts = settings.LOCKOUT_MAX_FAILED_ATTEMPTS
                await self._notifications.notify_account_lockout(user, failed_attempts, context.client_ip)
                await self._log.log_audit(
                    "LoginAttempt",
                    LOG_CONTEXT,
                    f"Account locked out after {failed_attempts} failed attempts",
                    user.email,
                )
                raise AccountLockedError()

            reason = "Login not allowed" if result.is_not_allowed else "Invalid credentials"
            await self._log.log_audit("LoginAttempt", LOG_CONTEXT, f"Failed login attempt: {reason}", user.email)
            raise InvalidCredentialsError()

        await self._sessions.regenerate_cookie(user, context, remember_me, "Successful login")

        if user.two_factor_enforced and not user.two_factor_enabled:
            await self._log.log_audit(
                "LoginSuccess", LOG_CONTEXT, "User logged in but needs to set up 2FA", user.email
            )
            return LoginResult(user=user, needs_setup_2fa=True)

        await self._log.log_audit("LoginSuccess", LOG_CONTEXT, "User successfully logged in", user.email)
        return LoginResult(user=user)

    async def _start_two_factor(self, user: User, context: SessionContext) -> LoginResult:
        self._issue_challenge(user, context)

        if user.method == TwoFactorMethod.EMAIL:
            await self._code_sender.send(
                user,
                TokenPurpose.EMAIL_TWO_FACTOR_LOGIN,
                "Your Two-Factor Authentication Code",
                context.client_ip,
            )
            await self._log.log_audit(
                "LoginAttempt", LOG_CONTEXT, "Login successful, 2FA email code sent", user.email
            )
            return LoginResult(user=user, requires_two_factor=True, two_factor_method=TwoFactorMethod.EMAIL)

        await self._log.log_audit("LoginAttempt", LOG_CONTEXT, "Login successful, 2FA required", user.email)
        return LoginResult(user=user, requires_two_factor=True, two_factor_method=TwoFactorMethod.AUTHENTICATOR)

    def _issue_challenge(self, user: User, context: SessionContext) -> None:
        challenge = self._signed.dumps(
            TWO_FACTOR_CHALLENGE_PURPOSE,
            {"uid": user.id, "fp": _stamp_fingerprint(user.security_stamp)},
        )
        context.two_factor_token = challenge
        context.set_cookie(
            settings.TWO_FACTOR_COOKIE_NAME,
            challenge,
            max_age=settings.TWO_FACTOR_CHALLENGE_MINUTES * 60,
            samesite="strict",
        )

    async def _challenged_user(self, context: SessionContext) -> Optional[User]:
        data = self._signed.loads(
            TWO_FACTOR_CHALLENGE_PURPOSE,
            context.two_factor_token,
            settings.TWO_FACTOR_CHALLENGE_MINUTES * 60,
        )
        if data is None:
            return None
        user = await self._identity.find_by_id(int(data.get("uid", 0)))
        if user is None or data.get("fp") != _stamp_fingerprint(user.security_stamp):
            return None
        return user

    async def _complete_challenge(self, user: User, context: SessionContext, reason: str) -> None:
        context.two_factor_token = None
        context.delete_cookie(settings.TWO_FACTOR_COOKIE_NAME, samesite="strict")
        await self._sessions.regenerate_cookie(user, context, True, reason)

    async def verify_authenticator(self, code: str, context: SessionContext) -> User:
        """Complete ``TwoFactorRequired(Authenticator)`` with a TOTP code.

        Raises:
            AuthenticationError: No valid pending challenge.
            InvalidTwoFactorCodeError: The code does not verify.
        """
        user = await self._challenged_user(context)
        if user is None:
            await self._log.log_error(
                "2FAVerification", LOG_CONTEXT, "No pending 2FA challenge for authenticator verification"
            )
            raise AuthenticationError("Invalid 2FA session")

        if not self._identity.verify_totp(user, code):
            await self._log.log_audit(
                "2FAVerification", LOG_CONTEXT, "Failed 2FA authenticator verification attempt", user.email
            )
            raise InvalidTwoFactorCodeError()

        await self._complete_challenge(user, context, "Successful 2FA verification")
        await self._log.log_audit(
            "2FAVerification", LOG_CONTEXT, "Successful 2FA authenticator verification", user.email
        )
        return user

    async def verify_recovery_code(self, recovery_code: str, context: SessionContext) -> User:
        """Complete either ``TwoFactorRequired`` state with a single-use recovery code."""
        user = await self._challenged_user(context)
        if user is None:
            await self._log.log_error(
                "2FARecoveryCode", LOG_CONTEXT, "No pending 2FA challenge for recovery code verification"
            )
            raise AuthenticationError("Invalid 2FA session")

        if not await self._identity.redeem_recovery_code(user, recovery_code):
            await self._log.log_audit(
                "2FARecoveryCode", LOG_CONTEXT, "Failed 2FA recovery code verification attempt", user.email
            )
            raise InvalidTwoFactorCodeError("Invalid recovery code")

        await self._complete_challenge(user, context, "Successful recovery code verification")
        remaining = await self._identity.count_recovery_codes(user)
        await self._notifications.notify_suspicious_activity(
            user,
            "Recovery Code Used",
            f"A recovery code was used to sign in to your account. {remaining} recovery codes remain.",
            context.client_ip,
        )
        await self._log.log_audit(
            "2FARecoveryCode",
            LOG_CONTEXT,
            f"Successful 2FA recovery code verification, {remaining} codes remaining",
            user.email,
        )
        return user

    async def verify_email_code(self, email: str, code: str, context: SessionContext) -> User:
        """Complete ``TwoFactorRequired(Email)``.

        The user is looked up by the posted email, so the pending challenge
        cookie is not required here; it is cleared on success.

        Raises:
            AuthenticationError: Unknown email.
            InvalidTwoFactorCodeError: Wrong, expired or exhausted code.
        """
        user = await self._identity.find_by_email(email)
        if user is None:
            await self._log.log_error(
                "2FAEmailVerification", LOG_CONTEXT, "User not found for email 2FA verification"
            )
            raise AuthenticationError("Invalid 2FA session")

        if not await self._tokens.validate_and_consume_token(user, TokenPurpose.EMAIL_TWO_FACTOR_LOGIN, code):
            await self._log.log_audit(
                "2FAEmailVerification",
                LOG_CONTEXT,
                "Failed 2FA email verification - invalid or expired code",
                user.email,
            )
            raise InvalidTwoFactorCodeError("Invalid or expired 2FA code")

        await self._complete_challenge(user, context, "Successful 2FA email verification")
        await self._log.log_audit("2FAEmailVerification", LOG_CONTEXT, "Successful 2FA email verification", user.email)
        return user

    async def logout(self, context: SessionContext) -> None:
        user = await self._sessions.authenticate(context)
        await self._sessions.sign_out(context)
        await self._log.log_audit(
            "Logout",
            LOG_CONTEXT,
            "User logged out successfully",
            user.email if user is not None else ANONYMOUS,
        )
