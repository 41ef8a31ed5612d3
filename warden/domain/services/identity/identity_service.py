"""Identity store service.

This module owns everything the authentication core consumes from the
persistent identity store: account creation and lookup, lockout-aware
password verification, the security stamp, TOTP authenticator keys,
signed email-confirmation and password-reset tokens, recovery codes and
role assignments.

Security Features:
    - bcrypt password hashing (passlib)
    - Lockout after a configurable number of consecutive failures
    - Link tokens are signed (itsdangerous), purpose-bound and tied to the
      current security stamp, so rotating the stamp revokes them
    - Recovery codes are stored only as SHA-256 digests and redeemed with a
      compare-and-swap so each one works exactly once
"""

import hashlib
import json
import secrets
from datetime import timedelta
from typing import List, Optional
from urllib.parse import quote

import pyotp
import structlog

from warden.core.config.settings import settings
from warden.core.exceptions import DuplicateUserError, ValidationError
from warden.domain.entities import Role, TwoFactorMethod, User
from warden.domain.interfaces.repositories import IUserRepository, IUserTokenRepository
from warden.domain.security.code_generator import SecureCodeGenerator
from warden.domain.security.signed_tokens import SignedTokenService
from warden.domain.services.identity.password_policy import PasswordPolicy
from warden.domain.value_objects.sign_in_result import SignInResult
from warden.utils.clock import utcnow
from warden.utils.security import hash_password, verify_password

logger = structlog.get_logger(__name__)

IDENTITY_PROVIDER = "Identity"
RECOVERY_CODES_SLOT = "RecoveryCodes"
EMAIL_CONFIRMATION_PURPOSE = "email-confirmation"
PASSWORD_RESET_PURPOSE = "password-reset"


def _stamp_fingerprint(stamp: str) -> str:
    return hashlib.sha256(stamp.encode("utf-8")).hexdigest()[:16]


def _hash_recovery_code(code: str) -> str:
    normalized = code.replace(" ", "").strip().upper()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def new_security_stamp() -> str:
    return secrets.token_hex(16)


class IdentityService:
    """Application-facing API of the identity store."""

    def __init__(
        self,
        user_repository: IUserRepository,
        token_repository: IUserTokenRepository,
        signed_tokens: SignedTokenService,
        code_generator: Optional[SecureCodeGenerator] = None,
        password_policy: Optional[PasswordPolicy] = None,
    ):
        self.users = user_repository
        self._tokens = token_repository
        self._signed = signed_tokens
        self._codes = code_generator or SecureCodeGenerator()
        self.password_policy = password_policy or PasswordPolicy()

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def create_user(
        self,
        username: str,
        email: str,
        password: str,
        email_confirmed: bool = False,
        roles: Optional[List[Role]] = None,
    ) -> User:
        """Create an account after enforcing the password policy.

        Raises:
            PasswordPolicyError: If the password is too weak.
            DuplicateUserError: If the username or email is already registered.
        """
        self.password_policy.validate(password)
        user = User(
            username=username.strip(),
            normalized_username=username.strip().upper(),
            email=email.strip(),
            normalized_email=email.strip().upper(),
            hashed_password=hash_password(password),
            email_confirmed=email_confirmed,
            security_stamp=new_security_stamp(),
        )
        user = await self.users.add(user)
        for role in roles or [Role.USER]:
            await self.users.add_role(user.id, Role(role).value)
        logger.info("user_created", user_id=user.id, email_confirmed=email_confirmed)
        return user

    async def find_by_id(self, user_id: int) -> Optional[User]:
        return await self.users.get_by_id(user_id)

    async def find_by_username(self, username: str) -> Optional[User]:
        return await self.users.get_by_username(username)

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self.users.get_by_email(email)

    async def find_by_login(self, login: str) -> Optional[User]:
        """Resolve a sign-in identifier that may be either a username or an email."""
        if "@" in login:
            user = await self.users.get_by_email(login)
            if user is not None:
                return user
        return await self.users.get_by_username(login)

    # ------------------------------------------------------------------
    # Passwords and lockout
    # ------------------------------------------------------------------

    async def check_password_sign_in(self, user: User, password: str) -> SignInResult:
        """Verify a password with lockout bookkeeping.

        Unconfirmed accounts are refused before anything else is checked. A
        locked account is refused without checking the password and without
        touching the failure counter. A wrong password increments the counter;
        reaching the limit sets the lockout and resets the counter.
        """
        if not user.email_confirmed:
            return SignInResult.not_allowed()

        now = utcnow()
        if user.is_locked_out(now):
            return SignInResult.locked_out()

        if not verify_password(password, user.hashed_password):
            user.access_failed_count += 1
            if user.access_failed_count >= settings.LOCKOUT_MAX_FAILED_ATTEMPTS:
                user.lockout_end = now + timedelta(minutes=settings.LOCKOUT_DURATION_MINUTES)
                user.access_failed_count = 0
                await self.users.save(user)
                logger.warning("account_locked_out", user_id=user.id)
                return SignInResult.locked_out(triggered=True)
            await self.users.save(user)
            return SignInResult.failed()

        if user.access_failed_count or user.lockout_end is not None:
            user.access_failed_count = 0
            user.lockout_end = None
            await self.users.save(user)
        return SignInResult.success(requires_two_factor=user.two_factor_enabled)

    def check_password(self, user: User, password: str) -> bool:
        return verify_password(password, user.hashed_password)

    async def change_password(self, user: User, current_password: str, new_password: str) -> bool:
        """Replace the password after verifying the current one.

        Raises:
            PasswordPolicyError: If the new password is too weak.
        """
        if not verify_password(current_password, user.hashed_password):
            return False
        self.password_policy.validate(new_password)
        user.hashed_password = hash_password(new_password)
        await self.users.save(user)
        return True

    # ------------------------------------------------------------------
    # Security stamp
    # ------------------------------------------------------------------

    async def update_security_stamp(self, user: User) -> str:
        user.security_stamp = new_security_stamp()
        await self.users.save(user)
        return user.security_stamp

    # ------------------------------------------------------------------
    # Two-factor
    # ------------------------------------------------------------------

    async def reset_authenticator_key(self, user: User) -> str:
        user.authenticator_key = pyotp.random_base32()
        await self.users.save(user)
        return user.authenticator_key

    def authenticator_uri(self, user: User, key: str) -> str:
        issuer = quote(settings.APP_NAME, safe="")
        label = quote(user.username or user.email, safe="")
        return f"otpauth://totp/{issuer}:{label}?secret={key}&issuer={issuer}&digits=6"

    def verify_totp(self, user: User, code: str) -> bool:
        if not user.authenticator_key or not code:
            return False
        normalized = code.replace(" ", "").replace("-", "")
        if not normalized.isdigit():
            return False
        return pyotp.TOTP(user.authenticator_key).verify(normalized, valid_window=1)

    async def enable_two_factor(self, user: User, method: TwoFactorMethod) -> None:
        user.two_factor_enabled = True
        user.two_factor_method = TwoFactorMethod(method).value
        await self.users.save(user)

    async def disable_two_factor(self, user: User) -> None:
        """Turn 2FA off, drop the authenticator key and clear the method."""
        user.two_factor_enabled = False
        user.two_factor_method = TwoFactorMethod.NONE.value
        user.authenticator_key = pyotp.random_base32()
        await self.users.save(user)
        await self._tokens.remove(user.id, IDENTITY_PROVIDER, RECOVERY_CODES_SLOT)

    async def set_two_factor_enforced(self, user: User, enforced: bool) -> None:
        user.two_factor_enforced = enforced
        await self.users.save(user)

    async def generate_recovery_codes(self, user: User, count: int = settings.RECOVERY_CODE_COUNT) -> List[str]:
        """Replace the user's recovery codes with ``count`` fresh ones.

        The plaintext codes are returned once and never stored.
        """
        codes = []
        for _ in range(count):
            raw = self._codes.generate_alphanumeric_code(10)
            codes.append(f"{raw[:5]}-{raw[5:]}")
        hashes = [_hash_recovery_code(code) for code in codes]
        await self._tokens.set(user.id, IDENTITY_PROVIDER, RECOVERY_CODES_SLOT, json.dumps(hashes))
        return codes

    async def count_recovery_codes(self, user: User) -> int:
        slot = await self._tokens.get(user.id, IDENTITY_PROVIDER, RECOVERY_CODES_SLOT)
        return len(json.loads(slot.value)) if slot is not None else 0

    async def redeem_recovery_code(self, user: User, code: str) -> bool:
        if not code:
            return False
        wanted = _hash_recovery_code(code)
        for _ in range(3):
            slot = await self._tokens.get(user.id, IDENTITY_PROVIDER, RECOVERY_CODES_SLOT)
            if slot is None:
                return False
            hashes = json.loads(slot.value)
            match = next((h for h in hashes if secrets.compare_digest(h, wanted)), None)
            if match is None:
                return False
            hashes.remove(match)
            if await self._tokens.update_if_version(slot.id, slot.version, json.dumps(hashes)):
                return True
        return False

    # ------------------------------------------------------------------
    # Email confirmation and password reset link tokens
    # ------------------------------------------------------------------

    def _link_token(self, purpose: str, user: User) -> str:
        return self._signed.dumps(purpose, {"uid": user.id, "fp": _stamp_fingerprint(user.security_stamp)})

    def _verify_link_token(self, purpose: str, user: User, token: Optional[str], max_age_seconds: int) -> bool:
        data = self._signed.loads(purpose, token, max_age_seconds)
        if data is None:
            return False
        return data.get("uid") == user.id and secrets.compare_digest(
            str(data.get("fp", "")), _stamp_fingerprint(user.security_stamp)
        )

    def generate_email_confirmation_token(self, user: User) -> str:
        return self._link_token(EMAIL_CONFIRMATION_PURPOSE, user)

    async def confirm_email(self, user: User, token: Optional[str]) -> bool:
        max_age = settings.EMAIL_CONFIRMATION_TOKEN_HOURS * 3600
        if not self._verify_link_token(EMAIL_CONFIRMATION_PURPOSE, user, token, max_age):
            return False
        await self.mark_email_confirmed(user)
        return True

    async def mark_email_confirmed(self, user: User) -> None:
        user.email_confirmed = True
        await self.users.save(user)

    def generate_password_reset_token(self, user: User) -> str:
        return self._link_token(PASSWORD_RESET_PURPOSE, user)

    def verify_password_reset_token(self, user: User, token: Optional[str]) -> bool:
        return self._verify_link_token(
            PASSWORD_RESET_PURPOSE, user, token, settings.PASSWORD_RESET_TOKEN_MINUTES * 60
        )

    async def reset_password(self, user: User, token: Optional[str], new_password: str) -> bool:
        """Set a new password if ``token`` is a current reset token for ``user``.

        The security stamp rotates on success, which revokes the token itself
        along with every session.

        Raises:
            PasswordPolicyError: If the new password is too weak.
        """
        if not self.verify_password_reset_token(user, token):
            return False
        self.password_policy.validate(new_password)
        user.hashed_password = hash_password(new_password)
        user.security_stamp = new_security_stamp()
        user.access_failed_count = 0
        user.lockout_end = None
        await self.users.save(user)
        return True

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    async def get_roles(self, user: User) -> List[str]:
        return await self.users.get_roles(user.id)

    async def is_in_role(self, user: User, role: Role) -> bool:
        return Role(role).value in await self.users.get_roles(user.id)

    async def add_to_role(self, user: User, role: Role) -> None:
        await self.users.add_role(user.id, Role(role).value)

    async def ensure_user(
        self,
        username: str,
        email: str,
        password: str,
        roles: List[Role],
    ) -> User:
        """Create a confirmed account with ``roles`` unless the email exists; grant missing roles either way."""
        user = await self.find_by_email(email)
        if user is None:
            if await self.find_by_username(username) is not None:
                raise DuplicateUserError()
            user = await self.create_user(username, email, password, email_confirmed=True, roles=roles)
        else:
            if not user.email_confirmed:
                await self.mark_email_confirmed(user)
            for role in roles:
                await self.add_to_role(user, role)
        return user

    @staticmethod
    def validate_username(username: str) -> str:
        username = (username or "").strip()
        if not 3 <= len(username) <= 50:
            raise ValidationError("Username must be between 3 and 50 characters", field="username")
        if not all(c.isalnum() or c in "._-@+" for c in username):
            raise ValidationError("Username contains invalid characters", field="username")
        return username
