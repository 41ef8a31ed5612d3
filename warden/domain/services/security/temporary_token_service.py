"""Temporary one-time code service.

Stores a hashed, expiring, attempt-limited code per (user, purpose) in the
user's token slots and validates it at most once.

Slot lifecycle: Absent -> Active -> {Consumed, Expired, AttemptsExhausted,
Replaced}. Storing a new code for a purpose replaces the previous one.

Security Features:
    - Only the SHA-256 digest of the code is persisted
    - Constant-time digest comparison
    - Three attempts per code, then the slot is destroyed
    - Validate-and-consume is a compare-and-swap on the slot version, so two
      concurrent requests can neither both consume a code nor lose a
      failed-attempt increment
"""

from datetime import timedelta

import structlog

from warden.domain.entities import User
from warden.domain.interfaces.repositories import IUserTokenRepository
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.domain.value_objects.temporary_token import TemporaryToken
from warden.domain.value_objects.token_purpose import TokenPurpose
from warden.utils.clock import utcnow

logger = structlog.get_logger(__name__)

TOKEN_PROVIDER = "TempToken"
LOG_CONTEXT = "TemporaryTokenService"


class TemporaryTokenService:
    # Bounded retries when another request changed the slot between read and write.
    MAX_CONTENTION_RETRIES = 5

    def __init__(self, token_repository: IUserTokenRepository, secure_log: SecureLogService):
        self._tokens = token_repository
        self._log = secure_log

    async def store_token(self, user: User, purpose: TokenPurpose, code: str, expires_in: timedelta) -> None:
        record = TemporaryToken.issue(code, expires_in, utcnow())
        await self._tokens.set(user.id, TOKEN_PROVIDER, TokenPurpose(purpose).value, record.to_json())
        await self._log.log_audit(
            "StoreToken",
            LOG_CONTEXT,
            f"Temporary token stored for purpose {TokenPurpose(purpose).value}, "
            f"expires in {int(expires_in.total_seconds() // 60)} minutes",
            user.email,
        )

    async def validate_and_consume_token(self, user: User, purpose: TokenPurpose, code: str) -> bool:
        """Check ``code`` against the slot and consume it on success.

        Returns False for a missing, malformed, expired, exhausted or
        mismatching token without telling the cases apart. Every outcome
        writes exactly one log entry.
        """
        purpose = TokenPurpose(purpose)
        for _ in range(self.MAX_CONTENTION_RETRIES):
            slot = await self._tokens.get(user.id, TOKEN_PROVIDER, purpose.value)
            if slot is None:
                await self._log.log_audit(
                    "ValidateToken", LOG_CONTEXT, f"Token not found for purpose {purpose.value}", user.email
                )
                return False

            try:
                record = TemporaryToken.from_json(slot.value)
            except ValueError as e:
                await self._tokens.delete_if_version(slot.id, slot.version)
                await self._log.log_error(
                    "ValidateToken", LOG_CONTEXT, f"Malformed token removed for purpose {purpose.value}: {e}", user.email
                )
                return False

            now = utcnow()
            if record.is_expired(now):
                await self._tokens.delete_if_version(slot.id, slot.version)
                await self._log.log_audit(
                    "ValidateToken", LOG_CONTEXT, f"Token expired for purpose {purpose.value}", user.email
                )
                return False

            if record.attempts_exhausted:
                await self._tokens.delete_if_version(slot.id, slot.version)
                await self._log.log_audit(
                    "ValidateToken",
                    LOG_CONTEXT,
                    f"Max attempts exceeded for purpose {purpose.value}",
                    user.email,
                )
                return False

            if record.matches(code):
                if not await self._tokens.delete_if_version(slot.id, slot.version):
                    continue
                await self._log.log_audit(
                    "ValidateToken", LOG_CONTEXT, f"Token validated successfully for purpose {purpose.value}", user.email
                )
                return True

            failed = record.with_failed_attempt()
            if not await self._tokens.update_if_version(slot.id, slot.version, failed.to_json()):
                continue
            await self._log.log_audit(
                "ValidateToken",
                LOG_CONTEXT,
                f"Invalid code for purpose {purpose.value}, attempt {failed.failed_attempts}/{failed.max_attempts}",
                user.email,
            )
            return False

        logger.warning("temporary_token_contention", purpose=purpose.value, user_id=user.id)
        await self._log.log_error(
            "ValidateToken", LOG_CONTEXT, f"Token validation abandoned under contention for purpose {purpose.value}", user.email
        )
        return False

    async def remove_token(self, user: User, purpose: TokenPurpose) -> None:
        await self._tokens.remove(user.id, TOKEN_PROVIDER, TokenPurpose(purpose).value)
