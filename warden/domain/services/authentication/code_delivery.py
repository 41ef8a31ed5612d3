"""Emailed one-time codes for two-factor login and email 2FA enrollment."""

from datetime import timedelta

from warden.core.config.settings import settings
from warden.domain.entities import User
from warden.domain.security.code_generator import SecureCodeGenerator
from warden.domain.security.data_protection import SYSTEM
from warden.domain.services.email.email_queue_service import EmailQueueService
from warden.domain.services.security.temporary_token_service import TemporaryTokenService
from warden.domain.value_objects.token_purpose import TokenPurpose
from warden.utils.clock import utcnow

TWO_FACTOR_CODE_TEMPLATE = "2fa-code"


class TwoFactorCodeSender:
    def __init__(
        self,
        code_generator: SecureCodeGenerator,
        temporary_tokens: TemporaryTokenService,
        email_queue: EmailQueueService,
    ):
        self._codes = code_generator
        self._tokens = temporary_tokens
        self._queue = email_queue

    async def send(self, user: User, purpose: TokenPurpose, subject: str, ip_address: str) -> None:
        """Store a fresh 6-digit code under ``purpose`` and email it, replacing any earlier code."""
        code = self._codes.generate_numeric_code(6)
        minutes = settings.TWO_FACTOR_CODE_MINUTES
        await self._tokens.store_token(user, purpose, code, timedelta(minutes=minutes))
        now = utcnow()
        await self._queue.enqueue(
            TWO_FACTOR_CODE_TEMPLATE,
            subject,
            user.email,
            {
                "app_name": settings.APP_NAME,
                "user_name": user.username,
                "verification_code": code,
                "expiry_minutes": minutes,
                "request_time": now.strftime("%Y-%m-%d %H:%M:%S UTC"),
                "ip_address": ip_address or "Unknown",
                "current_year": now.year,
            },
            to_name=user.username,
            triggered_by=SYSTEM,
        )
