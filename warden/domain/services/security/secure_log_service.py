"""Secure audit trail writer.

Every persistent log entry goes through this service. The acting identity is
always passed in explicitly by the caller; when nothing is known the literal
``"anonymous"`` is recorded.

Privacy Features:
    - The stored ``user`` column is a keyed pseudonym, never the raw identity
    - AUDIT and ERROR entries additionally carry the identity encrypted with a
      separate key, so that an investigator can re-identify with justification
    - Messages are written by callers that never interpolate personal data
"""

from typing import Optional

import structlog

from warden.domain.entities import Log, LogCategory
from warden.domain.interfaces.repositories import ILogRepository
from warden.domain.security.data_protection import ANONYMOUS, SYSTEM, DataProtectionService
from warden.utils.clock import utcnow

logger = structlog.get_logger(__name__)

_ENCRYPTED_CATEGORIES = frozenset({LogCategory.AUDIT, LogCategory.ERROR})
_SENTINEL_IDENTITIES = frozenset({ANONYMOUS, SYSTEM})


class SecureLogService:
    """Writes pseudonymized, optionally encrypted, log entries."""

    def __init__(self, log_repository: ILogRepository, data_protection: DataProtectionService):
        self._repository = log_repository
        self._data_protection = data_protection

    async def log_error(self, action: str, context: str, message: str, user: Optional[str] = ANONYMOUS) -> Log:
        return await self.log(LogCategory.ERROR, action, context, message, user)

    async def log_audit(self, action: str, context: str, message: str, user: Optional[str] = ANONYMOUS) -> Log:
        return await self.log(LogCategory.AUDIT, action, context, message, user)

    async def log_request(self, action: str, context: str, message: str, user: Optional[str] = ANONYMOUS) -> Log:
        return await self.log(LogCategory.REQUEST, action, context, message, user)

    async def log_mail(self, action: str, context: str, message: str, user: Optional[str] = ANONYMOUS) -> Log:
        return await self.log(LogCategory.MAIL, action, context, message, user)

    async def log_system(self, action: str, context: str, message: str, user: Optional[str] = SYSTEM) -> Log:
        return await self.log(LogCategory.SYSTEM, action, context, message, user)

    async def log(
        self,
        category: LogCategory,
        action: str,
        context: str,
        message: str,
        user: Optional[str] = ANONYMOUS,
    ) -> Log:
        """Persist one entry.

        Args:
            category: Entry category; decides whether the identity is encrypted.
            action: Short machine-friendly event name.
            context: The component that produced the event.
            message: Free text without personal data.
            user: Email or username of the acting identity, or a sentinel.

        Raises:
            Exception: Whatever the repository raises; a lost audit entry is
                never silently ignored.
        """
        category = LogCategory(category)
        identity = user or ANONYMOUS
        is_sentinel = identity in _SENTINEL_IDENTITIES
        entry = Log(
            category=category.value,
            action=action[:256],
            context=context[:512],
            message=message,
            user=identity if is_sentinel else self._data_protection.pseudonymize_email(identity),
            encrypted_user_info=(
                self._data_protection.encrypt_user_info(identity)
                if category in _ENCRYPTED_CATEGORIES and not is_sentinel
                else None
            ),
            timestamp=utcnow(),
        )
        try:
            entry = await self._repository.add(entry)
        except Exception as e:
            logger.error(
                "Failed to persist log entry",
                category=entry.category,
                action=action,
                error_type=type(e).__name__,
            )
            raise
        logger.info(
            "log_entry_written",
            category=entry.category,
            action=action,
            context=context,
            user=entry.user,
        )
        return entry
