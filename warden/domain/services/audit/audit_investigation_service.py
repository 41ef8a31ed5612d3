"""Audit trail investigation for Admin and AuditInvestigator users.

Investigators see pseudonyms by default. Re-identifying a user requires a
written justification, and every access, with or without decryption, is
itself written to the audit trail.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import structlog

from warden.core.exceptions import DecryptionError, UserNotFoundError, ValidationError
from warden.domain.entities import Log, LogCategory, User
from warden.domain.interfaces.repositories import ILogRepository
from warden.domain.security.data_protection import DataProtectionService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.utils.clock import as_naive_utc, utcnow

logger = structlog.get_logger(__name__)

LOG_CONTEXT = "AuditInvestigationController"
DEFAULT_LIMIT = 100
MAX_LIMIT = 1000


def normalize_limit(limit: Optional[int]) -> int:
    if limit is None or limit < 1:
        return DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)


@dataclass(frozen=True)
class AuditLogView:
    log: Log
    decrypted_user: Optional[str] = None

    @property
    def has_encrypted_info(self) -> bool:
        return bool(self.log.encrypted_user_info)


@dataclass(frozen=True)
class DecryptedLogEntry:
    log: Log
    decrypted_user: str
    justification: str
    decrypted_by: str
    decrypted_at: datetime


class AuditInvestigationService:
    def __init__(
        self,
        log_repository: ILogRepository,
        data_protection: DataProtectionService,
        secure_log: SecureLogService,
    ):
        self._logs = log_repository
        self._data_protection = data_protection
        self._log = secure_log

    def _decrypt(self, log: Log) -> Optional[str]:
        if not log.encrypted_user_info:
            return None
        try:
            return self._data_protection.decrypt_user_info(log.encrypted_user_info)
        except DecryptionError:
            logger.warning("audit_entry_decryption_failed", log_id=log.id)
            return None

    async def list_audit_logs(
        self,
        investigator: User,
        decrypt: bool = False,
        justification: Optional[str] = None,
        limit: Optional[int] = DEFAULT_LIMIT,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[AuditLogView]:
        """AUDIT entries, newest first.

        Raises:
            ValidationError: If decryption is requested without a justification.
        """
        if decrypt and not (justification or "").strip():
            raise ValidationError(
                "Justification is required when accessing encrypted user data", field="justification"
            )

        if from_date is not None:
            from_date = as_naive_utc(from_date)
        if to_date is not None:
            to_date = as_naive_utc(to_date)
        logs = await self._logs.list_by_category(LogCategory.AUDIT.value, normalize_limit(limit), from_date, to_date)
        await self._log.log_audit(
            "GetAuditLogs",
            LOG_CONTEXT,
            f"Admin accessed audit logs WITH decryption. Justification: {justification}"
            if decrypt
            else "Admin accessed audit logs without decryption",
            investigator.email,
        )
        return [AuditLogView(log, self._decrypt(log) if decrypt else None) for log in logs]

    async def decrypt_entry(self, investigator: User, log_id: int, justification: str) -> DecryptedLogEntry:
        """Re-identify the user behind one entry.

        Raises:
            UserNotFoundError: If the entry does not exist.
            ValidationError: If the entry carries no encrypted identity.
        """
        log = await self._logs.get_by_id(log_id)
        if log is None:
            raise UserNotFoundError("Log entry not found")
        if not log.encrypted_user_info:
            raise ValidationError("This log entry does not contain encrypted user information")

        decrypted_user = self._data_protection.decrypt_user_info(log.encrypted_user_info)
        await self._log.log_audit(
            "AuditLogDecryption",
            LOG_CONTEXT,
            f"Admin decrypted log entry {log_id}. Justification: {justification}",
            investigator.email,
        )
        return DecryptedLogEntry(
            log=log,
            decrypted_user=decrypted_user,
            justification=justification,
            decrypted_by=investigator.username,
            decrypted_at=utcnow(),
        )

    async def search_by_pseudonym(self, investigator: User, pseudonym: str, limit: Optional[int] = DEFAULT_LIMIT) -> List[Log]:
        logs = await self._logs.list_by_user(pseudonym, normalize_limit(limit))
        await self._log.log_audit(
            "AuditLogSearch",
            LOG_CONTEXT,
            f"Admin searched logs by pseudonym: {pseudonym}",
            investigator.email,
        )
        return logs
