"""Security alert emails.

Each notice goes out through the ``security-alert`` template via the email
queue and leaves one AUDIT entry for the affected user.
"""

from typing import Any, Dict

from warden.core.config.settings import settings
from warden.domain.entities import User
from warden.domain.security.data_protection import SYSTEM
from warden.domain.services.email.email_queue_service import EmailQueueService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.utils.clock import utcnow

LOG_CONTEXT = "SecurityNotificationService"
TEMPLATE = "security-alert"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


class SecurityNotificationService:
    def __init__(self, email_queue: EmailQueueService, secure_log: SecureLogService):
        self._queue = email_queue
        self._log = secure_log

    async def _send(
        self,
        user: User,
        subject: str,
        alert_type: str,
        alert_message: str,
        ip_address: str,
        action_required: str,
        **extra: Any,
    ) -> None:
        now = utcnow()
        data: Dict[str, Any] = {
            "app_name": settings.APP_NAME,
            "user_name": user.username,
            "alert_type": alert_type,
            "alert_message": alert_message,
            "action_time": now.strftime(TIME_FORMAT),
            "ip_address": ip_address or "Unknown",
            "action_required": action_required,
            "current_year": now.year,
        }
        data.update(extra)
        await self._queue.enqueue(TEMPLATE, subject, user.email, data, to_name=user.username, triggered_by=SYSTEM)

    async def notify_account_lockout(self, user: User, failed_attempts: int, ip_address: str) -> None:
        lockout_end = user.lockout_end or utcnow()
        await self._send(
            user,
            "Account Temporarily Locked",
            "Account Lockout",
            f"Your account has been temporarily locked due to {failed_attempts} failed login attempts.",
            ip_address,
            "If this wasn't you, please reset your password immediately after the lockout expires.",
            lockout_until=lockout_end.strftime(TIME_FORMAT),
        )
        await self._log.log_audit(
            "AccountLockoutNotification",
            LOG_CONTEXT,
            f"Account lockout notification sent. Failed attempts: {failed_attempts}",
            user.email,
        )

    async def notify_password_changed(self, user: User, ip_address: str) -> None:
        await self._send(
            user,
            "Password Changed Successfully",
            "Password Changed",
            "Your password was successfully changed.",
            ip_address,
            "If you didn't make this change, please contact support immediately and secure your account.",
        )
        await self._log.log_audit(
            "PasswordChangedNotification", LOG_CONTEXT, "Password changed notification sent", user.email
        )

    async def notify_two_factor_disabled(self, user: User, ip_address: str) -> None:
        await self._send(
            user,
            "Two-Factor Authentication Disabled",
            "2FA Disabled",
            "Two-factor authentication has been disabled on your account.",
            ip_address,
            "If you didn't make this change, please re-enable 2FA immediately and change your password.",
        )
        await self._log.log_audit(
            "TwoFactorDisabledNotification", LOG_CONTEXT, "2FA disabled notification sent", user.email
        )

    async def notify_two_factor_reset_by_admin(self, user: User, admin: User) -> None:
        await self._send(
            user,
            "Two-Factor Authentication Reset by Administrator",
            "2FA Reset by Admin",
            f"An administrator ({admin.username}) has reset your two-factor authentication settings.",
            "Admin Action",
            "Please set up two-factor authentication again at your next login.",
        )
        await self._log.log_audit(
            "TwoFactorResetNotification",
            LOG_CONTEXT,
            f"2FA reset notification sent. Reset by admin user {admin.id}",
            user.email,
        )

    async def notify_suspicious_activity(self, user: User, activity_type: str, details: str, ip_address: str) -> None:
        await self._send(
            user,
            "Suspicious Activity Detected",
            activity_type,
            details,
            ip_address,
            "If this wasn't you, please secure your account immediately by changing your password and enabling 2FA.",
        )
        await self._log.log_audit(
            "SuspiciousActivityNotification",
            LOG_CONTEXT,
            f"Suspicious activity notification sent. Type: {activity_type}",
            user.email,
        )
