"""Password change for a signed-in user."""

from warden.core.exceptions import ValidationError
from warden.domain.entities import User
from warden.domain.services.email.security_notification_service import SecurityNotificationService
from warden.domain.services.identity.identity_service import IdentityService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.domain.services.security.session_context import SessionContext
from warden.domain.services.security.session_management_service import SessionManagementService

LOG_CONTEXT = "ProfileController"


class PasswordChangeService:
    def __init__(
        self,
        identity: IdentityService,
        sessions: SessionManagementService,
        notifications: SecurityNotificationService,
        secure_log: SecureLogService,
    ):
        self._identity = identity
        self._sessions = sessions
        self._notifications = notifications
        self._log = secure_log

    async def change_password(
        self, user: User, current_password: str, new_password: str, context: SessionContext
    ) -> None:
        """Replace the password and end every session, including the caller's.

        Raises:
            ValidationError: If ``current_password`` is wrong.
            PasswordPolicyError: If ``new_password`` is too weak.
        """
        if not await self._identity.change_password(user, current_password, new_password):
            await self._log.log_audit(
                "ChangePassword",
                LOG_CONTEXT,
                "Failed password change attempt - invalid current password",
                user.email,
            )
            raise ValidationError("Current password is incorrect", field="currentPassword")

        await self._log.log_audit("ChangePassword", LOG_CONTEXT, "Password changed successfully", user.email)
        await self._sessions.invalidate_all_sessions(user, context)
        await self._notifications.notify_password_changed(user, context.client_ip)
