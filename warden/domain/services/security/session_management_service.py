"""Server-side session lifecycle.

Sessions are opaque random cookie tokens backed by a ``Session`` row that
stores only the token's SHA-256 digest. A session is honoured only while its
bound security stamp equals the owner's current stamp, so rotating the stamp
ends every session the user has.

Security Features:
    - Session fixation defense: ``rotate_session`` always revokes the inbound
      session and clears its cookie before a new token exists
    - Sliding expiration, renewed once less than half the lifetime remains
    - Revoked sessions are never resurrected
"""

import hashlib
import secrets
from datetime import timedelta
from typing import Optional

import structlog

from warden.core.config.settings import settings
from warden.domain.entities import Session, User
from warden.domain.interfaces.repositories import ISessionRepository
from warden.domain.services.identity.identity_service import IdentityService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.domain.services.security.session_context import SessionContext
from warden.utils.clock import utcnow

logger = structlog.get_logger(__name__)

LOG_CONTEXT = "SessionManagementService"


def hash_session_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionManagementService:
    def __init__(
        self,
        identity: IdentityService,
        session_repository: ISessionRepository,
        secure_log: SecureLogService,
    ):
        self._identity = identity
        self._sessions = session_repository
        self._log = secure_log

    @property
    def _lifetime(self) -> timedelta:
        return timedelta(hours=settings.SESSION_LIFETIME_HOURS)

    def _set_session_cookie(self, context: SessionContext, token: str, is_persistent: bool) -> None:
        max_age = int(self._lifetime.total_seconds()) if is_persistent else None
        context.set_cookie(settings.SESSION_COOKIE_NAME, token, max_age=max_age)
        context.session_token = token

    async def authenticate(self, context: SessionContext) -> Optional[User]:
        """Resolve the user behind the inbound session cookie, or None."""
        if not context.session_token:
            return None
        session = await self._sessions.get_by_token_hash(hash_session_token(context.session_token))
        if session is None:
            return None
        user = await self._identity.find_by_id(session.user_id)
        now = utcnow()
        if user is None or not session.is_active(now, user.security_stamp):
            return None

        session.last_activity_at = now
        if session.expires_at - now < self._lifetime / 2:
            session.expires_at = now + self._lifetime
            self._set_session_cookie(context, context.session_token, session.is_persistent)
            logger.debug("session_renewed", user_id=user.id)
        await self._sessions.save(session)
        return user

    async def sign_out(self, context: SessionContext) -> None:
        """Revoke the inbound session (if any) and clear its cookie."""
        if context.session_token:
            await self._sessions.revoke(hash_session_token(context.session_token), utcnow())
        context.session_token = None
        context.delete_cookie(settings.SESSION_COOKIE_NAME)

    async def rotate_session(self, user: User, context: SessionContext, is_persistent: bool) -> Session:
        """Replace whatever session the caller holds with a brand-new one for ``user``.

        The steps run in a fixed order inside this one operation: sign out,
        issue the new token, rotate the security stamp, bind the new session
        to the new stamp, set the cookie.
        """
        await self.sign_out(context)

        token = secrets.token_urlsafe(32)
        now = utcnow()
        session = await self._sessions.add(
            Session(
                token_hash=hash_session_token(token),
                user_id=user.id,
                security_stamp=user.security_stamp,
                is_persistent=is_persistent,
                created_at=now,
                last_activity_at=now,
                expires_at=now + self._lifetime,
            )
        )

        session.security_stamp = await self._identity.update_security_stamp(user)
        session = await self._sessions.save(session)

        self._set_session_cookie(context, token, is_persistent)
        return session

    async def regenerate_cookie(
        self,
        user: User,
        context: SessionContext,
        is_persistent: bool = False,
        reason: str = "authentication",
    ) -> None:
        """Issue a fresh session after a successful authentication transition."""
        await self.rotate_session(user, context, is_persistent)
        logger.info("session_regenerated", user_id=user.id, persistent=is_persistent, reason=reason)

    async def invalidate_all_sessions(self, user: User, context: SessionContext) -> None:
        """Rotate the stamp, which ends every session of ``user``, and clear the caller's cookie."""
        await self._identity.update_security_stamp(user)
        await self.sign_out(context)
        await self._log.log_audit(
            "InvalidateAllSessions",
            LOG_CONTEXT,
            "All sessions invalidated for security reasons",
            user.email,
        )

    async def refresh_security_stamp(self, user: User, reason: str) -> bool:
        """Rotate the stamp without touching the caller's cookie."""
        try:
            await self._identity.update_security_stamp(user)
        except Exception as e:
            logger.error("security_stamp_refresh_failed", user_id=user.id, error_type=type(e).__name__)
            await self._log.log_error(
                "RefreshSecurityStamp",
                LOG_CONTEXT,
                f"Failed to refresh security stamp. Reason: {reason}",
                user.email,
            )
            return False
        await self._log.log_audit(
            "RefreshSecurityStamp",
            LOG_CONTEXT,
            f"Security stamp refreshed. Reason: {reason}",
            user.email,
        )
        return True
