"""Anti-forgery tokens (double submit).

The ``XSRF-TOKEN`` cookie holds a random secret the browser script cannot
read. The request token returned in JSON bodies is an itsdangerous-signed
digest of that secret. A mutating request is accepted only when its
``X-XSRF-TOKEN`` header unsigns to the digest of the cookie it carries.
"""

import hashlib
import secrets
from typing import Optional

import structlog

from warden.core.config.settings import settings
from warden.core.exceptions import CsrfError
from warden.domain.security.signed_tokens import SignedTokenService
from warden.domain.services.security.session_context import SessionContext

logger = structlog.get_logger(__name__)

CSRF_PURPOSE = "csrf"


def _digest(secret: str) -> str:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


class CsrfService:
    def __init__(self, signed_tokens: SignedTokenService):
        self._signed = signed_tokens

    def issue(self, context: SessionContext, rotate: bool = False) -> str:
        """Return a request token for the caller, minting a new cookie secret when needed."""
        if rotate or not context.csrf_secret:
            context.csrf_secret = secrets.token_urlsafe(32)
            context.set_cookie(settings.CSRF_COOKIE_NAME, context.csrf_secret, samesite="strict")
        return self._signed.dumps(CSRF_PURPOSE, {"h": _digest(context.csrf_secret)})

    def validate(self, context: SessionContext, request_token: Optional[str]) -> None:
        """Raises:
            CsrfError: If the cookie or header is missing, forged, expired or mismatched.
        """
        if not context.csrf_secret or not request_token:
            logger.warning("csrf_token_missing", has_cookie=bool(context.csrf_secret))
            raise CsrfError()
        data = self._signed.loads(CSRF_PURPOSE, request_token, settings.SESSION_LIFETIME_HOURS * 3600)
        if data is None or not secrets.compare_digest(str(data.get("h", "")), _digest(context.csrf_secret)):
            logger.warning("csrf_token_mismatch")
            raise CsrfError()
