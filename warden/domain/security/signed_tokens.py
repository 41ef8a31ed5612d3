"""
Signed, expiring tokens.

Payloads are signed with itsdangerous (HMAC) under SECRET_KEY and a
per-purpose salt, so a token minted for one purpose never verifies for
another, and every token carries its own issue time for ``max_age`` checks.
"""

from typing import Any, Dict, Optional

import structlog
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from warden.core.config.settings import settings

logger = structlog.get_logger(__name__)


class SignedTokenService:
    def __init__(self, secret_key: Optional[str] = None):
        self._secret_key = secret_key or settings.SECRET_KEY
        if not self._secret_key:
            raise ValueError("SECRET_KEY must be set for signed tokens")

    def _serializer(self, purpose: str) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(secret_key=self._secret_key, salt=f"warden-{purpose}")

    def dumps(self, purpose: str, payload: Dict[str, Any]) -> str:
        return self._serializer(purpose).dumps(payload)

    def loads(self, purpose: str, token: Optional[str], max_age_seconds: int) -> Optional[Dict[str, Any]]:
        """Return the payload, or None when the token is missing, forged, expired or malformed."""
        if not token:
            return None
        try:
            data = self._serializer(purpose).loads(token, max_age=max_age_seconds)
        except SignatureExpired:
            logger.debug("signed_token_expired", purpose=purpose)
            return None
        except BadSignature:
            logger.debug("signed_token_invalid", purpose=purpose)
            return None
        if not isinstance(data, dict):
            return None
        return data
