"""Data protection for identifiers written to the audit trail.

Security Features:
    - Keyed one-way pseudonyms (HMAC-SHA256) so entries about the same person
      correlate without naming them
    - Reversible authenticated encryption (Fernet: AES-128-CBC + HMAC-SHA256)
      for privileged, justified re-identification
    - Key separation: the pseudonym secret and the encryption secret are
      independent, and the Fernet key is derived from the latter with HKDF
"""

import base64
import hashlib
import hmac
from typing import Optional

import structlog
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from warden.core.config.settings import settings
from warden.core.exceptions import DecryptionError, EncryptionError

logger = structlog.get_logger(__name__)

ANONYMOUS = "anonymous"
SYSTEM = "system"
PSEUDONYM_PREFIX_LENGTH = 16
ENCRYPTION_PREFIX = "enc_v1:"
_HKDF_INFO = b"warden-audit-user-info"


def derive_fernet_key(secret: str) -> bytes:
    """Derive a url-safe base64 Fernet key from an arbitrary secret string."""
    raw = HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=_HKDF_INFO).derive(secret.encode("utf-8"))
    return base64.urlsafe_b64encode(raw)


class DataProtectionService:
    """Pseudonymizes, encrypts and masks user identifiers."""

    def __init__(self, hash_secret: Optional[str] = None, encryption_secret: Optional[str] = None):
        hash_secret = hash_secret if hash_secret is not None else settings.LOG_HASH_SECRET.get_secret_value()
        encryption_secret = (
            encryption_secret if encryption_secret is not None else settings.LOG_ENCRYPTION_KEY.get_secret_value()
        )
        if not hash_secret:
            raise ValueError("LOG_HASH_SECRET is required")
        if not encryption_secret:
            raise ValueError("LOG_ENCRYPTION_KEY is required")
        self._hash_key = hash_secret.encode("utf-8")
        self._fernet = Fernet(derive_fernet_key(encryption_secret))

    def pseudonymize_email(self, email: Optional[str]) -> str:
        """Map an email (or username) to ``user_<16 chars>[@domain]``.

        The same input always yields the same pseudonym under the same
        secret. Empty input yields ``"anonymous"``.
        """
        if not email:
            return ANONYMOUS
        digest = hmac.new(self._hash_key, email.lower().encode("utf-8"), hashlib.sha256).digest()
        pseudonym = base64.b64encode(digest).decode("ascii")[:PSEUDONYM_PREFIX_LENGTH]
        at_index = email.find("@")
        if at_index > 0:
            return f"user_{pseudonym}{email[at_index:]}"
        return f"user_{pseudonym}"

    def encrypt_user_info(self, user_info: str) -> str:
        try:
            token = self._fernet.encrypt(user_info.encode("utf-8"))
        except (TypeError, ValueError) as e:
            logger.error("User info encryption failed", error_type=type(e).__name__)
            raise EncryptionError() from e
        return ENCRYPTION_PREFIX + token.decode("ascii")

    def decrypt_user_info(self, encrypted: str) -> str:
        """Reverse ``encrypt_user_info``.

        Raises:
            DecryptionError: If the value is not ours, was tampered with, or
                was produced under a different key.
        """
        if not encrypted or not encrypted.startswith(ENCRYPTION_PREFIX):
            raise DecryptionError()
        try:
            return self._fernet.decrypt(encrypted[len(ENCRYPTION_PREFIX):].encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            logger.warning("User info decryption failed", error_type=type(e).__name__)
            raise DecryptionError() from e

    @staticmethod
    def mask_sensitive_data(data: Optional[str]) -> str:
        if not data or len(data) <= 4:
            return "****"
        return f"{data[:2]}***{data[-2:]}"
