"""
Secrets used by the audit-log data protection layer.
"""
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings


class SecuritySettings(BaseSettings):
    """
    Keys for pseudonymizing and encrypting user identifiers in audit logs.

    LOG_HASH_SECRET keys the HMAC that turns an email or username into a
    stable pseudonym. LOG_ENCRYPTION_KEY is an independent secret from which
    the reversible encryption key is derived. Rotating LOG_HASH_SECRET breaks
    correlation with older entries; rotating LOG_ENCRYPTION_KEY makes older
    encrypted identities unrecoverable.
    """
    LOG_HASH_SECRET: SecretStr = Field(default=SecretStr(""))
    LOG_ENCRYPTION_KEY: SecretStr = Field(default=SecretStr(""))

    ENUMERATION_MIN_DELAY_MS: int = Field(default=300, ge=0)
    ENUMERATION_MAX_JITTER_MS: int = Field(default=200, ge=0)
