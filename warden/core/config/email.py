"""Email configuration settings for the Warden application.

This module defines SMTP delivery parameters and the outbox dispatcher
schedule. Provides secure defaults and validation for production environments.
"""

from typing import List, Optional

from pydantic import EmailStr, Field, SecretStr
from pydantic_settings import BaseSettings


class EmailSettings(BaseSettings):
    """Email configuration settings with secure defaults and validation.

    Security considerations:
    - SMTP credentials are handled as SecretStr to prevent logging
    - TLS is enforced by default
    - Templates are rendered with auto-escaping

    Attributes:
        SMTP_HOST: SMTP server hostname
        SMTP_PORT: SMTP server port (587 for TLS, 465 for SSL)
        SMTP_USERNAME: SMTP authentication username
        SMTP_PASSWORD: SMTP authentication password (SecretStr)
        SMTP_USE_TLS: Enable STARTTLS
        SMTP_USE_SSL: Enable implicit SSL
        FROM_EMAIL: Default sender email address
        FROM_NAME: Default sender name
        EMAIL_TEMPLATES_DIR: Directory containing email templates (packaged ones when unset)
        EMAIL_PROCESSING_INTERVAL_SECONDS: Dispatcher polling interval
        EMAIL_MAX_RETRY_ATTEMPTS: Retries before a job is terminally failed
        EMAIL_RETRY_DELAY_MINUTES: Comma-separated backoff table
        EMAIL_BATCH_SIZE: Jobs picked up per dispatcher cycle
        EMAIL_SEND_DELAY_MS: Pause between two sends inside one batch
        EMAIL_TEST_MODE: Log messages instead of delivering them
    """

    SMTP_HOST: str = Field(default="localhost", description="SMTP server hostname")
    SMTP_PORT: int = Field(default=587, ge=1, le=65535)
    SMTP_USERNAME: Optional[str] = Field(default=None)
    SMTP_PASSWORD: Optional[SecretStr] = Field(default=None)
    SMTP_USE_TLS: bool = Field(default=True)
    SMTP_USE_SSL: bool = Field(default=False)

    FROM_EMAIL: EmailStr = Field(default="noreply@example.com")
    FROM_NAME: str = Field(default="Warden")

    EMAIL_TEMPLATES_DIR: Optional[str] = Field(default=None, description="Defaults to the packaged templates")

    EMAIL_PROCESSING_INTERVAL_SECONDS: int = Field(default=30, ge=1)
    EMAIL_MAX_RETRY_ATTEMPTS: int = Field(default=3, ge=0)
    EMAIL_RETRY_DELAY_MINUTES: str = Field(default="1,5,15")
    EMAIL_BATCH_SIZE: int = Field(default=10, ge=1, le=100)
    EMAIL_SEND_DELAY_MS: int = Field(default=100, ge=0)
    EMAIL_DISPATCHER_ENABLED: bool = True

    EMAIL_TEST_MODE: bool = Field(default=False)

    @property
    def retry_delays_minutes(self) -> List[int]:
        """Parse the backoff table. Unparsable or non-positive entries count as one minute."""
        delays = []
        for part in self.EMAIL_RETRY_DELAY_MINUTES.split(","):
            try:
                value = int(part.strip())
            except ValueError:
                value = 1
            delays.append(value if value > 0 else 1)
        return delays or [1]

    def validate_smtp_config(self) -> None:
        """Validate SMTP configuration for production use.

        Raises:
            ValueError: If SMTP configuration is incomplete or insecure
        """
        if self.EMAIL_TEST_MODE or getattr(self, "APP_ENV", "development") not in {"production", "staging"}:
            return
        if not self.SMTP_HOST:
            raise ValueError("SMTP_HOST is required")
        if not self.SMTP_USERNAME or not self.SMTP_PASSWORD:
            raise ValueError("SMTP credentials are required in production")
        if self.SMTP_USE_TLS and self.SMTP_USE_SSL:
            raise ValueError("SMTP_USE_TLS and SMTP_USE_SSL are mutually exclusive")
