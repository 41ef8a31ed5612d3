"""Main application settings and configuration management.

This module composes the settings from the different modules (app, database,
security, auth, email) into a single, accessible `Settings` class.

It loads settings from environment variables and .env files, validates them,
and provides a single `settings` object for use throughout the application.

Environment Support:
- Development: Uses .env, SMTP credentials not required, email test mode on
- Test: Uses .env.test, SMTP credentials not required, email test mode on
- Staging / Production: Uses .env.staging / .env.production, SMTP required
"""

import logging
import os
from pathlib import Path

from pydantic_settings import SettingsConfigDict

from .app import AppSettings
from .auth import AuthSettings
from .database import DatabaseSettings
from .email import EmailSettings
from .security import SecuritySettings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
logging.getLogger("passlib").setLevel(logging.ERROR)


class Settings(AppSettings, DatabaseSettings, SecuritySettings, AuthSettings, EmailSettings):
    """The main settings class that aggregates all application configurations.

    Security Note:
        - LOG_HASH_SECRET, LOG_ENCRYPTION_KEY, SECRET_KEY and DATABASE_URL are
          mandatory. The application refuses to start without them.
        - Secrets are held as SecretStr where they may end up in reprs.
    Usage:
        - Access settings via the singleton instance `settings`.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="allow"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._set_environment_defaults(os.getenv("APP_ENV", self.APP_ENV))

    def _set_environment_defaults(self, env: str) -> None:
        """Set environment-specific default values.

        Args:
            env: Environment name
        """
        if env in ("development", "test"):
            self.EMAIL_TEST_MODE = True
            self.SESSION_COOKIE_SECURE = False
            logger.info(f"Email test mode enabled for {env} environment")

        if env == "development":
            self.DEBUG = True

        logger.info(f"Application running in {env} environment")

    def validate_required_fields(self) -> None:
        """Validates that all required environment variables are set.

        Raises:
            ValueError: If any required field is missing or empty.
        """
        required_fields = {
            "DATABASE_URL": self.DATABASE_URL,
            "SECRET_KEY": self.SECRET_KEY,
            "LOG_HASH_SECRET": self.LOG_HASH_SECRET.get_secret_value(),
            "LOG_ENCRYPTION_KEY": self.LOG_ENCRYPTION_KEY.get_secret_value(),
        }

        missing_fields = [name for name, value in required_fields.items() if not value]
        if missing_fields:
            error_msg = f"Missing required environment variables: {', '.join(missing_fields)}"
            logger.error(error_msg)
            raise ValueError(error_msg)
        logger.info("All required environment variables are set.")

        try:
            self.validate_smtp_config()
        except ValueError as e:
            # Delivery problems surface as failed jobs; the API keeps serving.
            logger.error(f"Email configuration error: {e}")


def create_settings() -> Settings:
    """Create settings instance with environment-specific configuration.

    Returns:
        Settings: Configured settings instance
    """
    env = os.getenv("APP_ENV", "development")

    env_files = {
        "development": ".env",
        "test": ".env.test",
        "staging": ".env.staging",
        "production": ".env.production",
    }
    env_file = env_files.get(env, ".env")

    if env != "development" and Path(env_file).exists():
        logger.info(f"Loading environment configuration from {env_file}")
        return Settings(_env_file=env_file)
    if Path(".env").exists():
        logger.info(f"Loading environment configuration from .env (environment: {env})")
    else:
        logger.warning(f"No .env file found, using environment variables only (environment: {env})")
    return Settings()


settings = create_settings()
settings.validate_required_fields()
