"""
Application-specific settings.
"""
from typing import List, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """
    Defines application-wide settings like project name, environment and CORS origins.

    Security Note:
        - SECRET_KEY signs anti-forgery tokens, email confirmation links,
          password reset links and the pending two-factor challenge cookie.
          It must be a cryptographically secure random string of at least
          32 characters.
        - Ensure ALLOWED_ORIGINS is explicitly set to trusted domains in production.
    """
    PROJECT_NAME: str = "warden"
    APP_NAME: str = "Warden"
    VERSION: str = "0.1.0"
    APP_ENV: str = "development"
    DEBUG: bool = False

    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_WORKERS: int = Field(ge=1, default=1)
    RELOAD: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    REQUEST_LOGGING_ENABLED: bool = False
    REQUEST_LOGGING_EXCLUDED_PATHS: Union[str, List[str]] = Field(default="/api/v1/health,/api/v1/csrf-token")

    SECRET_KEY: str = Field(..., min_length=32)
    ALLOWED_ORIGINS: Union[str, List[str]] = Field(default="http://0.0.0.0:8000")
    PUBLIC_BASE_URL: str = ""

    @field_validator("ALLOWED_ORIGINS", "REQUEST_LOGGING_EXCLUDED_PATHS", mode="before")
    @classmethod
    def split_comma_separated(cls, v: Union[str, List[str]]) -> List[str]:
        """
        Splits a comma-separated string into a list.

        Args:
            v: Input value as a string or list.

        Returns:
            List of stripped, non-empty strings.
        """
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v
