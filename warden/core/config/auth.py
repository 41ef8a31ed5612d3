"""
Authentication, session and two-factor settings.
"""
from pydantic import Field
from pydantic_settings import BaseSettings


class AuthSettings(BaseSettings):
    """
    Identity policy knobs.

    Lockout, password policy and cookie attributes default to the values the
    service has always shipped with; they are exposed so tests and operators
    can tune them without code changes.
    """
    # Password policy
    PASSWORD_MIN_LENGTH: int = Field(default=12, ge=8)
    PASSWORD_MAX_LENGTH: int = Field(default=128, ge=12)
    PASSWORD_REQUIRE_DIGIT: bool = True
    PASSWORD_REQUIRE_UPPERCASE: bool = True
    PASSWORD_REQUIRE_LOWERCASE: bool = True
    PASSWORD_REQUIRE_NON_ALPHANUMERIC: bool = False
    BCRYPT_WORK_FACTOR: int = Field(default=12, ge=4, le=31)

    # Lockout
    LOCKOUT_MAX_FAILED_ATTEMPTS: int = Field(default=5, ge=1)
    LOCKOUT_DURATION_MINUTES: int = Field(default=10, ge=1)

    # Session cookie
    SESSION_COOKIE_NAME: str = "app_auth"
    SESSION_LIFETIME_HOURS: int = Field(default=8, ge=1)
    SESSION_COOKIE_SECURE: bool = True

    # Anti-forgery
    CSRF_COOKIE_NAME: str = "XSRF-TOKEN"
    CSRF_HEADER_NAME: str = "X-XSRF-TOKEN"

    # Pending two-factor challenge
    TWO_FACTOR_COOKIE_NAME: str = "two_factor_user"
    TWO_FACTOR_CHALLENGE_MINUTES: int = Field(default=5, ge=1)
    RECOVERY_CODE_COUNT: int = Field(default=10, ge=1)

    # Signed link tokens
    EMAIL_CONFIRMATION_TOKEN_HOURS: int = Field(default=24, ge=1)
    PASSWORD_RESET_TOKEN_MINUTES: int = Field(default=30, ge=1)

    # Temporary code lifetimes
    TWO_FACTOR_CODE_MINUTES: int = Field(default=10, ge=1)
    EMAIL_VERIFICATION_CODE_HOURS: int = Field(default=24, ge=1)
    PASSWORD_RESET_CODE_MINUTES: int = Field(default=30, ge=1)

    SEND_WELCOME_MAIL_AFTER_EMAILCONFIRMATION: bool = False

    # Seeded administrator
    DEFAULT_ADMIN_EMAIL: str = ""
    DEFAULT_ADMIN_PASSWORD: str = ""
    DEFAULT_ADMIN_USERNAME: str = "admin"
