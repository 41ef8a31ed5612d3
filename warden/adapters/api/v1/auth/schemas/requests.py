from __future__ import annotations

"""Request-payload Pydantic models for authentication endpoints.

Field names follow the JSON the browser client sends, so several models
accept camelCase aliases alongside the snake_case attribute names.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# ---------------------------------------------------------------------------
# Shared base ------------------------------------------------------------------
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Sign-in and second factor --------------------------------------------------
# ---------------------------------------------------------------------------


class LoginRequest(_CamelModel):
    """Payload expected by ``POST /auth/login``. ``login`` is a username or an email."""

    login: str = Field(..., min_length=1, max_length=320, examples=["john_doe"])
    password: str = Field(..., min_length=1, examples=["Str0ngPassw0rd"])
    remember_me: bool = Field(default=False, alias="rememberMe")


class TwoFactorCodeRequest(BaseModel):
    """Payload for authenticator verification and for 2FA setup confirmation."""

    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$", examples=["123456"])


class TwoFactorEmailRequest(BaseModel):
    """Payload expected by ``POST /auth/2fa/verify-email``."""

    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")


class RecoveryCodeRequest(_CamelModel):
    recovery_code: str = Field(..., min_length=1, max_length=32, alias="recoveryCode", examples=["ABCDE-12345"])


class AdminTwoFactorResetRequest(_CamelModel):
    """Payload expected by ``PUT /auth/2fa/reset``."""

    user_id: int = Field(..., ge=1, alias="userId")


# ---------------------------------------------------------------------------
# Registration and email verification ----------------------------------------
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Payload expected by ``POST /auth/register``."""

    username: str = Field(..., min_length=3, max_length=50, examples=["john_doe"])
    email: EmailStr = Field(..., examples=["john@example.com"])
    password: str = Field(..., examples=["Str0ngPassw0rd"])


class VerifyEmailRequest(_CamelModel):
    """Link-based confirmation: the user id and token from the emailed URL."""

    user_id: int = Field(..., ge=1, alias="userId")
    token: str = Field(..., min_length=1)


class VerifyEmailCodeRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")


class EmailRequest(BaseModel):
    """Payload for ``resend-verification`` and ``forgot-password``."""

    email: EmailStr = Field(..., examples=["john@example.com"])


# ---------------------------------------------------------------------------
# Passwords ------------------------------------------------------------------
# ---------------------------------------------------------------------------


class ResetPasswordRequest(_CamelModel):
    """Payload expected by ``POST /auth/reset-password``.

    At least one of ``token`` (from the link) or ``code`` (the 6-digit code)
    must be present; when both are sent the token is tried first.
    """

    email: EmailStr
    token: Optional[str] = Field(default=None, description="Password reset token from the emailed link")
    code: Optional[str] = Field(default=None, pattern=r"^\d{6}$", description="6-digit code from the email")
    new_password: str = Field(..., alias="newPassword")


class ChangePasswordRequest(_CamelModel):
    """Payload expected by ``PUT /profile/change-password``."""

    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: str = Field(..., alias="newPassword")
