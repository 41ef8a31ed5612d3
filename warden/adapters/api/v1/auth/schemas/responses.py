"""Response models for authentication endpoints.

Every response to a mutating request carries ``csrfToken`` so the client can
keep issuing state-changing requests after the anti-forgery secret rotates.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CsrfResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    csrf_token: str = Field(..., alias="csrfToken")


class OkResponse(CsrfResponse):
    ok: bool = True


class MessageResponse(CsrfResponse):
    message: str


class CsrfTokenResponse(BaseModel):
    """``GET /csrf-token``."""

    token: str


class LoginResponse(BaseModel):
    """Outcome of the password step.

    ``requires2fa`` responses carry no session and no ``csrfToken``; the client
    continues with the matching ``/auth/2fa/verify-*`` endpoint.
    """

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    requires_2fa: bool = Field(default=False, alias="requires2fa")
    two_factor_method: Optional[str] = Field(default=None, alias="twoFactorMethod")
    needs_setup_2fa: bool = Field(default=False, alias="needsSetup2fa")
    email: Optional[str] = None
    csrf_token: Optional[str] = Field(default=None, alias="csrfToken")


class AuthenticatorSetupResponse(CsrfResponse):
    otpauth: str
    key: str


class RecoveryCodesResponse(OkResponse):
    recovery_codes: List[str] = Field(..., alias="recoveryCodes")


class CurrentUserResponse(BaseModel):
    """``GET /auth/me``."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    username: str = Field(..., alias="userName")
    email: str
    two_factor_enabled: bool = Field(..., alias="twoFactorEnabled")
    two_factor_method: str = Field(..., alias="twoFactorMethod")
    two_factor_enforced: bool = Field(..., alias="twoFactorEnforced")
    roles: List[str]
