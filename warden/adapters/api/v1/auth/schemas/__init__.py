from .requests import (
    AdminTwoFactorResetRequest,
    ChangePasswordRequest,
    EmailRequest,
    LoginRequest,
    RecoveryCodeRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TwoFactorCodeRequest,
    TwoFactorEmailRequest,
    VerifyEmailCodeRequest,
    VerifyEmailRequest,
)
from .responses import (
    AuthenticatorSetupResponse,
    CsrfResponse,
    CsrfTokenResponse,
    CurrentUserResponse,
    LoginResponse,
    MessageResponse,
    OkResponse,
    RecoveryCodesResponse,
)

__all__ = [
    "AdminTwoFactorResetRequest",
    "AuthenticatorSetupResponse",
    "ChangePasswordRequest",
    "CsrfResponse",
    "CsrfTokenResponse",
    "CurrentUserResponse",
    "EmailRequest",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "OkResponse",
    "RecoveryCodeRequest",
    "RecoveryCodesResponse",
    "RegisterRequest",
    "ResetPasswordRequest",
    "TwoFactorCodeRequest",
    "TwoFactorEmailRequest",
    "VerifyEmailCodeRequest",
    "VerifyEmailRequest",
]
