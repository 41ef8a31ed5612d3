from __future__ import annotations

"""Second-factor endpoints: completing a pending sign-in, enrollment and removal."""

from fastapi import APIRouter, Depends, Response

from warden.adapters.api.v1.auth.schemas import (
    AdminTwoFactorResetRequest,
    AuthenticatorSetupResponse,
    MessageResponse,
    OkResponse,
    RecoveryCodeRequest,
    RecoveryCodesResponse,
    TwoFactorCodeRequest,
    TwoFactorEmailRequest,
)
from warden.adapters.api.v1.auth.utils import finish_with_csrf
from warden.core.dependencies.auth import CsrfProtected, CurrentSession, CurrentUser, require_roles
from warden.domain.entities import Role, User
from warden.infrastructure.dependency_injection.auth_dependencies import (
    CleanLoginService,
    CleanTwoFactorService,
    Csrf,
)

router = APIRouter(prefix="/2fa", dependencies=[CsrfProtected])


# ---------------------------------------------------------------------------
# Completing a pending sign-in
# ---------------------------------------------------------------------------


@router.post("/verify-authenticator", response_model=OkResponse, summary="Complete sign-in with a TOTP code")
async def verify_authenticator(
    payload: TwoFactorCodeRequest,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    login_service: CleanLoginService,
) -> OkResponse:
    await login_service.verify_authenticator(payload.code, context)
    return OkResponse(csrf_token=finish_with_csrf(response, context, csrf, rotate=True))


@router.post("/verify-email", response_model=OkResponse, summary="Complete sign-in with an emailed code")
async def verify_email_code(
    payload: TwoFactorEmailRequest,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    login_service: CleanLoginService,
) -> OkResponse:
    await login_service.verify_email_code(payload.email, payload.code, context)
    return OkResponse(csrf_token=finish_with_csrf(response, context, csrf, rotate=True))


@router.post("/verify-recovery-code", response_model=OkResponse, summary="Complete sign-in with a recovery code")
async def verify_recovery_code(
    payload: RecoveryCodeRequest,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    login_service: CleanLoginService,
) -> OkResponse:
    await login_service.verify_recovery_code(payload.recovery_code, context)
    return OkResponse(csrf_token=finish_with_csrf(response, context, csrf, rotate=True))


# ---------------------------------------------------------------------------
# Enrollment
# ---------------------------------------------------------------------------


@router.post("/setup-authenticator", response_model=AuthenticatorSetupResponse)
async def setup_authenticator(
    response: Response,
    context: CurrentSession,
    current_user: CurrentUser,
    csrf: Csrf,
    two_factor: CleanTwoFactorService,
) -> AuthenticatorSetupResponse:
    """Generate a new authenticator secret. 2FA stays off until the first code is verified."""
    otpauth, key = await two_factor.setup_authenticator(current_user)
    return AuthenticatorSetupResponse(
        otpauth=otpauth, key=key, csrf_token=finish_with_csrf(response, context, csrf)
    )


@router.post("/verify-authenticator-setup", response_model=RecoveryCodesResponse)
async def verify_authenticator_setup(
    payload: TwoFactorCodeRequest,
    response: Response,
    context: CurrentSession,
    current_user: CurrentUser,
    csrf: Csrf,
    two_factor: CleanTwoFactorService,
) -> RecoveryCodesResponse:
    """Turn authenticator 2FA on. The recovery codes are shown once and never again."""
    recovery_codes = await two_factor.verify_authenticator_setup(current_user, payload.code)
    return RecoveryCodesResponse(
        recovery_codes=recovery_codes, csrf_token=finish_with_csrf(response, context, csrf)
    )


@router.post("/setup-email", response_model=MessageResponse)
async def setup_email(
    response: Response,
    context: CurrentSession,
    current_user: CurrentUser,
    csrf: Csrf,
    two_factor: CleanTwoFactorService,
) -> MessageResponse:
    await two_factor.setup_email(current_user, context)
    return MessageResponse(
        message="Verification code sent to your email",
        csrf_token=finish_with_csrf(response, context, csrf),
    )


@router.post("/verify-email-setup", response_model=RecoveryCodesResponse)
async def verify_email_setup(
    payload: TwoFactorCodeRequest,
    response: Response,
    context: CurrentSession,
    current_user: CurrentUser,
    csrf: Csrf,
    two_factor: CleanTwoFactorService,
) -> RecoveryCodesResponse:
    recovery_codes = await two_factor.verify_email_setup(current_user, payload.code)
    return RecoveryCodesResponse(
        recovery_codes=recovery_codes, csrf_token=finish_with_csrf(response, context, csrf)
    )


# ---------------------------------------------------------------------------
# Removal
# ---------------------------------------------------------------------------


@router.post("/disable", response_model=OkResponse, responses={400: {"description": "2FA is enforced"}})
async def disable(
    response: Response,
    context: CurrentSession,
    current_user: CurrentUser,
    csrf: Csrf,
    two_factor: CleanTwoFactorService,
) -> OkResponse:
    await two_factor.disable(current_user, context)
    return OkResponse(csrf_token=finish_with_csrf(response, context, csrf))


@router.put(
    "/reset",
    response_model=OkResponse,
    summary="Administrator reset of another user's 2FA",
    responses={403: {"description": "Caller is not an administrator"}, 404: {"description": "Unknown user"}},
)
async def admin_reset(
    payload: AdminTwoFactorResetRequest,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    two_factor: CleanTwoFactorService,
    admin: User = Depends(require_roles(Role.ADMIN)),
) -> OkResponse:
    await two_factor.admin_reset(admin, payload.user_id)
    return OkResponse(csrf_token=finish_with_csrf(response, context, csrf))
