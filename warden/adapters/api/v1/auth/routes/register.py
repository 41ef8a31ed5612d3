from __future__ import annotations

"""Registration and email-address confirmation.

Both confirmation paths (the signed link and the 6-digit code) are exposed;
either one confirms the address.
"""

from fastapi import APIRouter, Response, status

from warden.adapters.api.v1.auth.schemas import (
    EmailRequest,
    MessageResponse,
    RegisterRequest,
    VerifyEmailCodeRequest,
    VerifyEmailRequest,
)
from warden.adapters.api.v1.auth.utils import finish_with_csrf
from warden.core.dependencies.auth import CsrfProtected, CurrentSession
from warden.domain.services.authentication.email_verification_service import RESEND_MESSAGE, VERIFIED_MESSAGE
from warden.domain.services.authentication.registration_service import REGISTERED_MESSAGE
from warden.infrastructure.dependency_injection.auth_dependencies import (
    CleanEmailVerificationService,
    CleanRegistrationService,
    Csrf,
)

router = APIRouter(dependencies=[CsrfProtected])


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Create an account",
    description=(
        "Creates an unconfirmed account and emails a verification link and code. "
        "The response is identical whether or not the username or email was already taken."
    ),
    responses={400: {"description": "Malformed username or weak password"}},
)
async def register(
    payload: RegisterRequest,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    registration: CleanRegistrationService,
) -> MessageResponse:
    await registration.register(payload.username, payload.email, payload.password, context)
    return MessageResponse(message=REGISTERED_MESSAGE, csrf_token=finish_with_csrf(response, context, csrf))


@router.post("/verify-email", response_model=MessageResponse, summary="Confirm an email address with the link token")
async def verify_email(
    payload: VerifyEmailRequest,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    verification: CleanEmailVerificationService,
) -> MessageResponse:
    await verification.verify_with_link(payload.user_id, payload.token, context)
    return MessageResponse(message=VERIFIED_MESSAGE, csrf_token=finish_with_csrf(response, context, csrf))


@router.post(
    "/verify-email-code", response_model=MessageResponse, summary="Confirm an email address with the 6-digit code"
)
async def verify_email_code(
    payload: VerifyEmailCodeRequest,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    verification: CleanEmailVerificationService,
) -> MessageResponse:
    await verification.verify_with_code(payload.email, payload.code, context)
    return MessageResponse(message=VERIFIED_MESSAGE, csrf_token=finish_with_csrf(response, context, csrf))


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    payload: EmailRequest,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    verification: CleanEmailVerificationService,
) -> MessageResponse:
    await verification.resend(payload.email, context)
    return MessageResponse(message=RESEND_MESSAGE, csrf_token=finish_with_csrf(response, context, csrf))
