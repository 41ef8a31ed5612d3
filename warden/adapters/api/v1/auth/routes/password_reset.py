from __future__ import annotations

"""Forgotten-password endpoints."""

from fastapi import APIRouter, Response

from warden.adapters.api.v1.auth.schemas import EmailRequest, MessageResponse, ResetPasswordRequest
from warden.adapters.api.v1.auth.utils import finish_with_csrf
from warden.core.dependencies.auth import CsrfProtected, CurrentSession
from warden.core.exceptions import TokenInvalidError
from warden.domain.services.authentication.password_reset_service import (
    FORGOT_MESSAGE,
    INVALID_RESET_MESSAGE,
    RESET_MESSAGE,
)
from warden.infrastructure.dependency_injection.auth_dependencies import CleanPasswordResetService, Csrf

router = APIRouter(dependencies=[CsrfProtected])


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request a password reset email",
    description="Always answers with the same message, whether or not the address is registered.",
)
async def forgot_password(
    payload: EmailRequest,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    password_reset: CleanPasswordResetService,
) -> MessageResponse:
    await password_reset.forgot_password(payload.email, context)
    return MessageResponse(message=FORGOT_MESSAGE, csrf_token=finish_with_csrf(response, context, csrf))


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Set a new password with the emailed link token or code",
    responses={400: {"description": "Invalid or expired token/code, or weak password"}},
)
async def reset_password(
    payload: ResetPasswordRequest,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    password_reset: CleanPasswordResetService,
) -> MessageResponse:
    if not payload.token and not payload.code:
        raise TokenInvalidError(INVALID_RESET_MESSAGE)
    await password_reset.reset_password(
        payload.email, payload.new_password, context, token=payload.token, code=payload.code
    )
    return MessageResponse(message=RESET_MESSAGE, csrf_token=finish_with_csrf(response, context, csrf))
