from __future__ import annotations

"""Password sign-in, sign-out and the current-user endpoint."""

from fastapi import APIRouter, Response, status
from structlog import get_logger

from warden.adapters.api.v1.auth.schemas import (
    CurrentUserResponse,
    LoginRequest,
    LoginResponse,
    OkResponse,
)
from warden.adapters.api.v1.auth.utils import finish_with_csrf
from warden.core.dependencies.auth import CsrfProtected, CurrentSession, CurrentUser, apply_session_cookies
from warden.domain.entities import TwoFactorMethod
from warden.infrastructure.dependency_injection.auth_dependencies import CleanLoginService, Csrf, Identity

logger = get_logger(__name__)
router = APIRouter()


@router.post(
    "/login",
    response_model=LoginResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    dependencies=[CsrfProtected],
    summary="Sign in with username or email",
    description=(
        "Checks the password with lockout bookkeeping. Either establishes a new "
        "session or tells the client which second factor to complete."
    ),
    responses={
        401: {"description": "Invalid credentials or account locked"},
    },
)
async def login(
    payload: LoginRequest,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    login_service: CleanLoginService,
) -> LoginResponse:
    result = await login_service.login(payload.login, payload.password, payload.remember_me, context)

    if result.requires_two_factor:
        apply_session_cookies(response, context)
        return LoginResponse(
            requires_2fa=True,
            two_factor_method=result.two_factor_method.value,
            email=result.user.email if result.two_factor_method == TwoFactorMethod.EMAIL else None,
        )

    logger.info("login_completed", user_id=result.user.id, needs_setup_2fa=result.needs_setup_2fa)
    return LoginResponse(
        needs_setup_2fa=result.needs_setup_2fa,
        csrf_token=finish_with_csrf(response, context, csrf, rotate=True),
    )


@router.post(
    "/logout",
    response_model=OkResponse,
    dependencies=[CsrfProtected],
    summary="End the current session",
)
async def logout(
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    login_service: CleanLoginService,
) -> OkResponse:
    await login_service.logout(context)
    return OkResponse(csrf_token=finish_with_csrf(response, context, csrf, rotate=True))


@router.get(
    "/me",
    response_model=CurrentUserResponse,
    summary="Return the signed-in user",
    responses={401: {"description": "No valid session"}},
)
async def me(
    response: Response,
    context: CurrentSession,
    current_user: CurrentUser,
    identity: Identity,
) -> CurrentUserResponse:
    # Sliding renewal may have re-issued the session cookie.
    apply_session_cookies(response, context)
    return CurrentUserResponse(
        id=current_user.id,
        username=current_user.username,
        email=current_user.email,
        two_factor_enabled=current_user.two_factor_enabled,
        two_factor_method=current_user.method.value,
        two_factor_enforced=current_user.two_factor_enforced,
        roles=await identity.get_roles(current_user),
    )
