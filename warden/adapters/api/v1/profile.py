"""Self-service profile endpoints."""

from fastapi import APIRouter, Response

from warden.adapters.api.v1.auth.schemas import ChangePasswordRequest, OkResponse
from warden.adapters.api.v1.auth.utils import finish_with_csrf
from warden.core.dependencies.auth import CsrfProtected, CurrentSession, CurrentUser
from warden.infrastructure.dependency_injection.auth_dependencies import CleanPasswordChangeService, Csrf

router = APIRouter(prefix="/profile", tags=["profile"])


@router.put(
    "/change-password",
    response_model=OkResponse,
    dependencies=[CsrfProtected],
    summary="Change the signed-in user's password",
    description="Ends every session of the user, including the one making this request.",
    responses={400: {"description": "Wrong current password or weak new password"}},
)
async def change_password(
    payload: ChangePasswordRequest,
    response: Response,
    context: CurrentSession,
    current_user: CurrentUser,
    csrf: Csrf,
    password_change: CleanPasswordChangeService,
) -> OkResponse:
    await password_change.change_password(current_user, payload.current_password, payload.new_password, context)
    return OkResponse(csrf_token=finish_with_csrf(response, context, csrf, rotate=True))
