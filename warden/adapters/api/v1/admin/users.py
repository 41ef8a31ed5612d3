"""Administrative actions on user accounts."""

from fastapi import APIRouter, Depends, Path, Response, status

from warden.adapters.api.v1.admin.schemas import EnforceTwoFactorRequest, EnforceTwoFactorResponse
from warden.adapters.api.v1.auth.utils import finish_with_csrf
from warden.core.dependencies.auth import CsrfProtected, CurrentSession, require_roles
from warden.domain.entities import Role, User
from warden.infrastructure.dependency_injection.auth_dependencies import CleanTwoFactorService, Csrf

router = APIRouter()


@router.put(
    "/users/{user_id}/enforce-2fa",
    response_model=EnforceTwoFactorResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[CsrfProtected],
    summary="Require or release two-factor authentication for a user",
    description=(
        "An enforced user who has no second factor is asked to enroll at the next "
        "sign-in and cannot disable 2FA afterwards."
    ),
    responses={403: {"description": "Caller is not an administrator"}, 404: {"description": "Unknown user"}},
)
async def enforce_two_factor(
    payload: EnforceTwoFactorRequest,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    two_factor: CleanTwoFactorService,
    user_id: int = Path(..., ge=1),
    admin: User = Depends(require_roles(Role.ADMIN)),
) -> EnforceTwoFactorResponse:
    target = await two_factor.set_enforced(admin, user_id, payload.enforced)
    return EnforceTwoFactorResponse(
        id=target.id,
        enforced=target.two_factor_enforced,
        csrf_token=finish_with_csrf(response, context, csrf),
    )
