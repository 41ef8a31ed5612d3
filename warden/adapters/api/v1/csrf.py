"""Anti-forgery token bootstrap."""

from fastapi import APIRouter, Response

from warden.adapters.api.v1.auth.schemas import CsrfTokenResponse
from warden.adapters.api.v1.auth.utils import finish_with_csrf
from warden.core.dependencies.auth import CurrentSession
from warden.infrastructure.dependency_injection.auth_dependencies import Csrf

router = APIRouter()


@router.get(
    "/csrf-token",
    response_model=CsrfTokenResponse,
    summary="Issue an anti-forgery token",
    description=(
        "Sets the XSRF-TOKEN cookie when it is missing and returns the matching "
        "request token for the X-XSRF-TOKEN header."
    ),
)
async def get_csrf_token(response: Response, context: CurrentSession, csrf: Csrf) -> CsrfTokenResponse:
    return CsrfTokenResponse(token=finish_with_csrf(response, context, csrf))
