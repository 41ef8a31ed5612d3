from __future__ import annotations

# FastAPI & typing
from typing import Annotated, Callable, Optional

from fastapi import Depends, Request, Response

# Project imports
from warden.core.config.settings import settings
from warden.core.exceptions import AuthenticationError, PermissionError
from warden.domain.entities.user import Role, User
from warden.domain.services.security.session_context import SessionContext
from warden.infrastructure.dependency_injection.auth_dependencies import (
    Csrf,
    Identity,
    SessionManagement,
)

__all__ = [
    "get_session_context",
    "get_current_user",
    "get_optional_user",
    "require_roles",
    "require_csrf",
    "apply_session_cookies",
    "CurrentSession",
    "CurrentUser",
    "CsrfProtected",
]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _base_url(request: Request) -> str:
    if settings.PUBLIC_BASE_URL:
        return settings.PUBLIC_BASE_URL
    return f"{request.url.scheme}://{request.url.netloc}"


# ---------------------------------------------------------------------------
# Public dependencies
# ---------------------------------------------------------------------------


def get_session_context(request: Request) -> SessionContext:
    """Build the per-request :class:`SessionContext` from the inbound cookies.

    FastAPI caches the result for the duration of the request, so every
    dependency and the route itself share one context and one list of cookie
    mutations.
    """
    return SessionContext(
        session_token=request.cookies.get(settings.SESSION_COOKIE_NAME),
        csrf_secret=request.cookies.get(settings.CSRF_COOKIE_NAME),
        two_factor_token=request.cookies.get(settings.TWO_FACTOR_COOKIE_NAME),
        client_ip=_client_ip(request),
        base_url=_base_url(request),
    )


CurrentSession = Annotated[SessionContext, Depends(get_session_context)]


async def get_optional_user(context: CurrentSession, sessions: SessionManagement) -> Optional[User]:
    return await sessions.authenticate(context)


async def get_current_user(user: Annotated[Optional[User], Depends(get_optional_user)]) -> User:
    """Return the user behind a valid session cookie.

    Raises:
        AuthenticationError: No cookie, or the session is revoked, expired or stale.
    """
    if user is None:
        raise AuthenticationError("Unauthorized")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_roles(*roles: Role) -> Callable:
    """Dependency factory allowing users holding any of ``roles``."""

    async def _check(user: CurrentUser, identity: Identity) -> User:
        held = set(await identity.get_roles(user))
        if not held.intersection(role.value for role in roles):
            raise PermissionError("Forbidden")
        return user

    return _check


def require_csrf(request: Request, context: CurrentSession, csrf: Csrf) -> None:
    """Reject state-changing requests whose header token does not match the cookie secret."""
    csrf.validate(context, request.headers.get(settings.CSRF_HEADER_NAME))


CsrfProtected = Depends(require_csrf)


def apply_session_cookies(response: Response, context: SessionContext) -> None:
    """Copy the cookie mutations recorded on ``context`` onto ``response``, in order."""
    for mutation in context.mutations:
        if mutation.is_delete:
            response.delete_cookie(
                mutation.name,
                path="/",
                secure=settings.SESSION_COOKIE_SECURE,
                httponly=mutation.httponly,
                samesite=mutation.samesite,
            )
        else:
            response.set_cookie(
                mutation.name,
                mutation.value,
                max_age=mutation.max_age,
                path="/",
                secure=settings.SESSION_COOKIE_SECURE,
                httponly=mutation.httponly,
                samesite=mutation.samesite,
            )
    context.mutations.clear()
