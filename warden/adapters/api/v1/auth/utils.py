from __future__ import annotations

"""Shared helpers for authentication routes."""

from fastapi import Response

from warden.core.dependencies.auth import apply_session_cookies
from warden.domain.services.security.csrf_service import CsrfService
from warden.domain.services.security.session_context import SessionContext


def finish_with_csrf(
    response: Response, context: SessionContext, csrf: CsrfService, rotate: bool = False
) -> str:
    """Issue the next anti-forgery token and flush the cookie mutations onto ``response``.

    Pass ``rotate=True`` on every change of authentication state (sign-in,
    second factor completed, sign-out) so a token minted before the change
    cannot be replayed after it.
    """
    token = csrf.issue(context, rotate=rotate)
    apply_session_cookies(response, context)
    return token
