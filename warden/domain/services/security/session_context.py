"""Per-request session state.

A ``SessionContext`` is built from the inbound cookies at the start of a
request and handed explicitly to every service that reads or changes the
caller's session. Services never touch the HTTP response; they record
cookie mutations here and the HTTP layer applies them in order.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class CookieMutation:
    """A single ``Set-Cookie`` instruction. ``value=None`` deletes the cookie."""

    name: str
    value: Optional[str]
    max_age: Optional[int] = None
    httponly: bool = True
    samesite: str = "lax"

    @property
    def is_delete(self) -> bool:
        return self.value is None


@dataclass
class SessionContext:
    """Inbound cookie values plus the mutations accumulated while handling one request.

    Attributes:
        session_token: Raw session cookie value, replaced when the session rotates.
        csrf_secret: Raw anti-forgery cookie secret, replaced when it rotates.
        two_factor_token: Signed pending-2FA challenge cookie, if any.
        client_ip: Remote address used in security notifications.
        base_url: Public origin used to build links in emails.
    """

    session_token: Optional[str] = None
    csrf_secret: Optional[str] = None
    two_factor_token: Optional[str] = None
    client_ip: str = "unknown"
    base_url: str = ""
    mutations: List[CookieMutation] = field(default_factory=list)

    def set_cookie(
        self,
        name: str,
        value: str,
        max_age: Optional[int] = None,
        httponly: bool = True,
        samesite: str = "lax",
    ) -> None:
        self.mutations.append(CookieMutation(name, value, max_age, httponly, samesite))

    def delete_cookie(self, name: str, samesite: str = "lax") -> None:
        self.mutations.append(CookieMutation(name, None, samesite=samesite))
