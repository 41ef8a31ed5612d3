import pytest

from warden.core.config.settings import settings
from warden.core.exceptions import CsrfError
from warden.domain.security.signed_tokens import SignedTokenService
from warden.domain.services.security.csrf_service import CsrfService
from warden.domain.services.security.session_context import SessionContext


@pytest.fixture
def csrf():
    return CsrfService(SignedTokenService(secret_key="csrf-test-secret-0123456789"))


def test_issue_mints_cookie_when_missing(csrf):
    context = SessionContext()
    token = csrf.issue(context)

    assert context.csrf_secret
    assert [m.name for m in context.mutations] == [settings.CSRF_COOKIE_NAME]
    assert context.mutations[0].samesite == "strict"
    assert token != context.csrf_secret
    csrf.validate(context, token)


def test_issue_reuses_existing_secret(csrf):
    context = SessionContext(csrf_secret="existing-secret")
    token = csrf.issue(context)

    assert context.csrf_secret == "existing-secret"
    assert context.mutations == []
    csrf.validate(context, token)


def test_rotate_invalidates_previous_token(csrf):
    context = SessionContext()
    old_token = csrf.issue(context)
    csrf.issue(context, rotate=True)

    with pytest.raises(CsrfError):
        csrf.validate(context, old_token)


@pytest.mark.parametrize("secret,token", [(None, "anything"), ("secret", None), ("secret", "")])
def test_missing_cookie_or_header_is_rejected(csrf, secret, token):
    with pytest.raises(CsrfError):
        csrf.validate(SessionContext(csrf_secret=secret), token)


def test_token_from_another_cookie_is_rejected(csrf):
    token = csrf.issue(SessionContext(csrf_secret="victim-secret"))

    with pytest.raises(CsrfError):
        csrf.validate(SessionContext(csrf_secret="attacker-secret"), token)


def test_forged_token_is_rejected(csrf):
    context = SessionContext(csrf_secret="secret")
    with pytest.raises(CsrfError):
        csrf.validate(context, "forged.token.value")
