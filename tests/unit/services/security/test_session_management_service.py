"""Tests for server-side sessions bound to the security stamp."""

from datetime import timedelta

import pytest

from tests.factories.user import create_user_in_db, identity_service_for
from warden.core.config.settings import settings
from warden.domain.security.data_protection import DataProtectionService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.domain.services.security.session_context import SessionContext
from warden.domain.services.security.session_management_service import (
    SessionManagementService,
    hash_session_token,
)
from warden.infrastructure.repositories import LogRepository, SessionRepository
from warden.utils.clock import utcnow


@pytest.fixture
def sessions(db_session):
    secure_log = SecureLogService(LogRepository(db_session), DataProtectionService())
    return SessionManagementService(identity_service_for(db_session), SessionRepository(db_session), secure_log)


@pytest.mark.asyncio
async def test_rotate_session_sets_cookie_and_authenticates(db_session, sessions):
    user = await create_user_in_db(db_session)
    context = SessionContext()

    session = await sessions.rotate_session(user, context, is_persistent=False)

    assert context.session_token
    assert session.token_hash == hash_session_token(context.session_token)
    assert session.security_stamp == user.security_stamp
    cookie = context.mutations[-1]
    assert cookie.name == settings.SESSION_COOKIE_NAME
    assert cookie.max_age is None

    authenticated = await sessions.authenticate(SessionContext(session_token=context.session_token))
    assert authenticated.id == user.id


@pytest.mark.asyncio
async def test_persistent_session_cookie_has_max_age(db_session, sessions):
    user = await create_user_in_db(db_session)
    context = SessionContext()
    await sessions.rotate_session(user, context, is_persistent=True)
    assert context.mutations[-1].max_age == settings.SESSION_LIFETIME_HOURS * 3600


@pytest.mark.asyncio
async def test_rotation_revokes_previous_session(db_session, sessions):
    user = await create_user_in_db(db_session)
    context = SessionContext()
    await sessions.rotate_session(user, context, False)
    old_token = context.session_token

    await sessions.rotate_session(user, context, False)

    assert context.session_token != old_token
    assert await sessions.authenticate(SessionContext(session_token=old_token)) is None
    assert await sessions.authenticate(SessionContext(session_token=context.session_token)) is not None


@pytest.mark.asyncio
async def test_stamp_change_invalidates_every_session(db_session, sessions):
    user = await create_user_in_db(db_session)
    first, second = SessionContext(), SessionContext()
    await sessions.rotate_session(user, first, False)
    await sessions.rotate_session(user, second, False)

    assert await sessions.refresh_security_stamp(user, "test") is True

    assert await sessions.authenticate(SessionContext(session_token=first.session_token)) is None
    assert await sessions.authenticate(SessionContext(session_token=second.session_token)) is None


@pytest.mark.asyncio
async def test_sign_out_revokes_and_clears_cookie(db_session, sessions):
    user = await create_user_in_db(db_session)
    context = SessionContext()
    await sessions.rotate_session(user, context, False)
    token = context.session_token

    await sessions.sign_out(context)

    assert context.session_token is None
    assert context.mutations[-1].is_delete
    assert await sessions.authenticate(SessionContext(session_token=token)) is None


@pytest.mark.asyncio
async def test_invalidate_all_sessions_signs_out_caller(db_session, sessions):
    user = await create_user_in_db(db_session)
    context = SessionContext()
    await sessions.rotate_session(user, context, False)
    token = context.session_token

    await sessions.invalidate_all_sessions(user, context)

    assert await sessions.authenticate(SessionContext(session_token=token)) is None


@pytest.mark.asyncio
async def test_expired_session_is_rejected(db_session, sessions, mocker):
    user = await create_user_in_db(db_session)
    context = SessionContext()
    await sessions.rotate_session(user, context, False)

    mocker.patch(
        "warden.domain.services.security.session_management_service.utcnow",
        return_value=utcnow() + timedelta(hours=settings.SESSION_LIFETIME_HOURS + 1),
    )
    assert await sessions.authenticate(SessionContext(session_token=context.session_token)) is None


@pytest.mark.asyncio
async def test_sliding_renewal_after_half_lifetime(db_session, sessions, mocker):
    user = await create_user_in_db(db_session)
    context = SessionContext()
    await sessions.rotate_session(user, context, False)

    mocker.patch(
        "warden.domain.services.security.session_management_service.utcnow",
        return_value=utcnow() + timedelta(hours=settings.SESSION_LIFETIME_HOURS * 0.75),
    )
    renewed = SessionContext(session_token=context.session_token)
    assert await sessions.authenticate(renewed) is not None
    assert [m.name for m in renewed.mutations] == [settings.SESSION_COOKIE_NAME]


@pytest.mark.asyncio
async def test_unknown_or_missing_token(sessions):
    assert await sessions.authenticate(SessionContext()) is None
    assert await sessions.authenticate(SessionContext(session_token="nope")) is None
