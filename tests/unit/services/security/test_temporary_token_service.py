"""Tests for TemporaryTokenService against the real token repository."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from tests.factories.user import create_user_in_db
from warden.domain.entities import Log, LogCategory, UserToken
from warden.domain.security.data_protection import DataProtectionService
from warden.domain.services.security.secure_log_service import SecureLogService
from warden.domain.services.security.temporary_token_service import TOKEN_PROVIDER, TemporaryTokenService
from warden.domain.value_objects.temporary_token import TemporaryToken
from warden.domain.value_objects.token_purpose import TokenPurpose
from warden.infrastructure.repositories import LogRepository, UserTokenRepository
from warden.utils.clock import utcnow

PURPOSE = TokenPurpose.EMAIL_TWO_FACTOR_LOGIN


@pytest.fixture
def token_repository(db_session):
    return UserTokenRepository(db_session)


@pytest.fixture
def secure_log(db_session):
    return SecureLogService(LogRepository(db_session), DataProtectionService())


@pytest.fixture
def tokens(token_repository, secure_log):
    return TemporaryTokenService(token_repository, secure_log)


async def _slots(db_session):
    return list((await db_session.execute(select(UserToken))).scalars().all())


async def _race_on_first_read(mocker, token_repository, rival):
    """Make the first slot read run ``rival`` before the caller sees the slot."""
    real_get = token_repository.get
    raced = []

    async def get_then_race(*args):
        slot = await real_get(*args)
        if not raced:
            raced.append(await rival())
        return slot

    mocker.patch.object(token_repository, "get", side_effect=get_then_race)
    return raced


@pytest.mark.asyncio
async def test_code_is_single_use(db_session, tokens):
    user = await create_user_in_db(db_session)
    await tokens.store_token(user, PURPOSE, "123456", timedelta(minutes=5))

    assert await tokens.validate_and_consume_token(user, PURPOSE, "123456") is True
    assert await tokens.validate_and_consume_token(user, PURPOSE, "123456") is False


@pytest.mark.asyncio
async def test_code_is_bound_to_purpose(db_session, tokens):
    user = await create_user_in_db(db_session)
    await tokens.store_token(user, PURPOSE, "123456", timedelta(minutes=5))

    assert await tokens.validate_and_consume_token(user, TokenPurpose.PASSWORD_RESET, "123456") is False
    assert await tokens.validate_and_consume_token(user, PURPOSE, "123456") is True


@pytest.mark.asyncio
async def test_new_code_replaces_previous(db_session, tokens):
    user = await create_user_in_db(db_session)
    await tokens.store_token(user, PURPOSE, "111111", timedelta(minutes=5))
    await tokens.store_token(user, PURPOSE, "222222", timedelta(minutes=5))

    assert await tokens.validate_and_consume_token(user, PURPOSE, "111111") is False
    assert await tokens.validate_and_consume_token(user, PURPOSE, "222222") is True


@pytest.mark.asyncio
async def test_expired_code_is_rejected(db_session, tokens, mocker):
    user = await create_user_in_db(db_session)
    await tokens.store_token(user, PURPOSE, "123456", timedelta(minutes=5))

    mocker.patch(
        "warden.domain.services.security.temporary_token_service.utcnow",
        return_value=utcnow() + timedelta(minutes=6),
    )
    assert await tokens.validate_and_consume_token(user, PURPOSE, "123456") is False
    assert await _slots(db_session) == []


@pytest.mark.asyncio
async def test_three_wrong_attempts_destroy_the_code(db_session, tokens):
    user = await create_user_in_db(db_session)
    await tokens.store_token(user, PURPOSE, "123456", timedelta(minutes=5))

    for _ in range(3):
        assert await tokens.validate_and_consume_token(user, PURPOSE, "000000") is False

    assert await tokens.validate_and_consume_token(user, PURPOSE, "123456") is False


@pytest.mark.asyncio
async def test_correct_code_after_two_failures_still_works(db_session, tokens):
    user = await create_user_in_db(db_session)
    await tokens.store_token(user, PURPOSE, "123456", timedelta(minutes=5))

    for _ in range(2):
        await tokens.validate_and_consume_token(user, PURPOSE, "000000")

    assert await tokens.validate_and_consume_token(user, PURPOSE, "123456") is True


@pytest.mark.asyncio
async def test_removed_code_is_rejected(db_session, tokens):
    user = await create_user_in_db(db_session)
    await tokens.store_token(user, PURPOSE, "123456", timedelta(minutes=5))
    await tokens.remove_token(user, PURPOSE)

    assert await tokens.validate_and_consume_token(user, PURPOSE, "123456") is False


@pytest.mark.asyncio
async def test_malformed_slot_is_removed_and_logged_as_error(db_session, tokens, token_repository):
    user = await create_user_in_db(db_session)
    await token_repository.set(user.id, TOKEN_PROVIDER, PURPOSE.value, "{not json")

    assert await tokens.validate_and_consume_token(user, PURPOSE, "123456") is False

    assert await _slots(db_session) == []
    errors = (await db_session.execute(select(Log).where(Log.category == LogCategory.ERROR.value))).scalars().all()
    assert [log.action for log in errors] == ["ValidateToken"]


@pytest.mark.asyncio
async def test_concurrent_consumers_cannot_both_succeed(db_session, mocker, tokens, token_repository, secure_log):
    user = await create_user_in_db(db_session)
    await tokens.store_token(user, PURPOSE, "123456", timedelta(minutes=5))
    rival = TemporaryTokenService(UserTokenRepository(db_session), secure_log)

    raced = await _race_on_first_read(
        mocker, token_repository, lambda: rival.validate_and_consume_token(user, PURPOSE, "123456")
    )

    assert await tokens.validate_and_consume_token(user, PURPOSE, "123456") is False
    assert raced == [True]
    assert await _slots(db_session) == []


@pytest.mark.asyncio
async def test_concurrent_failed_attempts_are_both_counted(db_session, mocker, tokens, token_repository, secure_log):
    user = await create_user_in_db(db_session)
    await tokens.store_token(user, PURPOSE, "123456", timedelta(minutes=5))
    rival = TemporaryTokenService(UserTokenRepository(db_session), secure_log)

    raced = await _race_on_first_read(
        mocker, token_repository, lambda: rival.validate_and_consume_token(user, PURPOSE, "000000")
    )

    assert await tokens.validate_and_consume_token(user, PURPOSE, "111111") is False
    assert raced == [False]

    slot = await UserTokenRepository(db_session).get(user.id, TOKEN_PROVIDER, PURPOSE.value)
    assert TemporaryToken.from_json(slot.value).failed_attempts == 2
