"""Identity store behaviour against a real (in-memory) database."""

import pyotp
import pytest

from tests.factories.user import DEFAULT_PASSWORD, create_user_in_db, identity_service_for
from warden.core.config.settings import settings
from warden.core.exceptions import DuplicateUserError, PasswordPolicyError, ValidationError
from warden.domain.entities import Role, TwoFactorMethod
from warden.domain.services.identity.identity_service import IdentityService


@pytest.fixture
def identity(db_session) -> IdentityService:
    return identity_service_for(db_session)


class TestAccounts:
    @pytest.mark.asyncio
    async def test_create_user_normalizes_and_assigns_default_role(self, identity):
        user = await identity.create_user("Alice", "Alice@Example.com", DEFAULT_PASSWORD)

        assert user.normalized_username == "ALICE"
        assert user.normalized_email == "ALICE@EXAMPLE.COM"
        assert user.hashed_password != DEFAULT_PASSWORD
        assert await identity.get_roles(user) == [Role.USER.value]

    @pytest.mark.asyncio
    async def test_lookups_are_case_insensitive(self, identity):
        user = await identity.create_user("alice", "alice@example.com", DEFAULT_PASSWORD)

        assert (await identity.find_by_email("ALICE@example.com")).id == user.id
        assert (await identity.find_by_login("ALICE")).id == user.id
        assert (await identity.find_by_login("alice@EXAMPLE.com")).id == user.id

    @pytest.mark.asyncio
    async def test_weak_password_is_rejected(self, identity):
        with pytest.raises(PasswordPolicyError):
            await identity.create_user("alice", "alice@example.com", "short")

    @pytest.mark.asyncio
    async def test_duplicate_email_is_rejected(self, identity):
        await identity.create_user("alice", "alice@example.com", DEFAULT_PASSWORD)
        with pytest.raises(DuplicateUserError):
            await identity.create_user("alice2", "ALICE@example.com", DEFAULT_PASSWORD)

    @pytest.mark.asyncio
    async def test_ensure_user_is_idempotent_and_grants_roles(self, identity):
        first = await identity.ensure_user("admin", "admin@example.com", DEFAULT_PASSWORD, [Role.ADMIN])
        second = await identity.ensure_user(
            "admin", "admin@example.com", DEFAULT_PASSWORD, [Role.ADMIN, Role.AUDIT_INVESTIGATOR]
        )

        assert first.id == second.id
        assert second.email_confirmed
        assert await identity.is_in_role(second, Role.AUDIT_INVESTIGATOR)

    @pytest.mark.parametrize("username", ["ab", "x" * 51, "bad name!"])
    def test_validate_username_rejects_bad_values(self, username):
        with pytest.raises(ValidationError):
            IdentityService.validate_username(username)


class TestPasswordSignIn:
    @pytest.mark.asyncio
    async def test_correct_password_succeeds(self, db_session, identity):
        user = await create_user_in_db(db_session)
        result = await identity.check_password_sign_in(user, DEFAULT_PASSWORD)
        assert result.succeeded

    @pytest.mark.asyncio
    async def test_unconfirmed_email_is_not_allowed(self, db_session, identity):
        user = await create_user_in_db(db_session, email_confirmed=False)
        result = await identity.check_password_sign_in(user, DEFAULT_PASSWORD)
        assert result.is_not_allowed
        assert not result.succeeded

    @pytest.mark.asyncio
    async def test_lockout_after_max_failed_attempts(self, db_session, identity):
        user = await create_user_in_db(db_session)

        for _ in range(settings.LOCKOUT_MAX_FAILED_ATTEMPTS - 1):
            result = await identity.check_password_sign_in(user, "WrongPassword123")
            assert not result.is_locked_out

        result = await identity.check_password_sign_in(user, "WrongPassword123")
        assert result.is_locked_out
        assert result.lockout_triggered
        assert user.access_failed_count == 0

        # The right password does not help while locked out.
        result = await identity.check_password_sign_in(user, DEFAULT_PASSWORD)
        assert result.is_locked_out
        assert not result.lockout_triggered

    @pytest.mark.asyncio
    async def test_success_resets_failure_counter(self, db_session, identity):
        user = await create_user_in_db(db_session)
        await identity.check_password_sign_in(user, "WrongPassword123")
        assert user.access_failed_count == 1

        await identity.check_password_sign_in(user, DEFAULT_PASSWORD)
        assert user.access_failed_count == 0

    @pytest.mark.asyncio
    async def test_two_factor_user_requires_second_step(self, db_session, identity):
        user = await create_user_in_db(db_session)
        await identity.enable_two_factor(user, TwoFactorMethod.EMAIL)

        result = await identity.check_password_sign_in(user, DEFAULT_PASSWORD)
        assert result.requires_two_factor
        assert not result.succeeded


class TestTwoFactor:
    @pytest.mark.asyncio
    async def test_totp_verification(self, db_session, identity):
        user = await create_user_in_db(db_session)
        key = await identity.reset_authenticator_key(user)

        assert identity.verify_totp(user, pyotp.TOTP(key).now())
        assert not identity.verify_totp(user, "abcdef")
        assert not identity.verify_totp(user, "")

    @pytest.mark.asyncio
    async def test_authenticator_uri(self, db_session, identity):
        user = await create_user_in_db(db_session, username="alice")
        uri = identity.authenticator_uri(user, "JBSWY3DPEHPK3PXP")
        assert uri.startswith("otpauth://totp/")
        assert "secret=JBSWY3DPEHPK3PXP" in uri
        assert "digits=6" in uri

    @pytest.mark.asyncio
    async def test_recovery_codes_are_single_use(self, db_session, identity):
        user = await create_user_in_db(db_session)
        codes = await identity.generate_recovery_codes(user, count=3)

        assert len(codes) == 3
        assert await identity.count_recovery_codes(user) == 3
        assert await identity.redeem_recovery_code(user, codes[0]) is True
        assert await identity.redeem_recovery_code(user, codes[0]) is False
        assert await identity.count_recovery_codes(user) == 2

    @pytest.mark.asyncio
    async def test_regenerating_recovery_codes_replaces_old_ones(self, db_session, identity):
        user = await create_user_in_db(db_session)
        old = await identity.generate_recovery_codes(user, count=2)
        await identity.generate_recovery_codes(user, count=2)

        assert await identity.redeem_recovery_code(user, old[0]) is False

    @pytest.mark.asyncio
    async def test_disable_two_factor_clears_state(self, db_session, identity):
        user = await create_user_in_db(db_session)
        key = await identity.reset_authenticator_key(user)
        await identity.enable_two_factor(user, TwoFactorMethod.AUTHENTICATOR)
        await identity.generate_recovery_codes(user, count=2)

        await identity.disable_two_factor(user)

        assert not user.two_factor_enabled
        assert user.method == TwoFactorMethod.NONE
        assert user.authenticator_key != key
        assert await identity.count_recovery_codes(user) == 0


class TestLinkTokens:
    @pytest.mark.asyncio
    async def test_email_confirmation_token(self, db_session, identity):
        user = await create_user_in_db(db_session, email_confirmed=False)
        token = identity.generate_email_confirmation_token(user)

        assert await identity.confirm_email(user, "garbage") is False
        assert await identity.confirm_email(user, token) is True
        assert user.email_confirmed

    @pytest.mark.asyncio
    async def test_reset_token_cannot_confirm_email(self, db_session, identity):
        user = await create_user_in_db(db_session, email_confirmed=False)
        token = identity.generate_password_reset_token(user)
        assert await identity.confirm_email(user, token) is False

    @pytest.mark.asyncio
    async def test_reset_token_is_invalidated_by_stamp_change(self, db_session, identity):
        user = await create_user_in_db(db_session)
        token = identity.generate_password_reset_token(user)
        await identity.update_security_stamp(user)

        assert identity.verify_password_reset_token(user, token) is False

    @pytest.mark.asyncio
    async def test_reset_password_consumes_the_token(self, db_session, identity):
        user = await create_user_in_db(db_session)
        token = identity.generate_password_reset_token(user)

        assert await identity.reset_password(user, token, "BrandNewPassword9") is True
        assert identity.check_password(user, "BrandNewPassword9")
        assert await identity.reset_password(user, token, "AnotherPassword9") is False
