"""
Two-factor authentication journeys.

Enrollment and sign-in with an emailed code, with an authenticator app and
with recovery codes, plus disabling and administrative enforcement.
"""

import pyotp
import pytest
import pytest_asyncio

from tests.factories.user import DEFAULT_PASSWORD, create_user_in_db
from tests.utils.inspection import audit_entries, last_email_data

pytestmark = pytest.mark.feature

EMAIL = "carol@example.com"


@pytest_asyncio.fixture
async def carol(db_session):
    return await create_user_in_db(db_session, username="carol", email=EMAIL)


async def _sign_in(api):
    response = await api.login("carol", DEFAULT_PASSWORD)
    assert response.status_code == 200
    return response.json()


async def _enroll_authenticator(api):
    response = await api.post("/auth/2fa/setup-authenticator")
    assert response.status_code == 200
    body = response.json()
    assert body["otpauth"].startswith("otpauth://totp/")
    key = body["key"]

    response = await api.post("/auth/2fa/verify-authenticator-setup", {"code": pyotp.TOTP(key).now()})
    assert response.status_code == 200
    return key, response.json()["recoveryCodes"]


class TestEmailTwoFactor:
    @pytest.mark.asyncio
    async def test_enroll_then_sign_in_with_emailed_code(self, api, carol):
        await _sign_in(api)

        # Enrollment
        response = await api.post("/auth/2fa/setup-email")
        assert response.status_code == 200
        assert response.json()["message"] == "Verification code sent to your email"
        setup_code = (await last_email_data("2fa-code", EMAIL))["verification_code"]

        response = await api.post("/auth/2fa/verify-email-setup", {"code": setup_code})
        assert response.status_code == 200
        assert len(response.json()["recoveryCodes"]) == 10

        await api.post("/auth/logout")

        # Sign-in now stops at the second factor
        response = await api.login("carol", DEFAULT_PASSWORD)
        assert response.status_code == 200
        body = response.json()
        assert body["requires2fa"] is True
        assert body["twoFactorMethod"] == "Email"
        assert body["email"] == EMAIL
        assert "csrfToken" not in body
        assert (await api.get("/auth/me")).status_code == 401

        login_code = (await last_email_data("2fa-code", EMAIL))["verification_code"]

        response = await api.post("/auth/2fa/verify-email", {"email": EMAIL, "code": login_code})
        assert response.status_code == 200
        assert response.json()["csrfToken"]

        me = (await api.get("/auth/me")).json()
        assert me["twoFactorEnabled"] is True
        assert me["twoFactorMethod"] == "Email"

    @pytest.mark.asyncio
    async def test_emailed_code_is_single_use_and_attempt_limited(self, api, carol):
        await _sign_in(api)
        await api.post("/auth/2fa/setup-email")
        code = (await last_email_data("2fa-code", EMAIL))["verification_code"]
        await api.post("/auth/2fa/verify-email-setup", {"code": code})
        await api.post("/auth/logout")

        await api.login("carol", DEFAULT_PASSWORD)
        code = (await last_email_data("2fa-code", EMAIL))["verification_code"]
        wrong = "111111" if code != "111111" else "222222"
        for _ in range(3):
            response = await api.post("/auth/2fa/verify-email", {"email": EMAIL, "code": wrong})
            assert response.status_code == 401

        response = await api.post("/auth/2fa/verify-email", {"email": EMAIL, "code": code})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid or expired 2FA code"

    @pytest.mark.asyncio
    async def test_recovery_code_replaces_emailed_code(self, api, carol):
        await _sign_in(api)
        await api.post("/auth/2fa/setup-email")
        code = (await last_email_data("2fa-code", EMAIL))["verification_code"]
        recovery_codes = (await api.post("/auth/2fa/verify-email-setup", {"code": code})).json()["recoveryCodes"]
        await api.post("/auth/logout")

        response = await api.login("carol", DEFAULT_PASSWORD)
        assert response.json()["twoFactorMethod"] == "Email"

        response = await api.post("/auth/2fa/verify-recovery-code", {"recoveryCode": recovery_codes[0]})
        assert response.status_code == 200
        assert (await api.get("/auth/me")).json()["email"] == EMAIL

        response = await api.post("/auth/2fa/verify-recovery-code", {"recoveryCode": recovery_codes[1]})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid 2FA session"


class TestAuthenticatorTwoFactor:
    @pytest.mark.asyncio
    async def test_enroll_then_sign_in_with_totp(self, api, carol):
        await _sign_in(api)
        key, recovery_codes = await _enroll_authenticator(api)
        assert len(recovery_codes) == 10
        await api.post("/auth/logout")

        response = await api.login("carol", DEFAULT_PASSWORD)
        body = response.json()
        assert body["requires2fa"] is True
        assert body["twoFactorMethod"] == "Authenticator"
        assert "email" not in body

        response = await api.post("/auth/2fa/verify-authenticator", {"code": "000000"})
        assert response.status_code == 401

        response = await api.post("/auth/2fa/verify-authenticator", {"code": pyotp.TOTP(key).now()})
        assert response.status_code == 200

        me = (await api.get("/auth/me")).json()
        assert me["twoFactorMethod"] == "Authenticator"

    @pytest.mark.asyncio
    async def test_setup_rejects_wrong_code(self, api, carol):
        await _sign_in(api)
        await api.post("/auth/2fa/setup-authenticator")

        response = await api.post("/auth/2fa/verify-authenticator-setup", {"code": "000000"})
        assert response.status_code == 400
        assert (await api.get("/auth/me")).json()["twoFactorEnabled"] is False

    @pytest.mark.asyncio
    async def test_verify_without_pending_challenge(self, api, carol):
        response = await api.post("/auth/2fa/verify-authenticator", {"code": "123456"})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid 2FA session"

    @pytest.mark.asyncio
    async def test_recovery_code_sign_in_is_single_use_and_notified(self, api, carol):
        await _sign_in(api)
        _, recovery_codes = await _enroll_authenticator(api)
        await api.post("/auth/logout")

        await api.login("carol", DEFAULT_PASSWORD)
        response = await api.post("/auth/2fa/verify-recovery-code", {"recoveryCode": recovery_codes[0]})
        assert response.status_code == 200
        alert = await last_email_data("security-alert", EMAIL)
        assert alert["alert_type"] == "Recovery Code Used"
        assert "9 recovery codes remain" in alert["alert_message"]

        await api.post("/auth/logout")
        await api.login("carol", DEFAULT_PASSWORD)
        response = await api.post("/auth/2fa/verify-recovery-code", {"recoveryCode": recovery_codes[0]})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid recovery code"


class TestDisableAndEnforcement:
    @pytest.mark.asyncio
    async def test_disable_turns_second_factor_off(self, api, carol):
        await _sign_in(api)
        await _enroll_authenticator(api)

        response = await api.post("/auth/2fa/disable")
        assert response.status_code == 200
        assert (await last_email_data("security-alert", EMAIL))["alert_type"]

        await api.post("/auth/logout")
        body = await _sign_in(api)
        assert body["requires2fa"] is False

    @pytest.mark.asyncio
    async def test_enforced_user_must_enroll_and_cannot_disable(self, api, carol, db_session):
        carol.two_factor_enforced = True
        db_session.add(carol)
        await db_session.commit()

        body = await _sign_in(api)
        assert body["needsSetup2fa"] is True
        assert body["csrfToken"]

        await _enroll_authenticator(api)
        response = await api.post("/auth/2fa/disable")
        assert response.status_code == 400
        assert [entry.message for entry in await audit_entries("Disable2FA")] == [
            "User attempted to disable enforced 2FA"
        ]
