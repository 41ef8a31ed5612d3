"""
Administrator journeys: 2FA enforcement and reset, and audit investigation.
"""

import pyotp
import pytest
import pytest_asyncio

from tests.factories.user import DEFAULT_PASSWORD, create_user_in_db
from tests.utils.inspection import last_email_data
from warden.domain.entities import Role
from warden.domain.security.data_protection import DataProtectionService

pytestmark = pytest.mark.feature


@pytest_asyncio.fixture
async def admin(db_session):
    return await create_user_in_db(
        db_session, username="root", email="root@example.com", roles=[Role.ADMIN, Role.AUDIT_INVESTIGATOR]
    )


@pytest_asyncio.fixture
async def frank(db_session):
    return await create_user_in_db(db_session, username="frank", email="frank@example.com")


@pytest_asyncio.fixture
async def admin_api(api, admin):
    response = await api.login("root", DEFAULT_PASSWORD)
    assert response.status_code == 200
    return api


class TestUserAdministration:
    @pytest.mark.asyncio
    async def test_enforce_two_factor(self, admin_api, other_api, frank):
        response = await admin_api.put(f"/admin/users/{frank.id}/enforce-2fa", {"enforced": True})
        assert response.status_code == 200
        assert response.json()["enforced"] is True
        assert response.json()["csrfToken"]

        body = (await other_api.login("frank", DEFAULT_PASSWORD)).json()
        assert body["needsSetup2fa"] is True

    @pytest.mark.asyncio
    async def test_enforce_unknown_user(self, admin_api):
        response = await admin_api.put("/admin/users/9999/enforce-2fa", {"enforced": True})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_non_admin_is_forbidden(self, api, frank):
        await api.login("frank", DEFAULT_PASSWORD)

        response = await api.put(f"/admin/users/{frank.id}/enforce-2fa", {"enforced": True})
        assert response.status_code == 403
        assert (await api.get("/admin/audit")).status_code == 403

    @pytest.mark.asyncio
    async def test_anonymous_is_unauthorized(self, api):
        assert (await api.get("/admin/audit")).status_code == 401

    @pytest.mark.asyncio
    async def test_admin_reset_clears_second_factor_and_ends_sessions(self, admin_api, other_api, frank):
        await other_api.login("frank", DEFAULT_PASSWORD)
        key = (await other_api.post("/auth/2fa/setup-authenticator")).json()["key"]
        await other_api.post("/auth/2fa/verify-authenticator-setup", {"code": pyotp.TOTP(key).now()})

        response = await admin_api.put("/auth/2fa/reset", {"userId": frank.id})
        assert response.status_code == 200

        assert (await other_api.get("/auth/me")).status_code == 401
        alert = await last_email_data("security-alert", "frank@example.com")
        assert alert["alert_type"] == "2FA Reset by Admin"
        body = (await other_api.login("frank", DEFAULT_PASSWORD)).json()
        assert body["requires2fa"] is False


class TestAuditInvestigation:
    @pytest.mark.asyncio
    async def test_list_shows_pseudonyms_only(self, admin_api, other_api, frank):
        await other_api.login("frank", DEFAULT_PASSWORD)

        response = await admin_api.get("/admin/audit", params={"limit": 50})
        assert response.status_code == 200
        body = response.json()
        assert body["decrypted"] is False
        assert body["csrfToken"]
        assert body["count"] == len(body["logs"])
        assert all("frank@example.com" not in (log["user"] or "") for log in body["logs"])
        assert all(log["decryptedUser"] is None for log in body["logs"])

    @pytest.mark.asyncio
    async def test_decryption_requires_justification(self, admin_api):
        response = await admin_api.get("/admin/audit", params={"decrypt": "true"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list_with_decryption(self, admin_api, other_api, frank):
        await other_api.login("frank", DEFAULT_PASSWORD)

        response = await admin_api.get(
            "/admin/audit", params={"decrypt": "true", "justification": "Investigating ticket 7"}
        )
        body = response.json()
        assert body["justification"] == "Investigating ticket 7"
        assert "frank@example.com" in {log["decryptedUser"] for log in body["logs"]}

    @pytest.mark.asyncio
    async def test_decrypt_single_entry_and_search_by_pseudonym(self, admin_api, other_api, frank):
        await other_api.login("frank", DEFAULT_PASSWORD)
        pseudonym = DataProtectionService().pseudonymize_email("frank@example.com")

        response = await admin_api.get(f"/admin/audit/by-pseudonym/{pseudonym}")
        assert response.status_code == 200
        logs = response.json()["logs"]
        assert logs
        entry = next(log for log in logs if log["hasEncryptedInfo"])

        response = await admin_api.post(
            "/admin/audit/decrypt", {"logId": entry["id"], "justification": "Investigating ticket 7"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["decryptedUser"] == "frank@example.com"
        assert body["pseudonymizedUser"] == pseudonym
        assert body["decryptedBy"] == "root"

    @pytest.mark.asyncio
    async def test_decrypt_rejects_short_justification(self, admin_api):
        response = await admin_api.post("/admin/audit/decrypt", {"logId": 1, "justification": "because"})
        assert response.status_code == 400
