"""
Tests for user routes

Profile and preference self-service, personal activity and statistics, user
search, and tenant-scoped administration.
"""

from sqlalchemy import select

from docarchive.models.user import User
from docarchive.services.user_service import merge_preferences
from docarchive.utils.activity_log import log_activity
from utils.mock_utils import make_document

API = "/api/v1/users"


class TestMergePreferences:
    def test_nested_merge_keeps_unrelated_keys(self):
        current = {"language": "en", "timezone": "UTC", "notifications": {"email": True, "push": True}}

        merged = merge_preferences(current, {"notifications": {"email": False}, "language": "de"})

        assert merged == {"language": "de", "timezone": "UTC", "notifications": {"email": False, "push": True}}
        assert current["notifications"]["email"] is True

    def test_missing_preferences_start_from_defaults(self):
        merged = merge_preferences(None, {"timezone": "Europe/Berlin"})

        assert merged["timezone"] == "Europe/Berlin"
        assert merged["notifications"] == {"email": True, "push": True}


class TestProfile:
    async def test_get_profile(self, client, auth_headers):
        response = await client.get(f"{API}/profile", headers=auth_headers)

        user = response.json()["data"]["user"]
        assert user["email"] == "owner@acme.com"
        assert user["isLocked"] is False
        assert "lockUntil" not in user

    async def test_update_profile(self, client, auth_headers):
        response = await client.patch(
            f"{API}/profile", headers=auth_headers, json={"firstName": " Liv ", "organization": "Acme Legal"}
        )

        user = response.json()["data"]["user"]
        assert user["firstName"] == "Liv"
        assert user["fullName"] == "Liv Owner"
        assert user["organization"] == "Acme Legal"

    async def test_profile_rejects_null_name(self, client, auth_headers):
        response = await client.patch(f"{API}/profile", headers=auth_headers, json={"firstName": None})
        profile = await client.get(f"{API}/profile", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"
        assert profile.json()["data"]["user"]["firstName"] == "Olivia"

    async def test_profile_clears_optional_field(self, client, auth_headers):
        await client.patch(f"{API}/profile", headers=auth_headers, json={"phone": "555-0100"})

        response = await client.patch(f"{API}/profile", headers=auth_headers, json={"phone": None})

        assert response.status_code == 200
        assert response.json()["data"]["user"]["phone"] is None

    async def test_profile_rejects_password(self, client, auth_headers):
        response = await client.patch(f"{API}/profile", headers=auth_headers, json={"password": "Secret123"})

        assert response.status_code == 400

    async def test_profile_rejects_role_change(self, client, auth_headers):
        response = await client.patch(f"{API}/profile", headers=auth_headers, json={"role": "Admin"})

        assert response.status_code == 400

    async def test_update_preferences(self, client, auth_headers):
        response = await client.patch(
            f"{API}/preferences", headers=auth_headers, json={"language": "fr", "notifications": {"push": False}}
        )

        preferences = response.json()["data"]["preferences"]
        assert preferences["language"] == "fr"
        assert preferences["notifications"] == {"email": True, "push": False}


class TestActivityAndStatistics:
    async def test_my_activity(self, client, auth_headers, test_user, second_user):
        await log_activity("login", user_id=test_user.id, tenant_id=test_user.tenant_id)
        await log_activity("logout", user_id=test_user.id, tenant_id=test_user.tenant_id)
        await log_activity("login", user_id=second_user.id, tenant_id=second_user.tenant_id)

        everything = await client.get(f"{API}/activity", headers=auth_headers)
        logins = await client.get(f"{API}/activity", headers=auth_headers, params={"action": "login"})

        assert everything.json()["total"] == 2
        assert [a["action"] for a in logins.json()["data"]["activities"]] == ["login"]

    async def test_statistics(self, client, auth_headers, test_db, test_user):
        await make_document(test_db, test_user, file_size=2048, download_count=3)
        await make_document(test_db, test_user, title="Second", file_size=1024)

        response = await client.get(f"{API}/statistics", headers=auth_headers)

        data = response.json()["data"]
        assert data["documentsOwned"] == 2
        assert data["totalDownloads"] == 3
        assert data["documentsSharedWithMe"] == 0
        assert data["storageUsed"] == 3072
        assert data["storagePercent"] == round(3072 / data["storageLimit"] * 100, 2)


class TestSearch:
    async def test_search_within_tenant(self, client, auth_headers, second_user, test_admin, outsider):
        response = await client.get(f"{API}/search", headers=auth_headers, params={"q": "co"})

        users = response.json()["data"]["users"]
        assert [u["id"] for u in users] == [second_user.id]

    async def test_search_excludes_self_and_inactive(self, client, auth_headers, second_user, test_db):
        second_user.is_active = False
        await test_db.commit()

        response = await client.get(f"{API}/search", headers=auth_headers, params={"q": "acme"})

        assert response.json()["results"] == 0

    async def test_search_term_too_short(self, client, auth_headers):
        response = await client.get(f"{API}/search", headers=auth_headers, params={"q": "a"})

        assert response.status_code == 400


class TestTenantAdministration:
    async def test_list_is_tenant_scoped(self, client, admin_headers, test_user, second_user, outsider):
        response = await client.get(API, headers=admin_headers)

        emails = {u["email"] for u in response.json()["data"]["users"]}
        assert emails == {"owner@acme.com", "colleague@acme.com", "admin@acme.com"}

    async def test_list_filters(self, client, admin_headers, test_user, second_user):
        response = await client.get(API, headers=admin_headers, params={"role": "Admin"})

        assert [u["email"] for u in response.json()["data"]["users"]] == ["admin@acme.com"]

    async def test_regular_user_cannot_list(self, client, auth_headers):
        response = await client.get(API, headers=auth_headers)

        assert response.status_code == 403

    async def test_get_user_from_other_tenant(self, client, admin_headers, outsider):
        response = await client.get(f"{API}/{outsider.id}", headers=admin_headers)

        assert response.status_code == 404

    async def test_update_user(self, client, admin_headers, test_user):
        response = await client.patch(
            f"{API}/{test_user.id}", headers=admin_headers, json={"role": "Lawyer", "storageLimit": 1024}
        )

        user = response.json()["data"]["user"]
        assert user["role"] == "Lawyer"
        assert user["storageLimit"] == 1024

    async def test_admin_cannot_demote_self(self, client, admin_headers, test_admin):
        response = await client.patch(f"{API}/{test_admin.id}", headers=admin_headers, json={"role": "Student"})

        assert response.status_code == 400

    async def test_deactivate_user(self, client, admin_headers, auth_headers, test_user, test_db):
        response = await client.delete(f"{API}/{test_user.id}", headers=admin_headers)

        assert response.status_code == 200
        user = (
            await test_db.execute(select(User).where(User.id == test_user.id).execution_options(populate_existing=True))
        ).scalar_one()
        assert user.is_active is False
        assert (await client.get(f"{API}/profile", headers=auth_headers)).status_code == 401

    async def test_admin_cannot_deactivate_self(self, client, admin_headers, test_admin):
        response = await client.delete(f"{API}/{test_admin.id}", headers=admin_headers)

        assert response.status_code == 400

    async def test_user_statistics_and_activity(self, client, admin_headers, test_user, test_db):
        await make_document(test_db, test_user)
        await log_activity("login", user_id=test_user.id, tenant_id=test_user.tenant_id)

        stats = await client.get(f"{API}/{test_user.id}/statistics", headers=admin_headers)
        activity = await client.get(f"{API}/{test_user.id}/activity", headers=admin_headers)

        assert stats.json()["data"]["documentsOwned"] == 1
        assert activity.json()["total"] == 1
