"""
Tests for admin routes

Dashboard totals, system health, cross-tenant user moderation and the
platform-wide views of tenants, documents and activity.
"""

from datetime import timedelta

from sqlalchemy import select

from docarchive.constants.roles import RoleName
from docarchive.models.activity_log import ActivityLog
from docarchive.models.comment import Comment
from docarchive.models.document import Document
from docarchive.models.message import Message
from docarchive.models.user import User
from docarchive.utils.activity_log import log_activity
from docarchive.utils.dates import utcnow
from utils.mock_utils import make_document, make_user

API = "/api/v1/admin"


class TestAccess:
    async def test_requires_admin_role(self, client, auth_headers):
        response = await client.get(f"{API}/dashboard/stats", headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["status"] == "error"

    async def test_requires_authentication(self, client):
        response = await client.get(f"{API}/dashboard/stats")

        assert response.status_code == 401


class TestDashboardAndHealth:
    async def test_dashboard_stats(self, client, admin_headers, test_user, outsider, test_db):
        await make_document(test_db, test_user, file_size=100)
        await make_document(test_db, outsider, title="Globex plan", file_size=50)

        response = await client.get(f"{API}/dashboard/stats", headers=admin_headers)

        data = response.json()["data"]
        assert data["users"]["total"] == 3
        assert data["users"]["newLast7Days"] == 3
        assert data["documents"]["total"] == 2
        assert data["documents"]["totalSize"] == 150
        assert data["tenants"]["total"] == 2
        assert sum(day["count"] for day in data["userGrowth"]) == 3

    async def test_system_health(self, client, admin_headers):
        response = await client.get(f"{API}/system/health", headers=admin_headers)

        data = response.json()["data"]
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "healthy"
        assert data["checks"]["storage"]["status"] == "healthy"
        assert data["system"]["cpu"]["count"] >= 1
        assert data["system"]["memory"]["maxRssBytes"] > 0

    async def test_system_health_degraded_when_storage_down(self, client, admin_headers, storage):
        storage.healthy = False

        response = await client.get(f"{API}/system/health", headers=admin_headers)

        data = response.json()["data"]
        assert data["status"] == "degraded"
        assert data["checks"]["storage"]["status"] == "unhealthy"


class TestUserModeration:
    async def test_list_users_across_tenants(self, client, admin_headers, test_user, outsider, other_tenant):
        everyone = await client.get(f"{API}/users", headers=admin_headers)
        globex = await client.get(f"{API}/users", headers=admin_headers, params={"tenantId": other_tenant.id})

        assert everyone.json()["total"] == 3
        assert [u["email"] for u in globex.json()["data"]["users"]] == ["someone@globex.com"]

    async def test_user_details(self, client, admin_headers, outsider, test_db):
        await make_document(test_db, outsider, title="Globex plan")
        await log_activity("login", user_id=outsider.id, tenant_id=outsider.tenant_id)

        response = await client.get(f"{API}/users/{outsider.id}", headers=admin_headers)

        data = response.json()["data"]
        assert data["user"]["email"] == "someone@globex.com"
        assert [d["title"] for d in data["documents"]] == ["Globex plan"]
        assert [a["action"] for a in data["recentActivity"]] == ["login"]

    async def test_deactivate_and_activate(self, client, admin_headers, outsider, test_db):
        outsider.login_attempts = 5
        outsider.lock_until = utcnow() + timedelta(hours=1)
        await test_db.commit()

        deactivated = await client.patch(f"{API}/users/{outsider.id}/deactivate", headers=admin_headers)
        activated = await client.patch(f"{API}/users/{outsider.id}/activate", headers=admin_headers)

        assert deactivated.json()["data"]["user"]["isActive"] is False
        user = activated.json()["data"]["user"]
        assert user["isActive"] is True
        assert user["isLocked"] is False

    async def test_cannot_deactivate_self_or_admins(self, client, admin_headers, test_admin, test_db, tenant):
        other_admin = await make_user(test_db, tenant, "second-admin@acme.com", role=RoleName.ADMIN)

        own = await client.patch(f"{API}/users/{test_admin.id}/deactivate", headers=admin_headers)
        peer = await client.patch(f"{API}/users/{other_admin.id}/deactivate", headers=admin_headers)

        assert own.status_code == 400
        assert peer.status_code == 400

    async def test_change_role(self, client, admin_headers, test_user, test_db):
        response = await client.patch(
            f"{API}/users/{test_user.id}/role", headers=admin_headers, json={"role": "Notary"}
        )

        assert response.json()["data"]["user"]["role"] == "Notary"
        entries = await test_db.execute(select(ActivityLog).where(ActivityLog.action == "permission_change"))
        assert entries.scalars().one().details == {"role": "Notary"}

    async def test_cannot_change_own_role(self, client, admin_headers, test_admin):
        response = await client.patch(
            f"{API}/users/{test_admin.id}/role", headers=admin_headers, json={"role": "Student"}
        )

        assert response.status_code == 400

    async def test_unknown_role(self, client, admin_headers, test_user):
        response = await client.patch(
            f"{API}/users/{test_user.id}/role", headers=admin_headers, json={"role": "Wizard"}
        )

        assert response.status_code == 400

    async def test_purge_user(self, client, admin_headers, auth_headers, test_user, second_user, test_db, storage):
        upload = await client.post(
            "/api/v1/documents",
            headers=auth_headers,
            files={"file": ("report.pdf", b"%PDF-1.4 data", "application/pdf")},
            data={"title": "Report"},
        )
        document_id = upload.json()["data"]["document"]["id"]
        await client.post(
            f"/api/v1/documents/{document_id}/share", headers=auth_headers, json={"userId": second_user.id}
        )
        await client.post(f"/api/v1/comments/document/{document_id}", headers=auth_headers, json={"text": "Mine"})
        await client.post("/api/v1/messages", headers=auth_headers, json={"subject": "Help", "message": "Please"})

        response = await client.delete(f"{API}/users/{test_user.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["data"] == {"documents": 1, "objectsRemoved": 1, "objectsFailed": 0}
        assert storage.objects == {}
        assert (await test_db.execute(select(User).where(User.id == test_user.id))).scalars().first() is None
        assert (await test_db.execute(select(Document))).scalars().all() == []
        assert (await test_db.execute(select(Comment))).scalars().all() == []
        assert (await test_db.execute(select(Message))).scalars().all() == []


class TestCrossTenantViews:
    async def test_tenants_with_counts(self, client, admin_headers, test_user, outsider, test_db):
        await make_document(test_db, outsider, title="Globex plan", file_size=500)

        response = await client.get(f"{API}/tenants", headers=admin_headers)

        tenants = {t["slug"]: t for t in response.json()["data"]["tenants"]}
        assert tenants["acme"]["userCount"] == 2
        assert tenants["acme"]["documentCount"] == 0
        assert tenants["globex"]["documentCount"] == 1
        assert tenants["globex"]["storageUsed"] == 500

    async def test_documents_across_tenants(self, client, admin_headers, test_user, outsider, test_db):
        await make_document(test_db, test_user, title="Acme file")
        await make_document(test_db, outsider, title="Globex file", is_deleted=True)

        active = await client.get(f"{API}/documents", headers=admin_headers)
        everything = await client.get(f"{API}/documents", headers=admin_headers, params={"includeDeleted": "true"})

        assert [d["title"] for d in active.json()["data"]["documents"]] == ["Acme file"]
        assert everything.json()["total"] == 2

    async def test_activity_filters(self, client, admin_headers, test_user, outsider):
        await log_activity("login", user_id=test_user.id, tenant_id=test_user.tenant_id)
        await log_activity("login", user_id=outsider.id, tenant_id=outsider.tenant_id, status="failure")
        await log_activity("document_upload", user_id=outsider.id, tenant_id=outsider.tenant_id)

        failures = await client.get(f"{API}/activities", headers=admin_headers, params={"status": "failure"})
        by_name = await client.get(f"{API}/activities", headers=admin_headers, params={"search": "oscar"})
        future = await client.get(
            f"{API}/activities",
            headers=admin_headers,
            params={"startDate": (utcnow() + timedelta(days=1)).isoformat() + "Z"},
        )

        assert [a["user"]["id"] for a in failures.json()["data"]["activities"]] == [outsider.id]
        assert by_name.json()["total"] == 2
        assert future.json()["total"] == 0

    async def test_activity_unknown_action(self, client, admin_headers):
        response = await client.get(f"{API}/activities", headers=admin_headers, params={"action": "teleport"})

        assert response.status_code == 400
