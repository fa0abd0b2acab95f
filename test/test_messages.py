"""
Tests for support message routes

Ticket creation and admin fan-out, visibility rules, the admin inbox and
responses.
"""

import pytest
from sqlalchemy import select

from docarchive.constants.roles import RoleName
from docarchive.models.notification import Notification
from utils.mock_utils import auth_header, make_user

API = "/api/v1/messages"


async def open_ticket(client, headers, subject="Cannot upload", priority="medium", category="technical"):
    response = await client.post(
        API,
        headers=headers,
        json={
            "subject": subject,
            "message": "The upload button does nothing",
            "priority": priority,
            "category": category,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["message"]


@pytest.fixture
async def remote_admin(test_db, other_tenant):
    return await make_user(test_db, other_tenant, "root@globex.com", role=RoleName.ADMIN)


class TestCreate:
    async def test_create_message(self, client, auth_headers, test_user):
        message = await open_ticket(client, auth_headers)

        assert message["status"] == "pending"
        assert message["priority"] == "medium"
        assert message["category"] == "technical"
        assert message["user"]["id"] == test_user.id
        assert message["isRead"] is False
        assert message["response"] is None

    async def test_every_active_admin_is_notified(self, client, auth_headers, test_admin, remote_admin, test_db):
        message = await open_ticket(client, auth_headers, priority="urgent")

        result = await test_db.execute(select(Notification).where(Notification.type == "message_received"))
        notifications = result.scalars().all()
        assert {n.user_id for n in notifications} == {test_admin.id, remote_admin.id}
        assert {n.related_message_id for n in notifications} == {message["id"]}
        assert {n.priority for n in notifications} == {"high"}

    async def test_normal_priority_notification(self, client, auth_headers, test_admin, test_db):
        await open_ticket(client, auth_headers, priority="low")

        notification = (await test_db.execute(select(Notification))).scalars().one()
        assert notification.priority == "normal"

    async def test_invalid_category(self, client, auth_headers):
        response = await client.post(
            API, headers=auth_headers, json={"subject": "Hi", "message": "Hello", "category": "complaints"}
        )

        assert response.status_code == 400


class TestVisibility:
    async def test_list_my_messages(self, client, auth_headers, second_headers):
        await open_ticket(client, auth_headers, subject="Mine")
        await open_ticket(client, second_headers, subject="Theirs")

        response = await client.get(f"{API}/user", headers=auth_headers)

        assert [m["subject"] for m in response.json()["data"]["messages"]] == ["Mine"]

    async def test_author_reads_own_message(self, client, auth_headers):
        message = await open_ticket(client, auth_headers)

        response = await client.get(f"{API}/{message['id']}", headers=auth_headers)

        assert response.status_code == 200

    async def test_colleague_cannot_read_message(self, client, auth_headers, second_headers):
        message = await open_ticket(client, auth_headers)

        response = await client.get(f"{API}/{message['id']}", headers=second_headers)

        assert response.status_code == 403

    async def test_other_tenant_gets_not_found(self, client, auth_headers, outsider_headers):
        message = await open_ticket(client, auth_headers)

        response = await client.get(f"{API}/{message['id']}", headers=outsider_headers)

        assert response.status_code == 404

    async def test_admin_from_any_tenant_reads_message(self, client, auth_headers, remote_admin):
        message = await open_ticket(client, auth_headers)

        response = await client.get(f"{API}/{message['id']}", headers=auth_header(remote_admin))

        assert response.status_code == 200

    async def test_inbox_is_admin_only(self, client, auth_headers):
        assert (await client.get(API, headers=auth_headers)).status_code == 403
        assert (await client.get(f"{API}/stats", headers=auth_headers)).status_code == 403


class TestAdminInbox:
    async def test_inbox_lists_all_with_unread_count(self, client, auth_headers, outsider_headers, admin_headers):
        await open_ticket(client, auth_headers, subject="A")
        await open_ticket(client, outsider_headers, subject="B", category="billing")

        response = await client.get(API, headers=admin_headers)
        filtered = await client.get(API, headers=admin_headers, params={"category": "billing"})

        body = response.json()
        assert body["total"] == 2
        assert body["unreadCount"] == 2
        assert [m["subject"] for m in filtered.json()["data"]["messages"]] == ["B"]

    async def test_respond_notifies_author(self, client, auth_headers, admin_headers, test_admin, test_user, test_db):
        message = await open_ticket(client, auth_headers)

        response = await client.post(
            f"{API}/{message['id']}/respond", headers=admin_headers, json={"response": "Fixed in the latest release"}
        )

        answered = response.json()["data"]["message"]
        assert answered["status"] == "resolved"
        assert answered["response"] == "Fixed in the latest release"
        assert answered["respondedBy"]["id"] == test_admin.id
        assert answered["isRead"] is True

        result = await test_db.execute(
            select(Notification).where(Notification.user_id == test_user.id, Notification.type == "support_response")
        )
        assert result.scalars().one().related_message_id == message["id"]

    async def test_update_and_mark_read(self, client, auth_headers, admin_headers):
        message = await open_ticket(client, auth_headers)

        updated = await client.patch(
            f"{API}/{message['id']}", headers=admin_headers, json={"status": "in_progress", "priority": "high"}
        )
        read = await client.patch(f"{API}/{message['id']}/read", headers=admin_headers)

        assert updated.json()["data"]["message"]["status"] == "in_progress"
        assert updated.json()["data"]["message"]["priority"] == "high"
        assert read.json()["data"]["message"]["isRead"] is True

    async def test_stats(self, client, auth_headers, admin_headers):
        await open_ticket(client, auth_headers, priority="high")
        await open_ticket(client, auth_headers, category="billing")

        response = await client.get(f"{API}/stats", headers=admin_headers)

        data = response.json()["data"]
        assert data["total"] == 2
        assert data["unread"] == 2
        assert data["byStatus"]["pending"] == 2
        assert data["byStatus"]["resolved"] == 0
        assert data["byPriority"] == {"high": 1, "medium": 1}
        assert data["byCategory"] == {"technical": 1, "billing": 1}

    async def test_delete(self, client, auth_headers, admin_headers):
        message = await open_ticket(client, auth_headers)

        response = await client.delete(f"{API}/{message['id']}", headers=admin_headers)

        assert response.status_code == 204
        assert (await client.get(f"{API}/{message['id']}", headers=admin_headers)).status_code == 404
