"""
Tests for comment routes

Threading rules, edit and delete ownership, reactions and the owner
notification that a new comment triggers.
"""

import pytest
from sqlalchemy import select

from docarchive.models.comment import Comment, CommentReaction
from docarchive.models.notification import Notification
from utils.mock_utils import make_document

API = "/api/v1/comments"


@pytest.fixture
async def document(test_db, test_user):
    return await make_document(test_db, test_user)


@pytest.fixture
async def shared_document(client, document, auth_headers, second_user):
    response = await client.post(
        f"/api/v1/documents/{document.id}/share", headers=auth_headers, json={"userId": second_user.id}
    )
    assert response.status_code == 200
    return document


async def comment_on(client, headers, document_id: int, text: str = "Looks good", parent_id: int | None = None):
    payload = {"text": text}
    if parent_id is not None:
        payload["parentId"] = parent_id
    return await client.post(f"{API}/document/{document_id}", headers=headers, json=payload)


class TestCreateComment:
    async def test_owner_comments_without_notifying_self(self, client, document, auth_headers, test_db, test_user):
        response = await comment_on(client, auth_headers, document.id)

        assert response.status_code == 201
        comment = response.json()["data"]["comment"]
        assert comment["text"] == "Looks good"
        assert comment["author"]["id"] == test_user.id
        assert comment["isEdited"] is False
        assert comment["reactionCounts"] == {"like": 0, "love": 0, "helpful": 0}

        result = await test_db.execute(select(Notification).where(Notification.user_id == test_user.id))
        assert result.scalars().all() == []

    async def test_comment_notifies_and_emails_owner(
        self, client, shared_document, second_headers, test_db, test_user, mailer
    ):
        mailer.sent.clear()

        response = await comment_on(client, second_headers, shared_document.id, "Please fix page 2")

        assert response.status_code == 201
        result = await test_db.execute(select(Notification).where(Notification.user_id == test_user.id))
        notification = result.scalars().one()
        assert notification.type == "comment_added"
        assert notification.related_document_id == shared_document.id
        assert "Colin Colleague" in notification.message

        (email,) = mailer.sent_to("owner@acme.com")
        assert "Please fix page 2" in email["html"]

    async def test_comment_requires_view_access(self, client, document, second_headers):
        response = await comment_on(client, second_headers, document.id)

        assert response.status_code == 403

    async def test_comment_on_other_tenant_document(self, client, document, outsider_headers):
        response = await comment_on(client, outsider_headers, document.id)

        assert response.status_code == 404

    async def test_comment_on_deleted_document(self, client, document, auth_headers, test_db):
        document.is_deleted = True
        await test_db.commit()

        response = await comment_on(client, auth_headers, document.id)

        assert response.status_code == 404

    async def test_empty_text_rejected(self, client, document, auth_headers):
        response = await comment_on(client, auth_headers, document.id, "")

        assert response.status_code == 400


class TestReplies:
    async def test_reply_to_top_level_comment(self, client, document, auth_headers):
        parent = (await comment_on(client, auth_headers, document.id)).json()["data"]["comment"]

        response = await comment_on(client, auth_headers, document.id, "Agreed", parent_id=parent["id"])

        assert response.status_code == 201
        assert response.json()["data"]["comment"]["parentId"] == parent["id"]

    async def test_nested_reply_rejected(self, client, document, auth_headers):
        parent = (await comment_on(client, auth_headers, document.id)).json()["data"]["comment"]
        reply = (await comment_on(client, auth_headers, document.id, "Reply", parent_id=parent["id"])).json()
        reply_id = reply["data"]["comment"]["id"]

        response = await comment_on(client, auth_headers, document.id, "Too deep", parent_id=reply_id)

        assert response.status_code == 400
        assert response.json()["message"] == "Replies cannot be nested"

    async def test_parent_on_other_document_rejected(self, client, document, auth_headers, test_db, test_user):
        other = await make_document(test_db, test_user, title="Other file")
        parent = (await comment_on(client, auth_headers, other.id)).json()["data"]["comment"]

        response = await comment_on(client, auth_headers, document.id, "Wrong place", parent_id=parent["id"])

        assert response.status_code == 400

    async def test_list_nests_replies_under_parents(self, client, document, auth_headers):
        first = (await comment_on(client, auth_headers, document.id, "First")).json()["data"]["comment"]
        await comment_on(client, auth_headers, document.id, "Second")
        await comment_on(client, auth_headers, document.id, "Reply A", parent_id=first["id"])
        await comment_on(client, auth_headers, document.id, "Reply B", parent_id=first["id"])

        response = await client.get(f"{API}/document/{document.id}", headers=auth_headers)

        body = response.json()
        assert body["total"] == 2
        comments = {c["text"]: c for c in body["data"]["comments"]}
        assert [r["text"] for r in comments["First"]["replies"]] == ["Reply A", "Reply B"]
        assert comments["Second"]["replies"] == []

    async def test_list_requires_access(self, client, document, second_headers):
        response = await client.get(f"{API}/document/{document.id}", headers=second_headers)

        assert response.status_code == 403


class TestEditAndDelete:
    async def test_author_edits_comment(self, client, document, auth_headers):
        comment = (await comment_on(client, auth_headers, document.id)).json()["data"]["comment"]

        response = await client.patch(f"{API}/{comment['id']}", headers=auth_headers, json={"text": "Looks great"})

        edited = response.json()["data"]["comment"]
        assert edited["text"] == "Looks great"
        assert edited["isEdited"] is True
        assert edited["editedAt"] is not None

    async def test_only_author_edits(self, client, shared_document, auth_headers, second_headers):
        comment = (await comment_on(client, auth_headers, shared_document.id)).json()["data"]["comment"]

        response = await client.patch(f"{API}/{comment['id']}", headers=second_headers, json={"text": "Hijacked"})

        assert response.status_code == 403

    async def test_delete_removes_replies_and_reactions(self, client, document, auth_headers, test_db):
        parent = (await comment_on(client, auth_headers, document.id)).json()["data"]["comment"]
        reply = (await comment_on(client, auth_headers, document.id, "Reply", parent_id=parent["id"])).json()
        reply_id = reply["data"]["comment"]["id"]
        await client.post(f"{API}/{reply_id}/reactions", headers=auth_headers, json={"type": "like"})

        response = await client.delete(f"{API}/{parent['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert (await test_db.execute(select(Comment))).scalars().all() == []
        assert (await test_db.execute(select(CommentReaction))).scalars().all() == []

    async def test_tenant_admin_deletes_any_comment(self, client, document, auth_headers, admin_headers):
        comment = (await comment_on(client, auth_headers, document.id)).json()["data"]["comment"]

        response = await client.delete(f"{API}/{comment['id']}", headers=admin_headers)

        assert response.status_code == 200

    async def test_other_user_cannot_delete(self, client, shared_document, auth_headers, second_headers):
        comment = (await comment_on(client, auth_headers, shared_document.id)).json()["data"]["comment"]

        response = await client.delete(f"{API}/{comment['id']}", headers=second_headers)

        assert response.status_code == 403

    async def test_comment_invisible_across_tenants(self, client, document, auth_headers, outsider_headers):
        comment = (await comment_on(client, auth_headers, document.id)).json()["data"]["comment"]

        response = await client.delete(f"{API}/{comment['id']}", headers=outsider_headers)

        assert response.status_code == 404


class TestReactions:
    async def test_one_reaction_per_user(self, client, shared_document, auth_headers, second_headers):
        comment = (await comment_on(client, auth_headers, shared_document.id)).json()["data"]["comment"]
        url = f"{API}/{comment['id']}/reactions"

        await client.post(url, headers=auth_headers, json={"type": "like"})
        await client.post(url, headers=second_headers, json={"type": "like"})
        response = await client.post(url, headers=second_headers, json={"type": "helpful"})

        reacted = response.json()["data"]["comment"]
        assert reacted["reactionCounts"] == {"like": 1, "love": 0, "helpful": 1}
        assert len(reacted["reactions"]) == 2

    async def test_remove_reaction(self, client, document, auth_headers):
        comment = (await comment_on(client, auth_headers, document.id)).json()["data"]["comment"]
        url = f"{API}/{comment['id']}/reactions"
        await client.post(url, headers=auth_headers, json={"type": "love"})

        response = await client.delete(url, headers=auth_headers)

        assert response.json()["data"]["comment"]["reactionCounts"]["love"] == 0

    async def test_unknown_reaction_type(self, client, document, auth_headers):
        comment = (await comment_on(client, auth_headers, document.id)).json()["data"]["comment"]

        response = await client.post(f"{API}/{comment['id']}/reactions", headers=auth_headers, json={"type": "angry"})

        assert response.status_code == 400
