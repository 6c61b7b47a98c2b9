# src/OSMS/tests/test_messages.py
from __future__ import annotations

import pytest

from OSMS.db.models import Chat, Message, RoleEnum
from OSMS.errors import BadRequestError
from OSMS.services.messages import validate_message

pytestmark = pytest.mark.anyio


@pytest.fixture
async def chat_id(client, as_user, school_users) -> int:
    r = await client.post(
        "/api/chats",
        json={"name": "Team", "type": "group", "participantIds": [school_users["bob"].id, school_users["carol"].id]},
        headers=as_user(school_users["alice"]),
    )
    assert r.status_code == 201, r.text
    return r.json()["id"]


async def _post(client, headers, chat_id: int, **payload):
    return await client.post(f"/api/chats/{chat_id}/messages", json=payload, headers=headers)


# -------------------------
# Validation
# -------------------------
def test_validate_message_rules():
    assert validate_message("hello") == "hello"
    assert validate_message("   ", True, "image", "/api/chats/1/files/a.png") is None

    with pytest.raises(BadRequestError):
        validate_message(None)
    with pytest.raises(BadRequestError):
        validate_message("  \n ")
    with pytest.raises(BadRequestError):
        validate_message(None, True, None, "/x")
    with pytest.raises(BadRequestError):
        validate_message(None, True, "spreadsheet", "/x")


async def test_send_and_list(client, as_user, school_users, chat_id):
    alice, bob = school_users["alice"], school_users["bob"]

    r = await _post(client, as_user(alice), chat_id, content="hello")
    assert r.status_code == 201, r.text
    first = r.json()
    assert first["content"] == "hello"
    assert first["sender"]["id"] == alice.id
    assert first["hasAttachment"] is False

    await _post(client, as_user(bob), chat_id, content="hi back")

    r = await client.get(f"/api/chats/{chat_id}/messages", headers=as_user(bob))
    assert [m["content"] for m in r.json()] == ["hello", "hi back"]

    r = await client.get(
        f"/api/chats/{chat_id}/messages", params={"beforeId": r.json()[1]["id"]}, headers=as_user(bob)
    )
    assert [m["content"] for m in r.json()] == ["hello"]


async def test_message_needs_content_or_attachment(client, as_user, school_users, chat_id):
    headers = as_user(school_users["alice"])
    r = await _post(client, headers, chat_id, content="   ")
    assert r.status_code == 400

    r = await _post(
        client, headers, chat_id,
        hasAttachment=True, attachmentType="document", attachmentUrl=f"/api/chats/{chat_id}/files/x.pdf",
    )
    assert r.status_code == 201
    assert r.json()["content"] is None
    assert r.json()["attachmentType"] == "document"


async def test_non_participant_cannot_post(client, as_user, school_users, chat_id):
    r = await _post(client, as_user(school_users["admin"]), chat_id, content="intrusion")
    assert r.status_code == 403


async def test_reply_must_stay_in_chat(client, as_user, school_users, chat_id):
    alice, bob = school_users["alice"], school_users["bob"]
    other = await client.post(
        "/api/chats", json={"name": "dm", "type": "private", "participantIds": [bob.id]}, headers=as_user(alice)
    )
    foreign = (await _post(client, as_user(alice), other.json()["id"], content="elsewhere")).json()

    r = await _post(client, as_user(alice), chat_id, content="re", replyToMessageId=foreign["id"])
    assert r.status_code == 400

    original = (await _post(client, as_user(bob), chat_id, content="question")).json()
    r = await _post(client, as_user(alice), chat_id, content="answer", replyToMessageId=original["id"])
    assert r.status_code == 201
    assert r.json()["replyToMessageId"] == original["id"]
    assert r.json()["replyTo"]["content"] == "question"


async def test_deleting_original_keeps_reply_without_link(client, as_user, school_users, chat_id, sessionmaker):
    alice, bob = school_users["alice"], school_users["bob"]
    original = (await _post(client, as_user(bob), chat_id, content="question")).json()
    reply = (await _post(client, as_user(alice), chat_id, content="answer", replyToMessageId=original["id"])).json()

    r = await client.delete(f"/api/chats/{chat_id}/messages/{original['id']}", headers=as_user(bob))
    assert r.status_code == 200

    async with sessionmaker() as s:
        kept = await s.get(Message, reply["id"])
        assert kept is not None
        assert kept.reply_to_message_id is None
        assert await s.get(Message, original["id"]) is None

    r = await client.get(f"/api/chats/{chat_id}/messages", headers=as_user(alice))
    [only] = r.json()
    assert only["id"] == reply["id"]
    assert only["replyTo"] is None


async def test_only_sender_or_moderator_deletes(client, as_user, seed, school_users, chat_id):
    alice, bob = school_users["alice"], school_users["bob"]
    msg = (await _post(client, as_user(bob), chat_id, content="mine")).json()

    r = await client.delete(f"/api/chats/{chat_id}/messages/{msg['id']}", headers=as_user(alice))
    assert r.status_code == 403

    # a principal in the chat may moderate
    principal = await seed.user(
        RoleEnum.PRINCIPAL,
        school=school_users["school"],
        name="principal",
    )
    await seed.commit()
    await client.post(f"/api/chats/{chat_id}/participants", json={"userIds": [principal.id]}, headers=as_user(alice))
    r = await client.delete(f"/api/chats/{chat_id}/messages/{msg['id']}", headers=as_user(principal))
    assert r.status_code == 200


async def test_activity_ordering_and_unread(client, as_user, school_users, sessionmaker):
    alice, bob, carol = school_users["alice"], school_users["bob"], school_users["carol"]
    older = (await client.post(
        "/api/chats", json={"name": "a-b", "type": "private", "participantIds": [bob.id]}, headers=as_user(alice)
    )).json()["id"]
    newer = (await client.post(
        "/api/chats", json={"name": "a-c", "type": "private", "participantIds": [carol.id]}, headers=as_user(alice)
    )).json()["id"]

    r = await client.get("/api/chats", headers=as_user(alice))
    assert [c["id"] for c in r.json()] == [newer, older]

    m1 = (await _post(client, as_user(bob), older, content="one")).json()
    m2 = (await _post(client, as_user(bob), older, content="two")).json()

    async with sessionmaker() as s:
        chat = await s.get(Chat, older)
        msg = await s.get(Message, m2["id"])
        assert chat.last_activity_at == msg.created_at

    r = await client.get("/api/chats", headers=as_user(alice))
    chats = r.json()
    assert [c["id"] for c in chats] == [older, newer]
    assert chats[0]["unreadCount"] == 2
    assert chats[1]["unreadCount"] == 0

    # the sender's own messages never count as unread for them
    r = await client.get(f"/api/chats/{older}", headers=as_user(bob))
    assert r.json()["unreadCount"] == 0

    r = await client.put(f"/api/chats/{older}/read-status", json={"messageId": m1["id"]}, headers=as_user(alice))
    assert r.status_code == 200
    assert r.json() == {"success": True, "unreadCount": 1, "totalUnread": 1}

    r = await client.put(f"/api/chats/{older}/read-status", json={"messageId": m2["id"]}, headers=as_user(alice))
    assert r.json()["totalUnread"] == 0

    # moving the cursor backwards is ignored
    r = await client.put(f"/api/chats/{older}/read-status", json={"messageId": m1["id"]}, headers=as_user(alice))
    assert r.json()["unreadCount"] == 0
