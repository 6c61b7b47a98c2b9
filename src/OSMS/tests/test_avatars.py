# src/OSMS/tests/test_avatars.py
from __future__ import annotations

import anyio
import pytest
from fakeredis import FakeAsyncRedis, FakeServer

from OSMS.services.temp_avatars import TEMP_AVATAR_PREFIX, TempAvatarStore

pytestmark = pytest.mark.anyio

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


# -------------------------
# Temp store
# -------------------------
async def test_temp_avatar_is_stored_with_ttl_and_expires():
    client = FakeAsyncRedis(server=FakeServer(), decode_responses=True)
    store = TempAvatarStore(client, ttl=180)

    item = await store.save(7, PNG, "a.png", "image/png")
    assert item.data_url().startswith("data:image/png;base64,")
    assert 0 < await store.seconds_left(item.id) <= 180

    got = await store.get(item.id)
    assert (got.user_id, got.file_name, got.data) == (7, "a.png", PNG)

    await client.pexpire(f"{TEMP_AVATAR_PREFIX}{item.id}", 1)
    await anyio.sleep(0.05)
    assert await store.get(item.id) is None
    assert await store.seconds_left(item.id) == -2


async def test_temp_avatar_promote_is_owner_only_and_single_use(avatar_store):
    item = await avatar_store.save(7, PNG, "a.png", "image/png")

    assert await avatar_store.promote(item.id, user_id=8) is None
    promoted = await avatar_store.promote(item.id, user_id=7)
    assert promoted is not None
    assert promoted.data == PNG
    assert await avatar_store.promote(item.id, user_id=7) is None


async def test_temp_avatar_visible_to_every_worker():
    server = FakeServer()
    uploader = TempAvatarStore(FakeAsyncRedis(server=server, decode_responses=True))
    creator = TempAvatarStore(FakeAsyncRedis(server=server, decode_responses=True))

    item = await uploader.save(7, PNG, "a.png", "image/png")
    promoted = await creator.promote(item.id, user_id=7)
    assert promoted is not None and promoted.mime_type == "image/png"
    assert await uploader.get(item.id) is None


# -------------------------
# API
# -------------------------
async def test_temp_avatar_claimed_by_new_chat(client, as_user, school_users, avatar_store):
    alice, bob = school_users["alice"], school_users["bob"]
    r = await client.post(
        "/api/upload/chat-avatar",
        files={"file": ("team.png", PNG, "image/png")},
        headers=as_user(alice),
    )
    assert r.status_code == 201, r.text
    temp_id = r.json()["tempAvatarId"]
    assert r.json()["fileSize"] == len(PNG)

    r = await client.post(
        "/api/chats",
        json={"name": "Team", "type": "group", "participantIds": [bob.id], "tempAvatarId": temp_id},
        headers=as_user(alice),
    )
    assert r.status_code == 201
    chat = r.json()
    assert chat["hasAvatar"] is True
    assert chat["avatarUrl"] == f"/api/chats/{chat['id']}/avatar"
    assert await avatar_store.get(temp_id) is None

    r = await client.get(chat["avatarUrl"], headers=as_user(bob))
    assert r.status_code == 200
    assert r.content == PNG
    assert r.headers["content-type"] == "image/png"


async def test_temp_avatar_rejects_non_images(client, as_user, school_users):
    r = await client.post(
        "/api/upload/chat-avatar",
        files={"file": ("doc.pdf", b"%PDF", "application/pdf")},
        headers=as_user(school_users["alice"]),
    )
    assert r.status_code == 415


async def test_group_avatar_admin_only(client, as_user, school_users):
    alice, bob = school_users["alice"], school_users["bob"]
    chat_id = (await client.post(
        "/api/chats",
        json={"name": "Team", "type": "group", "participantIds": [bob.id]},
        headers=as_user(alice),
    )).json()["id"]

    files = {"file": ("team.png", PNG, "image/png")}
    r = await client.post(f"/api/chats/{chat_id}/avatar", files=files, headers=as_user(bob))
    assert r.status_code == 403

    r = await client.post(f"/api/chats/{chat_id}/avatar", files=files, headers=as_user(alice))
    assert r.status_code == 200
    assert r.json()["fileSize"] == len(PNG)

    r = await client.delete(f"/api/chats/{chat_id}/avatar", headers=as_user(alice))
    assert r.status_code == 200
    r = await client.get(f"/api/chats/{chat_id}/avatar", headers=as_user(alice))
    assert r.status_code == 404
    r = await client.delete(f"/api/chats/{chat_id}/avatar", headers=as_user(alice))
    assert r.status_code == 404
