# src/OSMS/tests/test_uploads.py
from __future__ import annotations

import pytest

from OSMS.errors import FileTooLargeError, UnsupportedTypeError
from OSMS.services import file_storage

pytestmark = pytest.mark.anyio

TEN_MB = 10 * 1024 * 1024


@pytest.fixture
async def chat_id(client, as_user, school_users) -> int:
    r = await client.post(
        "/api/chats",
        json={"name": "dm", "type": "private", "participantIds": [school_users["bob"].id]},
        headers=as_user(school_users["alice"]),
    )
    return r.json()["id"]


def test_policy_helpers():
    assert file_storage.check_mime("image/PNG; charset=binary") == "image/png"
    with pytest.raises(UnsupportedTypeError) as info:
        file_storage.check_mime("application/x-msdownload")
    assert info.value.status_code == 415
    assert "allowed" in info.value.to_response()

    file_storage.check_size(TEN_MB)
    with pytest.raises(FileTooLargeError):
        file_storage.check_size(TEN_MB + 1)

    assert file_storage.attachment_type_for("image/gif") == "image"
    assert file_storage.attachment_type_for("video/mp4") == "video"
    assert file_storage.attachment_type_for("audio/ogg") == "audio"
    assert file_storage.attachment_type_for("application/pdf") == "document"


async def test_upload_and_download_roundtrip(client, as_user, school_users, chat_id, upload_dir):
    payload = b"%PDF-1.4 fake pdf body"
    r = await client.post(
        f"/api/chats/{chat_id}/upload",
        files={"file": ("report.pdf", payload, "application/pdf")},
        headers=as_user(school_users["alice"]),
    )
    assert r.status_code == 201, r.text
    info = r.json()["file"]
    assert r.json()["success"] is True
    assert info["originalname"] == "report.pdf"
    assert info["size"] == len(payload)
    assert info["type"] == "document"
    assert info["isEncrypted"] is True
    assert info["url"] == f"/api/chats/{chat_id}/files/{info['filename']}"

    # stored encrypted, not verbatim
    stored = upload_dir / "encrypted" / str(chat_id) / info["filename"]
    assert stored.is_file()
    assert payload not in stored.read_bytes()

    r = await client.get(info["url"], headers=as_user(school_users["bob"]))
    assert r.status_code == 200
    assert r.content == payload
    assert r.headers["content-type"].startswith("application/pdf")

    r = await client.get(info["url"], headers=as_user(school_users["carol"]))
    assert r.status_code == 403


async def test_unsupported_type_is_415(client, as_user, school_users, chat_id):
    r = await client.post(
        f"/api/chats/{chat_id}/upload",
        files={"file": ("tool.exe", b"MZ...", "application/x-msdownload")},
        headers=as_user(school_users["alice"]),
    )
    assert r.status_code == 415
    assert r.json()["mimetype"] == "application/x-msdownload"


async def test_size_limit_is_inclusive(client, as_user, school_users, chat_id):
    headers = as_user(school_users["alice"])
    r = await client.post(
        f"/api/chats/{chat_id}/upload",
        files={"file": ("exact.txt", b"a" * TEN_MB, "text/plain")},
        headers=headers,
    )
    assert r.status_code == 201
    assert r.json()["file"]["size"] == TEN_MB

    r = await client.post(
        f"/api/chats/{chat_id}/upload",
        files={"file": ("big.txt", b"a" * (TEN_MB + 1), "text/plain")},
        headers=headers,
    )
    assert r.status_code == 413
    assert r.json()["limit"] == TEN_MB


async def test_upload_without_file_is_400(client, as_user, school_users, chat_id):
    r = await client.post(
        f"/api/chats/{chat_id}/upload",
        data={"note": "nothing attached"},
        headers=as_user(school_users["alice"]),
    )
    assert r.status_code == 400


async def test_non_participant_upload_is_403(client, as_user, school_users, chat_id):
    r = await client.post(
        f"/api/chats/{chat_id}/upload",
        files={"file": ("a.txt", b"x", "text/plain")},
        headers=as_user(school_users["carol"]),
    )
    assert r.status_code == 403


async def test_download_rejects_path_tricks(client, as_user, school_users, chat_id):
    r = await client.get(f"/api/chats/{chat_id}/files/.file_encryption_key", headers=as_user(school_users["alice"]))
    assert r.status_code == 404
    r = await client.get(f"/api/chats/{chat_id}/files/missing.pdf", headers=as_user(school_users["alice"]))
    assert r.status_code == 404


async def test_download_uses_recorded_mime_type(client, as_user, school_users, chat_id):
    r = await client.post(
        f"/api/chats/{chat_id}/upload",
        files={"file": ("README", b"plain notes", "text/plain")},
        headers=as_user(school_users["alice"]),
    )
    assert r.status_code == 201, r.text
    info = r.json()["file"]
    assert "." not in info["filename"]

    r = await client.get(info["url"], headers=as_user(school_users["bob"]))
    assert r.status_code == 200
    assert r.content == b"plain notes"
    assert r.headers["content-type"].startswith("text/plain")
