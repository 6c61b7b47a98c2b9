# src/OSMS/tests/test_health.py
import pytest

pytestmark = pytest.mark.anyio


async def test_healthz(client):
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


async def test_readyz(client):
    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


async def test_missing_identity_is_401(client):
    r = await client.get("/api/chats")
    assert r.status_code == 401


async def test_unknown_user_is_401(client, as_user):
    r = await client.get("/api/chats", headers=as_user(999))
    assert r.status_code == 401
