# src/OSMS/tests/test_catalog.py
from __future__ import annotations

import pytest

from OSMS.db.models import RoleEnum

pytestmark = pytest.mark.anyio


@pytest.fixture
async def super_admin(seed):
    user = await seed.user(RoleEnum.SUPER_ADMIN, name="root")
    await seed.commit()
    return user


async def test_school_crud_is_super_admin_only(client, as_user, super_admin, school_users):
    r = await client.post("/api/schools", json={"name": "North High"}, headers=as_user(school_users["admin"]))
    assert r.status_code == 403

    r = await client.post("/api/schools", json={"name": "North High", "city": "Shelbyville"}, headers=as_user(super_admin))
    assert r.status_code == 201, r.text
    school_id = r.json()["id"]

    r = await client.put(f"/api/schools/{school_id}", json={"city": "Capital City"}, headers=as_user(super_admin))
    assert r.json()["city"] == "Capital City"

    r = await client.get("/api/schools", headers=as_user(school_users["carol"]))
    assert {s["name"] for s in r.json()} == {"Central School", "North High"}

    r = await client.delete(f"/api/schools/{school_id}", headers=as_user(super_admin))
    assert r.status_code == 200
    r = await client.get(f"/api/schools/{school_id}", headers=as_user(super_admin))
    assert r.status_code == 404

    r = await client.get("/api/system-logs", params={"action": "school_created"}, headers=as_user(super_admin))
    assert len(r.json()) == 1
    assert r.json()[0]["userId"] == super_admin.id


async def test_system_logs_need_super_admin(client, as_user, school_users):
    r = await client.get("/api/system-logs", headers=as_user(school_users["admin"]))
    assert r.status_code == 403


async def test_class_crud_scoped_to_school(client, as_user, seed, school_users):
    admin, school = school_users["admin"], school_users["school"]
    payload = {"schoolId": school.id, "name": "7B", "gradeLevel": 7, "academicYear": "2024-2025"}

    r = await client.post("/api/classes", json=payload, headers=as_user(admin))
    assert r.status_code == 201, r.text
    class_id = r.json()["id"]

    r = await client.get("/api/classes", headers=as_user(school_users["alice"]))
    assert [c["id"] for c in r.json()] == [class_id]

    other = await seed.school("Other School")
    await seed.commit()
    r = await client.post("/api/classes", json={**payload, "schoolId": other.id}, headers=as_user(admin))
    assert r.status_code == 403

    r = await client.post("/api/classes", json={**payload, "gradeLevel": 13}, headers=as_user(admin))
    assert r.status_code == 422

    r = await client.delete(f"/api/classes/{class_id}", headers=as_user(admin))
    assert r.status_code == 200


async def test_subject_crud(client, as_user, school_users):
    admin, school = school_users["admin"], school_users["school"]
    r = await client.post(
        "/api/subjects", json={"schoolId": school.id, "name": "Algebra"}, headers=as_user(admin)
    )
    assert r.status_code == 201, r.text
    subject_id = r.json()["id"]

    r = await client.put(f"/api/subjects/{subject_id}", json={"name": "Geometry"}, headers=as_user(admin))
    assert r.json()["name"] == "Geometry"

    r = await client.post(
        "/api/subjects", json={"schoolId": school.id, "name": "Art"}, headers=as_user(school_users["alice"])
    )
    assert r.status_code == 403


async def test_user_crud(client, as_user, school_users):
    admin, school = school_users["admin"], school_users["school"]
    payload = {
        "username": "dave",
        "email": "dave@example.org",
        "firstName": "Dave",
        "lastName": "Lister",
        "schoolId": school.id,
        "roles": ["teacher", "class_teacher"],
    }
    r = await client.post("/api/users", json=payload, headers=as_user(admin))
    assert r.status_code == 201, r.text
    dave = r.json()
    assert dave["activeRole"] == "teacher"
    assert [x["role"] for x in dave["roles"]] == ["teacher", "class_teacher"]

    r = await client.post("/api/users", json=payload, headers=as_user(admin))
    assert r.status_code == 409

    r = await client.post(
        "/api/users", json={**payload, "username": "eve", "email": "eve@example.org", "roles": ["super_admin"]},
        headers=as_user(admin),
    )
    assert r.status_code == 403

    r = await client.put(f"/api/users/{dave['id']}", json={"phone": "555-0100"}, headers=as_user(admin))
    assert r.json()["phone"] == "555-0100"

    r = await client.get("/api/users", params={"role": "teacher"}, headers=as_user(admin))
    assert {u["username"] for u in r.json()} == {"alice", "bob", "dave"}

    r = await client.get("/api/users/me", headers=as_user(dave["id"]))
    assert r.json()["username"] == "dave"

    r = await client.delete(f"/api/users/{dave['id']}", headers=as_user(admin))
    assert r.status_code == 200
    r = await client.get(f"/api/users/{dave['id']}", headers=as_user(admin))
    assert r.status_code == 404
