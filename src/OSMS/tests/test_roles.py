# src/OSMS/tests/test_roles.py
from __future__ import annotations

import pytest
import sqlalchemy as sa

from OSMS.db.models import RoleEnum, SystemLog, User, UserRole
from OSMS.services import roles as role_service

pytestmark = pytest.mark.anyio


def _user(*roles: RoleEnum, active: RoleEnum | None = None) -> User:
    u = User(username="x", email="x@example.org", first_name="X", last_name="Y", active_role=active)
    for r in roles:
        u.roles.append(UserRole(role=r))
    return u


# -------------------------
# Read view
# -------------------------
def test_role_view():
    u = _user(RoleEnum.TEACHER, RoleEnum.CLASS_TEACHER, RoleEnum.TEACHER, active=RoleEnum.CLASS_TEACHER)
    assert role_service.get_user_roles(u) == ["teacher", "class_teacher"]
    assert role_service.user_has_role(u, RoleEnum.CLASS_TEACHER)
    assert role_service.user_has_role(u, "teacher")
    assert not role_service.user_has_role(u, RoleEnum.PRINCIPAL)
    assert role_service.user_has_any_role(u, [RoleEnum.PRINCIPAL, RoleEnum.TEACHER])
    assert role_service.get_primary_role(u) == "class_teacher"

    assert role_service.get_user_roles(None) == []
    assert role_service.get_primary_role(None) is None


def test_stale_active_role_falls_back_to_first():
    u = _user(RoleEnum.PARENT, RoleEnum.TEACHER, active=RoleEnum.PRINCIPAL)
    assert role_service.get_primary_role(u) == "parent"
    assert role_service.ensure_active_role(u) is True
    assert u.active_role == RoleEnum.PARENT
    assert role_service.ensure_active_role(u) is False


def test_filter_users_by_roles():
    teacher = _user(RoleEnum.TEACHER)
    parent = _user(RoleEnum.PARENT)
    both = _user(RoleEnum.PARENT, RoleEnum.TEACHER)
    assert role_service.filter_users_by_roles([teacher, parent, both], [RoleEnum.TEACHER]) == [teacher, both]
    assert role_service.filter_users_by_roles([teacher, parent], []) == [teacher, parent]


# -------------------------
# API
# -------------------------
async def test_my_roles_flags_exactly_one_active(client, as_user, seed):
    school = await seed.school()
    user = await seed.user(RoleEnum.TEACHER, RoleEnum.CLASS_TEACHER, school=school)
    await seed.commit()

    r = await client.get("/api/my-roles", headers=as_user(user))
    assert r.status_code == 200
    roles = r.json()
    assert [x["role"] for x in roles] == ["teacher", "class_teacher"]
    assert [x["isActive"] for x in roles] == [True, False]


async def test_switch_role(client, as_user, seed, sessionmaker):
    school = await seed.school()
    user = await seed.user(RoleEnum.TEACHER, RoleEnum.PARENT, school=school)
    await seed.commit()

    r = await client.post("/api/switch-role", json={"role": "parent"}, headers=as_user(user))
    assert r.status_code == 200
    assert r.json()["activeRole"] == "parent"

    r = await client.post("/api/switch-role", json={"role": "principal"}, headers=as_user(user))
    assert r.status_code == 403

    r = await client.put(f"/api/users/{user.id}/active-role", json={"activeRole": "teacher"}, headers=as_user(user))
    assert r.json()["activeRole"] == "teacher"

    async with sessionmaker() as s:
        actions = (await s.execute(
            sa.select(SystemLog.action).where(SystemLog.user_id == user.id)
        )).scalars().all()
    assert actions.count("role_switched") == 2


async def test_cannot_set_someone_elses_active_role(client, as_user, school_users):
    r = await client.put(
        f"/api/users/{school_users['bob'].id}/active-role",
        json={"activeRole": "teacher"},
        headers=as_user(school_users["alice"]),
    )
    assert r.status_code == 403


async def test_admin_manages_roles(client, as_user, school_users):
    admin, bob = school_users["admin"], school_users["bob"]
    school_id = school_users["school"].id

    r = await client.post(
        "/api/user-roles",
        json={"userId": bob.id, "role": "parent"},
        headers=as_user(admin),
    )
    assert r.status_code == 201, r.text
    added = r.json()

    r = await client.post("/api/user-roles", json={"userId": bob.id, "role": "parent"}, headers=as_user(admin))
    assert r.status_code == 400

    r = await client.get(f"/api/user-roles/{bob.id}", headers=as_user(admin))
    assert {x["role"] for x in r.json()} == {"teacher", "parent"}

    r = await client.put(
        f"/api/user-roles/{added['id']}",
        json={"role": "vice_principal", "schoolId": school_id},
        headers=as_user(admin),
    )
    assert r.status_code == 200
    assert r.json()["role"] == "vice_principal"

    r = await client.delete(f"/api/user-roles/{added['id']}", headers=as_user(admin))
    assert r.status_code == 200

    # the last remaining role cannot go
    [last] = (await client.get(f"/api/user-roles/{bob.id}", headers=as_user(admin))).json()
    r = await client.delete(f"/api/user-roles/{last['id']}", headers=as_user(admin))
    assert r.status_code == 400


async def test_school_admin_cannot_grant_super_admin(client, as_user, school_users):
    r = await client.post(
        "/api/user-roles",
        json={"userId": school_users["bob"].id, "role": "super_admin"},
        headers=as_user(school_users["admin"]),
    )
    assert r.status_code == 403


async def test_teachers_cannot_manage_roles(client, as_user, school_users):
    r = await client.post(
        "/api/user-roles",
        json={"userId": school_users["bob"].id, "role": "parent"},
        headers=as_user(school_users["alice"]),
    )
    assert r.status_code == 403


async def test_removing_active_role_reassigns(client, as_user, seed, school_users):
    school = school_users["school"]
    user = await seed.user(RoleEnum.PARENT, RoleEnum.TEACHER, school=school)
    await seed.commit()
    parent_assignment = next(a for a in user.roles if a.role == RoleEnum.PARENT)

    r = await client.delete(f"/api/user-roles/{parent_assignment.id}", headers=as_user(school_users["admin"]))
    assert r.status_code == 200

    r = await client.get("/api/my-roles", headers=as_user(user))
    assert [(x["role"], x["isActive"]) for x in r.json()] == [("teacher", True)]


async def test_chat_users_directory(client, as_user, school_users):
    r = await client.get("/api/chat-users", params={"roleFilter": "teacher"}, headers=as_user(school_users["carol"]))
    assert r.status_code == 200
    names = {u["username"] for u in r.json()}
    assert names == {"alice", "bob"}


async def test_users_with_any_role(session, school_users):
    found = await role_service.users_with_any_role(session, [RoleEnum.TEACHER, "student"])
    assert [u.username for u in found] == ["alice", "bob", "carol"]
