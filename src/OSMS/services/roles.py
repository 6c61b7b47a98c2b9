# src/OSMS/services/roles.py
"""
Role / permission view over the set-valued ``user_roles`` relation.

A user may hold several roles, each optionally scoped to a school and a class.
``User.active_role`` selects which one the UI acts as; it is kept consistent
with the assigned set by every mutation in this module.
"""
from __future__ import annotations

from typing import Iterable, Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.app_logger import get_logger
from OSMS.db.models import RoleEnum, SchoolClass, User, UserRole
from OSMS.errors import BadRequestError, ForbiddenError, NotFoundError
from OSMS.services.system_logs import log_action

log = get_logger("services.roles")

ADMIN_ROLES = frozenset({RoleEnum.SUPER_ADMIN, RoleEnum.SCHOOL_ADMIN})
# Roles allowed to moderate chat messages they did not send.
MODERATOR_ROLES = frozenset(
    {RoleEnum.SUPER_ADMIN, RoleEnum.PRINCIPAL, RoleEnum.VICE_PRINCIPAL, RoleEnum.SCHOOL_ADMIN}
)
# Roles that only make sense inside a school.
SCHOOL_SCOPED_ROLES = frozenset(
    {
        RoleEnum.SCHOOL_ADMIN,
        RoleEnum.TEACHER,
        RoleEnum.PRINCIPAL,
        RoleEnum.VICE_PRINCIPAL,
        RoleEnum.CLASS_TEACHER,
    }
)


def _value(role: RoleEnum | str) -> str:
    return role.value if isinstance(role, RoleEnum) else str(role)


# ------------------------------------------------------------------
# Read-only view
# ------------------------------------------------------------------
def get_user_roles(user: User | None) -> list[str]:
    """Distinct roles of ``user`` in assignment order; empty for None."""
    if user is None:
        return []
    seen: list[str] = []
    for assignment in user.roles:
        value = _value(assignment.role)
        if value not in seen:
            seen.append(value)
    return seen


def user_has_role(user: User | None, role: RoleEnum | str) -> bool:
    return _value(role) in get_user_roles(user)


def user_has_any_role(user: User | None, candidates: Iterable[RoleEnum | str]) -> bool:
    held = set(get_user_roles(user))
    return any(_value(c) in held for c in candidates)


def get_primary_role(user: User | None) -> Optional[str]:
    """The active role when it is still assigned, else the first assigned role."""
    roles = get_user_roles(user)
    if not roles:
        return None
    if user.active_role is not None and _value(user.active_role) in roles:
        return _value(user.active_role)
    return roles[0]


def filter_users_by_roles(users: Iterable[User], roles: Iterable[RoleEnum | str]) -> list[User]:
    wanted = [_value(r) for r in roles]
    if not wanted:
        return list(users)
    return [u for u in users if user_has_any_role(u, wanted)]


def list_my_roles(user: User) -> list[dict]:
    """Assignments of ``user`` with exactly one flagged ``is_active`` (when any exist)."""
    active = get_primary_role(user)
    marked = False
    out = []
    for a in user.roles:
        is_active = not marked and _value(a.role) == active
        marked = marked or is_active
        out.append(
            {
                "id": a.id,
                "user_id": a.user_id,
                "role": _value(a.role),
                "school_id": a.school_id,
                "class_id": a.class_id,
                "is_active": is_active,
            }
        )
    return out


def ensure_active_role(user: User) -> bool:
    """Repair a stale ``active_role``; returns True when it changed."""
    desired = get_primary_role(user)
    current = _value(user.active_role) if user.active_role is not None else None
    if desired != current:
        user.active_role = RoleEnum(desired) if desired else None
        return True
    return False


# ------------------------------------------------------------------
# Queries
# ------------------------------------------------------------------
async def get_user_or_404(session: AsyncSession, user_id: int) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _get_assignment_or_404(session: AsyncSession, assignment_id: int) -> UserRole:
    assignment = await session.get(UserRole, assignment_id)
    if assignment is None:
        raise NotFoundError("User role not found")
    return assignment


def _check_can_manage(actor: User, target: User, roles_touched: Iterable[RoleEnum | str]) -> None:
    if user_has_role(actor, RoleEnum.SUPER_ADMIN):
        return
    if not user_has_role(actor, RoleEnum.SCHOOL_ADMIN):
        raise ForbiddenError("Forbidden. You don't have the required permissions.")
    if any(_value(r) == RoleEnum.SUPER_ADMIN.value for r in roles_touched):
        raise ForbiddenError("You cannot manage SUPER_ADMIN role")
    if user_has_role(target, RoleEnum.SUPER_ADMIN):
        raise ForbiddenError("You cannot manage SUPER_ADMIN users")
    if target.school_id != actor.school_id:
        raise ForbiddenError("Forbidden")


def can_view_roles(actor: User, target: User) -> bool:
    if actor.id == target.id or user_has_role(actor, RoleEnum.SUPER_ADMIN):
        return True
    if user_has_role(actor, RoleEnum.SCHOOL_ADMIN):
        return target.school_id == actor.school_id
    if user_has_any_role(actor, (RoleEnum.PRINCIPAL, RoleEnum.VICE_PRINCIPAL, RoleEnum.CLASS_TEACHER)):
        if target.school_id != actor.school_id:
            return False
        if user_has_role(actor, RoleEnum.CLASS_TEACHER) and not user_has_any_role(
            actor, (RoleEnum.PRINCIPAL, RoleEnum.VICE_PRINCIPAL)
        ):
            return user_has_role(target, RoleEnum.STUDENT)
        return True
    return False


async def _validate_scope(
    session: AsyncSession, role: RoleEnum, school_id: Optional[int], class_id: Optional[int]
) -> tuple[Optional[int], Optional[int]]:
    if role in SCHOOL_SCOPED_ROLES and not school_id:
        raise BadRequestError("School ID is required for this role")
    if role == RoleEnum.CLASS_TEACHER:
        if not class_id:
            raise BadRequestError("Class ID is required for class teacher role")
        cls = await session.get(SchoolClass, class_id)
        if cls is None:
            raise NotFoundError("Class not found")
        if cls.school_id != school_id:
            raise BadRequestError("Class does not belong to the selected school")
    else:
        class_id = None
    return school_id, class_id


# ------------------------------------------------------------------
# Mutations
# ------------------------------------------------------------------
async def add_user_role(
    session: AsyncSession,
    actor: User,
    user_id: int,
    role: RoleEnum,
    school_id: Optional[int] = None,
    class_id: Optional[int] = None,
    ip_address: str | None = None,
) -> UserRole:
    target = await get_user_or_404(session, user_id)
    _check_can_manage(actor, target, [role])
    school_id, class_id = await _validate_scope(session, role, school_id, class_id)

    for existing in target.roles:
        if existing.role == role and existing.school_id == school_id and existing.class_id == class_id:
            raise BadRequestError("User already has this role")

    assignment = UserRole(user_id=target.id, role=role, school_id=school_id, class_id=class_id)
    target.roles.append(assignment)
    if target.active_role is None:
        target.active_role = role
    await session.flush()

    await log_action(
        session,
        actor.id,
        "user_role_added",
        f"Added role {role.value} to user {target.id}"
        + (f" for school {school_id}" if school_id else "")
        + (f" and class {class_id}" if class_id else ""),
        ip_address,
    )
    return assignment


async def update_user_role(
    session: AsyncSession,
    actor: User,
    assignment_id: int,
    role: RoleEnum,
    school_id: Optional[int] = None,
    class_id: Optional[int] = None,
    ip_address: str | None = None,
) -> UserRole:
    assignment = await _get_assignment_or_404(session, assignment_id)
    target = await get_user_or_404(session, assignment.user_id)
    _check_can_manage(actor, target, [role, assignment.role])
    school_id, class_id = await _validate_scope(session, role, school_id, class_id)
    if role not in SCHOOL_SCOPED_ROLES:
        school_id = None

    previous = assignment.role
    assignment.role = role
    assignment.school_id = school_id
    assignment.class_id = class_id
    if target.active_role == previous and not any(
        a.role == previous for a in target.roles if a is not assignment
    ):
        target.active_role = role
    await session.flush()

    await log_action(
        session,
        actor.id,
        "user_role_updated",
        f"Updated role for user {target.id} from {_value(previous)} to {role.value}",
        ip_address,
    )
    return assignment


async def remove_user_role(
    session: AsyncSession,
    actor: User,
    assignment_id: int,
    ip_address: str | None = None,
) -> None:
    assignment = await _get_assignment_or_404(session, assignment_id)
    target = await get_user_or_404(session, assignment.user_id)

    if len(target.roles) <= 1:
        raise BadRequestError("Cannot remove the only role. User must have at least one role.")
    _check_can_manage(actor, target, [assignment.role])

    removed = assignment.role
    target.roles.remove(assignment)
    await session.flush()

    if target.active_role == removed and not user_has_role(target, removed):
        target.active_role = target.roles[0].role
        await session.flush()

    await log_action(
        session,
        actor.id,
        "user_role_removed",
        f"Removed role {_value(removed)} from user {target.id}",
        ip_address,
    )


async def switch_active_role(
    session: AsyncSession,
    user: User,
    role: RoleEnum | str,
    ip_address: str | None = None,
) -> User:
    """Make ``role`` the active one; only assigned roles are accepted."""
    wanted = _value(role)
    assignment = next((a for a in user.roles if _value(a.role) == wanted), None)
    if assignment is None:
        raise ForbiddenError("Forbidden. Role not found or doesn't belong to user")

    user.active_role = assignment.role
    if assignment.school_id is not None:
        user.school_id = assignment.school_id
    await session.flush()

    await log_action(session, user.id, "role_switched", f"User switched to role: {wanted}", ip_address)
    return user


async def replace_roles(session: AsyncSession, user: User, roles: Iterable[RoleEnum]) -> None:
    """Initial role set of a freshly created user (scoped to the user's school)."""
    for role in roles:
        if any(a.role == role for a in user.roles):
            continue
        school_id = user.school_id if role in SCHOOL_SCOPED_ROLES else None
        user.roles.append(UserRole(role=role, school_id=school_id))
    ensure_active_role(user)
    await session.flush()


async def users_with_any_role(session: AsyncSession, roles: Iterable[RoleEnum | str]) -> list[User]:
    wanted = [_value(r) for r in roles]
    stmt = (
        sa.select(User)
        .join(UserRole, UserRole.user_id == User.id)
        .where(UserRole.role.in_([RoleEnum(r) for r in wanted]))
        .distinct()
        .order_by(User.id)
    )
    return list((await session.execute(stmt)).scalars().all())
