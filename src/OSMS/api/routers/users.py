# src/OSMS/api/routers/users.py
from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.auth.deps import client_ip, get_current_user, require_roles
from OSMS.db.models import RoleEnum, User, UserRole
from OSMS.db.session import get_db
from OSMS.errors import ForbiddenError
from OSMS.schemas.base import StatusOut
from OSMS.schemas.users import ChatUserOut, UserCreate, UserOut, UserUpdate
from OSMS.services import chats as chat_service
from OSMS.services import roles as role_service
from OSMS.services.file_storage import delete_chat_files
from OSMS.services.system_logs import log_action

router = APIRouter(prefix="/api", tags=["users"])

USER_MANAGERS = (RoleEnum.SUPER_ADMIN, RoleEnum.SCHOOL_ADMIN)


# -------------------------
# Helpers
# -------------------------
def _check_same_school(actor: User, target_school_id: Optional[int]) -> None:
    if role_service.user_has_role(actor, RoleEnum.SUPER_ADMIN):
        return
    if target_school_id != actor.school_id:
        raise ForbiddenError("Forbidden")


def _search_filter(stmt, search: Optional[str]):
    if search:
        like = f"%{search.lower()}%"
        stmt = stmt.where(
            sa.or_(
                sa.func.lower(User.first_name).like(like),
                sa.func.lower(User.last_name).like(like),
                sa.func.lower(User.username).like(like),
                sa.func.lower(User.email).like(like),
            )
        )
    return stmt


# -------------------------
# Routes
# -------------------------
@router.get("/users", response_model=list[UserOut])
async def list_users(
    school_id: Optional[int] = Query(None, alias="schoolId"),
    role: Optional[RoleEnum] = None,
    search: Optional[str] = None,
    user: User = Depends(require_roles(any_of=USER_MANAGERS + (RoleEnum.PRINCIPAL, RoleEnum.VICE_PRINCIPAL))),
    session: AsyncSession = Depends(get_db),
):
    stmt = sa.select(User)
    if not role_service.user_has_role(user, RoleEnum.SUPER_ADMIN):
        school_id = user.school_id
    if school_id is not None:
        stmt = stmt.where(User.school_id == school_id)
    if role is not None:
        stmt = stmt.where(User.id.in_(sa.select(UserRole.user_id).where(UserRole.role == role)))
    stmt = _search_filter(stmt, search).order_by(User.last_name, User.first_name, User.id)
    return (await session.execute(stmt)).scalars().all()


@router.get("/users/me", response_model=UserOut)
async def get_me(user: User = Depends(get_current_user)):
    return user


@router.get("/users/{user_id}", response_model=UserOut)
async def get_user(
    user_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    target = await role_service.get_user_or_404(session, user_id)
    if target.id != user.id and not role_service.can_view_roles(user, target):
        raise ForbiddenError("Forbidden")
    return target


@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    request: Request,
    user: User = Depends(require_roles(any_of=USER_MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    if not role_service.user_has_role(user, RoleEnum.SUPER_ADMIN):
        if RoleEnum.SUPER_ADMIN in payload.roles:
            raise ForbiddenError("You cannot add SUPER_ADMIN role")
        _check_same_school(user, payload.school_id)

    data = payload.model_dump(exclude={"roles"})
    # start with a loaded (empty) collection so no lazy load is needed after flush
    new_user = User(**data, roles=[])
    session.add(new_user)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Username or email already exists")

    await role_service.replace_roles(session, new_user, payload.roles)
    await log_action(session, user.id, "user_created", f"Created user {new_user.username}", client_ip(request))
    await session.commit()
    return new_user


@router.put("/users/{user_id}", response_model=UserOut)
async def update_user(
    user_id: int,
    payload: UserUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    target = await role_service.get_user_or_404(session, user_id)
    if target.id != user.id:
        if not role_service.user_has_any_role(user, USER_MANAGERS):
            raise ForbiddenError("Forbidden")
        _check_same_school(user, target.school_id)

    changes = payload.model_dump(exclude_unset=True)
    if "school_id" in changes and not role_service.user_has_role(user, RoleEnum.SUPER_ADMIN):
        changes.pop("school_id")
    for k, v in changes.items():
        setattr(target, k, v)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Email already exists")
    await session.commit()
    return target


@router.delete("/users/{user_id}", response_model=StatusOut)
async def delete_user(
    user_id: int,
    request: Request,
    user: User = Depends(require_roles(any_of=USER_MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    target = await role_service.get_user_or_404(session, user_id)
    if target.id == user.id:
        raise ForbiddenError("You cannot delete yourself")
    _check_same_school(user, target.school_id)
    if role_service.user_has_role(target, RoleEnum.SUPER_ADMIN) and not role_service.user_has_role(
        user, RoleEnum.SUPER_ADMIN
    ):
        raise ForbiddenError("You cannot manage SUPER_ADMIN users")
    username = target.username
    removed_chats = await chat_service.release_user_chats(session, target.id)
    await session.delete(target)
    await log_action(session, user.id, "user_deleted", f"Deleted user {username}", client_ip(request))
    await session.commit()
    for chat_id in removed_chats:
        delete_chat_files(chat_id)
    return StatusOut(message="User deleted")


@router.get("/chat-users", response_model=list[ChatUserOut])
async def chat_users(
    search: Optional[str] = None,
    role_filter: Optional[RoleEnum] = Query(None, alias="roleFilter"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """People the caller can start a chat with: same school, excluding the caller."""
    stmt = sa.select(User).where(User.id != user.id)
    if user.school_id is not None:
        stmt = stmt.where(User.school_id == user.school_id)
    if role_filter is not None:
        stmt = stmt.where(User.id.in_(sa.select(UserRole.user_id).where(UserRole.role == role_filter)))
    stmt = _search_filter(stmt, search).order_by(User.last_name, User.first_name, User.id)
    rows = (await session.execute(stmt)).scalars().all()
    return [
        ChatUserOut(
            id=u.id,
            username=u.username,
            first_name=u.first_name,
            last_name=u.last_name,
            roles=role_service.get_user_roles(u),
        )
        for u in rows
    ]
