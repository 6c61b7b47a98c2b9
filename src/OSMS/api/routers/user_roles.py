# src/OSMS/api/routers/user_roles.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.auth.deps import client_ip, get_current_user, require_roles
from OSMS.db.models import RoleEnum, User
from OSMS.db.session import get_db
from OSMS.errors import ForbiddenError
from OSMS.schemas.base import StatusOut
from OSMS.schemas.users import (
    ActiveRoleIn,
    MyRoleOut,
    SwitchRoleIn,
    UserOut,
    UserRoleCreate,
    UserRoleOut,
    UserRoleUpdate,
)
from OSMS.services import roles as role_service

router = APIRouter(prefix="/api", tags=["roles"])

ROLE_MANAGERS = (RoleEnum.SUPER_ADMIN, RoleEnum.SCHOOL_ADMIN)


@router.get("/user-roles/{user_id}", response_model=list[UserRoleOut])
async def get_user_role_assignments(
    user_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    target = await role_service.get_user_or_404(session, user_id)
    if not role_service.can_view_roles(user, target):
        raise ForbiddenError("Forbidden. You don't have the required permissions.")
    return target.roles


@router.post("/user-roles", response_model=UserRoleOut, status_code=status.HTTP_201_CREATED)
async def add_user_role(
    payload: UserRoleCreate,
    request: Request,
    user: User = Depends(require_roles(any_of=ROLE_MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    assignment = await role_service.add_user_role(
        session,
        user,
        payload.user_id,
        payload.role,
        payload.school_id,
        payload.class_id,
        ip_address=client_ip(request),
    )
    await session.commit()
    return assignment


@router.put("/user-roles/{assignment_id}", response_model=UserRoleOut)
async def update_user_role(
    assignment_id: int,
    payload: UserRoleUpdate,
    request: Request,
    user: User = Depends(require_roles(any_of=ROLE_MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    assignment = await role_service.update_user_role(
        session,
        user,
        assignment_id,
        payload.role,
        payload.school_id,
        payload.class_id,
        ip_address=client_ip(request),
    )
    await session.commit()
    return assignment


@router.delete("/user-roles/{assignment_id}", response_model=StatusOut)
async def remove_user_role(
    assignment_id: int,
    request: Request,
    user: User = Depends(require_roles(any_of=ROLE_MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    await role_service.remove_user_role(session, user, assignment_id, ip_address=client_ip(request))
    await session.commit()
    return StatusOut(message="User role removed")


@router.get("/my-roles", response_model=list[MyRoleOut])
async def my_roles(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """The caller's role assignments with the active one flagged."""
    if role_service.ensure_active_role(user):
        await session.commit()
    return role_service.list_my_roles(user)


@router.post("/switch-role", response_model=UserOut)
async def switch_role(
    payload: SwitchRoleIn,
    request: Request,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    await role_service.switch_active_role(session, user, payload.role, ip_address=client_ip(request))
    await session.commit()
    return user


@router.put("/users/{user_id}/active-role", response_model=UserOut)
async def set_active_role(
    user_id: int,
    payload: ActiveRoleIn,
    request: Request,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    if user_id != user.id:
        raise ForbiddenError("Forbidden. You can only change your own role")
    await role_service.switch_active_role(
        session, user, payload.active_role, ip_address=client_ip(request)
    )
    await session.commit()
    return user
