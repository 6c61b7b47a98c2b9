# src/OSMS/api/routers/schools.py
from __future__ import annotations

import sqlalchemy as sa
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.auth.deps import client_ip, get_current_user, require_roles
from OSMS.db.models import RoleEnum, School, User
from OSMS.db.session import get_db
from OSMS.schemas.base import StatusOut
from OSMS.schemas.schools import SchoolCreate, SchoolOut, SchoolUpdate
from OSMS.services.system_logs import log_action

router = APIRouter(prefix="/api/schools", tags=["schools"])


# -------------------------
# Helpers
# -------------------------
async def _get_school_or_404(session: AsyncSession, school_id: int) -> School:
    school = await session.get(School, school_id)
    if not school:
        raise HTTPException(status_code=404, detail="School not found")
    return school


# -------------------------
# Routes
# -------------------------
@router.get("", response_model=list[SchoolOut])
async def list_schools(
    _user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    result = await session.execute(sa.select(School).order_by(School.name))
    return result.scalars().all()


@router.get("/{school_id}", response_model=SchoolOut)
async def get_school(
    school_id: int,
    _user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    return await _get_school_or_404(session, school_id)


@router.post("", response_model=SchoolOut, status_code=status.HTTP_201_CREATED)
async def create_school(
    payload: SchoolCreate,
    request: Request,
    user: User = Depends(require_roles(any_of=[RoleEnum.SUPER_ADMIN])),
    session: AsyncSession = Depends(get_db),
):
    school = School(**payload.model_dump())
    session.add(school)
    await session.flush()
    await log_action(session, user.id, "school_created", f"Created school: {school.name}", client_ip(request))
    await session.commit()
    return school


@router.put("/{school_id}", response_model=SchoolOut)
async def update_school(
    school_id: int,
    payload: SchoolUpdate,
    request: Request,
    user: User = Depends(require_roles(any_of=[RoleEnum.SUPER_ADMIN])),
    session: AsyncSession = Depends(get_db),
):
    school = await _get_school_or_404(session, school_id)
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(school, k, v)
    await session.flush()
    await log_action(session, user.id, "school_updated", f"Updated school: {school.name}", client_ip(request))
    await session.commit()
    return school


@router.delete("/{school_id}", response_model=StatusOut)
async def delete_school(
    school_id: int,
    request: Request,
    user: User = Depends(require_roles(any_of=[RoleEnum.SUPER_ADMIN])),
    session: AsyncSession = Depends(get_db),
):
    school = await _get_school_or_404(session, school_id)
    name = school.name
    await session.delete(school)
    await log_action(session, user.id, "school_deleted", f"Deleted school: {name}", client_ip(request))
    await session.commit()
    return StatusOut(message="School deleted")
