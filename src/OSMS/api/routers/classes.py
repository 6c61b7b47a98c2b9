# src/OSMS/api/routers/classes.py
from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.auth.deps import get_current_user, require_roles
from OSMS.db.models import RoleEnum, School, SchoolClass, User
from OSMS.db.session import get_db
from OSMS.errors import ForbiddenError
from OSMS.schemas.base import StatusOut
from OSMS.schemas.classes import ClassCreate, ClassOut, ClassUpdate
from OSMS.services.roles import user_has_role

router = APIRouter(prefix="/api/classes", tags=["classes"])

CLASS_MANAGERS = (RoleEnum.SUPER_ADMIN, RoleEnum.SCHOOL_ADMIN)


# -------------------------
# Helpers
# -------------------------
async def _get_class_or_404(session: AsyncSession, class_id: int) -> SchoolClass:
    cls = await session.get(SchoolClass, class_id)
    if not cls:
        raise HTTPException(status_code=404, detail="Class not found")
    return cls


def _check_school(user: User, school_id: int) -> None:
    if not user_has_role(user, RoleEnum.SUPER_ADMIN) and user.school_id != school_id:
        raise ForbiddenError("You can only manage classes in your school")


# -------------------------
# Routes
# -------------------------
@router.get("", response_model=list[ClassOut])
async def list_classes(
    school_id: Optional[int] = Query(None, alias="schoolId"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Classes of a school, ordered by grade then name (defaults to the caller's school)."""
    school_id = school_id or user.school_id
    stmt = sa.select(SchoolClass)
    if school_id is not None:
        stmt = stmt.where(SchoolClass.school_id == school_id)
    stmt = stmt.order_by(SchoolClass.grade_level, SchoolClass.name)
    return (await session.execute(stmt)).scalars().all()


@router.get("/{class_id}", response_model=ClassOut)
async def get_class(
    class_id: int,
    _user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    return await _get_class_or_404(session, class_id)


@router.post("", response_model=ClassOut, status_code=status.HTTP_201_CREATED)
async def create_class(
    payload: ClassCreate,
    user: User = Depends(require_roles(any_of=CLASS_MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    _check_school(user, payload.school_id)
    if await session.get(School, payload.school_id) is None:
        raise HTTPException(status_code=404, detail="School not found")
    cls = SchoolClass(**payload.model_dump())
    session.add(cls)
    await session.flush()
    await session.commit()
    return cls


@router.put("/{class_id}", response_model=ClassOut)
async def update_class(
    class_id: int,
    payload: ClassUpdate,
    user: User = Depends(require_roles(any_of=CLASS_MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    cls = await _get_class_or_404(session, class_id)
    _check_school(user, cls.school_id)
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(cls, k, v)
    await session.flush()
    await session.commit()
    return cls


@router.delete("/{class_id}", response_model=StatusOut)
async def delete_class(
    class_id: int,
    user: User = Depends(require_roles(any_of=CLASS_MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    cls = await _get_class_or_404(session, class_id)
    _check_school(user, cls.school_id)
    await session.delete(cls)
    await session.commit()
    return StatusOut(message="Class deleted")
