# src/OSMS/api/routers/subjects.py
from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.auth.deps import get_current_user, require_roles
from OSMS.db.models import RoleEnum, Subject, User
from OSMS.db.session import get_db
from OSMS.errors import ForbiddenError
from OSMS.schemas.base import StatusOut
from OSMS.schemas.subjects import SubjectCreate, SubjectOut, SubjectUpdate
from OSMS.services.roles import user_has_role

router = APIRouter(prefix="/api/subjects", tags=["subjects"])

SUBJECT_MANAGERS = (RoleEnum.SUPER_ADMIN, RoleEnum.SCHOOL_ADMIN, RoleEnum.PRINCIPAL, RoleEnum.VICE_PRINCIPAL)


async def _get_subject_or_404(session: AsyncSession, subject_id: int) -> Subject:
    subject = await session.get(Subject, subject_id)
    if not subject:
        raise HTTPException(status_code=404, detail="Subject not found")
    return subject


def _check_school(user: User, school_id: int) -> None:
    if not user_has_role(user, RoleEnum.SUPER_ADMIN) and user.school_id != school_id:
        raise ForbiddenError("You can only manage subjects in your school")


@router.get("", response_model=list[SubjectOut])
async def list_subjects(
    school_id: Optional[int] = Query(None, alias="schoolId"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    school_id = school_id or user.school_id
    stmt = sa.select(Subject)
    if school_id is not None:
        stmt = stmt.where(Subject.school_id == school_id)
    return (await session.execute(stmt.order_by(Subject.name))).scalars().all()


@router.get("/{subject_id}", response_model=SubjectOut)
async def get_subject(
    subject_id: int,
    _user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    return await _get_subject_or_404(session, subject_id)


@router.post("", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
async def create_subject(
    payload: SubjectCreate,
    user: User = Depends(require_roles(any_of=SUBJECT_MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    _check_school(user, payload.school_id)
    subject = Subject(**payload.model_dump())
    session.add(subject)
    await session.flush()
    await session.commit()
    return subject


@router.put("/{subject_id}", response_model=SubjectOut)
async def update_subject(
    subject_id: int,
    payload: SubjectUpdate,
    user: User = Depends(require_roles(any_of=SUBJECT_MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    subject = await _get_subject_or_404(session, subject_id)
    _check_school(user, subject.school_id)
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(subject, k, v)
    await session.flush()
    await session.commit()
    return subject


@router.delete("/{subject_id}", response_model=StatusOut)
async def delete_subject(
    subject_id: int,
    user: User = Depends(require_roles(any_of=SUBJECT_MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    subject = await _get_subject_or_404(session, subject_id)
    _check_school(user, subject.school_id)
    await session.delete(subject)
    await session.commit()
    return StatusOut(message="Subject deleted")
