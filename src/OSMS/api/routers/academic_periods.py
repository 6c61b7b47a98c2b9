# src/OSMS/api/routers/academic_periods.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.auth.deps import client_ip, get_current_user, require_roles
from OSMS.db.models import RoleEnum, SchoolClass, User
from OSMS.db.session import get_db
from OSMS.errors import ForbiddenError, NotFoundError
from OSMS.schemas.academic_periods import (
    AcademicPeriodsOut,
    AcademicPeriodsUpdate,
    BoundaryOut,
    CurrentPeriodOut,
    ResolvedPeriodOut,
)
from OSMS.services import academic_periods as periods
from OSMS.services.roles import user_has_role
from OSMS.services.system_logs import log_action

router = APIRouter(prefix="/api/academic-periods", tags=["academic-periods"])

PERIOD_MANAGERS = (
    RoleEnum.SUPER_ADMIN,
    RoleEnum.SCHOOL_ADMIN,
    RoleEnum.PRINCIPAL,
    RoleEnum.VICE_PRINCIPAL,
)


# -------------------------
# Helpers
# -------------------------
async def _get_class_or_404(session: AsyncSession, class_id: int) -> SchoolClass:
    cls = await session.get(SchoolClass, class_id)
    if cls is None:
        raise NotFoundError("Class not found")
    return cls


def _check_school(user: User, cls: SchoolClass) -> None:
    if user_has_role(user, RoleEnum.SUPER_ADMIN):
        return
    if user.school_id and cls.school_id != user.school_id:
        raise ForbiddenError("You can only manage periods for classes in your school")


def _out(class_id: int, period_type, boundaries) -> AcademicPeriodsOut:
    return AcademicPeriodsOut(
        class_id=class_id,
        period_type=period_type,
        boundaries=[BoundaryOut.model_validate(b) for b in boundaries],
        available_periods=periods.available_periods(boundaries) if boundaries
        else list(periods.period_keys_for(period_type)),
    )


# -------------------------
# Routes
# -------------------------
@router.get("/current", response_model=CurrentPeriodOut)
async def current_period(
    on: Optional[date] = Query(None, description="Reference day, defaults to today"),
    _user: User = Depends(get_current_user),
):
    cur = periods.current_academic_period(on)
    return CurrentPeriodOut(
        period=cur.period,
        year=cur.year,
        academic_year=cur.academic_year,
        semester=periods.current_semester_period(on),
        trimester=periods.current_trimester_period(on),
    )


@router.get("/{class_id}", response_model=AcademicPeriodsOut)
async def get_academic_periods(
    class_id: int,
    user: User = Depends(require_roles(any_of=PERIOD_MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    """Period type (quarters when never configured) and explicit boundaries ordered by key."""
    cls = await _get_class_or_404(session, class_id)
    _check_school(user, cls)
    period_type, boundaries = await periods.load_class_settings(session, class_id)
    return _out(class_id, period_type, boundaries)


@router.put("/{class_id}", response_model=AcademicPeriodsOut)
async def update_academic_periods(
    class_id: int,
    payload: AcademicPeriodsUpdate,
    request: Request,
    user: User = Depends(require_roles(any_of=PERIOD_MANAGERS)),
    session: AsyncSession = Depends(get_db),
):
    """Replace the period type and boundaries of a class."""
    cls = await _get_class_or_404(session, class_id)
    _check_school(user, cls)

    period_type, boundaries = await periods.save_class_settings(
        session,
        class_id,
        payload.period_type,
        [b.model_dump() for b in payload.boundaries],
    )
    await log_action(
        session,
        user.id,
        "academic_periods_updated",
        f"Updated academic periods for class {class_id}",
        client_ip(request),
    )
    await session.commit()
    return _out(class_id, period_type, boundaries)


@router.get("/{class_id}/resolve", response_model=ResolvedPeriodOut)
async def resolve_period(
    class_id: int,
    period: str = Query(..., min_length=1),
    year: Optional[int] = Query(None, ge=1900, le=2200, description="Academic start year"),
    _user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Dates of one period for a class: explicit boundary if set, otherwise the default calendar."""
    await _get_class_or_404(session, class_id)
    _, boundaries = await periods.load_class_settings(session, class_id)
    academic_year = year if year is not None else periods.academic_year_for(date.today())
    by_key = {b.period_key: b for b in boundaries}
    resolved = periods.get_period_dates_from_settings(period, by_key, academic_year)
    return ResolvedPeriodOut(
        period_key=period,
        label=resolved.label,
        start_date=resolved.start_date,
        end_date=resolved.end_date,
        academic_year=academic_year,
        is_default=period not in by_key,
    )
