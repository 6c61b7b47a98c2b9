# src/OSMS/services/academic_periods.py
"""
Academic period resolver.

The academic year starts on September 1. ``academic_year`` arguments are the
*start* year, so the 2024 academic year runs 2024-09-01 .. 2025-06-30.
A class may override any period with an explicit boundary; those dates win
verbatim over the default calendar.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.app_logger import get_logger
from OSMS.db.models import AcademicPeriodBoundary, ClassAcademicPeriod, PeriodType

log = get_logger("services.academic_periods")

SEPTEMBER = 9

PERIOD_KEYS: dict[PeriodType, tuple[str, ...]] = {
    PeriodType.QUARTERS: ("quarter1", "quarter2", "quarter3", "quarter4"),
    PeriodType.SEMESTERS: ("semester1", "semester2"),
    PeriodType.TRIMESTERS: ("trimester1", "trimester2", "trimester3"),
}

DEFAULT_PERIOD_KEYS: tuple[str, ...] = PERIOD_KEYS[PeriodType.QUARTERS]
ALL_PERIOD_KEYS: tuple[str, ...] = tuple(k for keys in PERIOD_KEYS.values() for k in keys) + ("year",)

_LABELS = {
    "quarter1": "Quarter 1",
    "quarter2": "Quarter 2",
    "quarter3": "Quarter 3",
    "quarter4": "Quarter 4",
    "semester1": "Semester 1",
    "semester2": "Semester 2",
    "trimester1": "Trimester 1",
    "trimester2": "Trimester 2",
    "trimester3": "Trimester 3",
}


@dataclass(frozen=True)
class PeriodDates:
    start_date: date
    end_date: date
    label: str


@dataclass(frozen=True)
class CurrentPeriod:
    period: str
    year: int
    academic_year: int


def _end_of_february(year: int) -> date:
    return date(year, 2, calendar.monthrange(year, 2)[1])


def period_label(period_key: str, academic_year: int | None = None) -> str:
    if period_key == "year":
        if academic_year is None:
            return "Academic year"
        return f"Academic year {academic_year}-{academic_year + 1}"
    return _LABELS.get(period_key, period_key)


def default_period_dates(period_key: str, academic_year: int) -> PeriodDates:
    """Default calendar; unknown keys resolve to quarter1."""
    y = academic_year
    table: dict[str, tuple[date, date]] = {
        "quarter1": (date(y, 9, 1), date(y, 10, 31)),
        "quarter2": (date(y, 11, 1), date(y, 12, 31)),
        "quarter3": (date(y + 1, 1, 1), date(y + 1, 3, 31)),
        "quarter4": (date(y + 1, 4, 1), date(y + 1, 6, 30)),
        "semester1": (date(y, 9, 1), date(y, 12, 31)),
        "semester2": (date(y + 1, 1, 1), date(y + 1, 6, 30)),
        "trimester1": (date(y, 9, 1), date(y, 11, 30)),
        "trimester2": (date(y, 12, 1), _end_of_february(y + 1)),
        "trimester3": (date(y + 1, 3, 1), date(y + 1, 5, 31)),
        "year": (date(y, 9, 1), date(y + 1, 6, 30)),
    }
    key = period_key if period_key in table else "quarter1"
    start, end = table[key]
    return PeriodDates(start, end, period_label(key, y))


def get_period_dates_from_settings(
    period_key: str,
    boundaries: Optional[Iterable[AcademicPeriodBoundary] | Mapping[str, AcademicPeriodBoundary]],
    academic_year: int,
) -> PeriodDates:
    """Explicit boundary for ``period_key`` if configured, otherwise the default dates."""
    if boundaries:
        by_key = boundaries if isinstance(boundaries, Mapping) else {b.period_key: b for b in boundaries}
        b = by_key.get(period_key)
        if b is not None:
            return PeriodDates(b.start_date, b.end_date, b.period_name or period_label(period_key, academic_year))
    return default_period_dates(period_key, academic_year)


def academic_year_for(day: date) -> int:
    return day.year if day.month >= SEPTEMBER else day.year - 1


def current_academic_period(day: date | None = None) -> CurrentPeriod:
    """Quarter containing ``day``; June-August (summer recess) reports quarter4."""
    day = day or date.today()
    m = day.month
    if m in (9, 10):
        period = "quarter1"
    elif m in (11, 12):
        period = "quarter2"
    elif m in (1, 2, 3):
        period = "quarter3"
    else:
        # April-May, and the summer recess
        period = "quarter4"
    return CurrentPeriod(period=period, year=day.year, academic_year=academic_year_for(day))


def current_semester_period(day: date | None = None) -> str:
    day = day or date.today()
    return "semester1" if day.month >= SEPTEMBER else "semester2"


def current_trimester_period(day: date | None = None) -> str:
    day = day or date.today()
    m = day.month
    if m in (9, 10, 11):
        return "trimester1"
    if m in (12, 1, 2):
        return "trimester2"
    return "trimester3"


def current_period_for(period_type: PeriodType, day: date | None = None) -> str:
    if period_type == PeriodType.SEMESTERS:
        return current_semester_period(day)
    if period_type == PeriodType.TRIMESTERS:
        return current_trimester_period(day)
    return current_academic_period(day).period


def period_keys_for(period_type: PeriodType | str) -> tuple[str, ...]:
    return PERIOD_KEYS[PeriodType(period_type)]


def available_periods(boundaries: Optional[Sequence[AcademicPeriodBoundary]]) -> list[str]:
    """Configured period keys, or the four quarters when nothing is configured."""
    if boundaries:
        return [b.period_key for b in boundaries]
    return list(DEFAULT_PERIOD_KEYS)


def academic_year_label(academic_year: int) -> str:
    return f"{academic_year}-{academic_year + 1}"


# ------------------------------------------------------------------
# Persistence
# ------------------------------------------------------------------
async def load_class_settings(
    session: AsyncSession, class_id: int
) -> tuple[PeriodType, list[AcademicPeriodBoundary]]:
    setting = (
        await session.execute(
            sa.select(ClassAcademicPeriod).where(ClassAcademicPeriod.class_id == class_id)
        )
    ).scalar_one_or_none()
    boundaries = (
        await session.execute(
            sa.select(AcademicPeriodBoundary)
            .where(AcademicPeriodBoundary.class_id == class_id)
            .order_by(AcademicPeriodBoundary.period_key)
        )
    ).scalars().all()
    period_type = setting.period_type if setting is not None else PeriodType.QUARTERS
    return period_type, list(boundaries)


async def save_class_settings(
    session: AsyncSession,
    class_id: int,
    period_type: PeriodType,
    boundaries: Sequence[Mapping],
) -> tuple[PeriodType, list[AcademicPeriodBoundary]]:
    """Upsert the period type and replace the class's boundaries wholesale."""
    setting = (
        await session.execute(
            sa.select(ClassAcademicPeriod).where(ClassAcademicPeriod.class_id == class_id)
        )
    ).scalar_one_or_none()
    if setting is None:
        setting = ClassAcademicPeriod(class_id=class_id, period_type=period_type)
        session.add(setting)
    else:
        setting.period_type = period_type

    await session.execute(
        sa.delete(AcademicPeriodBoundary).where(AcademicPeriodBoundary.class_id == class_id)
    )
    for b in boundaries:
        start = b["start_date"]
        session.add(
            AcademicPeriodBoundary(
                class_id=class_id,
                period_key=b["period_key"],
                period_name=b.get("period_name") or period_label(b["period_key"]),
                start_date=start,
                end_date=b["end_date"],
                academic_year=b.get("academic_year") or academic_year_label(academic_year_for(start)),
            )
        )
    await session.flush()
    log.info("class %s periods set to %s (%d boundaries)", class_id, period_type.value, len(boundaries))
    return await load_class_settings(session, class_id)
