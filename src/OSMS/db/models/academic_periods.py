from __future__ import annotations

import enum
from datetime import date
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from OSMS.db.base import Base, IdMixin, TimestampMixin


class PeriodType(str, enum.Enum):
    QUARTERS = "quarters"
    SEMESTERS = "semesters"
    TRIMESTERS = "trimesters"


period_type_enum = sa.Enum(
    PeriodType,
    name="period_type",
    native_enum=False,
    length=16,
    values_callable=lambda e: [m.value for m in e],
)


class ClassAcademicPeriod(IdMixin, TimestampMixin, Base):
    """Per-class choice of how the academic year is divided."""
    __tablename__ = "class_academic_periods"

    class_id: Mapped[int] = mapped_column(
        sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    period_type: Mapped[PeriodType] = mapped_column(
        period_type_enum, nullable=False, default=PeriodType.QUARTERS
    )


class AcademicPeriodBoundary(IdMixin, TimestampMixin, Base):
    """Explicit start/end dates overriding the default calendar for one period."""
    __tablename__ = "academic_period_boundaries"
    __table_args__ = (
        sa.UniqueConstraint("class_id", "period_key", name="uq_academic_period_boundaries_class_key"),
        sa.CheckConstraint("end_date >= start_date", name="period_dates_ordered"),
    )

    class_id: Mapped[int] = mapped_column(
        sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    period_key: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    period_name: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    academic_year: Mapped[Optional[str]] = mapped_column(sa.String(16))
