from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import Field, model_validator

from OSMS.db.models import PeriodType
from OSMS.services.academic_periods import PERIOD_KEYS

from .base import APIModel


class BoundaryIn(APIModel):
    period_key: str = Field(..., min_length=1, max_length=32)
    period_name: Optional[str] = Field(None, max_length=64)
    start_date: date
    end_date: date
    academic_year: Optional[str] = Field(None, pattern=r"^\d{4}-\d{4}$")

    @model_validator(mode="after")
    def _validate_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on/after start_date")
        return self


class BoundaryOut(APIModel):
    id: int
    class_id: int
    period_key: str
    period_name: str
    start_date: date
    end_date: date
    academic_year: Optional[str] = None


class AcademicPeriodsOut(APIModel):
    class_id: int
    period_type: PeriodType
    boundaries: list[BoundaryOut] = []
    available_periods: list[str] = []


class AcademicPeriodsUpdate(APIModel):
    period_type: PeriodType
    boundaries: list[BoundaryIn] = []

    @model_validator(mode="after")
    def _validate_keys(self):
        allowed = set(PERIOD_KEYS[self.period_type]) | {"year"}
        seen: set[str] = set()
        for b in self.boundaries:
            if b.period_key not in allowed:
                raise ValueError(f"period {b.period_key!r} does not belong to {self.period_type.value}")
            if b.period_key in seen:
                raise ValueError(f"duplicate period {b.period_key!r}")
            seen.add(b.period_key)
        return self


class ResolvedPeriodOut(APIModel):
    period_key: str
    label: str
    start_date: date
    end_date: date
    academic_year: int
    is_default: bool


class CurrentPeriodOut(APIModel):
    period: str
    year: int
    academic_year: int
    semester: str
    trimester: str
