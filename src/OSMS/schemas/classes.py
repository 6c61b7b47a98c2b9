from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import APIModel


class ClassBase(APIModel):
    school_id: int
    name: str = Field(..., min_length=1, max_length=64)
    grade_level: int = Field(..., ge=1, le=12)
    academic_year: str = Field(..., pattern=r"^\d{4}-\d{4}$")


class ClassCreate(ClassBase):
    pass


class ClassUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=64)
    grade_level: Optional[int] = Field(None, ge=1, le=12)
    academic_year: Optional[str] = Field(None, pattern=r"^\d{4}-\d{4}$")


class ClassOut(ClassBase):
    id: int
    created_at: datetime
    updated_at: datetime
