from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import APIModel


class SubjectCreate(APIModel):
    school_id: int
    name: str = Field(..., min_length=1, max_length=128)
    description: Optional[str] = None


class SubjectUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=128)
    description: Optional[str] = None


class SubjectOut(SubjectCreate):
    id: int
    created_at: datetime
    updated_at: datetime
