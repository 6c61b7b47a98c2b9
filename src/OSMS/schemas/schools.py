from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import APIModel


class SchoolBase(APIModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: Optional[str] = None
    city: Optional[str] = None
    status: str = "active"


class SchoolCreate(SchoolBase):
    pass


class SchoolUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = None
    city: Optional[str] = None
    status: Optional[str] = None


class SchoolOut(SchoolBase):
    id: int
    created_at: datetime
    updated_at: datetime
