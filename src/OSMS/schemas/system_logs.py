from __future__ import annotations

from datetime import datetime
from typing import Optional

from .base import APIModel


class SystemLogOut(APIModel):
    id: int
    user_id: Optional[int] = None
    action: str
    details: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime
