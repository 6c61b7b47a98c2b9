# src/OSMS/api/routers/system_logs.py
from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.auth.deps import require_roles
from OSMS.db.models import RoleEnum, SystemLog, User
from OSMS.db.session import get_db
from OSMS.schemas.system_logs import SystemLogOut

router = APIRouter(prefix="/api/system-logs", tags=["admin"])


@router.get("", response_model=list[SystemLogOut])
async def list_system_logs(
    action: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    _user: User = Depends(require_roles(any_of=[RoleEnum.SUPER_ADMIN])),
    session: AsyncSession = Depends(get_db),
):
    """Newest administrative actions first."""
    stmt = sa.select(SystemLog)
    if action:
        stmt = stmt.where(SystemLog.action == action)
    stmt = stmt.order_by(SystemLog.id.desc()).limit(limit)
    return (await session.execute(stmt)).scalars().all()
