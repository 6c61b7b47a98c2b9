from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.app_logger import get_logger
from OSMS.db.models import SystemLog

log = get_logger("audit")


async def log_action(
    session: AsyncSession,
    user_id: Optional[int],
    action: str,
    details: str | None = None,
    ip_address: str | None = None,
) -> SystemLog:
    """Record an administrative action; flushed with the caller's transaction."""
    entry = SystemLog(user_id=user_id, action=action, details=details, ip_address=ip_address)
    session.add(entry)
    await session.flush()
    log.info("%s by user %s: %s", action, user_id, details or "")
    return entry
