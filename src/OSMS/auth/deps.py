# src/OSMS/auth/deps.py
"""
Request identity.

Login and session handling live in the fronting session layer, which forwards
the authenticated user's id in the ``X-User-Id`` header (name configurable via
``USER_ID_HEADER``). These dependencies resolve it to a ``User`` row.
"""
from __future__ import annotations

from typing import Callable, Sequence

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.app_logger import get_logger
from OSMS.core.config import settings
from OSMS.db.models import RoleEnum, User
from OSMS.db.session import get_db
from OSMS.services.roles import user_has_any_role

log = get_logger("auth.deps")


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_db),
) -> User:
    raw = request.headers.get(settings.USER_ID_HEADER)
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    try:
        user_id = int(raw)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user id")

    user = await session.get(User, user_id)
    if user is None:
        log.warning("unknown user id %s on %s %s", user_id, request.method, request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


def require_roles(
    *,
    any_of: Sequence[RoleEnum | str] | set[RoleEnum | str] | None = None,
) -> Callable[..., User]:
    """Route dependency: the caller must hold at least one of ``any_of``."""
    wanted = list(any_of or [])

    async def _dep(user: User = Depends(get_current_user)) -> User:
        if wanted and not user_has_any_role(user, wanted):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden. You don't have the required permissions.",
            )
        return user

    return _dep


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
