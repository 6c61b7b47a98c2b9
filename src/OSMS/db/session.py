# src/OSMS/db/session.py
from __future__ import annotations

import os
from typing import AsyncGenerator

from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from OSMS.core.config import settings

# ---------------------------------------------------------------------------
# Engine configuration
# ---------------------------------------------------------------------------

DATABASE_URL: str | URL = settings.DATABASE_URL

# NullPool in tests (or when explicitly requested) so connections are never
# shared across event loops.
USE_NULLPOOL = (
    os.getenv("SQLALCHEMY_NULLPOOL", "0") == "1"
    or bool(settings.TESTING)
)

_engine_kwargs: dict = {
    "echo": bool(settings.DB_ECHO),
    "pool_pre_ping": True,
}

if USE_NULLPOOL:
    _engine_kwargs["poolclass"] = NullPool

engine = create_async_engine(DATABASE_URL, **_engine_kwargs)

# ---------------------------------------------------------------------------
# Sessionmaker (one factory for the whole app)
# ---------------------------------------------------------------------------

AsyncSessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


def get_engine():
    """Expose the engine (e.g., for health checks / pings)."""
    return engine

# ---------------------------------------------------------------------------
# FastAPI dependency
#   Routes commit explicitly; anything left uncommitted is rolled back on close.
# ---------------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
