# src/OSMS/api/routers/health.py
import sqlalchemy as sa
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from OSMS.app_logger import get_logger
from OSMS.db.session import get_db

log = get_logger("api.health")

router = APIRouter(tags=["health"])


@router.get("/healthz", include_in_schema=False)
def healthz():
    return {"status": "ok"}


@router.get("/readyz", include_in_schema=False)
async def readyz(session: AsyncSession = Depends(get_db)):
    try:
        await session.execute(sa.text("SELECT 1"))
    except SQLAlchemyError as e:
        log.warning("readiness probe failed: %s", e)
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ok"}
