# src/OSMS/main.py
from __future__ import annotations

import logging
import logging.config
import os
from contextlib import asynccontextmanager

import sqlalchemy as sa
from asyncpg.exceptions import (
    CheckViolationError,
    ForeignKeyViolationError,
    NotNullViolationError,
    UniqueViolationError,
)
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from sqlalchemy.exc import IntegrityError
from starlette.responses import JSONResponse

from OSMS.api.routers.academic_periods import router as academic_periods_router
from OSMS.api.routers.chat_avatars import router as chat_avatars_router
from OSMS.api.routers.chat_files import router as chat_files_router
from OSMS.api.routers.chat_messages import router as chat_messages_router
from OSMS.api.routers.chats import router as chats_router
from OSMS.api.routers.classes import router as classes_router
from OSMS.api.routers.health import router as health_router
from OSMS.api.routers.schools import router as schools_router
from OSMS.api.routers.subjects import router as subjects_router
from OSMS.api.routers.system_logs import router as system_logs_router
from OSMS.api.routers.user_roles import router as user_roles_router
from OSMS.api.routers.users import router as users_router
from OSMS.core.config import settings
from OSMS.db.session import get_engine
from OSMS.errors import OSMSError
from OSMS.services.temp_avatars import get_temp_avatar_store

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s %(process)d %(module)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "": {"handlers": ["console"], "level": os.getenv("OSMS_LOG_LEVEL", "INFO").upper()},
        "uvicorn": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "uvicorn.access": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
}

logging.config.dictConfig(LOGGING)
log = logging.getLogger("OSMS.main")


def generate_unique_id(route: APIRoute) -> str:
    methods = "_".join(sorted((route.methods or []), key=str.lower)).lower()
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "").strip("_")
    tag = (route.tags[0] if route.tags else "default").lower().replace(" ", "_")
    return f"{tag}__{methods}__{path}"


def _integrity_status(exc: IntegrityError) -> tuple[int, str]:
    """
    Map DB integrity errors to 4xx:
    - Unique constraint -> 409 Conflict
    - Not-null / FK / Check -> 422 Unprocessable Entity
    - Otherwise -> 400 Bad Request
    """
    orig = getattr(exc, "orig", None)
    # asyncpg wraps the driver error one level down
    cause = getattr(orig, "__cause__", None) or orig

    if isinstance(cause, UniqueViolationError):
        return 409, "Unique constraint violation"
    if isinstance(cause, ForeignKeyViolationError):
        return 422, "Foreign key constraint failed"
    if isinstance(cause, NotNullViolationError):
        return 422, "Missing required field (NOT NULL violation)"
    if isinstance(cause, CheckViolationError):
        return 422, "Check constraint failed"

    # Generic string heuristics for other drivers
    low = str(orig or exc).lower()
    if "unique constraint" in low or "duplicate key" in low:
        return 409, "Unique constraint violation"
    if "foreign key" in low:
        return 422, "Foreign key constraint failed"
    if "not null" in low or "null value in column" in low:
        return 422, "Missing required field (NOT NULL violation)"
    if "check constraint" in low:
        return 422, "Check constraint failed"
    return 400, "Integrity error"


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ---------------- STARTUP ----------------
        if not settings.TESTING:
            async with get_engine().connect() as conn:
                await conn.execute(sa.text("SELECT 1"))
            log.info("[startup] database reachable")
            if not await get_temp_avatar_store().ping():
                log.warning("[startup] redis unreachable; temporary chat avatars will fail")

        yield

        # ---------------- SHUTDOWN ----------------
        await get_temp_avatar_store().aclose()
        await get_engine().dispose()
        log.info("[shutdown] engine disposed")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        generate_unique_id_function=generate_unique_id,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(o).rstrip("/") for o in settings.cors_origins],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(OSMSError)
    async def osms_error_handler(request: Request, exc: OSMSError):
        level = logging.WARNING if exc.status_code < 500 else logging.ERROR
        log.log(
            level,
            "%s on %s %s -> %s: %s",
            exc.__class__.__name__, request.method, request.url.path, exc.status_code, exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        status_code, detail = _integrity_status(exc)
        message = str(getattr(exc, "orig", None) or exc)

        log.exception(
            "IntegrityError on %s %s -> %s: %s",
            request.method, request.url.path, status_code, message,
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "detail": {
                    "error": "integrity_error",
                    "reason": detail,
                    "db_message": message,
                }
            },
        )

    app.include_router(health_router)

    for router in (
        schools_router,
        classes_router,
        subjects_router,
        users_router,
        user_roles_router,
        chats_router,
        chat_messages_router,
        chat_files_router,
        chat_avatars_router,
        academic_periods_router,
        system_logs_router,
    ):
        app.include_router(router)
        log.debug("[startup] mounted router: %s", router.prefix or "/")

    return app


app = create_app()
