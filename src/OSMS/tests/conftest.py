# src/OSMS/tests/conftest.py
from __future__ import annotations

import os
import sys
import logging

# Settings are read at import time; prime the env before any OSMS import.
os.environ["TESTING"] = "1"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("OSMS_LOG_LEVEL", "WARNING")

import pytest
from fakeredis import FakeAsyncRedis, FakeServer
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from OSMS.core.config import settings
from OSMS.db.models import Base, RoleEnum, School, SchoolClass, User, UserRole
from OSMS.db.session import get_db
from OSMS.main import create_app
from OSMS.services.temp_avatars import TempAvatarStore, get_temp_avatar_store


# =========================
# Logging -> stdout
# =========================
@pytest.fixture(scope="session", autouse=True)
def _tests_log_to_stdout():
    root = logging.getLogger()
    if not any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stdout
        for h in root.handlers
    ):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)
    root.setLevel(os.getenv("TEST_LOG_LEVEL", "WARNING").upper())


# Make anyio run on asyncio (so our async fixtures work everywhere)
@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# ==============================================================
# Per-test upload directory
# ==============================================================
@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    d = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(d))
    monkeypatch.setattr(settings, "FILE_ENCRYPTION_KEY", None)
    yield d


# ==============================================================
# Temp avatars: an in-memory redis per test
# ==============================================================
@pytest.fixture
async def avatar_store():
    store = TempAvatarStore(FakeAsyncRedis(server=FakeServer(), decode_responses=True))
    yield store
    await store.aclose()


# ==============================================================
# Database: a fresh in-memory SQLite per test
# ==============================================================
@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's implicit transactions break SAVEPOINT; let SQLAlchemy emit BEGIN itself.
    @event.listens_for(eng.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(eng.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessionmaker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def session(sessionmaker):
    async with sessionmaker() as s:
        yield s


# ==============================================================
# In-process client
# ==============================================================
@pytest.fixture
async def client(sessionmaker, avatar_store):
    app = create_app()

    async def _get_db_override():
        async with sessionmaker() as s:
            try:
                yield s
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db_override
    app.dependency_overrides[get_temp_avatar_store] = lambda: avatar_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def as_user():
    """Headers identifying the caller: ``as_user(user)`` or ``as_user(user_id)``."""
    def _headers(user_or_id) -> dict:
        uid = user_or_id if isinstance(user_or_id, int) else user_or_id.id
        return {settings.USER_ID_HEADER: str(uid)}
    return _headers


# ==============================================================
# Seed data
# ==============================================================
class Seed:
    """Small factory over a session for building fixtures inline in tests."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._n = 0

    async def school(self, name: str = "Central School") -> School:
        school = School(name=name, city="Springfield")
        self.session.add(school)
        await self.session.flush()
        return school

    async def school_class(self, school: School, name: str = "5A", grade_level: int = 5) -> SchoolClass:
        cls = SchoolClass(school_id=school.id, name=name, grade_level=grade_level, academic_year="2024-2025")
        self.session.add(cls)
        await self.session.flush()
        return cls

    async def user(self, *roles: RoleEnum, school: School | None = None, name: str | None = None) -> User:
        self._n += 1
        roles = roles or (RoleEnum.STUDENT,)
        username = name or f"user{self._n}"
        user = User(
            username=username,
            email=f"{username}@example.org",
            first_name=username.capitalize(),
            last_name="Tester",
            school_id=school.id if school else None,
            active_role=roles[0],
        )
        for role in roles:
            user.roles.append(UserRole(role=role, school_id=school.id if school else None))
        self.session.add(user)
        await self.session.flush()
        return user

    async def commit(self) -> None:
        await self.session.commit()


@pytest.fixture
async def seed(session) -> Seed:
    return Seed(session)


@pytest.fixture
async def school_users(seed):
    """A school with an admin, two teachers and a student."""
    school = await seed.school()
    admin = await seed.user(RoleEnum.SCHOOL_ADMIN, school=school, name="admin")
    alice = await seed.user(RoleEnum.TEACHER, school=school, name="alice")
    bob = await seed.user(RoleEnum.TEACHER, school=school, name="bob")
    carol = await seed.user(RoleEnum.STUDENT, school=school, name="carol")
    await seed.commit()
    return {"school": school, "admin": admin, "alice": alice, "bob": bob, "carol": carol}
