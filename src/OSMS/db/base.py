# src/OSMS/db/base.py
from __future__ import annotations

from datetime import datetime, date, timezone

import sqlalchemy as sa
from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# -----------------------------------------------------------------------------
# Declarative Base with naming conventions (great for Alembic autogenerate)
# -----------------------------------------------------------------------------
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Shared declarative base for all models."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    __sa_eval_namespace__ = {
        "datetime": datetime,
        "date": date,
    }


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------------------------------------------------------
# Common mixins
# -----------------------------------------------------------------------------
class IdMixin:
    """Integer surrogate key; message ids double as a read cursor so they must be monotonic."""
    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)


class TimestampMixin:
    # client-side defaults keep the values on the instance after flush (no lazy refresh under asyncio)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=utcnow,
        server_default=sa.func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=utcnow,
        server_default=sa.func.now(),
        onupdate=utcnow,
        nullable=False,
    )


ORMBase = Base

__all__ = ["Base", "ORMBase", "IdMixin", "TimestampMixin", "NAMING_CONVENTION", "utcnow"]
