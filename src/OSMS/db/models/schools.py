from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from OSMS.db.base import Base, IdMixin, TimestampMixin


class School(IdMixin, TimestampMixin, Base):
    __tablename__ = "schools"

    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(sa.String(255))
    city: Mapped[Optional[str]] = mapped_column(sa.String(128))
    status: Mapped[str] = mapped_column(sa.String(32), nullable=False, default="active", server_default="active")

    classes: Mapped[list["SchoolClass"]] = relationship(
        "SchoolClass", back_populates="school", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"School(id={self.id!r}, name={self.name!r})"
