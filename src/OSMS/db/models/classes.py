from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from OSMS.db.base import Base, IdMixin, TimestampMixin


class SchoolClass(IdMixin, TimestampMixin, Base):
    __tablename__ = "classes"
    __table_args__ = (
        sa.CheckConstraint("grade_level BETWEEN 1 AND 12", name="grade_level_range"),
    )

    school_id: Mapped[int] = mapped_column(
        sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    grade_level: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    # e.g. "2024-2025"
    academic_year: Mapped[str] = mapped_column(sa.String(16), nullable=False)

    school: Mapped["School"] = relationship("School", back_populates="classes")

    def __repr__(self) -> str:
        return f"SchoolClass(id={self.id!r}, name={self.name!r})"
